"""
Error types raised by registry and detector collaborators.
"""

from __future__ import annotations

from typing import Optional


class OutdatedPlusError(Exception):
    """Base error carrying a stable machine-readable code."""

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class NetworkError(OutdatedPlusError):
    """Transport or HTTP failure talking to the registry."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, "NETWORK_ERROR")
        self.url = url
        self.status_code = status_code


class RegistryError(OutdatedPlusError):
    """The registry answered, but not with usable data for a package."""

    def __init__(self, message: str, package_name: str) -> None:
        super().__init__(message, "REGISTRY_ERROR")
        self.package_name = package_name


class ParseError(OutdatedPlusError):
    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message, "PARSE_ERROR")
        self.source = source


class VersionParseError(ParseError):
    """A version string does not follow the SemVer grammar."""

    def __init__(self, version: str) -> None:
        super().__init__(f"Invalid semantic version: {version!r}", source=version)
        self.version = version


class PackageJsonError(OutdatedPlusError):
    def __init__(self, message: str) -> None:
        super().__init__(message, "PACKAGE_JSON_ERROR")


def format_error(error: BaseException) -> str:
    """Render an exception as a one-line message for the terminal."""
    if isinstance(error, NetworkError):
        status = f" (HTTP {error.status_code})" if error.status_code else ""
        return f"Network error{status}: {error.message}"
    if isinstance(error, RegistryError):
        return f"Registry error for '{error.package_name}': {error.message}"
    if isinstance(error, ParseError):
        return f"Parse error: {error.message}"
    if isinstance(error, PackageJsonError):
        return f"Package.json error: {error.message}"
    if isinstance(error, OutdatedPlusError):
        return f"Error: {error.message}"
    return str(error)
