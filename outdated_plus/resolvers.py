"""
npm collaborators: the outdated detector and registry metadata fetchers.
"""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests

from .concurrency import run_bounded
from .constants import HTTP_REQUEST_TIMEOUT, NPM_COMMAND_TIMEOUT, NPM_REGISTRY
from .errors import NetworkError, OutdatedPlusError, ParseError, RegistryError
from .interfaces import MetadataSource, OutdatedDetector
from .models import META_FALLBACK, OutdatedEntry, PackageMeta


logger = logging.getLogger(__name__)

_OUTDATED_FIELDS = ("current", "wanted", "latest")


def is_valid_registry_response(data: Any) -> bool:
    """Check the parts of a registry document this tool reads."""
    if not isinstance(data, dict):
        return False
    if "dist-tags" in data and not isinstance(data["dist-tags"], dict):
        return False
    if "time" in data and not isinstance(data["time"], dict):
        return False
    return True


def extract_latest_version(data: Dict) -> str:
    dist_tags = data.get("dist-tags")
    if isinstance(dist_tags, dict):
        latest = dist_tags.get("latest")
        return "" if latest is None else str(latest)
    # `npm view <pkg> dist-tags.latest --json` flattens the key
    latest = data.get("dist-tags.latest")
    return "" if latest is None else str(latest)


def extract_time_map(data: Dict) -> Dict[str, str]:
    """Return the version -> ISO timestamp map, keeping string values only."""
    time_data = data.get("time")
    if not isinstance(time_data, dict):
        return {}
    return {ver: ts for ver, ts in time_data.items() if isinstance(ts, str)}


def is_outdated_map(data: Any) -> bool:
    """Strictly validate ``npm outdated --json`` output."""
    if not isinstance(data, dict):
        return False
    for value in data.values():
        if not isinstance(value, dict):
            return False
        for key in _OUTDATED_FIELDS:
            if not isinstance(value.get(key), str):
                return False
    return True


def coerce_outdated_map(data: Any) -> Dict[str, OutdatedEntry]:
    """Convert detector output to entries, dropping anything malformed.

    ``npm outdated --all`` may report a list of entries per package (one per
    dependent); the first one is used. Missing version fields become ``""``.
    """
    if not isinstance(data, dict):
        return {}
    if isinstance(data.get("error"), dict) and "code" in data["error"]:
        logger.warning("npm outdated reported an error: %s", data["error"].get("summary", ""))
        return {}

    outdated: Dict[str, OutdatedEntry] = {}
    for name, value in data.items():
        if isinstance(value, list):
            value = next((item for item in value if isinstance(item, dict)), None)
        if not isinstance(value, dict):
            logger.debug("Ignoring malformed outdated entry for %s", name)
            continue
        fields = {}
        for key in _OUTDATED_FIELDS:
            raw = value.get(key)
            fields[key] = raw if isinstance(raw, str) else ""
        outdated[name] = OutdatedEntry(**fields)
    return outdated


@dataclass
class ResolverCache:
    """Shared in-memory caches for registry lookups."""

    metadata_cache: Dict[str, Dict] = field(default_factory=dict)
    session: requests.Session = field(default_factory=requests.Session)


class NpmRegistryClient:
    """Fetch package documents from the npm registry over HTTP."""

    def __init__(
        self,
        registry_url: str = NPM_REGISTRY,
        timeout: float = HTTP_REQUEST_TIMEOUT,
        cache: Optional[ResolverCache] = None,
    ) -> None:
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache or ResolverCache()

    def package_url(self, package_name: str) -> str:
        return f"{self.registry_url}/{quote(package_name, safe='@')}"

    def fetch_package_metadata(self, package_name: str) -> Dict:
        """Fetch and validate the registry document for a package.

        Raises:
            RegistryError: The package does not exist (HTTP 404).
            NetworkError: Transport failure or any other HTTP error.
            ParseError: The body is not a usable registry document.
        """
        if package_name in self.cache.metadata_cache:
            logger.debug("Cache hit: metadata %s", package_name)
            return self.cache.metadata_cache[package_name]

        url = self.package_url(package_name)
        logger.info("Fetching metadata for %s", package_name)
        try:
            response = self.cache.session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(str(e), url=url) from e

        with response:
            if response.status_code == 404:
                raise RegistryError("Package not found", package_name)
            if not response.ok:
                raise NetworkError(
                    f"Registry request failed: {response.reason}",
                    url=url,
                    status_code=response.status_code,
                )
            try:
                data = response.json()
            except ValueError as e:
                raise ParseError(f"Invalid JSON from registry for {package_name}", source=url) from e

        if not is_valid_registry_response(data):
            raise ParseError(f"Unexpected registry response for {package_name}", source=url)

        self.cache.metadata_cache[package_name] = data
        return data

    def fetch(self, package_name: str) -> PackageMeta:
        data = self.fetch_package_metadata(package_name)
        return PackageMeta(
            latest=extract_latest_version(data),
            time_map=extract_time_map(data),
        )


class NpmCli(OutdatedDetector):
    """Thin wrapper around the ``npm`` executable."""

    def __init__(self, executable: str = "npm", timeout: int = NPM_COMMAND_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    def _run_json(self, args: List[str]) -> Any:
        cmd = [self.executable, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise OutdatedPlusError(f"{self.executable} executable not found", "NPM_NOT_FOUND") from e
        except subprocess.TimeoutExpired as e:
            raise OutdatedPlusError(f"{' '.join(cmd)} timed out", "NPM_TIMEOUT") from e

        output = result.stdout.strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON from {' '.join(cmd)}", source=output[:200]) from e

    def outdated(self, check_all: bool = False) -> Dict[str, OutdatedEntry]:
        """Run ``npm outdated --json``; unusable output means nothing is outdated."""
        args = ["outdated", "--json"]
        if check_all:
            args.append("--all")
        try:
            data = self._run_json(args)
        except ParseError as e:
            logger.warning("Ignoring unreadable npm outdated output: %s", e)
            return {}
        if data is None:
            return {}
        if not is_outdated_map(data):
            logger.debug("npm outdated output needs coercion")
        return coerce_outdated_map(data)

    def view_metadata(self, package_name: str) -> PackageMeta:
        data = self._run_json(["view", package_name, "time", "dist-tags.latest", "--json"])
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected npm view output for {package_name}")
        return PackageMeta(
            latest=extract_latest_version(data),
            time_map=extract_time_map(data),
        )


class MetadataFetcher(MetadataSource):
    """Registry first, ``npm view`` when the registry is unreachable."""

    def __init__(self, registry: NpmRegistryClient, npm_cli: Optional[NpmCli] = None) -> None:
        self.registry = registry
        self.npm_cli = npm_cli

    def fetch(self, package_name: str) -> PackageMeta:
        try:
            return self.registry.fetch(package_name)
        except NetworkError as e:
            if self.npm_cli is None:
                raise
            logger.warning("Registry fetch failed for %s, falling back to npm view: %s", package_name, e)
            return self.npm_cli.view_metadata(package_name)


async def fetch_all(
    names: Iterable[str],
    fetcher: MetadataSource,
    concurrency: int,
    on_item_done: Optional[Callable[[str], None]] = None,
) -> Dict[str, PackageMeta]:
    """Fetch metadata for every package, never failing the batch."""

    async def fetch_one(name: str) -> PackageMeta:
        return await asyncio.to_thread(fetcher.fetch, name)

    return await run_bounded(names, fetch_one, on_item_done, META_FALLBACK, concurrency)
