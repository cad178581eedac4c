"""
outdated-plus

Show outdated npm packages together with the publication date and age of
their wanted and latest releases.
"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main"]
