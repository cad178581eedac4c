"""
Shared constants for the outdated-plus tool.
"""

MS_PER_DAY = 86_400_000

# Age thresholds used when colouring ages (days)
AGE_THRESHOLD_RED = 365
AGE_THRESHOLD_YELLOW = 90

NPM_REGISTRY = "https://registry.npmjs.org"
HTTP_REQUEST_TIMEOUT = 10.0
NPM_COMMAND_TIMEOUT = 30

DEFAULT_CONCURRENCY = 12
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 100

SKIP_FILE_NAME = ".outdated-plus-skip"

SORT_KEYS = (
    "name",
    "age_latest",
    "age_wanted",
    "published_latest",
    "published_wanted",
    "current",
    "wanted",
    "latest",
)
SORT_ALIASES = {
    "age": "age_latest",
    "published": "published_latest",
}
DEFAULT_SORT_KEY = "published_latest"
