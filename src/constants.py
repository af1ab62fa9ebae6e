"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    INPUT_ERROR = 2


class ProtocolVersion(Enum):
    """Feed protocol versions understood by the client.

    Args:
        Enum (int): Protocol version number as persisted in configuration.
    """

    V2 = 2
    V3 = 3


def _env_int(name: str, default: int) -> int:
    """Read an integer tunable from the environment, falling back to default."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "NUGETFEED_LOG_LEVEL"
    DEFAULT_CONFIG_FILE = "nugetfeed.yml"

    # Seconds; the feed endpoints are expected to answer quickly
    REQUEST_TIMEOUT = _env_int("NUGETFEED_REQUEST_TIMEOUT", 5)
    # Servers reject GetUpdates() query strings that grow too long
    UPDATES_BATCH_SIZE = _env_int("NUGETFEED_UPDATES_BATCH_SIZE", 10)
    DEFAULT_PAGE_SIZE = 15

    MIN_PROTOCOL_VERSION = ProtocolVersion.V2.value
    MAX_PROTOCOL_VERSION = ProtocolVersion.V3.value
    DEFAULT_PROTOCOL_VERSION = ProtocolVersion.V2.value

    NUPKG_EXTENSION = ".nupkg"
    NUSPEC_EXTENSION = ".nuspec"

    # Search term known to make one non-compliant v3 server list everything;
    # only used when a source opts in via its emptySearchTerm setting.
    LEGACY_EMPTY_SEARCH_TERM = "gx42"

    HEADERS_JSON = {"Accept": "application/json"}
    HEADERS_ATOM = {"Accept": "application/atom+xml,application/xml"}
    HEADERS_ANY = {"Accept": "*/*"}
