"""NuGet version, version range and package identifier types."""

from .version import NuGetVersion
from .range import VersionRange
from .models import PackageIdentifier, parse_identifier_token

__all__ = [
    "NuGetVersion",
    "VersionRange",
    "PackageIdentifier",
    "parse_identifier_token",
]
