"""Data models for package identity and version matching."""

import logging
from dataclasses import dataclass
from typing import Optional

from common.errors import ParseError
from .range import RANGE_CLOSERS, RANGE_OPENERS, VersionRange
from .version import NuGetVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageIdentifier:
    """A package id plus an exact version or a version range expression."""
    id: str
    version: str = ""

    @property
    def has_range(self) -> bool:
        return any(ch in self.version for ch in RANGE_OPENERS + RANGE_CLOSERS)

    @property
    def version_range(self) -> VersionRange:
        """Parsed range; a bare version yields an exact range.

        Raises:
            ParseError: when the version expression is malformed.
        """
        return VersionRange.parse(self.version)

    @property
    def minimum_version(self) -> NuGetVersion:
        """Lowest version the identifier accepts (0.0.0 when unbounded below)."""
        if not self.has_range:
            return NuGetVersion.parse(self.version)
        lower = self.version_range.min_version
        return lower if lower is not None else NuGetVersion(0)

    def in_range(self, version: "NuGetVersion | str") -> bool:
        """True when the version satisfies this identifier; malformed input never matches."""
        if not self.version.strip():
            return True
        try:
            if not isinstance(version, NuGetVersion):
                version = NuGetVersion.parse(version)
            if not self.has_range:
                return version == NuGetVersion.parse(self.version)
            return self.version_range.contains(version)
        except ParseError as exc:
            logger.debug("Treating %s@%s as no match: %s", self.id, self.version, exc)
            return False

    def __str__(self) -> str:
        return f"{self.id} {self.version}".strip()


def parse_identifier_token(token: str) -> Optional[PackageIdentifier]:
    """Parse ``Id@version`` (or a bare ``Id``) as typed on the command line."""
    token = token.strip()
    if not token:
        return None
    identifier, _, spec = token.partition("@")
    return PackageIdentifier(identifier.strip(), spec.strip())
