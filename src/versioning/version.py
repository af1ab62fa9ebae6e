"""NuGet version value type.

NuGet versions are SemVer 2.0 with an optional fourth numeric part
(``1.2.3.4``) and lenient short forms (``1`` or ``1.2``). Numeric parts are
compared as a tuple; prerelease labels follow SemVer precedence, which is
delegated to ``semantic_version``.
"""
from __future__ import annotations

import functools
import re
from typing import Optional, Tuple

import semantic_version

from common.errors import ParseError

_VERSION_PATTERN = re.compile(
    r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)


def _normalize_label(label: str) -> Tuple[str, ...]:
    """Lowercase a prerelease label and drop leading zeros from numeric identifiers."""
    if not label:
        return ()
    parts = []
    for part in label.lower().split("."):
        parts.append(str(int(part)) if part.isdigit() else part)
    return tuple(parts)


@functools.total_ordering
class NuGetVersion:
    """Parsed NuGet version with total ordering."""

    __slots__ = ("major", "minor", "patch", "revision", "prerelease", "metadata", "_text")

    def __init__(
        self,
        major: int,
        minor: int = 0,
        patch: int = 0,
        revision: int = 0,
        prerelease: str = "",
        metadata: str = "",
        text: Optional[str] = None,
    ):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.revision = revision
        self.prerelease = prerelease
        self.metadata = metadata
        self._text = text

    @classmethod
    def parse(cls, text: str) -> "NuGetVersion":
        """Parse a version string.

        Raises:
            ParseError: when the text is not a NuGet version.
        """
        if text is None:
            raise ParseError("version is missing")
        stripped = str(text).strip()
        match = _VERSION_PATTERN.match(stripped)
        if not match:
            raise ParseError(f"invalid version: {text!r}")
        major, minor, patch, revision, prerelease, metadata = match.groups()
        return cls(
            int(major),
            int(minor or 0),
            int(patch or 0),
            int(revision or 0),
            prerelease or "",
            metadata or "",
            text=stripped,
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def release(self) -> Tuple[int, int, int, int]:
        return (self.major, self.minor, self.patch, self.revision)

    def _label_key(self) -> semantic_version.Version:
        # Only the label matters here; numeric parts are compared separately.
        label = _normalize_label(self.prerelease)
        return semantic_version.Version(major=0, minor=0, patch=0, prerelease=label or None)

    def normalized(self) -> str:
        """Canonical ``major.minor.patch[.revision][-label]`` form."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        return text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self.release == other.release and _normalize_label(self.prerelease) == _normalize_label(
            other.prerelease
        )

    def __lt__(self, other: "NuGetVersion") -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        if self.release != other.release:
            return self.release < other.release
        if _normalize_label(self.prerelease) == _normalize_label(other.prerelease):
            return False
        return self._label_key() < other._label_key()

    def __hash__(self) -> int:
        return hash((self.release, _normalize_label(self.prerelease)))

    def __str__(self) -> str:
        return self._text if self._text is not None else self.normalized()

    def __repr__(self) -> str:
        return f"NuGetVersion({str(self)!r})"
