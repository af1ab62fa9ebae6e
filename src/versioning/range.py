"""NuGet version range parsing and inclusion tests.

Supported notation::

    1.0         exactly 1.0
    [1.0]       exactly 1.0
    (1.0,)      1.0 < x
    [1.0,)      1.0 <= x
    (,1.0]      x <= 1.0
    (,1.0)      x < 1.0
    [1.0,2.0]   1.0 <= x <= 2.0
    (1.0,2.0)   1.0 < x < 2.0
    [1.0,2.0)   1.0 <= x < 2.0
"""
from __future__ import annotations

from typing import Optional, Union

from common.errors import ParseError
from .version import NuGetVersion

RANGE_OPENERS = "[("
RANGE_CLOSERS = "])"


def _parse_bound(text: str, spec: str) -> Optional[NuGetVersion]:
    text = text.strip()
    if not text:
        return None
    try:
        return NuGetVersion.parse(text)
    except ParseError as exc:
        raise ParseError(f"invalid version bound {text!r} in range {spec!r}") from exc


class VersionRange:
    """Interval of versions with independently inclusive/exclusive bounds."""

    def __init__(
        self,
        min_version: Optional[NuGetVersion] = None,
        min_inclusive: bool = False,
        max_version: Optional[NuGetVersion] = None,
        max_inclusive: bool = False,
    ):
        if min_version is not None and max_version is not None:
            if min_version > max_version:
                raise ParseError(f"range minimum {min_version} exceeds maximum {max_version}")
            if min_version == max_version and not (min_inclusive and max_inclusive):
                raise ParseError(f"range ({min_version}, {max_version}) cannot contain any version")
        self.min_version = min_version
        self.min_inclusive = min_inclusive and min_version is not None
        self.max_version = max_version
        self.max_inclusive = max_inclusive and max_version is not None

    @classmethod
    def exact(cls, version: NuGetVersion) -> "VersionRange":
        return cls(version, True, version, True)

    @classmethod
    def parse(cls, spec: str) -> "VersionRange":
        """Parse a range expression or a bare version.

        Raises:
            ParseError: on malformed brackets or version segments.
        """
        if spec is None:
            raise ParseError("version range is missing")
        text = str(spec).strip()
        if not text:
            raise ParseError("version range is empty")

        opener, closer = text[0], text[-1]
        if opener not in RANGE_OPENERS:
            if closer in RANGE_CLOSERS:
                raise ParseError(f"unbalanced brackets in range {spec!r}")
            try:
                return cls.exact(NuGetVersion.parse(text))
            except ParseError as exc:
                raise ParseError(f"invalid version range {spec!r}") from exc
        if len(text) < 2 or closer not in RANGE_CLOSERS:
            raise ParseError(f"unbalanced brackets in range {spec!r}")

        inner = text[1:-1]
        if any(ch in inner for ch in RANGE_OPENERS + RANGE_CLOSERS):
            raise ParseError(f"nested brackets in range {spec!r}")

        if "," not in inner:
            # Only "[1.0]" is meaningful without a comma
            if opener != "[" or closer != "]":
                raise ParseError(f"single-version range must use square brackets: {spec!r}")
            version = _parse_bound(inner, spec)
            if version is None:
                raise ParseError(f"empty range {spec!r}")
            return cls.exact(version)

        parts = inner.split(",")
        if len(parts) != 2:
            raise ParseError(f"too many bounds in range {spec!r}")
        lower = _parse_bound(parts[0], spec)
        upper = _parse_bound(parts[1], spec)
        if lower is None and upper is None:
            raise ParseError(f"range {spec!r} has no bounds")
        return cls(lower, opener == "[", upper, closer == "]")

    @property
    def is_exact(self) -> bool:
        return (
            self.min_version is not None
            and self.min_version == self.max_version
            and self.min_inclusive
            and self.max_inclusive
        )

    def contains(self, version: Union[NuGetVersion, str]) -> bool:
        """Check whether a version satisfies both bounds."""
        if not isinstance(version, NuGetVersion):
            version = NuGetVersion.parse(version)
        if self.min_version is not None:
            if self.min_inclusive:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.max_inclusive:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    def __contains__(self, version: Union[NuGetVersion, str]) -> bool:
        return self.contains(version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionRange):
            return NotImplemented
        return (
            self.min_version == other.min_version
            and self.min_inclusive == other.min_inclusive
            and self.max_version == other.max_version
            and self.max_inclusive == other.max_inclusive
        )

    def __hash__(self) -> int:
        return hash((self.min_version, self.min_inclusive, self.max_version, self.max_inclusive))

    def __str__(self) -> str:
        if self.is_exact:
            return f"[{self.min_version}]"
        lower = str(self.min_version) if self.min_version is not None else ""
        upper = str(self.max_version) if self.max_version is not None else ""
        return f"{'[' if self.min_inclusive else '('}{lower},{upper}{']' if self.max_inclusive else ')'}"

    def __repr__(self) -> str:
        return f"VersionRange({str(self)!r})"
