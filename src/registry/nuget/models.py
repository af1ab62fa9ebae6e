"""Package records produced by feed queries."""
from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from versioning import NuGetVersion, PackageIdentifier

if TYPE_CHECKING:  # pragma: no cover
    from .source import PackageSource


@dataclass
class FrameworkGroup:
    """Dependencies declared for one target framework."""
    target_framework: str = ""
    dependencies: List[PackageIdentifier] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetFramework": self.target_framework,
            "dependencies": [{"id": d.id, "version": d.version} for d in self.dependencies],
        }


@dataclass(eq=False)
class Package:
    """Metadata for one version of a package on a feed.

    Equality, hashing and ordering use ``(id, version)`` only. The owning
    PackageSource is held through a weak reference so copies, sorts and
    membership checks never involve the source object.
    """
    id: str
    version: NuGetVersion
    title: str = ""
    description: str = ""
    summary: str = ""
    license_url: str = ""
    download_url: str = ""
    download_count: int = 0
    is_prerelease: Optional[bool] = None
    dependencies: List[FrameworkGroup] = field(default_factory=list)
    icon_url: str = ""
    icon: Optional[bytes] = field(default=None, repr=False)
    _source_ref: Optional["weakref.ReferenceType[PackageSource]"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.version, NuGetVersion):
            self.version = NuGetVersion.parse(self.version)
        if self.is_prerelease is None:
            self.is_prerelease = self.version.is_prerelease

    @property
    def source(self) -> Optional["PackageSource"]:
        """The PackageSource that produced this record, if it is still alive."""
        return self._source_ref() if self._source_ref is not None else None

    @source.setter
    def source(self, value: Optional["PackageSource"]) -> None:
        self._source_ref = weakref.ref(value) if value is not None else None

    @property
    def identifier(self) -> PackageIdentifier:
        return PackageIdentifier(self.id, str(self.version))

    def sort_key(self):
        return (self.id, self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: "Package") -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: "Package") -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: "Package") -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: "Package") -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.sort_key() >= other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __str__(self) -> str:
        return f"{self.id}.{self.version}"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view used by the CLI."""
        source = self.source
        return {
            "id": self.id,
            "version": str(self.version),
            "title": self.title,
            "description": self.description,
            "summary": self.summary,
            "licenseUrl": self.license_url,
            "downloadUrl": self.download_url,
            "downloadCount": self.download_count,
            "isPrerelease": self.is_prerelease,
            "iconUrl": self.icon_url,
            "dependencies": [group.to_dict() for group in self.dependencies],
            "source": source.name if source is not None else None,
        }
