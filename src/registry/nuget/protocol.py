"""Feed protocol strategies.

Each protocol knows how to spell the query URLs for a feed and how to decode
the responses. PackageSource picks one strategy per configured protocol
version instead of branching on the version number everywhere.
"""
from __future__ import annotations

import urllib.parse
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from constants import Constants, ProtocolVersion
from versioning import PackageIdentifier

from .catalog import decode_registration_response, decode_search_response
from .models import Package
from .odata import decode_feed

Fetch = Callable[..., bytes]


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _odata_literal(value: str) -> str:
    """Escape a value for use inside an OData single-quoted string."""
    return value.replace("'", "''")


class FeedProtocol(ABC):
    """URL construction and response decoding for one feed protocol."""

    version: ProtocolVersion
    headers: Dict[str, str] = {}

    @abstractmethod
    def build_find_by_id_url(self, base: str, package: PackageIdentifier) -> str:
        """URL listing the versions of one package id."""

    @abstractmethod
    def build_specific_package_url(self, base: str, package: PackageIdentifier) -> str:
        """URL for one id at one exact version."""

    @abstractmethod
    def build_search_url(
        self,
        base: str,
        search_term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        take: int = Constants.DEFAULT_PAGE_SIZE,
        skip: int = 0,
        empty_search_term: Optional[str] = None,
    ) -> str:
        """URL for a paged search; an empty term lists everything."""

    @abstractmethod
    def build_updates_url(
        self,
        base: str,
        installed: Sequence[Package],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        target_frameworks: str = "",
        version_constraints: str = "",
    ) -> Optional[str]:
        """URL for a batch update query, or None when the protocol has none."""

    @abstractmethod
    def decode_response(self, content: bytes, fetch: Fetch) -> List[Package]:
        """Decode a response body; ``fetch`` serves any follow-up requests."""

    @property
    def supports_batch_updates(self) -> bool:
        return True

    def build_registration_leaf_url(self, base: str, package: PackageIdentifier) -> Optional[str]:
        """URL of the per-version registration document, or None when the protocol has none."""
        return None

    def decode_registration_response(self, content: bytes, fetch: Fetch) -> List[Package]:
        """Decode the document behind build_registration_leaf_url()."""
        return self.decode_response(content, fetch)


class V2ODataProtocol(FeedProtocol):
    """NuGet V2: OData functions returning Atom feeds."""

    version = ProtocolVersion.V2
    headers = Constants.HEADERS_ATOM

    def build_find_by_id_url(self, base: str, package: PackageIdentifier) -> str:
        url = f"{base}FindPackagesById()?id='{package.id}&$orderby=Id desc'"
        if not package.has_range and package.version:
            url += f"&$filter=Version eq '{package.version}'"
        return url

    def build_specific_package_url(self, base: str, package: PackageIdentifier) -> str:
        return f"{base}Packages(Id='{_odata_literal(package.id)}',Version='{_odata_literal(package.version)}')"

    def build_search_url(
        self,
        base: str,
        search_term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        take: int = Constants.DEFAULT_PAGE_SIZE,
        skip: int = 0,
        empty_search_term: Optional[str] = None,
    ) -> str:
        params: List[str] = []
        if not include_all_versions:
            params.append("$filter=IsAbsoluteLatestVersion" if include_prerelease else "$filter=IsLatestVersion")
        # OData system option; the historical client sent a bare "skip=", which servers ignore
        params.append(f"$skip={skip}")
        params.append("$orderby=DownloadCount desc")
        params.append(f"$top={take}")
        params.append(f"searchTerm='{_odata_literal(search_term or '')}'")
        params.append("targetFramework=''")
        params.append(f"includePrerelease={_bool(include_prerelease)}")
        return f"{base}Search()?" + "&".join(params)

    def build_updates_url(
        self,
        base: str,
        installed: Sequence[Package],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        target_frameworks: str = "",
        version_constraints: str = "",
    ) -> Optional[str]:
        package_ids = "|".join(p.id for p in installed)
        versions = "|".join(str(p.version) for p in installed)
        return (
            f"{base}GetUpdates()?packageIds='{package_ids}'&versions='{versions}'"
            f"&includePrerelease={_bool(include_prerelease)}"
            f"&includeAllVersions={_bool(include_all_versions)}"
            f"&targetFrameworks='{target_frameworks}'"
            f"&versionConstraints='{version_constraints}'"
        )

    def decode_response(self, content: bytes, fetch: Fetch) -> List[Package]:
        return decode_feed(content)


class V3JsonProtocol(FeedProtocol):
    """NuGet V3: JSON search endpoint with catalog indirection."""

    version = ProtocolVersion.V3
    headers = Constants.HEADERS_JSON

    def _query_url(self, base: str, term: str) -> str:
        return f"{base}query?q={urllib.parse.quote(term, safe='')}"

    def build_find_by_id_url(self, base: str, package: PackageIdentifier) -> str:
        return self._query_url(base, package.id)

    def build_specific_package_url(self, base: str, package: PackageIdentifier) -> str:
        return self._query_url(base, package.id)

    def build_search_url(
        self,
        base: str,
        search_term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        take: int = Constants.DEFAULT_PAGE_SIZE,
        skip: int = 0,
        empty_search_term: Optional[str] = None,
    ) -> str:
        term = search_term or empty_search_term or ""
        url = self._query_url(base, term)
        if not include_all_versions:
            url += f"&prerelease={_bool(include_prerelease)}"
        return url + f"&skip={skip}&take={take}"

    def build_updates_url(
        self,
        base: str,
        installed: Sequence[Package],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        target_frameworks: str = "",
        version_constraints: str = "",
    ) -> Optional[str]:
        return None

    @property
    def supports_batch_updates(self) -> bool:
        return False

    def decode_response(self, content: bytes, fetch: Fetch) -> List[Package]:
        return decode_search_response(content, fetch)

    def build_registration_leaf_url(self, base: str, package: PackageIdentifier) -> Optional[str]:
        if not package.version or package.has_range:
            return None
        version = package.minimum_version.normalized().lower()
        return f"{base}{urllib.parse.quote(package.id.lower(), safe='')}/{version}.json"

    def decode_registration_response(self, content: bytes, fetch: Fetch) -> List[Package]:
        return decode_registration_response(content, fetch)


_PROTOCOLS = {
    ProtocolVersion.V2.value: V2ODataProtocol,
    ProtocolVersion.V3.value: V3JsonProtocol,
}


def protocol_for(version: int) -> FeedProtocol:
    """Return the strategy for a protocol version number.

    Raises:
        ValueError: for versions the client does not speak.
    """
    try:
        return _PROTOCOLS[int(version)]()
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"unsupported protocol version: {version!r}") from exc
