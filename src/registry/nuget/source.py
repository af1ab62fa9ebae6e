"""A configured NuGet package source: a local directory or a remote feed."""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Iterable, List, Optional

from constants import Constants
from common.errors import FeedError
from common.http_client import FeedHttpClient
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning import PackageIdentifier

from .local import get_local_package, get_local_packages
from .models import Package
from .protocol import FeedProtocol, protocol_for

logger = logging.getLogger(__name__)

AGGREGATE_SOURCE_PATH = "(Aggregate source)"
_WINDOWS_ENV_VAR = re.compile(r"%([^%]+)%")


def expand_env(value: str) -> str:
    """Expand ``$VAR``, ``${VAR}`` and ``%VAR%`` references; unknown names are kept."""
    expanded = os.path.expandvars(value)
    return _WINDOWS_ENV_VAR.sub(lambda m: os.environ.get(m.group(1), m.group(0)), expanded)


def coerce_protocol_version(value: Any) -> int:
    """Map a persisted protocol version onto one the client speaks.

    Protocol versions 0 and 1 are obsolete and are upgraded to 2.

    Raises:
        ValueError: for anything that is not an integer up to the newest protocol.
    """
    try:
        version = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid protocol version: {value!r}") from exc
    if version > Constants.MAX_PROTOCOL_VERSION or version < 0:
        raise ValueError(f"unsupported protocol version: {version}")
    if version < Constants.MIN_PROTOCOL_VERSION:
        logger.warning(
            "Protocol version %s is obsolete; using %s",
            version,
            Constants.MIN_PROTOCOL_VERSION,
        )
        return Constants.MIN_PROTOCOL_VERSION
    return version


class PackageSource:
    """One configured feed and the queries it answers.

    Remote query failures never escape these methods: they are logged and
    turned into empty results. Instances are not safe for concurrent use.
    """

    def __init__(
        self,
        name: str,
        path: str,
        protocol_version: int = Constants.DEFAULT_PROTOCOL_VERSION,
        user_name: Optional[str] = None,
        password: Optional[str] = None,
        enabled: bool = True,
        *,
        empty_search_term: Optional[str] = None,
        config_dir: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[FeedHttpClient] = None,
    ):
        """Initialize a package source.

        Args:
            name: Display name of the source.
            path: Saved path: a directory or an http(s) feed URL; may reference environment variables.
            protocol_version: 2 (OData) or 3 (JSON); 0 and 1 are upgraded to 2.
            user_name: Optional feed user name.
            password: Optional feed password; None means no password is used.
            enabled: Whether the source takes part in queries.
            empty_search_term: Term sent to a V3 feed instead of an empty search.
            config_dir: Directory that relative local paths are resolved against.
            timeout: Request timeout in seconds for this source.
            http_client: Pre-built client, mainly for tests.
        """
        self.name = name
        self.saved_path = path
        self.protocol_version = protocol_version
        self.user_name = user_name
        self.saved_password = password
        self.enabled = enabled
        self.empty_search_term = empty_search_term
        self.config_dir = config_dir
        self.timeout = timeout
        self._http_client = http_client
        self._client_key: Optional[tuple] = None

    @property
    def protocol_version(self) -> int:
        return self._protocol_version

    @protocol_version.setter
    def protocol_version(self, value: int) -> None:
        self._protocol_version = coerce_protocol_version(value)
        self._protocol = protocol_for(self._protocol_version)

    @property
    def protocol(self) -> FeedProtocol:
        return self._protocol

    @property
    def expanded_path(self) -> str:
        """Saved path with environment variables expanded and relative directories resolved."""
        path = expand_env(self.saved_path)
        if path.startswith("http") or path == AGGREGATE_SOURCE_PATH:
            return path
        if not os.path.isabs(path):
            path = os.path.join(self.config_dir or os.getcwd(), path)
        return os.path.normpath(path)

    @property
    def feed_url(self) -> str:
        """Remote base URL, always ending with a slash so query names can be appended."""
        path = self.expanded_path
        return path if path.endswith("/") else path + "/"

    @property
    def is_local_path(self) -> bool:
        return not self.expanded_path.startswith("http")

    @property
    def expanded_password(self) -> Optional[str]:
        return expand_env(self.saved_password) if self.saved_password is not None else None

    @property
    def has_password(self) -> bool:
        return self.saved_password is not None

    @has_password.setter
    def has_password(self, value: bool) -> None:
        if value:
            if self.saved_password is None:
                self.saved_password = ""
        else:
            self.saved_password = None

    @property
    def client(self) -> FeedHttpClient:
        """HTTP client bound to this source's credentials and timeout."""
        key = (self.user_name, self.expanded_password, self.timeout)
        if self._http_client is None or (self._client_key is not None and self._client_key != key):
            if self._http_client is not None:
                self._http_client.close()
            self._http_client = FeedHttpClient(self.user_name, self.expanded_password, timeout=self.timeout)
            self._client_key = key
        return self._http_client

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> bytes:
        """Fetch a URL with this source's credentials; headers default to the protocol's."""
        return self.client.fetch(url, headers=self.protocol.headers if headers is None else headers)

    def get_packages_from_url(self, url: str) -> List[Package]:
        """Fetch a query URL and decode the packages it lists.

        Raises:
            TransportError: the first fetch failed (NotFoundError for a 404).
            ParseError: the response could not be decoded.
        """
        logger.debug("Getting packages from: %s", safe_url(url))
        with Timer() as t:
            packages = self.protocol.decode_response(self.fetch(url), self.fetch)
        for package in packages:
            package.source = self
        if is_debug_enabled(logger):
            logger.debug(
                "Retrieved %d packages in %d ms",
                len(packages),
                t.duration_ms(),
                extra=extra_context(
                    event="query",
                    component="source",
                    target=safe_url(url),
                    count=len(packages),
                    duration_ms=t.duration_ms(),
                ),
            )
        return packages

    def _log_query_failure(self, what: str, url: str, exc: Exception) -> None:
        logger.error(
            "Unable to retrieve %s from %s: %s",
            what,
            safe_url(url),
            exc,
            extra=extra_context(event="query", component="source", outcome="error", target=safe_url(url)),
        )

    def find_packages_by_id(self, package: PackageIdentifier) -> List[Package]:
        """All versions of ``package.id`` that satisfy its version expression, ascending."""
        found: List[Package] = []
        if self.is_local_path:
            path = self.expanded_path
            try:
                if package.version and not package.has_range:
                    exact = get_local_package(self, path, package)
                    found = [exact] if exact is not None else []
                else:
                    found = get_local_packages(self, path, package.id, True, True)
            except FeedError as exc:
                self._log_query_failure("package list", path, exc)
        else:
            url = self.protocol.build_find_by_id_url(self.feed_url, package)
            try:
                found = self.get_packages_from_url(url)
            except FeedError as exc:
                self._log_query_failure("package list", url, exc)

        found = [p for p in found if p.id == package.id and package.in_range(p.version)]
        found.sort()
        for item in found:
            item.source = self
        return found

    def _get_registration_leaf(self, package: PackageIdentifier) -> Optional[Package]:
        """Exact-version lookup through the ``{id}/{version}.json`` registration document.

        A search summary only describes the latest version, so older exact
        versions need this document. Any failure falls back to the search query.
        """
        try:
            url = self.protocol.build_registration_leaf_url(self.feed_url, package)
            if url is None:
                return None
            logger.debug("Getting registration leaf from: %s", safe_url(url))
            found = self.protocol.decode_registration_response(self.fetch(url), self.fetch)
        except FeedError as exc:
            logger.debug("No registration leaf for %s: %s", package, exc)
            return None
        for candidate in found:
            if candidate.id == package.id and candidate.version == package.minimum_version:
                candidate.source = self
                return candidate
        return None

    def get_specific_package(self, package: PackageIdentifier) -> Optional[Package]:
        """Best single match for an identifier, or None.

        With a range on a V2 or local source the lowest version in range wins.
        On V3 an exact version is first looked up through its registration
        document. Otherwise an exact version match is preferred; failing that, the first
        candidate (in server order) above the minimum version is returned.
        """
        if package.has_range and (self.is_local_path or self.protocol_version == Constants.MIN_PROTOCOL_VERSION):
            found = self.find_packages_by_id(package)
            return found[0] if found else None

        if self.is_local_path:
            try:
                return get_local_package(self, self.expanded_path, package)
            except FeedError as exc:
                self._log_query_failure("package", self.expanded_path, exc)
                return None

        exact = self._get_registration_leaf(package)
        if exact is not None:
            return exact

        url = self.protocol.build_specific_package_url(self.feed_url, package)
        try:
            minimum = package.minimum_version
            candidates = self.get_packages_from_url(url)
        except FeedError as exc:
            self._log_query_failure("package", url, exc)
            return None

        closest: Optional[Package] = None
        for candidate in candidates:
            if candidate.id != package.id:
                continue
            if package.has_range and not package.in_range(candidate.version):
                continue
            if candidate.version == minimum:
                return candidate
            if closest is None and candidate.version > minimum:
                closest = candidate

        if closest is not None:
            logger.warning("Unable to find exact version match for %s; using %s", package, closest.version)
        else:
            logger.error("Unable to find version %s", package)
        return closest

    def search(
        self,
        search_term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        take: int = Constants.DEFAULT_PAGE_SIZE,
        skip: int = 0,
    ) -> List[Package]:
        """Search the source; an empty term lists everything."""
        if self.is_local_path:
            try:
                return get_local_packages(
                    self, self.expanded_path, search_term, include_all_versions, include_prerelease, take, skip
                )
            except FeedError as exc:
                self._log_query_failure("package list", self.expanded_path, exc)
                return []

        url = self.protocol.build_search_url(
            self.feed_url,
            search_term,
            include_all_versions,
            include_prerelease,
            take,
            skip,
            self.empty_search_term,
        )
        try:
            return self.get_packages_from_url(url)
        except FeedError as exc:
            self._log_query_failure("package list", url, exc)
            return []

    def get_updates(
        self,
        installed: Iterable[Package],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        target_frameworks: str = "",
        version_constraints: str = "",
    ) -> List[Package]:
        """Packages on this source newer than the installed ones; see UpdateResolver."""
        from .updates import UpdateResolver  # pylint: disable=import-outside-toplevel

        return UpdateResolver(self).get_updates(
            installed,
            include_prerelease,
            include_all_versions,
            target_frameworks,
            version_constraints,
        )

    def to_record(self) -> Dict[str, Any]:
        """Persistable form of the saved (unexpanded) settings."""
        return {
            "name": self.name,
            "path": self.saved_path,
            "protocolVersion": self.protocol_version,
            "userName": self.user_name,
            "password": self.saved_password,
            "enabled": self.enabled,
            "emptySearchTerm": self.empty_search_term,
        }

    def __repr__(self) -> str:
        return f"PackageSource(name={self.name!r}, path={self.saved_path!r}, protocol_version={self.protocol_version})"
