"""Update discovery for installed packages.

Remote V2 feeds answer a batched ``GetUpdates()`` query. Feeds that do not
implement it (some hosted feeds answer 404, and V3 has no equivalent) are
queried with one ``FindPackagesById`` range query per installed package
instead. The fallback costs one round-trip per package rather than one per
batch.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Sequence, TypeVar

from constants import Constants
from common.errors import FeedError, NotFoundError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning import PackageIdentifier

from .local import get_local_updates
from .models import Package
from .source import PackageSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


def batched(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("batch size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def sort_updates(packages: Iterable[Package]) -> List[Package]:
    """Order by id ascending, then version descending within an id."""
    by_version = sorted(packages, key=lambda p: p.version, reverse=True)
    return sorted(by_version, key=lambda p: p.id)


class UpdateResolver:
    """Find updates for an installed package set on one package source."""

    def __init__(self, source: PackageSource, batch_size: Optional[int] = None):
        """Initialize the resolver.

        Args:
            source: Package source to query.
            batch_size: Installed packages per GetUpdates() request; defaults to Constants.UPDATES_BATCH_SIZE.
        """
        self.source = source
        self.batch_size = batch_size or Constants.UPDATES_BATCH_SIZE

    def get_updates(
        self,
        installed: Iterable[Package],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        target_frameworks: str = "",
        version_constraints: str = "",
    ) -> List[Package]:
        """Updates available for ``installed``, sorted by id then newest version first.

        A 404 on any batch abandons the batched query and answers the whole
        call through get_updates_fallback(); other failures skip that batch.
        """
        installed = list(installed)
        source = self.source

        if source.is_local_path:
            try:
                updates = get_local_updates(
                    source, source.expanded_path, installed, include_prerelease, include_all_versions
                )
            except FeedError as exc:
                logger.error("Unable to check local updates in %s: %s", source.expanded_path, exc)
                updates = []
            return sort_updates(updates)

        protocol = source.protocol
        if not protocol.supports_batch_updates:
            return sort_updates(
                self.get_updates_fallback(
                    installed, include_prerelease, include_all_versions, target_frameworks, version_constraints
                )
            )

        updates: List[Package] = []
        for group in batched(installed, self.batch_size):
            url = protocol.build_updates_url(
                source.feed_url,
                group,
                include_prerelease,
                include_all_versions,
                target_frameworks,
                version_constraints,
            )
            try:
                updates.extend(source.get_packages_from_url(url))
            except NotFoundError:
                logger.info(
                    "%s not found. Falling back to FindPackagesById.",
                    safe_url(url),
                    extra=extra_context(event="decision", component="updates", outcome="fallback"),
                )
                return sort_updates(
                    self.get_updates_fallback(
                        installed, include_prerelease, include_all_versions, target_frameworks, version_constraints
                    )
                )
            except FeedError as exc:
                logger.error("Unable to retrieve package list from %s: %s", safe_url(url), exc)

        return sort_updates(updates)

    def get_updates_fallback(
        self,
        installed: Iterable[Package],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        target_frameworks: str = "",
        version_constraints: str = "",
    ) -> List[Package]:
        """One ``(current,)`` range query per installed package.

        Keeps only the newest candidate per package unless
        ``include_all_versions``; results keep the ascending order returned
        by find_packages_by_id, package after package.
        """
        if target_frameworks or version_constraints:
            logger.warning("Target framework and version constraints are ignored when falling back to FindPackagesById")

        updates: List[Package] = []
        with Timer() as t:
            for current in installed:
                identifier = PackageIdentifier(current.id, f"({current.version},)")
                candidates = self.source.find_packages_by_id(identifier)
                if not include_prerelease:
                    candidates = [c for c in candidates if not c.is_prerelease]
                if not candidates:
                    continue
                updates.extend(candidates if include_all_versions else candidates[-1:])

        if is_debug_enabled(logger):
            logger.debug(
                "GetUpdates fallback took %d ms",
                t.duration_ms(),
                extra=extra_context(event="query", component="updates", count=len(updates)),
            )
        return updates


def get_updates_from_sources(
    sources: Iterable[PackageSource],
    installed: Iterable[Package],
    include_prerelease: bool = False,
    include_all_versions: bool = False,
) -> List[Package]:
    """Aggregate updates over every enabled source.

    The first source reporting a given id and version wins.
    """
    installed = list(installed)
    seen = set()
    merged: List[Package] = []
    for source in sources:
        if not source.enabled:
            continue
        for package in source.get_updates(installed, include_prerelease, include_all_versions):
            if package in seen:
                continue
            seen.add(package)
            merged.append(package)
    return sort_updates(merged)
