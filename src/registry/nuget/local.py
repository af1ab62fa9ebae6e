"""Queries against a package source that is a plain directory of ``.nupkg`` files."""
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from constants import Constants
from common.errors import NotConfiguredError, ParseError
from common.logging_utils import extra_context, is_debug_enabled
from versioning import PackageIdentifier

from .models import Package
from .nupkg import read_nupkg

if TYPE_CHECKING:  # pragma: no cover
    from .source import PackageSource

logger = logging.getLogger(__name__)


def _require_directory(path: str) -> None:
    if not os.path.isdir(path):
        raise NotConfiguredError(f"Local folder not found: {path}")


def _archive_paths(path: str, search_term: str) -> List[str]:
    term = (search_term or "").lower()
    names = sorted(
        name
        for name in os.listdir(path)
        if name.lower().endswith(Constants.NUPKG_EXTENSION) and term in name.lower()
    )
    return [os.path.join(path, name) for name in names]


def get_local_packages(
    source: "PackageSource",
    path: str,
    search_term: str = "",
    include_all_versions: bool = False,
    include_prerelease: bool = False,
    take: int = Constants.DEFAULT_PAGE_SIZE,
    skip: int = 0,
) -> List[Package]:
    """List archives whose file name contains the search term.

    The whole directory is returned on the first page, so any non-zero
    ``skip`` yields nothing. ``take`` is accepted for signature parity with
    remote searches and is not applied. Without ``include_all_versions``
    only the highest version of each id is kept.

    Raises:
        NotConfiguredError: when the directory does not exist.
    """
    if skip != 0:
        return []
    _require_directory(path)

    latest: Dict[str, Package] = {}
    packages: List[Package] = []
    for archive in _archive_paths(path, search_term):
        try:
            package = read_nupkg(archive)
        except ParseError as exc:
            logger.warning("Skipping unreadable package %s: %s", archive, exc)
            continue
        package.source = source

        if package.is_prerelease and not include_prerelease:
            continue
        if include_all_versions:
            packages.append(package)
            continue
        existing = latest.get(package.id)
        if existing is None or existing.version < package.version:
            latest[package.id] = package

    if not include_all_versions:
        packages = list(latest.values())

    if is_debug_enabled(logger):
        logger.debug(
            "Scanned local source",
            extra=extra_context(event="scan", component="local", target=path, count=len(packages)),
        )
    return packages


def get_local_package(source: "PackageSource", path: str, package: PackageIdentifier) -> Optional[Package]:
    """Open ``{id}.{version}.nupkg`` directly; None when it is absent.

    Raises:
        NotConfiguredError: when the directory does not exist.
        ParseError: when the archive exists but cannot be read.
    """
    _require_directory(path)
    archive = os.path.join(path, f"{package.id}.{package.version}{Constants.NUPKG_EXTENSION}")
    if not os.path.isfile(archive):
        return None
    found = read_nupkg(archive)
    found.source = source
    return found


def get_local_updates(
    source: "PackageSource",
    path: str,
    installed: Iterable[Package],
    include_prerelease: bool = False,
    include_all_versions: bool = False,
) -> List[Package]:
    """Local packages that are strictly newer than an installed package of the same id."""
    available = get_local_packages(source, path, "", include_all_versions, include_prerelease)
    updates: List[Package] = []
    for current in installed:
        for candidate in available:
            if candidate.id == current.id and current.version < candidate.version:
                updates.append(candidate)
    return updates
