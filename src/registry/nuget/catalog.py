"""Decoder for NuGet V3 feeds (JSON search results plus catalog resolution).

A V3 search result only carries a summary of each package. The summary's
download URL points at a registration leaf, and the leaf's ``catalogEntry``
is either the full metadata object or yet another URL to it. Dependency
groups are frequently missing from the summary, so every package is
resolved down to the deepest catalog entry before its download URL and
dependencies are trusted:

    search summary -> registration leaf -> catalog entry

Each hop depends on the previous payload, so hops run strictly in order.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from constants import Constants
from common.errors import FeedError, ParseError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning import NuGetVersion, PackageIdentifier

from .models import FrameworkGroup, Package

logger = logging.getLogger(__name__)

# fetch(url, headers=None); None means the protocol Accept headers
Fetch = Callable[..., bytes]


def _load_json(content: bytes, what: str) -> Any:
    try:
        return json.loads(content)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"invalid JSON in {what}: {exc}") from exc


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_dependency_groups(raw: Any) -> List[FrameworkGroup]:
    """Convert a ``dependencyGroups`` array into FrameworkGroup records."""
    groups: List[FrameworkGroup] = []
    if not isinstance(raw, list):
        return groups
    for item in raw:
        if not isinstance(item, dict):
            continue
        group = FrameworkGroup(target_framework=_str(item.get("targetFramework")))
        deps = item.get("dependencies")
        if not isinstance(deps, list):
            deps = []
        for dep in deps:
            if isinstance(dep, dict) and isinstance(dep.get("id"), str) and dep["id"]:
                group.dependencies.append(PackageIdentifier(dep["id"], _str(dep.get("range"))))
        groups.append(group)
    return groups


def _provisional_download_url(summary: Dict[str, Any]) -> str:
    """Registration leaf URL of the summary's version (else of the last listed version)."""
    versions = summary.get("versions")
    if not isinstance(versions, list) or not versions:
        return _str(summary.get("@id"))
    wanted = summary.get("version")
    for item in versions:
        if isinstance(item, dict) and item.get("version") == wanted and _str(item.get("@id")):
            return item["@id"]
    last = versions[-1]
    return _str(last.get("@id")) if isinstance(last, dict) else ""


def _package_from_metadata(data: Dict[str, Any]) -> Optional[Package]:
    """Build a Package from a search summary or a catalog entry."""
    package_id = _str(data.get("id"))
    raw_version = _str(data.get("version"))
    if not package_id or not raw_version:
        logger.warning("Skipping V3 record without id or version")
        return None
    try:
        version = NuGetVersion.parse(raw_version)
    except ParseError:
        logger.warning("Skipping %s: unparseable version %r", package_id, raw_version)
        return None
    is_prerelease = data.get("isPrerelease")
    return Package(
        id=package_id,
        version=version,
        title=_str(data.get("title")),
        description=_str(data.get("description")),
        summary=_str(data.get("summary")),
        license_url=_str(data.get("licenseUrl")),
        download_count=_to_int(data.get("totalDownloads")),
        is_prerelease=is_prerelease if isinstance(is_prerelease, bool) else None,
        dependencies=parse_dependency_groups(data.get("dependencyGroups")),
        icon_url=_str(data.get("iconUrl")),
    )


def _resolve_catalog_entry(entry: Any, fetch: Fetch) -> Optional[Dict[str, Any]]:
    """Follow a ``catalogEntry`` that is given as a URL instead of inline."""
    if isinstance(entry, dict):
        return entry
    if isinstance(entry, str) and entry:
        resolved = _load_json(fetch(entry), "catalog entry")
        if isinstance(resolved, dict):
            return resolved
        raise ParseError("catalog entry is not a JSON object")
    return None


def _apply_catalog(package: Package, leaf: Dict[str, Any], fetch: Fetch) -> None:
    """Update download URL and dependencies from a registration leaf."""
    content_url = _str(leaf.get("packageContent"))
    if content_url:
        package.download_url = content_url
    entry = _resolve_catalog_entry(leaf.get("catalogEntry"), fetch)
    if entry is None:
        return
    if not content_url and entry.get("packageContent"):
        package.download_url = _str(entry.get("packageContent"))
    if "dependencyGroups" in entry:
        package.dependencies = parse_dependency_groups(entry.get("dependencyGroups"))


def resolve_catalog(package: Package, fetch: Fetch) -> None:
    """Replace provisional summary data with the registration/catalog data.

    Failures here only degrade the package (provisional download URL,
    summary-level dependencies); they never fail the surrounding query.
    """
    leaf_url = package.download_url
    if not leaf_url:
        return
    try:
        leaf = _load_json(fetch(leaf_url), "registration leaf")
        if not isinstance(leaf, dict):
            raise ParseError("registration leaf is not a JSON object")
        _apply_catalog(package, leaf, fetch)
    except FeedError as exc:
        logger.warning(
            "Unable to resolve catalog for %s: %s",
            package,
            exc,
            extra=extra_context(event="catalog", outcome="degraded", target=safe_url(leaf_url)),
        )


def fetch_icon(package: Package, fetch: Fetch) -> None:
    """Download the package icon; a failed download leaves the icon unset."""
    if not package.icon_url:
        return
    try:
        package.icon = fetch(package.icon_url, Constants.HEADERS_ANY)
    except FeedError as exc:
        logger.debug("Icon download failed for %s: %s", package, exc)
        package.icon = None


def decode_search_response(content: bytes, fetch: Fetch) -> List[Package]:
    """Decode a V3 search response (``{"data": [...]}``) into packages.

    A single registration leaf (``{"catalogEntry": ...}``) is accepted too.

    Raises:
        ParseError: when the response itself cannot be decoded.
    """
    if not content or not content.strip():
        return []
    payload = _load_json(content, "search response")
    if not isinstance(payload, dict):
        raise ParseError("search response is not a JSON object")

    if "data" not in payload and "catalogEntry" in payload:
        return decode_registration_leaf(payload, fetch)

    data = payload.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise ParseError("search response 'data' is not a list")

    packages: List[Package] = []
    with Timer() as t:
        for summary in data:
            if not isinstance(summary, dict):
                continue
            package = _package_from_metadata(summary)
            if package is None:
                continue
            package.download_url = _provisional_download_url(summary)
            fetch_icon(package, fetch)
            resolve_catalog(package, fetch)
            packages.append(package)

    if is_debug_enabled(logger):
        logger.debug(
            "Decoded V3 search response",
            extra=extra_context(
                event="parse",
                component="catalog",
                outcome="success",
                count=len(packages),
                duration_ms=t.duration_ms(),
            ),
        )
    return packages


def decode_registration_leaf(leaf: Dict[str, Any], fetch: Fetch) -> List[Package]:
    """Decode a registration leaf whose catalog entry describes one package."""
    entry = _resolve_catalog_entry(leaf.get("catalogEntry"), fetch)
    if entry is None:
        return []
    package = _package_from_metadata(entry)
    if package is None:
        return []
    package.download_url = _str(leaf.get("packageContent")) or _str(entry.get("packageContent"))
    fetch_icon(package, fetch)
    return [package]


def decode_registration_response(content: bytes, fetch: Fetch) -> List[Package]:
    """Decode the body of a ``{id}/{version}.json`` registration leaf request.

    Raises:
        ParseError: when the body is not a JSON object.
    """
    if not content or not content.strip():
        return []
    leaf = _load_json(content, "registration leaf")
    if not isinstance(leaf, dict):
        raise ParseError("registration leaf is not a JSON object")
    return decode_registration_leaf(leaf, fetch)
