"""Decoder for NuGet V2 feeds (OData over Atom XML).

See http://www.odata.org/documentation/odata-version-2-0/uri-conventions/
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from common.errors import ParseError
from common.logging_utils import extra_context, is_debug_enabled
from versioning import NuGetVersion, PackageIdentifier

from .models import FrameworkGroup, Package

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
DATA_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices"
METADATA_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"


def _atom(tag: str) -> str:
    return f"{{{ATOM_NS}}}{tag}"


def _prop(tag: str) -> str:
    return f"{{{DATA_NS}}}{tag}"


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def _to_int(text: str) -> int:
    try:
        return int(text)
    except (TypeError, ValueError):
        return 0


def parse_dependencies(raw: str) -> List[FrameworkGroup]:
    """Split the OData ``Dependencies`` string into framework groups.

    Format: ``id:range:framework|id:range:framework``. An entry with an empty
    id (``::net45``) declares a framework group without dependencies.
    """
    groups: Dict[str, FrameworkGroup] = {}
    if not raw:
        return []
    for chunk in raw.split("|"):
        if not chunk.strip():
            continue
        pieces = chunk.split(":")
        dep_id = pieces[0].strip()
        dep_range = pieces[1].strip() if len(pieces) > 1 else ""
        framework = pieces[2].strip() if len(pieces) > 2 else ""
        group = groups.get(framework)
        if group is None:
            group = groups[framework] = FrameworkGroup(target_framework=framework)
        if dep_id:
            group.dependencies.append(PackageIdentifier(dep_id, dep_range))
    return list(groups.values())


def _entry_to_package(entry: ET.Element) -> Optional[Package]:
    props = entry.find(f"{{{METADATA_NS}}}properties")
    if props is None:
        # Some servers nest properties inside <content>
        props = entry.find(f".//{{{METADATA_NS}}}properties")

    def prop(name: str) -> str:
        return _text(props.find(_prop(name))) if props is not None else ""

    package_id = prop("Id") or _text(entry.find(_atom("title")))
    raw_version = prop("Version")
    if not package_id or not raw_version:
        logger.warning("Skipping OData entry without id or version")
        return None
    try:
        version = NuGetVersion.parse(raw_version)
    except ParseError:
        logger.warning("Skipping %s: unparseable version %r", package_id, raw_version)
        return None

    content = entry.find(_atom("content"))
    download_url = content.get("src", "") if content is not None else ""

    is_prerelease = prop("IsPrerelease")
    return Package(
        id=package_id,
        version=version,
        title=prop("Title") or _text(entry.find(_atom("title"))),
        description=prop("Description"),
        summary=_text(entry.find(_atom("summary"))) or prop("Summary"),
        license_url=prop("LicenseUrl"),
        download_url=download_url,
        download_count=_to_int(prop("DownloadCount")),
        is_prerelease=(is_prerelease.lower() == "true") if is_prerelease else None,
        dependencies=parse_dependencies(prop("Dependencies")),
        icon_url=prop("IconUrl"),
    )


def decode_feed(content: bytes) -> List[Package]:
    """Decode an Atom ``<feed>`` (or a single ``<entry>``) into packages.

    Missing optional properties default to empty/zero; entries without an
    id or a parseable version are skipped.

    Raises:
        ParseError: when the payload is not well-formed XML.
    """
    if not content or not content.strip():
        return []
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ParseError(f"invalid OData response: {exc}") from exc

    if root.tag == _atom("entry"):
        entries = [root]
    else:
        entries = root.findall(_atom("entry"))

    packages: List[Package] = []
    for entry in entries:
        package = _entry_to_package(entry)
        if package is not None:
            packages.append(package)

    if is_debug_enabled(logger):
        logger.debug(
            "Decoded OData feed",
            extra=extra_context(event="parse", component="odata", outcome="success", count=len(packages)),
        )
    return packages
