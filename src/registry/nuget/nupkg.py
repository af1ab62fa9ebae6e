"""Read package metadata out of a local ``.nupkg`` archive."""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
import zipfile
from typing import List, Optional

from constants import Constants
from common.errors import ParseError
from versioning import PackageIdentifier

from .models import FrameworkGroup, Package

logger = logging.getLogger(__name__)


def _strip_namespaces(root: ET.Element) -> None:
    # nuspec files use several schema namespaces across versions
    for elem in root.iter():
        if "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]


def _text(parent: Optional[ET.Element], tag: str) -> str:
    if parent is None:
        return ""
    elem = parent.find(tag)
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def _dependencies(metadata: ET.Element) -> List[FrameworkGroup]:
    deps = metadata.find("dependencies")
    if deps is None:
        return []
    groups: List[FrameworkGroup] = []
    group_elems = deps.findall("group")
    if group_elems:
        for group_elem in group_elems:
            group = FrameworkGroup(target_framework=group_elem.get("targetFramework", ""))
            for dep in group_elem.findall("dependency"):
                if dep.get("id"):
                    group.dependencies.append(PackageIdentifier(dep.get("id"), dep.get("version", "")))
            groups.append(group)
        return groups
    flat = [
        PackageIdentifier(dep.get("id"), dep.get("version", ""))
        for dep in deps.findall("dependency")
        if dep.get("id")
    ]
    if flat:
        groups.append(FrameworkGroup(target_framework="", dependencies=flat))
    return groups


def parse_nuspec(content: bytes) -> Package:
    """Build a Package from the bytes of a ``.nuspec`` document.

    Raises:
        ParseError: when the document is not XML or lacks id/version.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ParseError(f"invalid nuspec: {exc}") from exc
    _strip_namespaces(root)
    metadata = root.find("metadata")
    package_id = _text(metadata, "id")
    version = _text(metadata, "version")
    if metadata is None or not package_id or not version:
        raise ParseError("nuspec is missing id or version")
    return Package(
        id=package_id,
        version=version,
        title=_text(metadata, "title"),
        description=_text(metadata, "description"),
        summary=_text(metadata, "summary"),
        license_url=_text(metadata, "licenseUrl"),
        icon_url=_text(metadata, "iconUrl"),
        dependencies=_dependencies(metadata),
    )


def read_nupkg(path: str) -> Package:
    """Open a ``.nupkg`` file and return its metadata.

    Raises:
        ParseError: when the archive is corrupt or carries no root nuspec.
    """
    try:
        with zipfile.ZipFile(path) as archive:
            nuspec_name = next(
                (
                    name
                    for name in archive.namelist()
                    if "/" not in name and name.lower().endswith(Constants.NUSPEC_EXTENSION)
                ),
                None,
            )
            if nuspec_name is None:
                raise ParseError(f"no nuspec found in {path}")
            package = parse_nuspec(archive.read(nuspec_name))
    except (zipfile.BadZipFile, OSError) as exc:
        raise ParseError(f"unable to read {path}: {exc}") from exc
    package.download_url = os.path.abspath(path)
    return package
