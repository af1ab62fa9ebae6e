"""Load and save package source records from a YAML config file.

Expected layout::

    sources:
      - name: nuget.org
        path: https://www.nuget.org/api/v2/
        protocolVersion: 2
      - name: team
        path: https://pkgs.example.com/nuget/v3/
        protocolVersion: 3
        userName: builder
        password: "%FEED_TOKEN%"
        enabled: true
      - name: local
        path: ./packages

Invalid records are logged and skipped so one bad entry never hides the
remaining sources.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants
from registry.nuget.source import PackageSource

logger = logging.getLogger(__name__)


def _record_to_source(record: Dict[str, Any], config_dir: Optional[str], timeout: Optional[float]) -> PackageSource:
    name = record.get("name")
    path = record.get("path")
    if not name or not path:
        raise ValueError("package source needs both 'name' and 'path'")
    password = record.get("password")
    return PackageSource(
        str(name),
        str(path).strip(),
        record.get("protocolVersion", Constants.DEFAULT_PROTOCOL_VERSION),
        user_name=record.get("userName") or None,
        password=str(password) if password is not None else None,
        enabled=bool(record.get("enabled", True)),
        empty_search_term=record.get("emptySearchTerm") or None,
        config_dir=config_dir,
        timeout=timeout,
    )


def parse_sources(data: Any, config_dir: Optional[str] = None, timeout: Optional[float] = None) -> List[PackageSource]:
    """Build PackageSource objects from already-loaded YAML data."""
    if not isinstance(data, dict):
        return []
    records = data.get("sources") or []
    if not isinstance(records, list):
        logger.error("'sources' must be a list")
        return []

    sources: List[PackageSource] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.error("Ignoring package source #%d: not a mapping", index)
            continue
        try:
            sources.append(_record_to_source(record, config_dir, timeout))
        except ValueError as exc:
            logger.error("Ignoring package source #%d (%s): %s", index, record.get("name"), exc)
    return sources


def load_sources(config_path: str, timeout: Optional[float] = None) -> List[PackageSource]:
    """Read package sources from a YAML file.

    Raises:
        OSError: when the file cannot be read.
        yaml.YAMLError: when the file is not valid YAML.
    """
    with open(config_path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    config_dir = os.path.dirname(os.path.abspath(config_path))
    sources = parse_sources(data, config_dir, timeout)
    logger.debug("Loaded %d package sources from %s", len(sources), config_path)
    return sources


def save_sources(config_path: str, sources: List[PackageSource]) -> None:
    """Write package sources back using the saved (unexpanded) values."""
    records = []
    for source in sources:
        record = {k: v for k, v in source.to_record().items() if v is not None}
        records.append(record)
    with open(config_path, "w", encoding="utf-8") as fh:
        yaml.safe_dump({"sources": records}, fh, sort_keys=False)
