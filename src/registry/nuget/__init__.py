"""NuGet feed client package.

This package provides NuGet package source support:
- models.py: Package and FrameworkGroup records
- odata.py: V2 (OData/Atom) response decoding
- catalog.py: V3 (JSON) response decoding with catalog resolution
- protocol.py: per-protocol URL construction and decoding
- nupkg.py / local.py: local directory sources
- source.py: PackageSource queries (find, specific, search, updates)
- updates.py: batched GetUpdates with FindPackagesById fallback
"""

from .models import FrameworkGroup, Package
from .protocol import FeedProtocol, V2ODataProtocol, V3JsonProtocol, protocol_for
from .source import PackageSource, coerce_protocol_version
from .updates import UpdateResolver, get_updates_from_sources, sort_updates

__all__ = [
    "FrameworkGroup",
    "Package",
    "FeedProtocol",
    "V2ODataProtocol",
    "V3JsonProtocol",
    "protocol_for",
    "PackageSource",
    "coerce_protocol_version",
    "UpdateResolver",
    "get_updates_from_sources",
    "sort_updates",
]
