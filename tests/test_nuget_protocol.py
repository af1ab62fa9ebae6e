"""Tests for feed protocol URL construction."""

import pytest

from registry.nuget.models import Package
from registry.nuget.protocol import V2ODataProtocol, V3JsonProtocol, protocol_for
from versioning import PackageIdentifier

BASE = "https://feed.example/api/v2/"


class TestProtocolFor:
    """Test protocol selection."""

    def test_selects_by_version(self):
        """2 is OData, 3 is JSON."""
        assert isinstance(protocol_for(2), V2ODataProtocol)
        assert isinstance(protocol_for(3), V3JsonProtocol)

    def test_rejects_unknown(self):
        """Unsupported versions raise ValueError."""
        with pytest.raises(ValueError):
            protocol_for(4)


class TestV2Urls:
    """Test OData URL shapes."""

    def test_find_by_id_with_exact_version(self):
        """An exact version adds a Version filter."""
        url = V2ODataProtocol().build_find_by_id_url(BASE, PackageIdentifier("Foo", "1.0.0"))

        assert url == f"{BASE}FindPackagesById()?id='Foo&$orderby=Id desc'&$filter=Version eq '1.0.0'"

    def test_find_by_id_with_range(self):
        """A range lists every version."""
        url = V2ODataProtocol().build_find_by_id_url(BASE, PackageIdentifier("Foo", "(1.0,)"))

        assert url == f"{BASE}FindPackagesById()?id='Foo&$orderby=Id desc'"

    def test_specific_package(self):
        """Exact lookups use the OData key syntax."""
        url = V2ODataProtocol().build_specific_package_url(BASE, PackageIdentifier("Foo", "1.0.0"))

        assert url == f"{BASE}Packages(Id='Foo',Version='1.0.0')"

    def test_search_latest_stable(self):
        """Default search asks for the latest stable versions ordered by downloads."""
        url = V2ODataProtocol().build_search_url(BASE, "json", take=30, skip=15)

        assert url == (
            f"{BASE}Search()?$filter=IsLatestVersion&$skip=15&$orderby=DownloadCount desc"
            "&$top=30&searchTerm='json'&targetFramework=''&includePrerelease=false"
        )

    def test_search_prerelease_and_all_versions(self):
        """Prerelease switches the filter; all versions drops it."""
        proto = V2ODataProtocol()

        assert "$filter=IsAbsoluteLatestVersion" in proto.build_search_url(BASE, include_prerelease=True)
        assert "$filter" not in proto.build_search_url(BASE, include_all_versions=True)

    def test_search_escapes_quotes(self):
        """Single quotes in the term are doubled."""
        url = V2ODataProtocol().build_search_url(BASE, "it's")

        assert "searchTerm='it''s'" in url

    def test_empty_search_term(self):
        """An empty term is still a valid query."""
        url = V2ODataProtocol().build_search_url(BASE, "")

        assert "searchTerm=''" in url

    def test_updates_url(self):
        """GetUpdates joins ids and versions with pipes."""
        installed = [Package(id="A", version="1.0"), Package(id="B", version="2.0.1")]

        url = V2ODataProtocol().build_updates_url(BASE, installed, True, False, "net45", "")

        assert url == (
            f"{BASE}GetUpdates()?packageIds='A|B'&versions='1.0|2.0.1'"
            "&includePrerelease=true&includeAllVersions=false"
            "&targetFrameworks='net45'&versionConstraints=''"
        )

    def test_no_registration_leaf(self):
        """OData feeds have no per-version registration document."""
        assert V2ODataProtocol().build_registration_leaf_url(BASE, PackageIdentifier("Foo", "1.0.0")) is None


class TestV3Urls:
    """Test JSON search URL shapes."""

    V3_BASE = "https://feed.example/v3/"

    def test_find_by_id(self):
        """Find by id is a search for the id."""
        url = V3JsonProtocol().build_find_by_id_url(self.V3_BASE, PackageIdentifier("Foo.Bar", "1.0"))

        assert url == f"{self.V3_BASE}query?q=Foo.Bar"

    def test_search(self):
        """Prerelease and paging parameters are appended."""
        url = V3JsonProtocol().build_search_url(self.V3_BASE, "foo bar", take=20, skip=40)

        assert url == f"{self.V3_BASE}query?q=foo%20bar&prerelease=false&skip=40&take=20"

    def test_empty_search_sends_empty_query(self):
        """Without an override an empty term stays empty."""
        url = V3JsonProtocol().build_search_url(self.V3_BASE, "", include_all_versions=True)

        assert url.startswith(f"{self.V3_BASE}query?q=&")

    def test_empty_search_override(self):
        """A source-specific placeholder replaces an empty term."""
        url = V3JsonProtocol().build_search_url(self.V3_BASE, "", empty_search_term="gx42")

        assert url.startswith(f"{self.V3_BASE}query?q=gx42&")

    def test_no_batch_updates(self):
        """V3 has no GetUpdates endpoint."""
        proto = V3JsonProtocol()

        assert proto.build_updates_url(self.V3_BASE, []) is None
        assert not proto.supports_batch_updates

    def test_registration_leaf_url(self):
        """Exact versions map to the lowercase id/normalized-version document."""
        url = V3JsonProtocol().build_registration_leaf_url(self.V3_BASE, PackageIdentifier("Foo.Bar", "1.0"))

        assert url == f"{self.V3_BASE}foo.bar/1.0.0.json"

    def test_registration_leaf_url_lowercases_label(self):
        """Prerelease labels are lowercased too."""
        url = V3JsonProtocol().build_registration_leaf_url(self.V3_BASE, PackageIdentifier("Foo", "2.0.0-Beta"))

        assert url == f"{self.V3_BASE}foo/2.0.0-beta.json"

    def test_no_registration_leaf_for_range_or_missing_version(self):
        """Ranges and bare ids go through search instead."""
        proto = V3JsonProtocol()

        assert proto.build_registration_leaf_url(self.V3_BASE, PackageIdentifier("Foo", "[1.0,2.0)")) is None
        assert proto.build_registration_leaf_url(self.V3_BASE, PackageIdentifier("Foo")) is None
