"""Tests for NuGet versions, version ranges and package identifiers."""

import pytest

from common.errors import ParseError
from versioning import NuGetVersion, PackageIdentifier, VersionRange


def v(text):
    """Shorthand for parsing a version."""
    return NuGetVersion.parse(text)


class TestNuGetVersion:
    """Test version parsing and ordering."""

    def test_parses_short_forms(self):
        """Missing numeric parts default to zero."""
        assert v("1") == v("1.0.0")
        assert v("1.2") == v("1.2.0.0")

    def test_orders_numerically(self):
        """Numeric parts compare as numbers, not strings."""
        assert v("1.10.0") > v("1.9.0")
        assert v("1.0.0.2") > v("1.0.0.1")
        assert v("2.0") > v("1.99.99.99")

    def test_prerelease_sorts_before_release(self):
        """A prerelease precedes the release with the same numbers."""
        assert v("1.0.0-beta") < v("1.0.0")
        assert v("1.0.0-alpha") < v("1.0.0-beta")
        assert v("1.0.0-beta.2") < v("1.0.0-beta.10")
        assert v("1.0.0-rc") > v("0.9.9")

    def test_prerelease_label_is_case_insensitive(self):
        """Labels differing only by case are equal."""
        assert v("1.0.0-Beta") == v("1.0.0-beta")
        assert hash(v("1.0.0-Beta")) == hash(v("1.0.0-beta"))

    def test_metadata_is_ignored(self):
        """Build metadata never affects equality."""
        assert v("1.0.0+abc") == v("1.0.0")

    def test_is_prerelease(self):
        """Prerelease flag follows the label."""
        assert v("1.0.0-preview1").is_prerelease
        assert not v("1.0.0").is_prerelease

    def test_keeps_original_text(self):
        """str() returns the text that was parsed."""
        assert str(v("1.0")) == "1.0"
        assert v("1.0").normalized() == "1.0.0"

    @pytest.mark.parametrize("text", ["", "abc", "1.x", "1.0.0.0.0", "1.0-", "v1.0"])
    def test_rejects_malformed(self, text):
        """Malformed versions raise ParseError."""
        with pytest.raises(ParseError):
            NuGetVersion.parse(text)


class TestVersionRangeParse:
    """Test range grammar."""

    def test_bare_version_is_exact(self):
        """A bare version only contains itself."""
        rng = VersionRange.parse("1.2.3")
        assert rng.is_exact
        assert rng.contains(v("1.2.3"))
        assert not rng.contains(v("1.2.4"))
        assert not rng.contains(v("1.2.2"))

    def test_square_single_version_is_exact(self):
        """[1.0] is an exact match."""
        rng = VersionRange.parse("[1.0]")
        assert rng.is_exact
        assert rng.contains("1.0.0")

    def test_exclusive_minimum_unbounded(self):
        """(1.0,) excludes the minimum and has no maximum."""
        rng = VersionRange.parse("(1.0,)")
        assert rng.min_version == v("1.0")
        assert not rng.min_inclusive
        assert rng.max_version is None
        assert not rng.contains("1.0")
        assert rng.contains("1.0.1")
        assert rng.contains("99.0")

    def test_inclusive_minimum(self):
        """[1.0,) includes the minimum."""
        rng = VersionRange.parse("[1.0,)")
        assert rng.contains("1.0")
        assert not rng.contains("0.9")

    def test_maximum_only(self):
        """(,1.0] and (,1.0) bound only the top."""
        assert VersionRange.parse("(,1.0]").contains("1.0")
        assert VersionRange.parse("(,1.0]").contains("0.1")
        assert not VersionRange.parse("(,1.0)").contains("1.0")

    def test_mixed_brackets(self):
        """[1.0,2.0) includes the lower and excludes the upper bound."""
        rng = VersionRange.parse("[1.0,2.0)")
        assert rng.contains("1.0")
        assert rng.contains("1.9.9")
        assert not rng.contains("2.0")

    def test_whitespace_is_tolerated(self):
        """Spaces around bounds are ignored."""
        rng = VersionRange.parse(" [ 1.0 , 2.0 ] ")
        assert rng.contains("2.0")

    def test_open_interval_contains_interior(self):
        """(v1,v3] contains v2 and v3 but not v1."""
        rng = VersionRange.parse("(1.0.0,3.0.0]")
        assert rng.contains("2.0.0")
        assert not rng.contains("1.0.0")
        assert rng.contains("3.0.0")

    def test_str_round_trip(self):
        """str() renders an equivalent range."""
        for text in ["(1.0,)", "[1.0,2.0)", "(,3.0]"]:
            assert VersionRange.parse(str(VersionRange.parse(text))) == VersionRange.parse(text)

    @pytest.mark.parametrize(
        "spec",
        [
            "",
            "[1.0,2.0",
            "1.0,2.0]",
            "(1.0)",
            "(,)",
            "[a,b]",
            "[1.0,2.0,3.0]",
            "[[1.0,2.0]]",
            "[2.0,1.0]",
            "(1.0,1.0)",
            "[]",
        ],
    )
    def test_malformed_ranges_raise_parse_error(self, spec):
        """Malformed ranges raise ParseError instead of crashing."""
        with pytest.raises(ParseError):
            VersionRange.parse(spec)

    def test_parse_error_is_value_error(self):
        """ParseError can be handled as ValueError."""
        with pytest.raises(ValueError):
            VersionRange.parse("[x,)")


class TestPackageIdentifier:
    """Test identifier helpers."""

    def test_has_range(self):
        """Brackets mark a range."""
        assert PackageIdentifier("Foo", "(1.0,)").has_range
        assert not PackageIdentifier("Foo", "1.0").has_range

    def test_minimum_version(self):
        """Minimum is the lower bound, or 0.0.0 when unbounded below."""
        assert PackageIdentifier("Foo", "[1.2,2.0)").minimum_version == v("1.2")
        assert PackageIdentifier("Foo", "(,2.0)").minimum_version == v("0.0.0")
        assert PackageIdentifier("Foo", "1.5").minimum_version == v("1.5")

    def test_in_range_exact(self):
        """A bare version matches only itself."""
        ident = PackageIdentifier("Foo", "1.0")
        assert ident.in_range("1.0.0")
        assert not ident.in_range("1.0.1")

    def test_in_range_without_version_matches_everything(self):
        """An identifier without a version accepts any version."""
        assert PackageIdentifier("Foo").in_range("3.1.4")

    def test_malformed_spec_is_no_match(self):
        """A malformed spec never matches and never raises."""
        ident = PackageIdentifier("Foo", "[1.0,")
        assert not ident.in_range("1.0")
