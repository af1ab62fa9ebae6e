"""Tests for loading and saving package source configuration."""

import os
import tempfile

import yaml

from source_config import load_sources, parse_sources, save_sources
from registry.nuget.source import PackageSource

CONFIG = """
sources:
  - name: nuget.org
    path: https://www.nuget.org/api/v2/
    protocolVersion: 2
  - name: legacy
    path: https://old.example/nuget
    protocolVersion: 1
  - name: team
    path: https://pkgs.example/v3/
    protocolVersion: 3
    userName: builder
    password: "%TEAM_FEED_TOKEN%"
    enabled: false
    emptySearchTerm: gx42
  - name: future
    path: https://future.example/
    protocolVersion: 7
  - name: nopath
  - just a string
  - name: local
    path: ./packages
"""


class TestLoadSources:
    """Test reading the YAML configuration."""

    def test_loads_valid_records(self, monkeypatch):
        """Invalid records are skipped; the rest load in order."""
        monkeypatch.setenv("TEAM_FEED_TOKEN", "abc123")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "nugetfeed.yml")
            with open(path, "w", encoding="utf-8") as f:
                f.write(CONFIG)

            sources = load_sources(path, timeout=9)

            assert [s.name for s in sources] == ["nuget.org", "legacy", "team", "local"]
            nuget, legacy, team, local = sources
            assert nuget.protocol_version == 2 and not nuget.is_local_path
            assert legacy.protocol_version == 2
            assert team.protocol_version == 3
            assert team.enabled is False
            assert team.user_name == "builder"
            assert team.expanded_password == "abc123"
            assert team.empty_search_term == "gx42"
            assert local.is_local_path
            assert local.expanded_path == os.path.join(os.path.abspath(tmpdir), "packages")
            assert all(s.timeout == 9 for s in sources)

    def test_empty_file(self):
        """An empty document has no sources."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "empty.yml")
            open(path, "w", encoding="utf-8").close()

            assert load_sources(path) == []

    def test_sources_must_be_a_list(self):
        """A mapping under 'sources' is rejected as a whole."""
        assert parse_sources({"sources": {"name": "x"}}) == []
        assert parse_sources(["not", "a", "mapping"]) == []


class TestSaveSources:
    """Test writing the YAML configuration."""

    def test_saves_unexpanded_values(self, monkeypatch):
        """Saved records keep environment references and drop unset fields."""
        monkeypatch.setenv("TEAM_FEED_TOKEN", "abc123")
        sources = [
            PackageSource("a", "https://a.example/", 2),
            PackageSource("b", "https://b.example/v3/", 3, user_name="u", password="%TEAM_FEED_TOKEN%", enabled=False),
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.yml")

            save_sources(path, sources)

            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            reloaded = load_sources(path)

        assert data["sources"][0] == {"name": "a", "path": "https://a.example/", "protocolVersion": 2, "enabled": True}
        assert data["sources"][1]["password"] == "%TEAM_FEED_TOKEN%"
        assert [s.to_record() for s in reloaded] == [s.to_record() for s in sources]
