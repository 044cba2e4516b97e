"""Tests for Maven version ordering, ranges and metadata-backed resolution."""

import pytest

from common.http_client import Transport
from constants import RepositoryType
from dep.atoms import DependencyAtom, RepositoryAtom, parse_repository_atom
from registry.maven.metadata import parse_versions
from versioning.maven import (
    MavenVersionResolver,
    compare_versions,
    parse_range,
    resolve_version,
    satisfies,
    sort_versions,
)
from versioning.models import InvalidRange, UnsupportedRangeSet

CANDIDATES = ["1.4.2", "1.4.3-rc1", "1.4.3", "1.4.4-rc1", "1.4.4"]

METADATA = """<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <groupId>com.acme</groupId>
  <artifactId>lib</artifactId>
  <versioning>
    <latest>2.0</latest>
    <release>2.0</release>
    <versions>
      <version>1.0</version>
      <version>1.5</version>
      <version>2.0</version>
    </versions>
  </versioning>
</metadata>
"""


class TestVersionOrdering:
    """Test compare_versions and sort_versions."""

    def test_known_order(self):
        ordered = ["1.0-SNAPSHOT", "1.0", "2.0-RELEASE", "2.0.3",
                   "2.0.4-SNAPSHOT-0", "2.0.4-SNAPSHOT-1", "2.0.4"]

        assert sort_versions(list(reversed(ordered))) == ordered
        assert sort_versions(ordered) == ordered

    def test_unqualified_sorts_after_qualified(self):
        assert compare_versions("1.0-SNAPSHOT", "1.0") < 0
        assert compare_versions("1.0", "1.0-SNAPSHOT") > 0

    def test_missing_components_are_zero(self):
        assert compare_versions("1", "1.0.0") == 0

    def test_numeric_not_lexical(self):
        assert compare_versions("1.10", "1.9") > 0


class TestRanges:
    """Test parse_range, satisfies and resolve_version."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("[,1.4.3)", "1.4.3-rc1"),
            ("[1.4.2,)", "1.4.4"),
            ("(1.4.4,)", None),
            ("[1.4.3,1.4.4)", "1.4.4-rc1"),
        ],
    )
    def test_resolve_against_candidates(self, expression, expected):
        assert resolve_version(expression, CANDIDATES) == expected

    def test_literal_is_unchanged(self):
        assert resolve_version("1.2.3", CANDIDATES) == "1.2.3"
        assert parse_range("1.2.3") is None

    def test_pin(self):
        version_range = parse_range("[1.4.3]")

        assert version_range.is_pinned
        assert resolve_version("[1.4.3]", None) == "1.4.3"

    def test_inclusive_upper_without_candidates(self):
        assert resolve_version("[1.0,2.0]", None) == "2.0"
        assert resolve_version("[1.0,2.0)", None) is None

    def test_range_set_is_unsupported(self):
        with pytest.raises(UnsupportedRangeSet):
            parse_range("[1.0,2.0),[3.0,)")

    def test_unbounded_is_invalid(self):
        with pytest.raises(InvalidRange):
            parse_range("(,)")

    def test_unterminated_is_invalid(self):
        with pytest.raises(InvalidRange):
            parse_range("[1.0,2.0")

    def test_satisfies_exclusive_bounds(self):
        version_range = parse_range("(1.0,2.0)")

        assert satisfies("1.5", version_range)
        assert not satisfies("1.0", version_range)
        assert not satisfies("2.0", version_range)


class TestMetadata:
    """Test maven-metadata.xml reading."""

    def test_parse_versions(self):
        assert parse_versions(METADATA) == ["1.0", "1.5", "2.0"]

    def test_falls_back_to_latest(self):
        text = "<metadata><versioning><latest>3.1</latest></versioning></metadata>"

        assert parse_versions(text) == ["3.1"]

    def test_garbage_yields_nothing(self):
        assert parse_versions("<metadata") == []


class TestMavenVersionResolver:
    """Test range resolution backed by repository metadata."""

    def test_resolves_range_from_metadata(self, tmp_path):
        directory = tmp_path / "com" / "acme" / "lib"
        directory.mkdir(parents=True)
        (directory / "maven-metadata.xml").write_text(METADATA)
        repo = parse_repository_atom(f"{tmp_path}::maven")

        resolver = MavenVersionResolver(Transport())
        atom = resolver.resolve(DependencyAtom("com.acme", "lib", "[1.0,2.0)"), [repo])

        assert atom.version == "1.5"

    def test_ply_repositories_are_not_consulted(self, tmp_path):
        directory = tmp_path / "com" / "acme" / "lib"
        directory.mkdir(parents=True)
        (directory / "maven-metadata.xml").write_text(METADATA)
        repo = RepositoryAtom(parse_repository_atom(str(tmp_path)).uri, RepositoryType.PLY)

        resolver = MavenVersionResolver(Transport())

        assert resolver.fetch_candidates(DependencyAtom("com.acme", "lib", "[1.0,)"), [repo]) is None

    def test_no_match_returns_none(self, tmp_path):
        directory = tmp_path / "com" / "acme" / "lib"
        directory.mkdir(parents=True)
        (directory / "maven-metadata.xml").write_text(METADATA)
        repo = parse_repository_atom(f"{tmp_path}::maven")

        resolver = MavenVersionResolver(Transport())

        assert resolver.resolve(DependencyAtom("com.acme", "lib", "(2.0,)"), [repo]) is None
