"""Tests for native dependencies.properties descriptors."""

from dep.atoms import DependencyAtom
from dep.descriptor import (
    format_entry,
    parse_descriptor,
    parse_entry,
    render_descriptor,
    write_descriptor,
)


class TestFormatEntry:
    """Test descriptor line rendering."""

    def test_plain(self):
        assert format_entry(DependencyAtom("ns", "lib", "1.0")) == "ns:lib=1.0"

    def test_artifact_and_transient(self):
        atom = DependencyAtom("ns", "lib", "1.0", "lib-1.0-tests.jar", True)

        assert format_entry(atom) == "ns:lib=1.0::lib-1.0-tests.jar:transient"


class TestParse:
    """Test descriptor parsing."""

    def test_parse_entry_forms(self):
        assert parse_entry("ns:lib", "1.0") == DependencyAtom("ns", "lib", "1.0")
        assert parse_entry("ns:lib", "1.0::x.zip").artifact_name == "x.zip"
        assert parse_entry("ns:lib", "1.0:x.zip").artifact_name == "x.zip"
        assert parse_entry("ns:lib", "1.0:transient").transient is True

    def test_comments_blank_and_invalid_lines(self):
        text = "\n".join([
            "# generated",
            "! legacy comment",
            "",
            "ns:a=1.0",
            "not a line",
            "ns:b=2.0::b-2.0.zip:transient",
            "ns:c=",
        ])

        atoms = parse_descriptor(text)

        assert atoms == [
            DependencyAtom("ns", "a", "1.0"),
            DependencyAtom("ns", "b", "2.0", "b-2.0.zip", True),
        ]

    def test_round_trip_keeps_order(self):
        atoms = [
            DependencyAtom("ns", "z", "1.0"),
            DependencyAtom("ns", "a", "2.0", "a-2.0.war"),
        ]

        assert parse_descriptor(render_descriptor(atoms)) == atoms


class TestWrite:
    """Test atomic descriptor writes."""

    def test_write_creates_directories(self, tmp_path):
        target = tmp_path / "repo" / "ns" / "lib" / "1.0" / "dependencies.properties"

        write_descriptor(str(target), [DependencyAtom("ns", "dep", "1.0")])

        assert target.read_text() == "ns:dep=1.0\n"
        assert [p.name for p in target.parent.iterdir()] == ["dependencies.properties"]

    def test_empty_descriptor(self, tmp_path):
        target = tmp_path / "dependencies.properties"

        write_descriptor(str(target), [])

        assert target.read_text() == ""
