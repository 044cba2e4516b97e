"""Tests for classpath and report projections."""

import os
from collections import OrderedDict

from dep.atoms import DependencyAtom
from dep.models import Dep, ResolutionReport
from dep.report import (
    bundle_paths,
    classpath_string,
    get_classpath,
    render_tree,
    write_resolved_properties,
)


def _dep(name, version="1.0", transient=False, artifact=None):
    atom = DependencyAtom("ns", name, version, artifact, transient)
    return Dep(atom, f"/repo/ns/{name}/{version}/{atom.resolved_artifact_name}", f"/repo/ns/{name}/{version}")


def _report(*deps):
    report = ResolutionReport()
    report.resolved = OrderedDict((d.atom, d) for d in deps)
    for d in deps:
        report.graph.add_vertex(d)
    return report


class TestClasspath:
    """Test classpath projections."""

    def test_own_artifact_first_then_resolution_order(self):
        report = _report(_dep("b"), _dep("a"), _dep("tool", transient=True))

        entries = get_classpath(report.resolved, "/build/app.jar")

        assert entries == [
            "/build/app.jar",
            "/repo/ns/b/1.0/b-1.0.jar",
            "/repo/ns/a/1.0/a-1.0.jar",
            "/repo/ns/tool/1.0/tool-1.0.jar",
        ]

    def test_string_uses_path_separator(self):
        report = _report(_dep("a"), _dep("b"))

        assert classpath_string(report.resolved) == os.pathsep.join(
            ["/repo/ns/a/1.0/a-1.0.jar", "/repo/ns/b/1.0/b-1.0.jar"]
        )

    def test_bundle_excludes_transient(self):
        report = _report(_dep("a"), _dep("tool", transient=True))

        assert bundle_paths(report.resolved) == ["/repo/ns/a/1.0/a-1.0.jar"]


class TestExports:
    """Test resolved-deps export and the tree view."""

    def test_write_resolved_properties(self, tmp_path):
        report = _report(_dep("a"), _dep("b", artifact="b-1.0.zip"))
        target = tmp_path / "resolved-deps.properties"

        write_resolved_properties(report, str(target))

        assert target.read_text().splitlines() == [
            "ns:a:1.0=/repo/ns/a/1.0/a-1.0.jar",
            "ns:b:1.0:b-1.0.zip=/repo/ns/b/1.0/b-1.0.zip",
        ]

    def test_render_tree_marks_repeated_subtrees(self):
        app, a, b, lib, leaf = _dep("app"), _dep("a"), _dep("b"), _dep("lib"), _dep("leaf", transient=True)
        report = _report(app, a, b, lib, leaf)
        graph = report.graph
        for parent, child in ((app, a), (app, b), (a, lib), (b, lib), (lib, leaf)):
            graph.add_edge(graph.get_vertex(parent), graph.get_vertex(child))

        assert render_tree(report).splitlines() == [
            "ns:app:1.0",
            "  ns:a:1.0",
            "    ns:lib:1.0",
            "      ns:leaf:1.0 (transient)",
            "  ns:b:1.0",
            "    ns:lib:1.0 (*)",
        ]
