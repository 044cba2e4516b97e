"""Tests for the cycle-rejecting directed acyclic graph."""

import pytest

from graph.dag import CycleError, DirectedAcyclicGraph


class TestVertices:
    """Test vertex bookkeeping."""

    def test_add_vertex_is_idempotent(self):
        graph = DirectedAcyclicGraph()

        first = graph.add_vertex("A")
        second = graph.add_vertex("A")

        assert first is second
        assert len(graph) == 1
        assert "A" in graph

    def test_vertices_keep_insertion_order(self):
        graph = DirectedAcyclicGraph()
        for value in ("C", "A", "B"):
            graph.add_vertex(value)

        assert [v.value for v in graph.vertices()] == ["C", "A", "B"]

    def test_root_vertices(self):
        graph = DirectedAcyclicGraph()
        a, b, c = (graph.add_vertex(v) for v in "ABC")
        graph.add_edge(a, b)

        assert graph.root_vertices() == [a, c]
        assert b.any_parent() is a
        assert b.is_leaf and not a.is_leaf


class TestEdges:
    """Test edge insertion and removal."""

    def test_cycle_is_rejected_and_graph_unchanged(self):
        graph = DirectedAcyclicGraph()
        a, b = graph.add_vertex("A"), graph.add_vertex("B")
        graph.add_edge(a, b)

        with pytest.raises(CycleError) as excinfo:
            graph.add_edge(b, a)

        assert excinfo.value.cycle_values == ["A", "B", "A"]
        assert graph.has_edge(a, b) is True
        assert graph.has_edge(b, a) is False
        assert a.parents == []

    def test_longer_cycle(self):
        graph = DirectedAcyclicGraph()
        a, b, c = (graph.add_vertex(v) for v in "ABC")
        graph.add_edge(a, b)
        graph.add_edge(b, c)

        with pytest.raises(CycleError) as excinfo:
            graph.add_edge(c, a)

        assert excinfo.value.cycle_values == ["A", "B", "C", "A"]
        assert [v.value for v in excinfo.value.path] == ["A"]

    def test_self_loop_is_a_cycle(self):
        graph = DirectedAcyclicGraph()
        a = graph.add_vertex("A")

        with pytest.raises(CycleError) as excinfo:
            graph.add_edge(a, a)

        assert excinfo.value.cycle_values == ["A", "A"]

    def test_diamond_is_allowed(self):
        graph = DirectedAcyclicGraph()
        a, b, c, d = (graph.add_vertex(v) for v in "ABCD")
        graph.add_edge(a, b)
        graph.add_edge(a, c)
        graph.add_edge(b, d)
        graph.add_edge(c, d)

        assert d.parents == [b, c]
        assert graph.is_reachable(a, d)
        assert not graph.is_reachable(d, a)

    def test_duplicate_edge_is_noop(self):
        graph = DirectedAcyclicGraph()
        a, b = graph.add_vertex("A"), graph.add_vertex("B")
        graph.add_edge(a, b)
        graph.add_edge(a, b)

        assert a.children == [b]
        assert b.parents == [a]

    def test_foreign_or_missing_vertices_are_ignored(self):
        graph = DirectedAcyclicGraph()
        other = DirectedAcyclicGraph()
        a = graph.add_vertex("A")
        foreign = other.add_vertex("B")

        graph.add_edge(a, None)
        graph.add_edge(None, a)
        graph.add_edge(a, foreign)

        assert a.children == []

    def test_remove_edge_only_removes_that_pair(self):
        graph = DirectedAcyclicGraph()
        a, b, c = (graph.add_vertex(v) for v in "ABC")
        graph.add_edge(a, b)
        graph.add_edge(a, c)
        graph.add_edge(b, c)

        graph.remove_edge(a, c)

        assert not graph.has_edge(a, c)
        assert graph.has_edge(a, b)
        assert graph.has_edge(b, c)
        assert c.parents == [b]


class TestVisit:
    """Test depth-first traversal."""

    def test_visits_each_vertex_once_pre_order(self):
        graph = DirectedAcyclicGraph()
        a, b, c, d = (graph.add_vertex(v) for v in "ABCD")
        graph.add_edge(a, b)
        graph.add_edge(a, c)
        graph.add_edge(b, d)
        graph.add_edge(c, d)
        seen = []

        graph.visit(lambda vertex: seen.append(vertex.value))

        assert seen == ["A", "B", "D", "C"]
