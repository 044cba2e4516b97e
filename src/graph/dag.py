"""A directed acyclic graph that refuses edges closing a cycle.

Vertices are deduplicated by value; an edge ``a -> b`` reads "a depends on
b". Edge insertion checks reachability first and raises :class:`CycleError`
without touching the graph when the edge would close a cycle.
"""
from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar

T = TypeVar("T", bound=Hashable)


class Vertex(Generic[T]):
    """A graph vertex wrapping one value; children and parents keep insertion order."""

    __slots__ = ("value", "children", "parents")

    def __init__(self, value: T):
        self.value = value
        self.children: List["Vertex[T]"] = []
        self.parents: List["Vertex[T]"] = []

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def any_parent(self) -> Optional["Vertex[T]"]:
        return self.parents[0] if self.parents else None

    def has_edge_to(self, other: "Vertex[T]") -> bool:
        return any(child is other for child in self.children)

    def __repr__(self) -> str:
        return f"Vertex({self.value!r})"


class CycleError(Exception):
    """Raised when an edge would introduce a cycle.

    Attributes:
        cycle: vertices of the offending cycle, starting and ending with the
            same vertex (``[to, ..., from, to]``).
        path: a path from some root down to the edge's target vertex.
    """

    def __init__(self, message: str, cycle: List[Vertex], path: List[Vertex]):
        super().__init__(message)
        self.cycle = cycle
        self.path = path

    @property
    def cycle_values(self) -> List:
        return [vertex.value for vertex in self.cycle]


class DirectedAcyclicGraph(Generic[T]):
    """Vertex/edge store that stays acyclic."""

    def __init__(self) -> None:
        self._vertices: Dict[T, Vertex[T]] = {}
        self._lock = threading.RLock()

    def add_vertex(self, value: T) -> Vertex[T]:
        """Return the vertex for ``value``, creating it if needed."""
        with self._lock:
            vertex = self._vertices.get(value)
            if vertex is None:
                vertex = Vertex(value)
                self._vertices[value] = vertex
            return vertex

    def get_vertex(self, value: T) -> Optional[Vertex[T]]:
        return self._vertices.get(value)

    def has_vertex(self, value: T) -> bool:
        return value in self._vertices

    def _owns(self, vertex: Optional[Vertex[T]]) -> bool:
        return vertex is not None and self._vertices.get(vertex.value) is vertex

    def add_edge(self, source: Optional[Vertex[T]], target: Optional[Vertex[T]]) -> None:
        """Add ``source -> target``.

        Silently ignored unless both vertices already belong to this graph.

        Raises:
            CycleError: if ``target`` already reaches ``source``; the graph is
                left unchanged.
        """
        with self._lock:
            if not (self._owns(source) and self._owns(target)):
                return
            if source.has_edge_to(target):
                return
            reach = self._find_path(target, source)
            if reach is not None:
                cycle = reach + [target]
                message = (
                    f"Edge between '{source.value}' and '{target.value}' would "
                    "introduce a cycle into the graph."
                )
                raise CycleError(message, cycle, self.path_to_root(target))
            source.children.append(target)
            target.parents.append(source)

    def remove_edge(self, source: Optional[Vertex[T]], target: Optional[Vertex[T]]) -> None:
        """Remove exactly ``source -> target`` if present."""
        with self._lock:
            if not (self._owns(source) and self._owns(target)):
                return
            source.children[:] = [c for c in source.children if c is not target]
            target.parents[:] = [p for p in target.parents if p is not source]

    def has_edge(self, source: Optional[Vertex[T]], target: Optional[Vertex[T]]) -> bool:
        return self._owns(source) and self._owns(target) and source.has_edge_to(target)

    def vertices(self) -> List[Vertex[T]]:
        """All vertices in insertion order."""
        return list(self._vertices.values())

    def root_vertices(self) -> List[Vertex[T]]:
        return [v for v in self._vertices.values() if v.is_root]

    def is_reachable(self, source: Vertex[T], target: Vertex[T]) -> bool:
        return self._find_path(source, target) is not None

    @staticmethod
    def _find_path(start: Vertex[T], goal: Vertex[T]) -> Optional[List[Vertex[T]]]:
        """Depth-first search for a path ``start -> ... -> goal``."""
        if start is goal:
            return [start]
        visited = {id(start)}
        stack = [(start, iter(start.children))]
        while stack:
            vertex, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                continue
            if child is goal:
                return [frame[0] for frame in stack] + [child]
            if id(child) not in visited:
                visited.add(id(child))
                stack.append((child, iter(child.children)))
        return None

    @staticmethod
    def path_to_root(vertex: Vertex[T]) -> List[Vertex[T]]:
        """A path (not necessarily the only one) from a root down to ``vertex``."""
        path: List[Vertex[T]] = []
        seen = set()
        current: Optional[Vertex[T]] = vertex
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            path.append(current)
            current = current.any_parent()
        path.reverse()
        return path

    def visit(self, visitor: Callable[[Vertex[T]], None]) -> None:
        """Depth-first, pre-order visit from each root; every vertex once."""
        seen = set()
        for root in self.root_vertices():
            stack = [root]
            while stack:
                vertex = stack.pop()
                if id(vertex) in seen:
                    continue
                seen.add(id(vertex))
                visitor(vertex)
                stack.extend(reversed(vertex.children))

    def __len__(self) -> int:
        return len(self._vertices)

    def __contains__(self, value: object) -> bool:
        return value in self._vertices
