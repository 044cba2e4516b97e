"""Generic cycle-rejecting directed acyclic graph."""

from .dag import CycleError, DirectedAcyclicGraph, Vertex  # noqa: F401

__all__ = ["CycleError", "DirectedAcyclicGraph", "Vertex"]
