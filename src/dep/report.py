"""Projections of a resolution result: classpaths, exports and a tree view."""
from __future__ import annotations

import logging
import os
from typing import List, Mapping, Optional

from common.http_client import write_atomic
from .atoms import DependencyAtom
from .models import Dep, ResolutionReport

logger = logging.getLogger(__name__)


def get_classpath(resolved: Mapping[DependencyAtom, Dep],
                  own_artifact_path: Optional[str] = None) -> List[str]:
    """Return the classpath entries for ``resolved``.

    The project's own artifact comes first, then every resolved artifact
    (transient ones included) in resolution order, without duplicates.
    """
    entries: List[str] = []
    seen = set()
    if own_artifact_path:
        entries.append(own_artifact_path)
        seen.add(own_artifact_path)
    for dep in resolved.values():
        if dep.path not in seen:
            seen.add(dep.path)
            entries.append(dep.path)
    return entries


def classpath_string(resolved: Mapping[DependencyAtom, Dep],
                     own_artifact_path: Optional[str] = None) -> str:
    """The classpath joined with the platform path separator."""
    return os.pathsep.join(get_classpath(resolved, own_artifact_path))


def bundle_paths(resolved: Mapping[DependencyAtom, Dep]) -> List[str]:
    """Artifact paths to package with the project; transient atoms are left out."""
    paths: List[str] = []
    for dep in resolved.values():
        if not dep.atom.transient and dep.path not in paths:
            paths.append(dep.path)
    return paths


def _export_key(atom: DependencyAtom) -> str:
    key = f"{atom.property_name}:{atom.version}"
    if atom.artifact_name is not None:
        key += f":{atom.artifact_name}"
    return key


def write_resolved_properties(report: ResolutionReport, path: str) -> None:
    """Write ``namespace:name:version[:artifact]=path`` lines for every resolved atom."""
    lines = [f"{_export_key(dep.atom)}={dep.path}" for dep in report.resolved.values()]
    write_atomic(path, "\n".join(lines) + ("\n" if lines else ""))
    logger.info("Wrote %d resolved dependencies to %s", len(lines), path)


def render_tree(report: ResolutionReport) -> str:
    """Render the dependency graph as an indented tree.

    A subtree already printed once is shown as ``(*)`` on later occurrences.
    """
    lines: List[str] = []
    printed = set()
    stack = [(vertex, 0) for vertex in reversed(report.graph.root_vertices())]
    while stack:
        vertex, depth = stack.pop()
        dep: Dep = vertex.value
        label = dep.version_string
        if dep.atom.artifact_name is not None:
            label += f" [{dep.atom.artifact_name}]"
        if dep.atom.transient:
            label += " (transient)"
        if vertex in printed and vertex.children:
            lines.append(f"{'  ' * depth}{label} (*)")
            continue
        lines.append(f"{'  ' * depth}{label}")
        printed.add(vertex)
        for child in reversed(vertex.children):
            stack.append((child, depth + 1))
    return "\n".join(lines)
