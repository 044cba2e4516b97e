"""Native ``dependencies.properties`` descriptors.

One line per direct dependency::

    namespace:name=version[::artifactName][:transient]

``#`` and ``!`` start comment lines. ``version:artifactName`` is accepted on
read for descriptors written by older tools.
"""
from __future__ import annotations

import logging
from typing import Iterable, List

from common.http_client import write_atomic
from constants import Constants
from .atoms import AtomParseError, DependencyAtom, parse_dependency_atom

logger = logging.getLogger(__name__)


def format_entry(atom: DependencyAtom) -> str:
    """Render one descriptor line for ``atom``."""
    value = atom.version
    if atom.artifact_name is not None:
        value += f"::{atom.artifact_name}"
    if atom.transient:
        value += f":{Constants.TRANSIENT_MARKER}"
    return f"{atom.property_name}={value}"


def parse_entry(key: str, value: str) -> DependencyAtom:
    """Parse one ``key=value`` descriptor entry.

    Raises:
        AtomParseError: when the combined atom is malformed.
    """
    normalized = value.strip().replace("::", ":")
    return parse_dependency_atom(f"{key.strip()}:{normalized}")


def parse_descriptor(text: str, source: str = "<descriptor>") -> List[DependencyAtom]:
    """Parse descriptor text; malformed lines are logged and skipped."""
    atoms: List[DependencyAtom] = []
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line[0] in "#!":
            continue
        if "=" not in line:
            logger.warning("Invalid dependency line %d in %s: %s", number, source, line)
            continue
        key, value = line.split("=", 1)
        try:
            atoms.append(parse_entry(key, value))
        except AtomParseError as exc:
            logger.warning("Invalid dependency %s=%s in %s; %s", key, value, source, exc.reason)
    return atoms


def render_descriptor(atoms: Iterable[DependencyAtom]) -> str:
    """Render a descriptor; entries keep the given order."""
    lines = [format_entry(atom) for atom in atoms]
    return "\n".join(lines) + ("\n" if lines else "")


def write_descriptor(path: str, atoms: Iterable[DependencyAtom]) -> None:
    """Atomically write a descriptor file to the filesystem ``path``."""
    write_atomic(path, render_descriptor(atoms))
