"""Build a :class:`RepositoryRegistry` and root atoms from configuration strings."""
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from .atoms import AtomParseError, DependencyAtom, parse_dependency_atom, parse_repository_atom
from .models import ConfigError, RepositoryRegistry

logger = logging.getLogger(__name__)


def parse_atoms(values: Iterable[str]) -> List[DependencyAtom]:
    """Parse dependency atom strings.

    Raises:
        ConfigError: naming the first malformed atom.
    """
    atoms: List[DependencyAtom] = []
    for value in values:
        try:
            atoms.append(parse_dependency_atom(value))
        except AtomParseError as exc:
            raise ConfigError(str(exc)) from exc
    return atoms


def build_registry(
    local_repository: str,
    repositories: Sequence[str] = (),
    synthetic: Optional[Mapping[str, Sequence[str]]] = None,
) -> RepositoryRegistry:
    """Build a registry from a local repository location and remote atoms.

    Args:
        local_repository: path or ``file://`` URI, optionally with ``::type``.
        repositories: remote repository atoms, in preference order.
        synthetic: atom string to the atom strings it depends on.

    Raises:
        ConfigError: for malformed atoms or a non-file local repository.
    """
    if not local_repository:
        raise ConfigError("No local repository configured")
    try:
        local = parse_repository_atom(local_repository)
        remotes = [parse_repository_atom(value) for value in repositories]
    except AtomParseError as exc:
        raise ConfigError(str(exc)) from exc
    if not local.is_local:
        raise ConfigError(f"Local repository must be a file location: {local.uri}")

    overrides = {}
    for key, values in (synthetic or {}).items():
        atom = parse_atoms([key])[0]
        overrides[atom] = parse_atoms(values or [])
    registry = RepositoryRegistry.create(local, remotes, overrides)
    logger.debug("Repositories: %s", ", ".join(str(r) for r in registry.all_repositories))
    return registry
