"""Data models for dependency resolution."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from graph.dag import CycleError, DirectedAcyclicGraph
from .atoms import DependencyAtom, RepositoryAtom, local_first_key


class ConfigError(Exception):
    """Unusable resolution configuration (e.g. no local repository)."""


class CyclicDependencyError(Exception):
    """The dependency graph contains a cycle; no valid build order exists."""

    def __init__(self, cycle: Sequence["Dep"], path: Sequence["Dep"], cause: CycleError):
        self.cycle = list(cycle)
        self.path = list(path)
        self.__cause__ = cause
        rendered = " -> ".join(dep.version_string for dep in self.cycle)
        super().__init__(f"Circular dependency [ {rendered} ]")


class DependencyNotFoundError(Exception):
    """Raised in fail-fast mode when atoms could not be found anywhere."""

    def __init__(self, atoms: Sequence[DependencyAtom]):
        self.atoms = list(atoms)
        listed = ", ".join(str(atom) for atom in self.atoms)
        super().__init__(f"Dependencies not found in any repository: {listed}")


@dataclass(frozen=True, eq=False)
class Dep:
    """A dependency atom resolved to a file in the local repository.

    Equality and hashing follow the atom only, so one atom maps to one
    graph vertex.
    """
    atom: DependencyAtom
    path: str
    directory: str
    dependencies: Sequence[DependencyAtom] = ()
    repository: Optional[RepositoryAtom] = None
    from_cache: bool = False
    transitive_known: bool = True
    descriptor_error: Optional[Exception] = None

    @property
    def version_string(self) -> str:
        return f"{self.atom.namespace}:{self.atom.name}:{self.atom.version}"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Dep) and other.atom == self.atom

    def __hash__(self) -> int:
        return hash(self.atom)

    def __str__(self) -> str:
        return self.atom.property_name


@dataclass
class RepositoryRegistry:
    """The local repository, remote repositories and synthetic overrides.

    ``remote_repositories`` is kept local-first (stable); use :meth:`create`
    to build a registry from an unordered list.
    """
    local_repository: RepositoryAtom
    remote_repositories: List[RepositoryAtom] = field(default_factory=list)
    synthetic: Dict[DependencyAtom, List[DependencyAtom]] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        local_repository: RepositoryAtom,
        remote_repositories: Sequence[RepositoryAtom] = (),
        synthetic: Optional[Mapping[DependencyAtom, Sequence[DependencyAtom]]] = None,
    ) -> "RepositoryRegistry":
        remotes = [r for r in remote_repositories if r.uri != local_repository.uri]
        remotes = sorted(remotes, key=local_first_key)
        overrides = {atom: list(deps) for atom, deps in (synthetic or {}).items()}
        return cls(local_repository, remotes, overrides)

    @classmethod
    def from_ordered(
        cls,
        repositories: Sequence[RepositoryAtom],
        synthetic: Optional[Mapping[DependencyAtom, Sequence[DependencyAtom]]] = None,
    ) -> "RepositoryRegistry":
        """Build from a list whose position 0 is the local repository."""
        if not repositories:
            raise ConfigError("No repositories given; position 0 must be the local repository")
        return cls.create(repositories[0], repositories[1:], synthetic)

    @property
    def all_repositories(self) -> List[RepositoryAtom]:
        return [self.local_repository] + list(self.remote_repositories)


class Outcome(Enum):
    """Kinds of per-atom resolution results."""
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class ResolutionOutcome:
    """Typed per-atom result; recoverable not-found is never an exception."""
    atom: DependencyAtom
    kind: Outcome
    dep: Optional[Dep] = None
    error: Optional[Exception] = None

    @classmethod
    def resolved(cls, atom: DependencyAtom, dep: Dep) -> "ResolutionOutcome":
        return cls(atom, Outcome.RESOLVED, dep=dep)

    @classmethod
    def not_found(cls, atom: DependencyAtom) -> "ResolutionOutcome":
        return cls(atom, Outcome.NOT_FOUND)

    @classmethod
    def failed(cls, atom: DependencyAtom, error: Exception) -> "ResolutionOutcome":
        return cls(atom, Outcome.ERROR, error=error)

    @property
    def ok(self) -> bool:
        return self.kind is Outcome.RESOLVED


@dataclass
class ResolutionReport:
    """Everything one resolution pass produced."""
    resolved: "OrderedDict[DependencyAtom, Dep]" = field(default_factory=OrderedDict)
    graph: DirectedAcyclicGraph = field(default_factory=DirectedAcyclicGraph)
    roots: List[DependencyAtom] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: Dict[DependencyAtom, Exception] = field(default_factory=dict)
    missing: List[DependencyAtom] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings or self.errors)
