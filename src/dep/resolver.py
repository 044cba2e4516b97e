"""Repository-backed dependency resolution.

Resolution of a single atom goes synthetic override, then the local
repository, then each remote repository in order. A remote hit is copied
into the local repository together with a native descriptor, so the next
pass is served locally without touching the network. Transitive atoms are
expanded with an explicit work-list; every dependent/dependency pair is
recorded as an edge in a :class:`DirectedAcyclicGraph`.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from common.http_client import Transport, uri_to_path, write_atomic
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants, RepositoryType
from graph.dag import CycleError
from registry.maven.pom import MavenPomParser, PomParseError
from versioning.maven import MavenVersionResolver, is_range, parse_range, satisfies
from versioning.models import VersionRangeError
from .atoms import (
    DependencyAtom,
    RepositoryAtom,
    artifact_directory,
    artifact_path,
    descriptor_path,
    pom_path,
)
from .descriptor import parse_descriptor, write_descriptor
from .models import (
    ConfigError,
    CyclicDependencyError,
    Dep,
    DependencyNotFoundError,
    Outcome,
    RepositoryRegistry,
    ResolutionOutcome,
    ResolutionReport,
)

logger = logging.getLogger(__name__)


class _Descriptor:
    """Transitive atoms read for one artifact."""

    __slots__ = ("atoms", "known", "error")

    def __init__(self, atoms: Sequence[DependencyAtom] = (), known: bool = True,
                 error: Optional[Exception] = None):
        self.atoms = list(atoms)
        self.known = known
        self.error = error


class DependencyResolver:
    """Resolves dependency atoms against a :class:`RepositoryRegistry`.

    The instance owns its caches (resolution memo, version candidates); a
    fresh resolver starts cold. Not-found atoms are reported, not raised,
    unless ``fail_missing`` is set.
    """

    def __init__(
        self,
        registry: RepositoryRegistry,
        transport: Optional[Transport] = None,
        fail_missing: bool = False,
        exclusions: Iterable[str] = (),
    ):
        if not registry.local_repository.is_local:
            raise ConfigError(
                f"Local repository must be a file location: {registry.local_repository.uri}"
            )
        self.registry = registry
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else Transport()
        self.fail_missing = fail_missing
        self.exclusions: Set[str] = {e.strip() for e in exclusions if e and e.strip()}
        self.versions = MavenVersionResolver(self.transport)
        self.pom_parser = MavenPomParser(self.transport)
        self._memo: Dict[Tuple[str, bool], ResolutionOutcome] = {}
        self._in_flight: Dict[Tuple[str, bool], threading.Event] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "DependencyResolver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the transport if this resolver created it."""
        if self._owns_transport:
            self.transport.close()

    def is_excluded(self, atom: DependencyAtom) -> bool:
        """True when ``namespace:name``, ``namespace:name:version`` or the full atom is excluded."""
        if not self.exclusions:
            return False
        return (
            atom.property_name in self.exclusions
            or f"{atom.property_name}:{atom.version}" in self.exclusions
            or atom.canonical() in self.exclusions
        )

    # -- single atom -----------------------------------------------------

    def resolve_atom(self, atom: DependencyAtom, transitive: bool = False) -> ResolutionOutcome:
        """Resolve one atom, without expanding its dependencies.

        Results are memoized for the lifetime of the resolver, so resolving
        the same atom twice performs repository work once. Concurrent callers
        for the same atom wait for the first one and share its outcome.

        ``transitive`` enables the pom-only fallback. A resolved atom is
        shared by both kinds of caller; a root miss is not reused for a
        transitive lookup, which still tries the pom-only twin.
        """
        key = (atom.memo_key, transitive)
        while True:
            with self._lock:
                cached = self._memo.get(key)
                if cached is not None:
                    return cached
                pending = self._in_flight.get(key)
                if pending is None:
                    pending = self._in_flight[key] = threading.Event()
                    break
            pending.wait()

        try:
            outcome = self._resolve_uncached(atom, transitive)
            with self._lock:
                outcome = self._memo.setdefault(key, outcome)
                if outcome.ok or outcome.kind is Outcome.ERROR or transitive:
                    self._memo.setdefault((atom.memo_key, not transitive), outcome)
                if outcome.dep is not None:
                    for flag in (False, True):
                        self._memo.setdefault((outcome.dep.atom.memo_key, flag), outcome)
        finally:
            with self._lock:
                self._in_flight.pop(key, None)
            pending.set()
        return outcome

    def _resolve_uncached(self, atom: DependencyAtom, transitive: bool) -> ResolutionOutcome:
        if is_range(atom.version):
            try:
                concrete = self.versions.resolve(atom, self.registry.all_repositories)
            except VersionRangeError as exc:
                logger.warning("Invalid version range for %s: %s", atom.property_name, exc)
                return ResolutionOutcome.failed(atom, exc)
            if concrete is None:
                return ResolutionOutcome.not_found(atom)
            return self.resolve_atom(concrete, transitive)

        pom_twin = transitive and atom.packaging != Constants.POM_PACKAGING
        dep = self._synthetic(atom)
        if dep is None:
            dep = self._local(atom)
        if dep is None and pom_twin:
            dep = self._local(atom.with_packaging(Constants.POM_PACKAGING))
        if dep is None:
            dep = self._remote(atom)
        if dep is None and pom_twin:
            dep = self._pom_only(atom)
        if dep is None:
            return ResolutionOutcome.not_found(atom)
        return ResolutionOutcome.resolved(atom, dep)

    def _local_location(self, atom: DependencyAtom) -> Tuple[str, str]:
        local = self.registry.local_repository
        return (uri_to_path(artifact_path(atom, local)),
                uri_to_path(artifact_directory(atom, local)))

    def _synthetic(self, atom: DependencyAtom) -> Optional[Dep]:
        for candidate, dependencies in self.registry.synthetic.items():
            if candidate.memo_key == atom.memo_key:
                path, directory = self._local_location(atom)
                logger.debug("Using synthetic dependencies for %s", atom)
                return Dep(atom, path, directory, tuple(dependencies))
        return None

    def _local(self, atom: DependencyAtom) -> Optional[Dep]:
        local = self.registry.local_repository
        if not self.transport.exists(artifact_path(atom, local)):
            return None
        descriptor = self._read_descriptor(atom, local)
        path, directory = self._local_location(atom)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved from local repository",
                extra=extra_context(event="resolve", component="resolver", action="local",
                                    outcome="hit", atom=str(atom), target=path),
            )
        return Dep(atom, path, directory, tuple(descriptor.atoms), local, from_cache=True,
                   transitive_known=descriptor.known, descriptor_error=descriptor.error)

    def _remote(self, atom: DependencyAtom) -> Optional[Dep]:
        for repository in self.registry.remote_repositories:
            url = artifact_path(atom, repository)
            with Timer() as t:
                content = self.transport.fetch(url)
            if content is None:
                continue
            path, directory = self._local_location(atom)
            write_atomic(path, content)
            logger.info(
                "Downloaded %s from %s",
                atom,
                safe_url(repository.uri),
                extra=extra_context(event="resolve", component="resolver", action="download",
                                    outcome="hit", target=safe_url(url),
                                    duration_ms=t.duration_ms()),
            )
            descriptor = self._read_descriptor(atom, repository)
            if descriptor.known:
                write_descriptor(uri_to_path(descriptor_path(atom, self.registry.local_repository)),
                                 descriptor.atoms)
            return Dep(atom, path, directory, tuple(descriptor.atoms), repository,
                       transitive_known=descriptor.known, descriptor_error=descriptor.error)
        return None

    def _pom_only(self, atom: DependencyAtom) -> Optional[Dep]:
        """Download the pom-only twin when a transitive artifact ships just a POM."""
        twin = atom.with_packaging(Constants.POM_PACKAGING)
        for repository in self.registry.remote_repositories:
            if repository.type is RepositoryType.MAVEN and self.transport.exists(
                pom_path(atom, repository)
            ):
                logger.info("Only a POM is published for %s; using it as the artifact", atom)
                return self._remote(twin)
        return None

    def _read_descriptor(self, atom: DependencyAtom, repository: RepositoryAtom) -> _Descriptor:
        native = self.transport.fetch_text(descriptor_path(atom, repository))
        if native is not None:
            return _Descriptor(parse_descriptor(native, source=str(atom)))
        if repository.type is not RepositoryType.MAVEN:
            return _Descriptor()
        try:
            pom = self.pom_parser.parse(pom_path(atom, repository), repository)
        except PomParseError as exc:
            logger.warning("Could not read dependencies of %s: %s", atom, exc)
            return _Descriptor(known=False, error=exc)
        return _Descriptor(pom.atoms() if pom is not None else ())

    # -- whole pass ------------------------------------------------------

    def resolve_all(self, root_atoms: Sequence[DependencyAtom]) -> ResolutionReport:
        """Resolve ``root_atoms`` and their transitive closure.

        Traversal is depth-first, parent before child and first root before
        later roots; that order decides which version wins a conflict.

        Raises:
            CyclicDependencyError: when the dependencies form a cycle.
            DependencyNotFoundError: in ``fail_missing`` mode, after the pass,
                when any atom was not found.
        """
        report = ResolutionReport(roots=list(root_atoms))
        chosen: Dict[str, Dep] = {}
        conflicts_warned: Set[str] = set()
        expanded: Set[Dep] = set()
        stack: List[Tuple[DependencyAtom, Optional[Dep], bool]] = [
            (atom, None, True) for atom in reversed(report.roots)
        ]

        with Timer() as t:
            while stack:
                atom, parent, is_root = stack.pop()
                if self.is_excluded(atom):
                    logger.debug("Skipping excluded dependency %s", atom)
                    continue
                if atom.transient and not is_root:
                    continue

                dep, lost = self._pinned_conflict(atom, chosen, conflicts_warned, report)
                if dep is None:
                    outcome = self.resolve_atom(atom, transitive=not is_root)
                    if not outcome.ok:
                        self._record_failure(outcome, parent, report)
                        continue
                    dep, lost = self._first_wins(outcome.dep, chosen, conflicts_warned, report)

                report.resolved.setdefault(dep.atom, dep)
                vertex = report.graph.add_vertex(dep)
                if parent is not None:
                    parent_vertex = report.graph.get_vertex(parent)
                    if lost and (vertex is parent_vertex
                                 or report.graph.is_reachable(vertex, parent_vertex)):
                        # the losing version is not a dependency; no edge back to the winner
                        logger.debug("Dropping %s under %s: version lost to ancestor %s",
                                     atom, parent, dep.atom)
                        continue
                    try:
                        report.graph.add_edge(parent_vertex, vertex)
                    except CycleError as exc:
                        cycle = [v.value for v in exc.cycle]
                        path = [v.value for v in exc.path]
                        raise CyclicDependencyError(cycle, path, exc) from exc

                if dep in expanded:
                    continue
                expanded.add(dep)
                if is_root and dep.atom.transient:
                    continue
                if not dep.transitive_known:
                    report.errors.setdefault(dep.atom, dep.descriptor_error)
                    continue
                for child in reversed(dep.dependencies):
                    stack.append((child, dep, False))

        logger.info(
            "Resolved %d dependencies (%d missing)",
            len(report.resolved),
            len(report.missing),
            extra=extra_context(event="resolve", component="resolver", action="resolve_all",
                                outcome="complete", count=len(report.resolved),
                                duration_ms=t.duration_ms()),
        )
        if self.fail_missing and report.missing:
            raise DependencyNotFoundError(report.missing)
        return report

    def _pinned_conflict(self, atom: DependencyAtom, chosen: Dict[str, Dep], warned: Set[str],
                         report: ResolutionReport) -> Tuple[Optional[Dep], bool]:
        """Return ``(chosen Dep, lost)`` when ``namespace:name`` already has a version.

        A range that the chosen version satisfies is not a conflict. A losing
        version, literal or range, is never resolved.
        """
        prior = chosen.get(atom.property_name)
        if prior is None or prior.atom.version == atom.version:
            return None, False
        if is_range(atom.version):
            try:
                version_range = parse_range(atom.version)
            except VersionRangeError:
                return None, False
            if satisfies(prior.atom.version, version_range):
                return prior, False
        self._warn_conflict(atom, prior, warned, report)
        return prior, True

    def _first_wins(self, dep: Dep, chosen: Dict[str, Dep], warned: Set[str],
                    report: ResolutionReport) -> Tuple[Dep, bool]:
        prior = chosen.setdefault(dep.atom.property_name, dep)
        if prior is not dep and prior.atom.version != dep.atom.version:
            self._warn_conflict(dep.atom, prior, warned, report)
            return prior, True
        return dep, False

    @staticmethod
    def _warn_conflict(atom: DependencyAtom, prior: Dep, warned: Set[str],
                       report: ResolutionReport) -> None:
        if atom.property_name in warned:
            return
        warned.add(atom.property_name)
        message = (f"Conflicting versions of {atom.property_name}: using {prior.atom.version}, "
                   f"ignoring {atom.version}")
        report.warnings.append(message)
        logger.warning(message)

    @staticmethod
    def _record_failure(outcome: ResolutionOutcome, parent: Optional[Dep],
                        report: ResolutionReport) -> None:
        atom = outcome.atom
        if outcome.kind is Outcome.ERROR:
            report.errors.setdefault(atom, outcome.error)
            return
        if atom in report.missing:
            return
        report.missing.append(atom)
        via = f" (required by {parent.version_string})" if parent is not None else ""
        message = f"Dependency {atom} not found in any repository{via}"
        report.warnings.append(message)
        logger.warning(message)


def resolve_all(
    root_atoms: Sequence[DependencyAtom],
    registry: RepositoryRegistry,
    transport: Optional[Transport] = None,
    fail_missing: bool = False,
    exclusions: Iterable[str] = (),
) -> ResolutionReport:
    """One-shot resolution with a fresh resolver (cold caches)."""
    with DependencyResolver(registry, transport, fail_missing, exclusions) as resolver:
        return resolver.resolve_all(root_atoms)
