"""Dependency and repository atoms.

A dependency atom is ``namespace:name:version[:artifactName][:transient]``;
a repository atom is ``uri[::type]`` where type is ``ply`` (default) or
``maven``. Both are immutable once parsed.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import List, Optional
from urllib.parse import quote, urlsplit

from constants import Constants, RepositoryType
from common.http_client import is_file_uri

logger = logging.getLogger(__name__)

_MISSING_FIELDS = {
    0: "namespace, name and version",
    1: "name and version",
    2: "version",
}


class AtomParseError(ValueError):
    """Raised when an atom string cannot be parsed.

    ``missing`` names the absent dependency fields (e.g. ``"name and version"``)
    when the failure is a missing-field one, otherwise it is None and
    ``reason`` describes the problem.
    """

    def __init__(self, atom: str, reason: str, missing: Optional[str] = None):
        self.atom = atom
        self.reason = reason
        self.missing = missing
        super().__init__(f"Invalid atom '{atom}': {reason}")


@dataclass(frozen=True)
class DependencyAtom:
    """A reference to one dependency."""

    namespace: str
    name: str
    version: str
    artifact_name: Optional[str] = None
    transient: bool = False

    def __post_init__(self) -> None:
        # an explicit artifact name equal to the default is the same atom
        default_name = f"{self.name}-{self.version}.{Constants.DEFAULT_PACKAGING}"
        if self.artifact_name == default_name:
            object.__setattr__(self, "artifact_name", None)

    @property
    def property_name(self) -> str:
        """``namespace:name``; identifies the logical dependency."""
        return f"{self.namespace}:{self.name}"

    unversioned_key = property_name

    @property
    def property_value(self) -> str:
        """``version[:artifactName][:transient]``."""
        value = self.version or ""
        if self.artifact_name is not None:
            value += f":{self.artifact_name}"
        if self.transient:
            value += f":{Constants.TRANSIENT_MARKER}"
        return value

    @property
    def resolved_artifact_name(self) -> str:
        """The explicit artifact name or ``name-version.jar``."""
        if self.artifact_name is not None:
            return self.artifact_name
        return f"{self.name}-{self.version}.{Constants.DEFAULT_PACKAGING}"

    @property
    def packaging(self) -> str:
        """Extension of the artifact name, defaulting to ``jar``."""
        if self.artifact_name is None or "." not in self.artifact_name:
            return Constants.DEFAULT_PACKAGING
        return self.artifact_name.rsplit(".", 1)[1]

    @property
    def memo_key(self) -> str:
        """Key used to memoize resolution work."""
        return f"{self.property_name}::{self.version}:{self.resolved_artifact_name}"

    def with_version(self, version: str) -> "DependencyAtom":
        """Copy with a different version; a default artifact name follows the version."""
        return replace(self, version=version)

    def with_packaging(self, packaging: str) -> "DependencyAtom":
        """Copy whose artifact is ``name-version.<packaging>`` (classifier dropped)."""
        return replace(self, artifact_name=f"{self.name}-{self.version}.{packaging}")

    def canonical(self) -> str:
        """Canonical string form; the artifact name is always spelled out."""
        value = f"{self.property_name}:{self.version}:{self.resolved_artifact_name}"
        if self.transient:
            value += f":{Constants.TRANSIENT_MARKER}"
        return value

    def __str__(self) -> str:
        return self.canonical()


def parse_dependency_atom(atom: str) -> DependencyAtom:
    """Parse ``namespace:name:version[:artifactName][:transient]``.

    Raises:
        AtomParseError: on embedded whitespace, missing fields or an invalid
            trailing field. ``missing`` identifies missing fields.
    """
    if atom is None:
        raise AtomParseError("", "no atom given", _MISSING_FIELDS[0])
    text = atom.strip()
    if any(ch.isspace() for ch in text):
        raise AtomParseError(atom, "spaces not allowed in dependency atom")
    parts: List[str] = text.split(":") if text else []
    while parts and not parts[-1]:
        parts.pop()
    if len(parts) < 3:
        missing = _MISSING_FIELDS[len(parts)]
        raise AtomParseError(atom, f"missing {missing}", missing)
    if len(parts) > 5:
        raise AtomParseError(atom, "too many fields")
    namespace, name, version = parts[0], parts[1], parts[2]
    for label, value in (("namespace", namespace), ("name", name), ("version", version)):
        if not value:
            raise AtomParseError(atom, f"missing {label}", label)

    artifact_name: Optional[str] = None
    transient = False
    if len(parts) >= 4:
        if parts[3] == Constants.TRANSIENT_MARKER and len(parts) == 4:
            transient = True
        elif not parts[3]:
            raise AtomParseError(atom, "empty artifact name")
        else:
            artifact_name = parts[3]
    if len(parts) == 5:
        if parts[4] != Constants.TRANSIENT_MARKER:
            raise AtomParseError(atom, f"fifth field must be '{Constants.TRANSIENT_MARKER}'")
        transient = True
    return DependencyAtom(namespace, name, version, artifact_name, transient)


@dataclass(frozen=True)
class RepositoryAtom:
    """A repository location and its layout type."""

    uri: str
    type: RepositoryType = RepositoryType.PLY

    @property
    def is_local(self) -> bool:
        """True for file-scheme repositories."""
        return is_file_uri(self.uri)

    def __str__(self) -> str:
        return f"{self.uri}::{self.type.value}"


def _normalize_repository_uri(location: str) -> str:
    if urlsplit(location).scheme and not _looks_like_windows_drive(location):
        return location
    path = os.path.abspath(os.path.expanduser(location))
    return "file://" + quote(path.replace(os.sep, "/"), safe="/:")


def _looks_like_windows_drive(location: str) -> bool:
    return len(location) > 1 and location[1] == ":" and location[0].isalpha()


def parse_repository_atom(atom: str) -> RepositoryAtom:
    """Parse ``uri[::type]`` (or the legacy ``type:uri`` prefix form).

    A scheme-less path becomes an absolute ``file://`` URI. An unknown type
    is logged and treated as ``ply``.

    Raises:
        AtomParseError: when the atom is empty or has more than one type suffix.
    """
    if atom is None or not atom.strip():
        raise AtomParseError(atom or "", "empty repository atom")
    text = atom.strip()
    parts = text.split("::")
    if len(parts) > 2:
        raise AtomParseError(atom, "at most one '::type' suffix is allowed")
    location = parts[0]
    type_name: Optional[str] = parts[1] if len(parts) == 2 else None
    if type_name is None:
        for candidate in Constants.SUPPORTED_REPO_TYPES:
            prefix = f"{candidate}:"
            if location.startswith(prefix) and not location.startswith(f"{prefix}//"):
                type_name = candidate
                location = location[len(prefix):]
                break
    if not location:
        raise AtomParseError(atom, "missing repository uri")

    repo_type = RepositoryType.PLY
    if type_name:
        try:
            repo_type = RepositoryType(type_name.strip().lower())
        except ValueError:
            logger.warning(
                "Unknown repository type '%s' for %s; defaulting to %s",
                type_name,
                location,
                RepositoryType.PLY.value,
            )
    return RepositoryAtom(_normalize_repository_uri(location), repo_type)


def local_first_key(repository: RepositoryAtom) -> int:
    """Sort key placing file-scheme repositories ahead of network ones.

    Used with ``sorted`` (stable), so relative order within each group is kept.
    """
    return 0 if repository.is_local else 1


def _join(base: str, *segments: str) -> str:
    base = base.rstrip("/")
    tail = "/".join(s.strip("/") for s in segments if s)
    return f"{base}/{tail}" if tail else base


def artifact_directory(atom: DependencyAtom, repository: RepositoryAtom) -> str:
    """URI of the directory holding ``atom`` within ``repository``.

    ``ply`` keeps the dotted namespace as one segment; ``maven`` splits it.
    """
    if repository.type is RepositoryType.MAVEN:
        namespace_segments = atom.namespace.split(".")
    else:
        namespace_segments = [atom.namespace]
    return _join(repository.uri, *namespace_segments, atom.name, atom.version)


def artifact_path(atom: DependencyAtom, repository: RepositoryAtom) -> str:
    """URI of the artifact file for ``atom`` within ``repository``."""
    return _join(artifact_directory(atom, repository), atom.resolved_artifact_name)


def descriptor_path(atom: DependencyAtom, repository: RepositoryAtom) -> str:
    """URI of the native ``dependencies.properties`` descriptor for ``atom``."""
    return _join(artifact_directory(atom, repository), Constants.DEPENDENCIES_FILE)


def pom_path(atom: DependencyAtom, repository: RepositoryAtom) -> str:
    """URI of the POM for ``atom``; POMs never carry classifiers."""
    pom_name = f"{atom.name}-{atom.version}.{Constants.POM_PACKAGING}"
    return _join(artifact_directory(atom, repository), pom_name)


def metadata_directory(atom: DependencyAtom, repository: RepositoryAtom) -> str:
    """URI of the versionless directory holding ``maven-metadata.xml``."""
    if repository.type is RepositoryType.MAVEN:
        namespace_segments = atom.namespace.split(".")
    else:
        namespace_segments = [atom.namespace]
    return _join(repository.uri, *namespace_segments, atom.name)
