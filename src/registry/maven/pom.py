"""Maven POM parsing: dependencies of an artifact, including inherited ones.

The parser walks the parent chain child first. A dependency or property
already collected from a descendant is never overwritten by an ancestor.
``${project.version}`` and ``${project.groupId}`` are substituted level by
level, before moving to the parent, because they refer to the descriptor
that declared them; every other ``${prop}`` is substituted once the whole
chain has been read, against the merged property map.
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constants import Constants, RepositoryType
from common.http_client import Transport
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from dep.atoms import DependencyAtom, RepositoryAtom, pom_path

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_MAX_PARENT_DEPTH = 32
_MAX_FILTER_PASSES = 10


class PomParseError(Exception):
    """A POM exists but is not well-formed XML."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        super().__init__(f"Malformed POM {safe_url(url)}: {cause}")


@dataclass
class _Dependency:
    group_id: str
    artifact_id: str
    version: str
    classifier: str = ""
    type: str = ""

    def substitute(self, properties: Dict[str, str], only: Optional[List[str]] = None) -> None:
        for attr in ("group_id", "artifact_id", "version", "classifier", "type"):
            setattr(self, attr, _filter(getattr(self, attr), properties, only))

    @property
    def unresolved(self) -> bool:
        return any("${" in value for value in (self.group_id, self.artifact_id, self.version,
                                               self.classifier, self.type))

    def property_value(self) -> str:
        if not self.classifier and self.type in ("", Constants.DEFAULT_PACKAGING):
            return self.version
        classifier = f"-{self.classifier}" if self.classifier else ""
        extension = self.type or Constants.DEFAULT_PACKAGING
        return f"{self.version}::{self.artifact_id}-{self.version}{classifier}.{extension}"


@dataclass
class _ParseState:
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: "OrderedDict[str, _Dependency]" = field(default_factory=OrderedDict)
    managed: Dict[str, str] = field(default_factory=dict)

    def put_property(self, name: str, value: Optional[str]) -> None:
        if name not in self.properties and value is not None:
            self.properties[name] = value


@dataclass
class MavenPom:
    """The parsed, fully filtered view of a POM and its ancestors."""
    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]
    packaging: str
    dependencies: "OrderedDict[str, str]"
    properties: Dict[str, str]

    def atoms(self) -> List[DependencyAtom]:
        """Dependencies as atoms, in declaration order."""
        atoms = []
        for key, value in self.dependencies.items():
            namespace, name = key.split(":", 1)
            version, _, artifact_name = value.partition("::")
            atoms.append(DependencyAtom(namespace, name, version, artifact_name or None))
        return atoms


def _local_name(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _text(element: ET.Element) -> str:
    return (element.text or "").strip()


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _fields(element: ET.Element) -> Dict[str, str]:
    return {_local_name(child.tag): _text(child) for child in element}


def _filter(value: str, properties: Dict[str, str], only: Optional[List[str]] = None) -> str:
    if "${" not in value:
        return value

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if only is not None and name not in only:
            return match.group(0)
        replacement = properties.get(name)
        return match.group(0) if replacement is None else replacement

    return _PLACEHOLDER.sub(_replace, value)


class MavenPomParser:
    """Parses POMs fetched through a :class:`Transport`."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def parse(self, pom_url: str, repository: RepositoryAtom) -> Optional[MavenPom]:
        """Parse the POM at ``pom_url`` and its parent chain.

        Returns None when the POM does not exist (no transitive information).

        Raises:
            PomParseError: if the POM (or an ancestor) is malformed.
        """
        state = _ParseState()
        parent_repository = RepositoryAtom(repository.uri, RepositoryType.MAVEN)
        url: Optional[str] = pom_url
        depth = 0
        while url is not None:
            if depth >= _MAX_PARENT_DEPTH:
                logger.warning("Parent chain of %s exceeds %d levels; stopping", safe_url(pom_url),
                               _MAX_PARENT_DEPTH)
                break
            text = self.transport.fetch_text(url)
            if text is None:
                if depth == 0:
                    return None
                if is_debug_enabled(logger):
                    logger.debug(
                        "Parent POM not found",
                        extra=extra_context(event="parse", component="pom", action="parent",
                                            outcome="not_found", target=safe_url(url)),
                    )
                break
            url = self._parse_level(url, text, parent_repository, state)
            depth += 1
        return self._finish(state)

    def _parse_level(self, url: str, text: str, repository: RepositoryAtom,
                     state: _ParseState) -> Optional[str]:
        """Parse one descriptor into ``state``; return the parent POM url, if any."""
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise PomParseError(url, exc) from exc

        local_group = local_artifact = local_version = packaging = None
        parent: Dict[str, str] = {}
        for child in root:
            name = _local_name(child.tag)
            if name == "groupId" and _text(child) != "${parent.groupId}":
                local_group = _text(child)
            elif name == "artifactId":
                local_artifact = _text(child)
            elif name == "version" and _text(child) != "${parent.version}":
                local_version = _text(child)
            elif name == "packaging":
                packaging = _text(child)
            elif name == "properties":
                for prop in child:
                    if isinstance(prop.tag, str):
                        state.put_property(_local_name(prop.tag), _text(prop))
            elif name == "dependencies":
                self._parse_dependencies(child, state)
            elif name == "dependencyManagement":
                for deps in _children(child, "dependencies"):
                    self._parse_managed(deps, state)
            elif name == "parent":
                parent = _fields(child)

        group_id = local_group or parent.get("groupId", "")
        version = local_version or parent.get("version", "")
        state.put_property("project.groupId", group_id)
        state.put_property("pom.groupId", group_id)
        state.put_property("project.artifactId", local_artifact)
        state.put_property("pom.artifactId", local_artifact)
        state.put_property("project.version", version)
        state.put_property("pom.version", version)
        state.put_property("project.packaging", packaging or Constants.DEFAULT_PACKAGING)
        if parent:
            for key in ("groupId", "version"):
                state.put_property(f"parent.{key}", parent.get(key, ""))
                state.put_property(f"project.parent.{key}", parent.get(key, ""))

        # project.* are relative to this descriptor; settle them before the parent
        level = {"project.groupId": group_id, "project.version": version,
                 "pom.groupId": group_id, "pom.version": version}
        level = {k: v for k, v in level.items() if v}
        rekeyed: "OrderedDict[str, _Dependency]" = OrderedDict()
        for dependency in state.dependencies.values():
            dependency.substitute(level, only=list(level))
            rekeyed.setdefault(f"{dependency.group_id}::{dependency.artifact_id}", dependency)
        state.dependencies = rekeyed

        if not (parent.get("groupId") and parent.get("artifactId") and parent.get("version")):
            return None
        parent_atom = DependencyAtom(parent["groupId"], parent["artifactId"], parent["version"])
        return pom_path(parent_atom, repository)

    @staticmethod
    def _parse_dependencies(element: ET.Element, state: _ParseState) -> None:
        for node in _children(element, "dependency"):
            fields = _fields(node)
            scope = fields.get("scope", "")
            if scope and scope != "compile":
                continue
            if fields.get("optional", "").lower() == "true":
                continue
            if "systemPath" in fields:
                continue
            group_id, artifact_id = fields.get("groupId", ""), fields.get("artifactId", "")
            if not group_id or not artifact_id:
                continue
            key = f"{group_id}::{artifact_id}"
            if key in state.dependencies:
                continue
            state.dependencies[key] = _Dependency(group_id, artifact_id, fields.get("version", ""),
                                                  fields.get("classifier", ""), fields.get("type", ""))

    @staticmethod
    def _parse_managed(element: ET.Element, state: _ParseState) -> None:
        for node in _children(element, "dependency"):
            fields = _fields(node)
            if fields.get("scope") == "import":
                logger.debug("Ignoring import-scoped managed dependency %s:%s",
                             fields.get("groupId"), fields.get("artifactId"))
                continue
            key = f"{fields.get('groupId', '')}::{fields.get('artifactId', '')}"
            if key not in state.managed and fields.get("version"):
                state.managed[key] = fields["version"]

    @staticmethod
    def _finish(state: _ParseState) -> MavenPom:
        properties = state.properties
        for _ in range(_MAX_FILTER_PASSES):
            changed = False
            for name, value in list(properties.items()):
                filtered = _filter(value, properties)
                if filtered != value:
                    properties[name] = filtered
                    changed = True
            if not changed:
                break

        project_group = properties.get("project.groupId", "")
        dependencies: "OrderedDict[str, str]" = OrderedDict()
        for key, dependency in state.dependencies.items():
            if not dependency.version:
                if key in state.managed:
                    dependency.version = state.managed[key]
                elif project_group and dependency.group_id == project_group:
                    dependency.version = properties.get("project.version", "")
            dependency.substitute(properties)
            if not dependency.version:
                logger.warning("Encountered dependency without a version - %s:%s",
                               dependency.group_id, dependency.artifact_id)
                continue
            if dependency.unresolved:
                logger.warning("Unresolved property in dependency %s:%s:%s; skipping",
                               dependency.group_id, dependency.artifact_id, dependency.version)
                continue
            dependencies[f"{dependency.group_id}:{dependency.artifact_id}"] = dependency.property_value()

        return MavenPom(
            group_id=properties.get("project.groupId") or None,
            artifact_id=properties.get("project.artifactId") or None,
            version=properties.get("project.version") or None,
            packaging=properties.get("project.packaging") or Constants.DEFAULT_PACKAGING,
            dependencies=dependencies,
            properties=properties,
        )
