"""Maven version ordering and range resolution.

Versions order by major, minor and revision (numerically), then qualifier
(a version without qualifier sorts after any qualified one, so
``1.0-SNAPSHOT < 1.0``; qualifiers otherwise compare lexically), then
build number.

Only single ranges are supported: ``[1.0,2.0)``, ``(,1.5]``, ``[1.2,)``
and the pin ``[1.2]``. Unions such as ``(,1.0],[1.2,)`` are rejected with
:class:`UnsupportedRangeSet` rather than silently narrowed.
"""

import functools
import logging
import re
import threading
from typing import Dict, Iterable, List, Optional, Sequence

from common.http_client import Transport
from common.logging_utils import extra_context, is_debug_enabled
from constants import RepositoryType
from dep.atoms import DependencyAtom, RepositoryAtom, metadata_directory
from registry.maven.metadata import fetch_versions
from .models import InvalidRange, UnsupportedRangeSet, VersionRange

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"\d+")


def _parts(value: str) -> List[str]:
    """Split into [major, minor, revision, qualifier, build]."""
    parts: List[str] = []
    buffer = ""
    for index, char in enumerate(value):
        if char in ".-":
            parts.append(buffer)
            buffer = ""
            if char == "-":
                while len(parts) < 3:
                    parts.append("0")
            if len(parts) == 4:
                parts.append(value[index + 1:])
                break
        else:
            buffer += char
    if buffer:
        parts.append(buffer)
    while len(parts) < 5:
        parts.append("" if len(parts) == 3 else "0")
    return parts


def _number(value: str) -> int:
    return int(value) if _NUMBER.fullmatch(value) else 0


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def compare_versions(left: str, right: str) -> int:
    """Compare two Maven version strings; negative, zero or positive."""
    parts1, parts2 = _parts(left), _parts(right)
    for index in range(3):
        result = _cmp(_number(parts1[index]), _number(parts2[index]))
        if result:
            return result
    qualifier1, qualifier2 = parts1[3], parts2[3]
    if not qualifier1 and qualifier2:
        return 1
    if qualifier1 and not qualifier2:
        return -1
    result = _cmp(qualifier1, qualifier2)
    if result:
        return result
    return _cmp(_number(parts1[4]), _number(parts2[4]))


version_key = functools.cmp_to_key(compare_versions)


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Return ``versions`` in ascending Maven order (stable)."""
    return sorted(versions, key=version_key)


def is_range(expression: Optional[str]) -> bool:
    """True when ``expression`` is a bracketed range rather than a literal."""
    return bool(expression) and expression.strip()[:1] in ("[", "(")


def parse_range(expression: str) -> Optional[VersionRange]:
    """Parse a range expression; literals return None.

    Raises:
        UnsupportedRangeSet: for a union of several ranges.
        InvalidRange: for broken brackets or a range with no bound at all.
    """
    if not is_range(expression):
        return None
    text = expression.strip()
    lower_inclusive = text[0] == "["
    close = _find_close(text)
    if close == -1:
        raise InvalidRange(expression, "Unterminated version range")
    if close != len(text) - 1:
        raise UnsupportedRangeSet(expression)
    upper_inclusive = text[close] == "]"
    inner = text[1:close]
    if "," not in inner:
        pinned = inner.strip()
        if not pinned or not (lower_inclusive and upper_inclusive):
            raise InvalidRange(expression)
        return VersionRange(expression, pinned, pinned, True, True)
    lower, upper = (part.strip() for part in inner.split(",", 1))
    if "," in upper:
        raise InvalidRange(expression)
    if not lower and not upper:
        raise InvalidRange(expression)
    return VersionRange(expression, lower or None, upper or None, lower_inclusive, upper_inclusive)


def _find_close(text: str) -> int:
    for index in range(1, len(text)):
        if text[index] in ")]":
            return index
        if text[index] in "[(":
            return -1
    return -1


def satisfies(version: str, version_range: VersionRange) -> bool:
    """True when ``version`` lies within ``version_range``."""
    if version_range.lower is not None:
        result = compare_versions(version, version_range.lower)
        if result < 0 or (result == 0 and not version_range.lower_inclusive):
            return False
    if version_range.upper is not None:
        result = compare_versions(version, version_range.upper)
        if result > 0 or (result == 0 and not version_range.upper_inclusive):
            return False
    return True


def resolve_version(expression: Optional[str], candidates: Optional[Sequence[str]]) -> Optional[str]:
    """Resolve ``expression`` against ``candidates``.

    Literals come back unchanged. Ranges resolve to the highest satisfying
    candidate, or None when nothing qualifies. With no candidate list at
    all, an inclusive upper bound is taken as the answer.

    Raises:
        UnsupportedRangeSet, InvalidRange: see :func:`parse_range`.
    """
    if expression is None:
        return None
    version_range = parse_range(expression)
    if version_range is None:
        return expression
    if version_range.is_pinned:
        return version_range.lower
    if candidates is None:
        if version_range.upper_inclusive and version_range.upper is not None:
            return version_range.upper
        return None
    matching = [c for c in candidates if satisfies(c, version_range)]
    if not matching:
        logger.warning("No available version satisfies %s", expression)
        return None
    return max(matching, key=version_key)


class MavenVersionResolver:
    """Resolves range versions of atoms using repository metadata.

    Candidate lists are fetched from ``maven-metadata.xml`` of the maven-type
    repositories (in the order given) and cached per ``namespace:name`` for
    the lifetime of the resolver.
    """

    def __init__(self, transport: Transport):
        self.transport = transport
        self._cache: Dict[str, Optional[List[str]]] = {}
        self._lock = threading.Lock()

    def fetch_candidates(
        self, atom: DependencyAtom, repositories: Sequence[RepositoryAtom]
    ) -> Optional[List[str]]:
        """Return the versions published for ``atom`` or None if unknown."""
        cache_key = atom.property_name
        with self._lock:
            if cache_key in self._cache:
                return self._cache[cache_key]
        candidates: Optional[List[str]] = None
        for repository in repositories:
            if repository.type is not RepositoryType.MAVEN:
                continue
            versions = fetch_versions(self.transport, metadata_directory(atom, repository))
            if versions:
                candidates = versions
                break
        if is_debug_enabled(logger):
            logger.debug(
                "Version candidates fetched",
                extra=extra_context(
                    event="function_exit", component="versioning", action="fetch_candidates",
                    outcome="found" if candidates else "none", atom=cache_key,
                    count=len(candidates) if candidates else 0,
                ),
            )
        with self._lock:
            self._cache[cache_key] = candidates
        return candidates

    def resolve(
        self, atom: DependencyAtom, repositories: Sequence[RepositoryAtom]
    ) -> Optional[DependencyAtom]:
        """Return ``atom`` with a concrete version, or None when unresolvable.

        Raises:
            UnsupportedRangeSet, InvalidRange: for unusable range expressions.
        """
        version_range = parse_range(atom.version)
        if version_range is None:
            return atom
        if version_range.is_pinned:
            return atom.with_version(version_range.lower)
        candidates = self.fetch_candidates(atom, repositories)
        version = resolve_version(atom.version, candidates)
        if version is None:
            return None
        return atom.with_version(version)
