"""Data models for version ranges and their failure modes."""

from dataclasses import dataclass
from typing import Optional


class VersionRangeError(ValueError):
    """Base class for unusable version range expressions."""

    def __init__(self, expression: str, message: str):
        self.expression = expression
        super().__init__(f"{message}: '{expression}'")


class InvalidRange(VersionRangeError):
    """A range without any usable bound, or with broken brackets."""

    def __init__(self, expression: str, message: str = "Invalid version range"):
        super().__init__(expression, message)


class UnsupportedRangeSet(VersionRangeError):
    """A union of several ranges, e.g. ``[1.0,2.0),[3.0,)``."""

    def __init__(self, expression: str):
        super().__init__(expression, "Version range sets are not supported")


@dataclass(frozen=True)
class VersionRange:
    """One bracketed Maven range. An empty bound is unbounded."""
    raw: str
    lower: Optional[str]
    upper: Optional[str]
    lower_inclusive: bool
    upper_inclusive: bool

    @property
    def is_pinned(self) -> bool:
        """True for ``[x]`` which admits exactly ``x``."""
        return (
            self.lower is not None
            and self.lower == self.upper
            and self.lower_inclusive
            and self.upper_inclusive
        )
