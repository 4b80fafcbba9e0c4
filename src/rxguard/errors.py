"""Error types raised by the pattern safety checks.

All errors derive from ``RegexGuardError`` (a ``ValueError``) so callers that
only care about "this configuration string is unusable" can catch one type.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum


class RegexGuardError(ValueError):
    """Base class for rejected patterns, templates and globs."""

    def __init__(self, message: str, source: str | None = None, position: int = -1):
        self.message = message
        self.source = source
        self.position = position
        super().__init__(self._format())

    def _format(self) -> str:
        if self.source is None:
            return self.message
        if self.position < 0:
            return f'{self.message}: {self.source!r}'
        return f'{self.message} near index {self.position}: {self.source!r}'

    def __copy__(self):
        # subclasses take different constructor arguments, so copy the fields directly
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.args = self.args
        return clone


class PatternError(RegexGuardError):
    """Malformed regular expression syntax."""


class GlobError(RegexGuardError):
    """Malformed glob syntax."""


class UnsafeReason(Enum):
    """Why a structurally valid pattern was refused"""

    STAR_HEIGHT_EXCEEDED = 'star_height_exceeded'
    REPETITION_EXCEEDED = 'repetition_exceeded'
    BACKREFERENCE_PRESENT = 'backreference_present'


class UnsafePattern(RegexGuardError):
    """Pattern parses fine but exceeds the configured risk limits."""

    def __init__(self, reason: UnsafeReason, source: str, value: int | None = None, limit: int | None = None):
        self.reason = reason
        self.value = value
        self.limit = limit
        if reason is UnsafeReason.STAR_HEIGHT_EXCEEDED:
            message = f'Unsafe regex: star height ({value}) exceeds limit ({limit})'
        elif reason is UnsafeReason.REPETITION_EXCEEDED:
            message = f'Unsafe regex: potential repetitions ({value}) exceed limit ({limit})'
        else:
            message = 'Unsafe regex: usage of backreference'
        super().__init__(message, source, 0)


class TemplateErrorReason(Enum):
    """Defects found in a replacement template"""

    DANGLING_ESCAPE = 'dangling_escape'
    DANGLING_GROUP_REFERENCE = 'dangling_group_reference'
    ILLEGAL_GROUP_REFERENCE = 'illegal_group_reference'
    EMPTY_GROUP_NAME = 'empty_group_name'
    UNTERMINATED_GROUP_NAME = 'unterminated_group_name'
    UNKNOWN_GROUP_NAME = 'unknown_group_name'
    UNKNOWN_GROUP_NUMBER = 'unknown_group_number'


class TemplateError(RegexGuardError):
    """Replacement template is malformed or references a missing group."""

    def __init__(self, reason: TemplateErrorReason, message: str, source: str, position: int):
        self.reason = reason
        super().__init__(message, source, position)


@dataclass(frozen=True)
class Failure:
    """Cached failure outcome.

    Every time the entry is served a fresh copy of the error is raised, so the
    traceback and context of one caller never show up in another's.
    """

    error: RegexGuardError

    def __post_init__(self):
        # the cached instance must not pin the frames it was first raised from
        self.error.with_traceback(None)

    @property
    def is_error(self) -> bool:
        return True

    def raise_error(self):
        raise copy.copy(self.error)
