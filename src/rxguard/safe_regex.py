"""
Safe Regex Gate

Entry points for accepting regular expressions and replacement templates from
configuration authors:

- ``get_or_compile``: parse, measure and compile a pattern once, memoized
- ``assert_safe`` / ``is_safe``: enforce star height, repetition and backreference limits
- ``assert_replacement_safe``: check that a ``$1`` / ``${name}`` template only refers to
  groups the pattern defines

Every result, including failures, is cached per input so evaluating the same
pattern once per routed item costs a dictionary lookup after the first call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import regex

from rxguard import prometheus as prom
from rxguard.cache import TTLCache
from rxguard.errors import (
    Failure,
    PatternError,
    RegexGuardError,
    TemplateError,
    TemplateErrorReason,
    UnsafePattern,
    UnsafeReason,
)
from rxguard.glob import GLOB_CACHE
from rxguard.parse import parse
from rxguard.regex import RiskProfile, evaluate
from rxguard.utils import get_int_env, truncate


logger = logging.getLogger(__name__)

DEFAULT_STAR_HEIGHT_LIMIT = get_int_env('RXGUARD_STAR_HEIGHT_LIMIT', 1)
DEFAULT_REPETITION_LIMIT = get_int_env('RXGUARD_REPETITION_LIMIT', 1000)


@dataclass(frozen=True)
class CompiledPattern:
    """
    Successfully compiled pattern with everything the checks need.

    Attributes:
        source: Pattern source string
        pattern: Compiled host engine pattern, ready to match
        group_count: Number of capturing groups
        named_groups: Names of the named capturing groups
        risk_profile: Structural risk measurements
    """

    source: str
    pattern: regex.Pattern
    group_count: int
    named_groups: frozenset[str]
    risk_profile: RiskProfile

    @property
    def is_error(self) -> bool:
        return False


@dataclass(frozen=True)
class ValidTemplate:
    """A replacement template that passed validation, with the groups it refers to."""

    template: str
    references: tuple[int | str, ...] = ()


CompiledPatternEntry = CompiledPattern | Failure
ReplacementValidation = ValidTemplate | Failure

PATTERN_CACHE: TTLCache[str, CompiledPatternEntry] = TTLCache('pattern')
REPLACEMENT_CACHE: TTLCache[tuple[str, str], ReplacementValidation] = TTLCache('replacement')


def _compile(source: str) -> CompiledPatternEntry:
    # Both the structural parser and the host engine must accept the pattern;
    # the engine never sees input the parser rejected.
    try:
        root = parse(source)
    except PatternError as e:
        logger.debug(f'Pattern rejected by parser: {e}')
        return Failure(e)

    try:
        compiled = regex.compile(source)
    except (regex.error, OverflowError, RecursionError) as e:
        position = getattr(e, 'pos', None)
        message = getattr(e, 'msg', None) or str(e)
        logger.debug(f'Pattern rejected by regex engine: {message} ({truncate(source)!r})')
        return Failure(PatternError(message, source, position if position is not None else -1))

    return CompiledPattern(
        source=source,
        pattern=compiled,
        group_count=compiled.groups,
        named_groups=frozenset(compiled.groupindex),
        risk_profile=evaluate(root),
    )


def get_or_compile(source: str) -> CompiledPatternEntry:
    """Return the cached compilation result for ``source``, compiling it on a miss."""
    return PATTERN_CACHE.get_or_compute(source, _compile)


def compile_pattern(source: str) -> CompiledPattern:
    """Like ``get_or_compile`` but raises the cached ``PatternError`` instead of returning it."""
    entry = get_or_compile(source)
    if isinstance(entry, Failure):
        entry.raise_error()
    return entry


def assert_safe(
    pattern: str,
    star_height_limit: int = DEFAULT_STAR_HEIGHT_LIMIT,
    repetition_limit: int = DEFAULT_REPETITION_LIMIT,
    allow_backreference: bool = False,
) -> RiskProfile:
    """
    Assert that a pattern is valid and probably safe to run.

    Checks, in order: the pattern compiles; its star height does not exceed
    ``star_height_limit``; its bounded repetition cost does not exceed
    ``repetition_limit``; it has no backreferences unless ``allow_backreference``.

    Returns:
        The pattern's risk profile

    Raises:
        PatternError: the pattern is malformed
        UnsafePattern: the pattern exceeds a limit
    """
    try:
        entry = compile_pattern(pattern)
    except PatternError:
        prom.record_safety_check('invalid')
        raise

    profile = entry.risk_profile

    if profile.star_height > star_height_limit:
        prom.record_safety_check(UnsafeReason.STAR_HEIGHT_EXCEEDED.value)
        raise UnsafePattern(UnsafeReason.STAR_HEIGHT_EXCEEDED, pattern, profile.star_height, star_height_limit)

    if profile.bounded_repetition_cost > repetition_limit:
        prom.record_safety_check(UnsafeReason.REPETITION_EXCEEDED.value)
        raise UnsafePattern(
            UnsafeReason.REPETITION_EXCEEDED, pattern, profile.bounded_repetition_cost, repetition_limit
        )

    if profile.has_backreference and not allow_backreference:
        prom.record_safety_check(UnsafeReason.BACKREFERENCE_PRESENT.value)
        raise UnsafePattern(UnsafeReason.BACKREFERENCE_PRESENT, pattern)

    prom.record_safety_check('safe')
    return profile


def is_safe(
    pattern: str,
    star_height_limit: int = DEFAULT_STAR_HEIGHT_LIMIT,
    repetition_limit: int = DEFAULT_REPETITION_LIMIT,
    allow_backreference: bool = False,
) -> bool:
    """True if ``assert_safe`` accepts the pattern. Invalid and unsafe are both False."""
    try:
        assert_safe(pattern, star_height_limit, repetition_limit, allow_backreference)
    except RegexGuardError as e:
        logger.debug(f'Pattern not safe: {e}')
        return False
    return True


def _is_name_char(char: str) -> bool:
    return char.isascii() and char.isalnum()


def validate_template(template: str, group_count: int, named_groups: frozenset[str]) -> ValidTemplate:
    """
    Check a ``$n`` / ``${name}`` replacement template against a pattern's groups.

    Only the first digit of a numbered reference has to name an existing group:
    ``$12`` is accepted when group 1 exists, since trailing digits cannot make the
    substitution unsafe.

    Raises:
        TemplateError: at the first defect found
    """
    references: list[int | str] = []
    pos = 0
    length = len(template)

    while pos < length:
        char = template[pos]
        if char == '\\':
            pos += 1
            if pos == length:
                raise TemplateError(
                    TemplateErrorReason.DANGLING_ESCAPE, 'character to be escaped is missing', template, pos
                )
            pos += 1

        elif char == '$':
            pos += 1
            if pos == length:
                raise TemplateError(
                    TemplateErrorReason.DANGLING_GROUP_REFERENCE,
                    'Illegal group reference: group index is missing',
                    template,
                    pos,
                )

            char = template[pos]
            if char == '{':
                pos += 1
                begin = pos
                while pos < length and _is_name_char(template[pos]):
                    pos += 1

                if begin == pos:
                    raise TemplateError(
                        TemplateErrorReason.EMPTY_GROUP_NAME,
                        'named capturing group has 0 length name',
                        template,
                        pos,
                    )
                if pos == length or template[pos] != '}':
                    raise TemplateError(
                        TemplateErrorReason.UNTERMINATED_GROUP_NAME,
                        "named capturing group is missing trailing '}'",
                        template,
                        pos,
                    )

                name = template[begin:pos]
                if name not in named_groups:
                    raise TemplateError(
                        TemplateErrorReason.UNKNOWN_GROUP_NAME,
                        f'Group with name {{{name}}} does not exist',
                        template,
                        pos,
                    )
                references.append(name)
                pos += 1

            elif '0' <= char <= '9':
                number = int(char)
                if number > group_count:
                    raise TemplateError(
                        TemplateErrorReason.UNKNOWN_GROUP_NUMBER,
                        f"Group '{number}' does not exist",
                        template,
                        pos,
                    )
                references.append(number)
                pos += 1

            else:
                raise TemplateError(
                    TemplateErrorReason.ILLEGAL_GROUP_REFERENCE, 'Illegal group reference', template, pos
                )

        else:
            pos += 1

    return ValidTemplate(template=template, references=tuple(references))


def _check_replacement(key: tuple[str, str]) -> ReplacementValidation:
    pattern, template = key
    entry = get_or_compile(pattern)
    if isinstance(entry, Failure):
        # an invalid pattern makes any template meaningless
        return entry
    try:
        return validate_template(template, entry.group_count, entry.named_groups)
    except TemplateError as e:
        logger.debug(f'Replacement template rejected: {e}')
        return Failure(e)


def assert_replacement_safe(pattern: str, template: str) -> ValidTemplate:
    """
    Assert that ``template`` only refers to capture groups ``pattern`` defines.

    Memoized per (pattern, template) pair, including the first error found.

    Raises:
        PatternError: the pattern itself is malformed
        TemplateError: the template is malformed or refers to a missing group
    """
    result = REPLACEMENT_CACHE.get_or_compute((pattern, template), _check_replacement)
    if isinstance(result, Failure):
        prom.record_replacement_check('invalid')
        result.raise_error()
    prom.record_replacement_check('valid')
    return result


def clear_caches() -> int:
    """Drop every memoized pattern, replacement and glob result."""
    count = PATTERN_CACHE.clear() + REPLACEMENT_CACHE.clear() + GLOB_CACHE.clear()
    logger.info(f'Cleared {count} cached entries')
    return count


def cache_info() -> dict:
    return {cache.name: cache.info() for cache in (PATTERN_CACHE, REPLACEMENT_CACHE, GLOB_CACHE)}
