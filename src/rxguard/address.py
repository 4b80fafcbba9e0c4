"""Wildcard address matching built on the cached glob and pattern layers."""

import logging

from rxguard import prometheus as prom
from rxguard.errors import RegexGuardError
from rxguard.glob import translate_glob
from rxguard.safe_regex import compile_pattern


logger = logging.getLogger(__name__)


def _glob_matches(glob: str, subject: str) -> bool:
    """Match ``subject`` against ``glob``; translation or compile errors count as no match."""
    try:
        entry = compile_pattern(translate_glob(glob))
    except RegexGuardError as e:
        logger.debug(f'Address {glob!r} is not a usable pattern: {e}')
        return False
    return entry.pattern.fullmatch(subject) is not None


def match_address(address_a: str, address_b: str) -> bool:
    """
    Check whether two wildcard addresses match each other.

    Either side may be the pattern, so ``address_b`` is tried as a glob against
    ``address_a`` and then the other way round.

    - a blank ``address_b`` only matches a blank ``address_a``
    - ``"*"`` on either side matches anything

    Example:
        >>> match_address('foo.bar', 'foo.*')
        True
    """
    if not address_b.strip():
        matched = not address_a.strip()
    elif address_a == '*' or address_b == '*':
        matched = True
    else:
        matched = _glob_matches(address_b, address_a) or _glob_matches(address_a, address_b)

    prom.record_address_match(matched)
    return matched
