"""Glob to regex translation for address wildcards.

Supported syntax:
  - *      any sequence of characters (including none)
  - ?      any single character
  - [abc]  character class, [!abc] negated, ranges like [a-z]
  - {a,b}  alternatives, may be nested
  - \\x     the literal character x

The result is meant to be matched against the whole subject (``fullmatch``).
"""

import logging

import regex

from rxguard.cache import TTLCache
from rxguard.errors import Failure, GlobError


logger = logging.getLogger(__name__)

GLOB_CACHE: TTLCache[str, str | Failure] = TTLCache('glob')


def glob_to_regex(glob: str) -> str:
    """
    Translate a glob into a regex source string.

    Raises:
        GlobError: dangling escape, unterminated class or braces, or unbalanced '}'
    """
    out: list[str] = []
    brace_starts: list[int] = []
    i = 0
    length = len(glob)

    while i < length:
        c = glob[i]

        if c == '\\':
            if i + 1 >= length:
                raise GlobError('character to be escaped is missing', glob, i)
            out.append(regex.escape(glob[i + 1]))
            i += 1
        elif c == '*':
            # collapse runs, '**' means the same as '*'
            while i + 1 < length and glob[i + 1] == '*':
                i += 1
            out.append('.*')
        elif c == '?':
            out.append('.')
        elif c == '[':
            i = _translate_class(glob, i, out)
        elif c == '{':
            brace_starts.append(i)
            out.append('(?:')
        elif c == ',' and brace_starts:
            out.append('|')
        elif c == '}':
            if not brace_starts:
                raise GlobError("unbalanced '}'", glob, i)
            brace_starts.pop()
            out.append(')')
        else:
            out.append(regex.escape(c))

        i += 1

    if brace_starts:
        raise GlobError("unterminated '{'", glob, brace_starts[-1])

    return ''.join(out)


def _translate_class(glob: str, start: int, out: list[str]) -> int:
    """Translate the class opening at ``start``; returns the index of its closing ']'."""
    j = start + 1
    negated = False
    if j < len(glob) and glob[j] in ('!', '^'):
        negated = True
        j += 1

    members: list[str] = []
    first = True
    while True:
        if j >= len(glob):
            raise GlobError("unterminated '['", glob, start)
        c = glob[j]
        if c == ']' and not first:
            break
        first = False
        if c == '\\':
            if j + 1 >= len(glob):
                raise GlobError('character to be escaped is missing', glob, j)
            j += 1
            members.append(regex.escape(glob[j]))
        elif c == '-' and members and j + 1 < len(glob) and glob[j + 1] != ']':
            members.append('-')
        elif c in '[]^\\':
            members.append('\\' + c)
        else:
            members.append(c)
        j += 1

    out.append('[' + ('^' if negated else '') + ''.join(members) + ']')
    return j


def _translate(glob: str) -> str | Failure:
    try:
        return glob_to_regex(glob)
    except GlobError as e:
        logger.debug(f'Glob translation failed: {e}')
        return Failure(e)


def translate_glob(glob: str) -> str:
    """
    Translate a glob into a regex source string, memoized per glob.

    Failed translations are cached as well and raise the same ``GlobError`` on every call.
    """
    result = GLOB_CACHE.get_or_compute(glob, _translate)
    if isinstance(result, Failure):
        result.raise_error()
    return result
