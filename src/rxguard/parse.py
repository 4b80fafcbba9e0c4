"""
Regex Pattern Parser

Turns a regular expression source string into a small immutable syntax tree
that is just detailed enough to measure backtracking risk: literals, character
classes, groups, alternation, concatenation, quantifiers, backreferences,
lookarounds and anchors.

The grammar follows what the host engine (the ``regex`` package, a superset of
``re``) accepts, so ordinary patterns are never rejected here only to be
accepted there. Engine modes that would make the engine run something other
than the tree describes (verbose mode, fuzzy constraints) are rejected
outright. The parser is a single recursive descent over the source with
no shared state, so it is safe to call from any number of threads.

Node types form a closed set; code walking the tree dispatches on them with
``isinstance`` and should raise on anything it does not recognise.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from rxguard.errors import PatternError


class AnchorKind(Enum):
    """Zero-width positions that never consume input"""

    START = '^'
    END = '$'
    WORD_BOUNDARY = r'\b'
    NOT_WORD_BOUNDARY = r'\B'
    START_OF_INPUT = r'\A'
    END_OF_INPUT = r'\Z'
    END_OF_INPUT_STRICT = r'\z'
    PREVIOUS_MATCH_END = r'\G'


@dataclass(frozen=True)
class Literal:
    char: str


@dataclass(frozen=True)
class CharClass:
    """A set of characters.

    ``ranges`` holds inclusive (low, high) pairs, ``categories`` holds shorthand
    classes such as ``d``, ``w``, ``s`` or ``p:L`` for a Unicode property.
    """

    negated: bool
    ranges: tuple[tuple[str, str], ...] = ()
    categories: tuple[str, ...] = ()


@dataclass(frozen=True)
class Concat:
    children: tuple[PatternNode, ...]


@dataclass(frozen=True)
class Alternation:
    branches: tuple[PatternNode, ...]


@dataclass(frozen=True)
class Group:
    body: PatternNode
    capturing: bool
    name: str | None = None
    atomic: bool = False


@dataclass(frozen=True)
class Lookaround:
    body: PatternNode
    behind: bool
    negated: bool


@dataclass(frozen=True)
class Quantifier:
    """Repetition of ``body``; ``max`` of None means unbounded."""

    body: PatternNode
    min: int
    max: int | None
    greedy: bool = True
    possessive: bool = False

    @property
    def unbounded(self) -> bool:
        return self.max is None


@dataclass(frozen=True)
class Backreference:
    target: int | str


@dataclass(frozen=True)
class Anchor:
    kind: AnchorKind


PatternNode = Literal | CharClass | Concat | Alternation | Group | Lookaround | Quantifier | Backreference | Anchor

EMPTY = Concat(())
ANY_BUT_NEWLINE = CharClass(negated=True, ranges=(('\n', '\n'),))

_ANCHOR_ESCAPES = {
    'b': AnchorKind.WORD_BOUNDARY,
    'B': AnchorKind.NOT_WORD_BOUNDARY,
    'A': AnchorKind.START_OF_INPUT,
    'Z': AnchorKind.END_OF_INPUT,
    'z': AnchorKind.END_OF_INPUT_STRICT,
    'G': AnchorKind.PREVIOUS_MATCH_END,
}
_CONTROL_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', 'f': '\f', 'v': '\v', 'a': '\a', 'e': '\x1b'}
_CATEGORY_ESCAPES = 'dDwWsS'
_INLINE_FLAGS = set('aiLmsuxV01-')
_HEX_DIGITS = set('0123456789abcdefABCDEF')
_OCT_DIGITS = set('01234567')
_FUZZY_KINDS = set('eids')
_FUZZY_CHARS = set('0123456789eids<=+, ')


def iter_children(node: PatternNode) -> Iterator[PatternNode]:
    """Yield the direct children of a node (none for leaves)."""
    if isinstance(node, Concat):
        yield from node.children
    elif isinstance(node, Alternation):
        yield from node.branches
    elif isinstance(node, (Group, Lookaround, Quantifier)):
        yield node.body
    elif isinstance(node, (Literal, CharClass, Backreference, Anchor)):
        return
    else:
        raise TypeError(f'Unknown pattern node: {node!r}')


class _Parser:
    """Recursive descent over one pattern source string."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.group_count = 0

    # --- helpers -------------------------------------------------------

    def error(self, message: str, position: int | None = None) -> PatternError:
        return PatternError(message, self.source, self.pos if position is None else position)

    def at_end(self) -> bool:
        return self.pos >= len(self.source)

    def peek(self, offset: int = 0) -> str | None:
        index = self.pos + offset
        if index < len(self.source):
            return self.source[index]
        return None

    def next(self) -> str:
        if self.at_end():
            raise self.error('unexpected end of pattern')
        char = self.source[self.pos]
        self.pos += 1
        return char

    def accept(self, text: str) -> bool:
        if self.source.startswith(text, self.pos):
            self.pos += len(text)
            return True
        return False

    # --- grammar -------------------------------------------------------

    def parse(self) -> PatternNode:
        node = self.parse_alternation()
        if not self.at_end():
            # Only an unmatched ')' can stop the top-level alternation early
            raise self.error('unbalanced parenthesis')
        return node

    def parse_alternation(self) -> PatternNode:
        branches = [self.parse_concat()]
        while self.peek() == '|':
            self.pos += 1
            branches.append(self.parse_concat())
        if len(branches) == 1:
            return branches[0]
        return Alternation(tuple(branches))

    def parse_concat(self) -> PatternNode:
        items: list[PatternNode] = []
        while not self.at_end() and self.peek() not in '|)':
            start = self.pos
            atom = self.parse_atom()
            if atom is None:
                # comment or global flags, nothing to match or repeat
                continue
            items.append(self.parse_quantifiers(atom, start))
        if len(items) == 1:
            return items[0]
        return Concat(tuple(items))

    def parse_quantifiers(self, atom: PatternNode, atom_start: int) -> PatternNode:
        bounds = self.read_quantifier()
        if bounds is None:
            return atom
        if isinstance(atom, Anchor):
            raise self.error('nothing to repeat', atom_start)
        low, high = bounds
        greedy = True
        possessive = False
        if self.accept('?'):
            greedy = False
        elif self.accept('+'):
            possessive = True
        if self.peek() in ('*', '+', '?') or self.brace_quantifier_at(self.pos) is not None:
            raise self.error('multiple repeat')
        return Quantifier(atom, low, high, greedy=greedy, possessive=possessive)

    def read_quantifier(self) -> tuple[int, int | None] | None:
        char = self.peek()
        if char == '*':
            self.pos += 1
            return 0, None
        if char == '+':
            self.pos += 1
            return 1, None
        if char == '?':
            self.pos += 1
            return 0, 1
        if char == '{':
            brace = self.brace_quantifier_at(self.pos)
            if brace is None:
                return None
            low, high, end = brace
            if high is not None and high < low:
                raise self.error('min repeat greater than max repeat', self.pos + 1)
            self.pos = end
            return low, high
        return None

    def brace_quantifier_at(self, index: int) -> tuple[int, int | None, int] | None:
        """Recognise ``{n}``, ``{n,}``, ``{,m}`` or ``{n,m}`` starting at index.

        Returns (min, max, end index) or None when the brace is a plain literal.
        """
        source = self.source
        if index >= len(source) or source[index] != '{':
            return None
        cursor = index + 1
        lo_start = cursor
        while cursor < len(source) and source[cursor].isdigit():
            cursor += 1
        lo = source[lo_start:cursor]
        hi = lo
        if cursor < len(source) and source[cursor] == ',':
            cursor += 1
            hi_start = cursor
            while cursor < len(source) and source[cursor].isdigit():
                cursor += 1
            hi = source[hi_start:cursor]
        if cursor >= len(source) or source[cursor] != '}' or cursor == index + 1:
            return None
        low = int(lo) if lo else 0
        high = int(hi) if hi else None
        return low, high, cursor + 1

    def fuzzy_constraint_at(self, index: int) -> bool:
        """Recognise a ``regex`` fuzzy constraint such as ``{e<=3}`` or ``{i<=1,s<=2:[a-z]}``."""
        end = self.source.find('}', index + 1)
        if end < 0:
            return False
        head = self.source[index + 1 : end].split(':', 1)[0]
        return bool(head) and set(head) <= _FUZZY_CHARS and not _FUZZY_KINDS.isdisjoint(head)

    def parse_atom(self) -> PatternNode | None:
        start = self.pos
        char = self.next()
        if char == '(':
            return self.parse_group(start)
        if char == '[':
            return self.parse_class(start)
        if char == '.':
            return ANY_BUT_NEWLINE
        if char == '^':
            return Anchor(AnchorKind.START)
        if char == '$':
            return Anchor(AnchorKind.END)
        if char == '\\':
            return self.parse_escape(start)
        if char in '*+?':
            raise self.error('nothing to repeat', start)
        if char == '{' and self.brace_quantifier_at(start) is not None:
            raise self.error('nothing to repeat', start)
        if char == '{' and self.fuzzy_constraint_at(start):
            raise self.error('fuzzy matching constraints are not supported', start)
        return Literal(char)

    def parse_group(self, start: int) -> PatternNode | None:
        capturing = True
        name = None
        atomic = False
        lookaround = None

        if self.accept('?'):
            capturing = False
            marker = self.peek()
            if marker is None:
                raise self.error('unexpected end of pattern')
            if self.accept(':'):
                pass
            elif self.accept('P<'):
                capturing = True
                name = self.read_name('>')
            elif self.accept('P='):
                target = self.read_name(')')
                return Backreference(target)
            elif self.accept('<=') or self.accept('<!'):
                lookaround = (True, self.source[self.pos - 1] == '!')
            elif self.accept('<'):
                capturing = True
                name = self.read_name('>')
            elif self.accept('=') or self.accept('!'):
                lookaround = (False, self.source[self.pos - 1] == '!')
            elif self.accept('>'):
                atomic = True
            elif self.accept('#'):
                end = self.source.find(')', self.pos)
                if end < 0:
                    raise self.error('missing ), unterminated comment', start)
                self.pos = end + 1
                return None
            elif marker in _INLINE_FLAGS:
                turning_off = False
                while self.peek() is not None and self.peek() in _INLINE_FLAGS:
                    flag = self.peek()
                    if flag == '-':
                        turning_off = True
                    elif flag == 'x' and not turning_off:
                        # verbose mode drops whitespace and comments the tree would keep
                        raise self.error('verbose flag (?x) is not supported')
                    self.pos += 1
                if self.accept(')'):
                    return None
                if not self.accept(':'):
                    raise self.error('unknown flag' if not self.at_end() else 'missing -, : or )')
            else:
                raise self.error(f'unknown extension ?{marker}', start + 1)

        if capturing:
            self.group_count += 1

        body = self.parse_alternation()
        if not self.accept(')'):
            raise self.error('missing ), unterminated subpattern', start)

        if lookaround is not None:
            behind, negated = lookaround
            return Lookaround(body, behind=behind, negated=negated)
        return Group(body, capturing=capturing, name=name, atomic=atomic)

    def read_name(self, terminator: str) -> str:
        start = self.pos
        end = self.source.find(terminator, start)
        if end < 0:
            raise self.error(f'missing {terminator}, unterminated name', start)
        name = self.source[start:end]
        if not name:
            raise self.error('missing group name', start)
        if not name.isidentifier():
            raise self.error(f'bad character in group name {name!r}', start)
        self.pos = end + 1
        return name

    def read_reference(self) -> int | str:
        """Read ``<name>`` or ``<number>`` after ``\\g`` / ``\\k``."""
        if not self.accept('<'):
            raise self.error('missing <')
        start = self.pos
        end = self.source.find('>', start)
        if end < 0:
            raise self.error('missing >, unterminated name', start)
        target = self.source[start:end]
        if target.isdigit():
            self.pos = end + 1
            return int(target)
        return self.read_name('>')

    def parse_escape(self, start: int) -> PatternNode:
        if self.at_end():
            raise self.error('bad escape (end of pattern)', start)
        char = self.next()

        if char == '0':
            return Literal(self.read_octal('0'))
        if char in _OCT_DIGITS and self.peek() in _OCT_DIGITS and self.peek(1) in _OCT_DIGITS:
            # three octal digits are a character, never a group number
            digits = char + self.next() + self.next()
            return Literal(self.to_char(int(digits, 8), start))
        if char.isdigit():
            digits = char
            if self.peek() is not None and self.peek().isdigit():
                digits += self.next()
            return Backreference(int(digits))
        if char in ('k', 'g'):
            return Backreference(self.read_reference())
        if char in _CATEGORY_ESCAPES:
            return CharClass(negated=char.isupper(), categories=(char.lower(),))
        if char in ('p', 'P'):
            return CharClass(negated=char == 'P', categories=(f'p:{self.read_property()}',))
        if char in _ANCHOR_ESCAPES:
            return Anchor(_ANCHOR_ESCAPES[char])
        return Literal(self.read_char_escape(char, start))

    def read_char_escape(self, char: str, start: int) -> str:
        """Resolve an escape that stands for a single character."""
        if char in _CONTROL_ESCAPES:
            return _CONTROL_ESCAPES[char]
        if char == 'x':
            if self.accept('{'):
                end = self.source.find('}', self.pos)
                digits = self.source[self.pos : end] if end >= 0 else ''
                if not digits or not set(digits) <= _HEX_DIGITS:
                    raise self.error('bad escape \\x', start)
                self.pos = end + 1
                return self.to_char(int(digits, 16), start)
            return self.to_char(int(self.read_hex(2, start), 16), start)
        if char == 'u':
            return self.to_char(int(self.read_hex(4, start), 16), start)
        if char == 'U':
            return self.to_char(int(self.read_hex(8, start), 16), start)
        if char == 'N':
            if not self.accept('{'):
                raise self.error('missing {', start)
            end = self.source.find('}', self.pos)
            if end < 0:
                raise self.error('missing }, unterminated name', start)
            name = self.source[self.pos : end]
            try:
                value = unicodedata.lookup(name)
            except KeyError:
                raise self.error(f'undefined character name {name!r}', start) from None
            self.pos = end + 1
            return value
        if char.isascii() and char.isalnum():
            raise self.error(f'bad escape \\{char}', start)
        return char

    def read_hex(self, count: int, start: int) -> str:
        digits = self.source[self.pos : self.pos + count]
        if len(digits) != count or not set(digits) <= _HEX_DIGITS:
            raise self.error(f'incomplete escape {self.source[start:self.pos + len(digits)]}', start)
        self.pos += count
        return digits

    def read_octal(self, first: str) -> str:
        digits = first
        while len(digits) < 3 and self.peek() is not None and self.peek() in _OCT_DIGITS:
            digits += self.next()
        return chr(int(digits, 8))

    def read_property(self) -> str:
        if self.accept('{'):
            end = self.source.find('}', self.pos)
            if end < 0 or end == self.pos:
                raise self.error('bad property name')
            name = self.source[self.pos : end]
            self.pos = end + 1
            return name
        if self.at_end():
            raise self.error('bad property name')
        return self.next()

    def to_char(self, code: int, start: int) -> str:
        if code > 0x10FFFF:
            raise self.error('bad escape, code point out of range', start)
        return chr(code)

    def parse_class(self, start: int) -> CharClass:
        negated = self.accept('^')
        ranges: list[tuple[str, str]] = []
        categories: list[str] = []
        first = True

        while True:
            if self.at_end():
                raise self.error('unterminated character set', start)
            if self.peek() == ']' and not first:
                self.pos += 1
                break
            first = False

            item_start = self.pos
            low = self.read_class_item(categories)
            if low is None:
                continue
            if self.peek() == '-' and self.peek(1) not in (None, ']'):
                self.pos += 1
                high = self.read_class_item(categories)
                if high is None:
                    raise self.error('bad character range', item_start)
                if ord(high) < ord(low):
                    raise self.error(f'bad character range {low}-{high}', item_start)
                ranges.append((low, high))
            else:
                ranges.append((low, low))

        return CharClass(negated=negated, ranges=tuple(ranges), categories=tuple(categories))

    def read_class_item(self, categories: list[str]) -> str | None:
        """Read one class member; shorthand classes go to ``categories``."""
        start = self.pos
        char = self.next()
        if char != '\\':
            return char
        if self.at_end():
            raise self.error('unterminated character set', start)
        char = self.next()
        if char in _CATEGORY_ESCAPES:
            categories.append(char if char.islower() else f'^{char.lower()}')
            return None
        if char in ('p', 'P'):
            name = self.read_property()
            categories.append(f'p:{name}' if char == 'p' else f'^p:{name}')
            return None
        if char == 'b':
            return '\b'
        if char in _OCT_DIGITS:
            return self.read_octal(char)
        return self.read_char_escape(char, start)


def parse(source: str) -> PatternNode:
    """
    Parse a regular expression into a syntax tree.

    Args:
        source: Pattern source string

    Returns:
        Root node of the tree (an empty ``Concat`` for the empty pattern)

    Raises:
        PatternError: the pattern is malformed; ``position`` points at the offending character
    """
    try:
        return _Parser(source).parse()
    except RecursionError:
        raise PatternError('pattern nested too deeply', source, -1) from None
