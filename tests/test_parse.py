"""Tests for the pattern parser"""

import pytest

from rxguard.errors import PatternError
from rxguard.parse import (
    ANY_BUT_NEWLINE,
    EMPTY,
    Alternation,
    Anchor,
    AnchorKind,
    Backreference,
    CharClass,
    Concat,
    Group,
    Literal,
    Lookaround,
    Quantifier,
    iter_children,
    parse,
)


class TestParseBasics:
    """Literals, concatenation, alternation and the dot"""

    def test_empty_pattern(self):
        assert parse('') == EMPTY

    def test_single_literal(self):
        assert parse('a') == Literal('a')

    def test_concatenation(self):
        assert parse('ab') == Concat((Literal('a'), Literal('b')))

    def test_alternation(self):
        assert parse('a|bc') == Alternation((Literal('a'), Concat((Literal('b'), Literal('c')))))

    def test_empty_alternation_branch(self):
        assert parse('a|') == Alternation((Literal('a'), EMPTY))

    def test_dot(self):
        assert parse('.') == ANY_BUT_NEWLINE

    def test_anchors(self):
        node = parse(r'^\bx$')
        assert node == Concat(
            (
                Anchor(AnchorKind.START),
                Anchor(AnchorKind.WORD_BOUNDARY),
                Literal('x'),
                Anchor(AnchorKind.END),
            )
        )

    def test_escaped_metacharacter_is_literal(self):
        assert parse(r'\.') == Literal('.')
        assert parse(r'\(') == Literal('(')

    def test_control_and_hex_escapes(self):
        assert parse(r'\n') == Literal('\n')
        assert parse(r'\x41') == Literal('A')
        assert parse(r'é') == Literal('é')
        assert parse(r'\x{1F600}') == Literal('\U0001F600')

    def test_shorthand_class(self):
        assert parse(r'\d') == CharClass(negated=False, categories=('d',))
        assert parse(r'\W') == CharClass(negated=True, categories=('w',))


class TestParseClasses:
    """Character classes"""

    def test_simple_class(self):
        assert parse('[abc]') == CharClass(negated=False, ranges=(('a', 'a'), ('b', 'b'), ('c', 'c')))

    def test_negated_range(self):
        assert parse('[^a-z]') == CharClass(negated=True, ranges=(('a', 'z'),))

    def test_leading_bracket_is_member(self):
        assert parse('[]a]') == CharClass(negated=False, ranges=((']', ']'), ('a', 'a')))

    def test_trailing_dash_is_member(self):
        assert parse('[a-]') == CharClass(negated=False, ranges=(('a', 'a'), ('-', '-')))

    def test_shorthand_inside_class(self):
        assert parse(r'[\d_]') == CharClass(negated=False, ranges=(('_', '_'),), categories=('d',))

    def test_reversed_range(self):
        with pytest.raises(PatternError) as exc_info:
            parse('[z-a]')
        assert exc_info.value.position == 1

    def test_unterminated_class(self):
        with pytest.raises(PatternError) as exc_info:
            parse('ab[cd')
        assert exc_info.value.position == 2
        assert 'unterminated character set' in exc_info.value.message


class TestParseGroups:
    """Groups, lookarounds and backreferences"""

    def test_capturing_group(self):
        assert parse('(a)') == Group(Literal('a'), capturing=True)

    def test_non_capturing_group(self):
        assert parse('(?:a)') == Group(Literal('a'), capturing=False)

    def test_named_group(self):
        assert parse('(?<word>a)') == Group(Literal('a'), capturing=True, name='word')
        assert parse('(?P<word>a)') == Group(Literal('a'), capturing=True, name='word')

    def test_atomic_group(self):
        assert parse('(?>a)') == Group(Literal('a'), capturing=False, atomic=True)

    def test_lookarounds(self):
        assert parse('(?=a)') == Lookaround(Literal('a'), behind=False, negated=False)
        assert parse('(?!a)') == Lookaround(Literal('a'), behind=False, negated=True)
        assert parse('(?<=a)') == Lookaround(Literal('a'), behind=True, negated=False)
        assert parse('(?<!a)') == Lookaround(Literal('a'), behind=True, negated=True)

    def test_scoped_flags_group(self):
        assert parse('(?i:a)') == Group(Literal('a'), capturing=False)

    def test_global_flags_and_comments_are_dropped(self):
        assert parse('(?i)a') == Literal('a')
        assert parse('a(?#note)') == Literal('a')

    def test_numbered_backreference(self):
        assert parse(r'(a)\1') == Concat((Group(Literal('a'), capturing=True), Backreference(1)))

    def test_named_backreferences(self):
        assert parse(r'(?<x>a)\k<x>').children[1] == Backreference('x')
        assert parse(r'(?P<x>a)(?P=x)').children[1] == Backreference('x')
        assert parse(r'(a)\g<1>').children[1] == Backreference(1)

    def test_unbalanced_close(self):
        with pytest.raises(PatternError) as exc_info:
            parse('a)b')
        assert exc_info.value.position == 1

    def test_unterminated_group(self):
        with pytest.raises(PatternError) as exc_info:
            parse('x(ab')
        assert exc_info.value.position == 1

    def test_missing_group_name(self):
        with pytest.raises(PatternError, match='missing group name'):
            parse('(?<>a)')

    def test_unknown_extension(self):
        with pytest.raises(PatternError, match='unknown extension'):
            parse('(?Qa)')


class TestParseQuantifiers:
    """Quantifier forms and their errors"""

    @pytest.mark.parametrize(
        'source,low,high',
        [
            ('a*', 0, None),
            ('a+', 1, None),
            ('a?', 0, 1),
            ('a{3}', 3, 3),
            ('a{2,}', 2, None),
            ('a{2,5}', 2, 5),
            ('a{,4}', 0, 4),
        ],
    )
    def test_bounds(self, source, low, high):
        node = parse(source)
        assert isinstance(node, Quantifier)
        assert (node.min, node.max) == (low, high)

    def test_lazy_and_possessive(self):
        assert parse('a*?') == Quantifier(Literal('a'), 0, None, greedy=False)
        assert parse('a++') == Quantifier(Literal('a'), 1, None, possessive=True)

    def test_brace_without_quantifier_is_literal(self):
        assert parse('a{') == Concat((Literal('a'), Literal('{')))
        assert parse('a{x}') == Concat((Literal('a'), Literal('{'), Literal('x'), Literal('}')))

    def test_quantifier_binds_to_last_atom(self):
        assert parse('ab+') == Concat((Literal('a'), Quantifier(Literal('b'), 1, None)))

    @pytest.mark.parametrize('source,position', [('*a', 0), ('a|+', 2), ('(?:*)', 3), ('^*', 0)])
    def test_nothing_to_repeat(self, source, position):
        with pytest.raises(PatternError) as exc_info:
            parse(source)
        assert exc_info.value.message == 'nothing to repeat'
        assert exc_info.value.position == position

    def test_multiple_repeat(self):
        with pytest.raises(PatternError, match='multiple repeat'):
            parse('a**')

    def test_min_greater_than_max(self):
        with pytest.raises(PatternError, match='min repeat greater than max repeat'):
            parse('a{5,2}')


class TestParseErrors:
    """Escape errors and error formatting"""

    def test_dangling_backslash(self):
        with pytest.raises(PatternError) as exc_info:
            parse('ab\\')
        assert exc_info.value.position == 2

    def test_unknown_letter_escape(self):
        with pytest.raises(PatternError, match=r'bad escape \\q'):
            parse(r'\q')

    def test_incomplete_hex_escape(self):
        with pytest.raises(PatternError, match='incomplete escape'):
            parse(r'\x4')

    def test_error_message_includes_source_and_index(self):
        with pytest.raises(PatternError) as exc_info:
            parse('a)')
        assert str(exc_info.value) == "unbalanced parenthesis near index 1: 'a)'"

    def test_pattern_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse('(')

    def test_deep_nesting_is_reported(self):
        with pytest.raises(PatternError, match='nested too deeply'):
            parse('(' * 5000 + ')' * 5000)


class TestIterChildren:
    """Child iteration over the closed node set"""

    def test_leaf_has_no_children(self):
        assert list(iter_children(Literal('a'))) == []

    def test_container_children(self):
        node = parse('a|b')
        assert list(iter_children(node)) == [Literal('a'), Literal('b')]

    def test_unknown_node_type(self):
        with pytest.raises(TypeError):
            list(iter_children('not a node'))


class TestParseEngineModes:
    """Engine modes that would change what actually runs are refused"""

    @pytest.mark.parametrize(
        'source,position',
        [
            ('(?x)(a+) +', 2),
            ('(?x)(a{50}) {50}', 2),
            ('a(?ix:b )', 4),
            ('(?sx)a', 3),
        ],
    )
    def test_verbose_flag_rejected(self, source, position):
        with pytest.raises(PatternError) as exc_info:
            parse(source)
        assert 'verbose' in exc_info.value.message
        assert exc_info.value.position == position

    def test_turning_verbose_off_is_accepted(self):
        assert parse('(?-x:a b)') == Group(Concat((Literal('a'), Literal(' '), Literal('b'))), capturing=False)

    def test_three_octal_digits_are_a_character(self):
        assert parse(r'\123') == Literal('S')
        assert parse(r'[\101]') == CharClass(negated=False, ranges=(('A', 'A'),))

    def test_two_digits_stay_a_backreference(self):
        assert parse(r'\12') == Backreference(12)
        assert parse(r'\128') == Concat((Backreference(12), Literal('8')))

    @pytest.mark.parametrize(
        'source,position',
        [
            ('(?:a+b?){e<=3}', 8),
            ('abc{i<=1,d<=1}', 3),
            ('x{e}', 1),
            ('(foo){1<=e<=2:[a-z]}', 5),
            ('{s<=2}', 0),
        ],
    )
    def test_fuzzy_constraints_rejected(self, source, position):
        with pytest.raises(PatternError) as exc_info:
            parse(source)
        assert 'fuzzy' in exc_info.value.message
        assert exc_info.value.position == position

    def test_ordinary_braces_stay_literal(self):
        assert parse('a{x}') == Concat((Literal('a'), Literal('{'), Literal('x'), Literal('}')))
        assert parse('{}') == Concat((Literal('{'), Literal('}')))
