"""Tests for star height, repetition cost and backreference detection"""

import pytest

from rxguard.parse import Backreference, Literal, Quantifier, parse
from rxguard.regex import (
    REPETITION_CEILING,
    UNBOUNDED_REPETITION,
    RiskProfile,
    any_node,
    calculate_repetition_cost,
    calculate_star_height,
    evaluate,
    is_backreference,
)


class TestStarHeight:
    """Nesting depth of unbounded quantifiers"""

    @pytest.mark.parametrize(
        'source,expected',
        [
            ('abc', 0),
            ('a+', 1),
            ('(a+)+', 2),
            ('a+b+', 1),
            ('(a*b*)*', 2),
            ('((a+)+)+', 3),
            ('(a|b+)*', 2),
            ('a{2,5}', 0),
            ('(a+){3}', 1),
            ('(?=a+)b', 1),
        ],
    )
    def test_star_height(self, source, expected):
        assert calculate_star_height(parse(source)) == expected

    def test_lazy_modifier_does_not_change_height(self):
        assert calculate_star_height(parse('(a+?)+?')) == calculate_star_height(parse('(a+)+'))


class TestRepetitionCost:
    """Worst-case product of quantifier bounds"""

    @pytest.mark.parametrize(
        'source,expected',
        [
            ('abc', 1),
            ('a{3}', 3),
            ('(a{3}){4}', 12),
            ('(a{50}){50}', 2500),
            ('a{3}b{5}', 5),
            ('a{2}|b{7}', 7),
            ('a?', 1),
            ('a{0}', 1),
        ],
    )
    def test_finite_cost(self, source, expected):
        assert calculate_repetition_cost(parse(source)) == expected

    def test_unbounded_quantifier_uses_sentinel(self):
        assert calculate_repetition_cost(parse('a+')) == UNBOUNDED_REPETITION
        assert calculate_repetition_cost(parse('(a{2})*')) == 2 * UNBOUNDED_REPETITION

    def test_cost_is_capped(self):
        assert calculate_repetition_cost(parse('((a+)+)+')) == REPETITION_CEILING
        assert calculate_repetition_cost(parse('(((a{1000}){1000}){1000}){1000}')) == REPETITION_CEILING

    def test_bounded_cost_ignores_unbounded_quantifiers(self):
        profile = evaluate(parse('((a+){3}){4}'))
        assert profile.bounded_repetition_cost == 12
        assert profile.repetition_cost == 12 * UNBOUNDED_REPETITION


class TestAnyNode:
    """Generic predicate search"""

    def test_finds_backreference(self):
        assert any_node(parse(r'(a)(b|\1)'), is_backreference)

    def test_no_backreference(self):
        assert not any_node(parse('(a)(b|c)'), is_backreference)

    def test_named_backreference(self):
        assert any_node(parse('(?P<x>a)(?P=x)'), is_backreference)

    def test_combined_predicates(self):
        root = parse('x(?:y+)')

        def unbounded_or_backreference(node):
            return isinstance(node, Backreference) or (isinstance(node, Quantifier) and node.unbounded)

        assert any_node(root, unbounded_or_backreference)

    def test_stops_at_first_match(self):
        visited = []

        def predicate(node):
            visited.append(node)
            return isinstance(node, Literal)

        assert any_node(parse('a'), predicate)
        assert visited == [Literal('a')]


class TestEvaluate:
    """Full risk profile"""

    def test_profile_fields(self):
        assert evaluate(parse(r'(a{3}){4}\1')) == RiskProfile(
            star_height=0,
            repetition_cost=12,
            has_backreference=True,
            bounded_repetition_cost=12,
        )

    def test_deterministic(self):
        source = r'^(?<user>[\w.]+)@(?<host>[a-z]{2,63}(\.[a-z]+)*)$'
        assert evaluate(parse(source)) == evaluate(parse(source))

    def test_profile_is_immutable(self):
        profile = evaluate(parse('a+'))
        with pytest.raises(AttributeError):
            profile.star_height = 0
