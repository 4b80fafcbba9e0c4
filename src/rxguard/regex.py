"""
Regex Risk Metrics

Cheap structural measurements of a parsed pattern that predict catastrophic
backtracking (ReDoS) before the pattern is ever run against real input.

Metrics:

1. Star height - maximum nesting depth of *unbounded* quantifiers.
   - a+ has star height 1
   - (a+)+ has star height 2
   - a+b+ has star height 1 (adjacent, not nested)
   Nested unbounded repetition is the classic exponential shape, so a star
   height above 1 is the strongest single predictor of ReDoS risk.

2. Repetition cost - worst-case product of quantifier upper bounds along any
   single root-to-leaf path. (a{50}){50} has cost 2500 even though its star
   height is 0. Unbounded quantifiers multiply by UNBOUNDED_REPETITION and every
   running product is capped at REPETITION_CEILING.

3. Backreferences - make the pattern non-regular; found with ``any_node``.

These are heuristics, not proofs: they catch the common pathological shapes
while letting ordinary patterns through.

References:
- "Catastrophic Backtracking" https://www.regular-expressions.info/catastrophic.html
- "Regular Expression Matching Can Be Simple And Fast" https://swtch.com/~rsc/regexp/regexp1.html
- Star height: https://en.wikipedia.org/wiki/Star_height
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from rxguard.parse import (
    Alternation,
    Anchor,
    Backreference,
    CharClass,
    Concat,
    Group,
    Literal,
    Lookaround,
    PatternNode,
    Quantifier,
    iter_children,
)


UNBOUNDED_REPETITION = 1_000_000
REPETITION_CEILING = 2**31 - 1


@dataclass(frozen=True)
class RiskProfile:
    """
    Risk measurements of one pattern source string.

    Attributes:
        star_height: Maximum nesting depth of unbounded quantifiers
        repetition_cost: Worst-case product of quantifier bounds, unbounded ones counted
            as UNBOUNDED_REPETITION
        has_backreference: Whether the pattern refers back to a captured group
        bounded_repetition_cost: Same product with unbounded quantifiers counted as 1;
            this is what the repetition limit is checked against, since unbounded
            repetition is already governed by the star height limit
    """

    star_height: int
    repetition_cost: int
    has_backreference: bool
    bounded_repetition_cost: int = 1


def _multiply(left: int, right: int) -> int:
    if left >= REPETITION_CEILING or right >= REPETITION_CEILING:
        return REPETITION_CEILING
    return min(left * right, REPETITION_CEILING)


def _measure(node: PatternNode) -> tuple[int, int, int]:
    """Return (star height, repetition cost, bounded repetition cost) of a subtree."""
    if isinstance(node, (Literal, CharClass, Backreference, Anchor)):
        return 0, 1, 1

    if isinstance(node, Quantifier):
        height, cost, bounded = _measure(node.body)
        if node.unbounded:
            return height + 1, _multiply(cost, UNBOUNDED_REPETITION), bounded
        bound = max(node.max, 1)
        return height, _multiply(cost, bound), _multiply(bounded, bound)

    if isinstance(node, (Concat, Alternation, Group, Lookaround)):
        height, cost, bounded = 0, 1, 1
        for child in iter_children(node):
            child_height, child_cost, child_bounded = _measure(child)
            height = max(height, child_height)
            cost = max(cost, child_cost)
            bounded = max(bounded, child_bounded)
        return height, cost, bounded

    raise TypeError(f'Unknown pattern node: {node!r}')


def calculate_star_height(root: PatternNode) -> int:
    """
    Calculate the star height (unbounded quantifier nesting depth) of a pattern.

    Bounded quantifiers such as {2,5} do not count; they are measured by
    ``calculate_repetition_cost`` instead.
    """
    return _measure(root)[0]


def calculate_repetition_cost(root: PatternNode) -> int:
    """Worst-case multiplicative repetition bound along any path of the tree."""
    return _measure(root)[1]


def any_node(root: PatternNode, predicate: Callable[[PatternNode], bool]) -> bool:
    """
    Check whether any node in the tree satisfies ``predicate``.

    Stops at the first match. Combine several checks into one predicate with
    ``or`` to answer them in a single walk.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if predicate(node):
            return True
        stack.extend(iter_children(node))
    return False


def is_backreference(node: PatternNode) -> bool:
    return isinstance(node, Backreference)


def evaluate(root: PatternNode) -> RiskProfile:
    """
    Compute the risk profile of a parsed pattern.

    Example:
        >>> evaluate(parse('(a{3}){4}'))
        RiskProfile(star_height=0, repetition_cost=12, has_backreference=False, bounded_repetition_cost=12)
    """
    star_height, repetition_cost, bounded_cost = _measure(root)
    return RiskProfile(
        star_height=star_height,
        repetition_cost=repetition_cost,
        has_backreference=any_node(root, is_backreference),
        bounded_repetition_cost=bounded_cost,
    )
