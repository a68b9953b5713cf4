"""
Boolean query evaluation over a positional inverted index.

A query is tokenized, converted to postfix, and reduced with a stack holding
either deferred operands (tokens not yet looked up) or resolved page sets.
Deferring lets negations combine through set difference instead of building
full complements, and lets a phrase be verified only against pages that
already survived the other side of an AND.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .posting import InvertedIndex, Page
from .query_parser import QueryToken, TokenKind, parse_query

logger = logging.getLogger(__name__)

StackItem = QueryToken | set[Page]


class QueryEngine:
    """Answers query strings with the set of matching pages."""

    def __init__(self, index: InvertedIndex) -> None:
        self.index = index

    @classmethod
    def from_index(cls, index: InvertedIndex) -> QueryEngine:
        return cls(index)

    def query(self, raw_query: str) -> set[Page]:
        """
        Return every page matching the query. Empty or unusable queries match
        nothing; malformed syntax is tolerated, never raised.
        """
        postfix = parse_query(raw_query)
        if not postfix:
            return set()
        if len(postfix) == 1 and postfix[0].is_operand:
            return self.index.search(postfix[0])
        return self.evaluate(postfix)

    def explain(self, raw_query: str) -> str:
        """The postfix form of a query, for debugging."""
        return " ".join(token.text for token in parse_query(raw_query))

    def evaluate(self, postfix: Iterable[QueryToken]) -> set[Page]:
        """Reduce a postfix token list to a page set."""
        stack: list[StackItem] = []
        for token in postfix:
            if token.is_operand:
                stack.append(token)
            elif token.is_operator:
                if len(stack) < 2:
                    logger.debug("Operator %s has no operands left; skipped", token.text)
                    continue
                right = stack.pop()
                left = stack.pop()
                if token.kind is TokenKind.AND:
                    stack.append(self._and(left, right))
                else:
                    stack.append(self._or(left, right))
        if not stack:
            return set()
        result = self._resolve(stack[0])
        for item in stack[1:]:
            result = result & self._resolve(item)
        return set(result)

    def _resolve(self, item: StackItem) -> set[Page]:
        if isinstance(item, QueryToken):
            return self.index.search(item)
        return item

    def _and(self, left: StackItem, right: StackItem) -> set[Page]:
        left_neg = _is_negated(left)
        right_neg = _is_negated(right)
        if left_neg and right_neg:
            # !a & !b == universe - (a | b)
            excluded = self.index.search(left.positive()) | self.index.search(right.positive())
            return self.index.complement(excluded)
        if left_neg or right_neg:
            negated, other = (left, right) if left_neg else (right, left)
            return self._resolve(other) - self.index.search(negated.positive())
        return self._intersect(left, right)

    def _or(self, left: StackItem, right: StackItem) -> set[Page]:
        left_neg = _is_negated(left)
        right_neg = _is_negated(right)
        if left_neg and right_neg:
            # !a | !b == universe - (a & b)
            both = self.index.search(left.positive()) & self.index.search(right.positive())
            return self.index.complement(both)
        if left_neg or right_neg:
            # !a | x == universe - (a - x)
            negated, other = (left, right) if left_neg else (right, left)
            return self.index.complement(self.index.search(negated.positive()) - self._resolve(other))
        return self._resolve(left) | self._resolve(right)

    def _intersect(self, left: StackItem, right: StackItem) -> set[Page]:
        # Verify a phrase only against pages the other operand already allows.
        if _is_phrase(right):
            return self.index.search_phrase(right.words, within=self._resolve(left))
        if _is_phrase(left):
            return self.index.search_phrase(left.words, within=self._resolve(right))
        return self._resolve(left) & self._resolve(right)


def _is_negated(item: StackItem) -> bool:
    return isinstance(item, QueryToken) and item.negated


def _is_phrase(item: StackItem) -> bool:
    return isinstance(item, QueryToken) and item.is_phrase and not item.negated
