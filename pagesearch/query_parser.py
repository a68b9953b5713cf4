"""
Query tokenizer and infix-to-postfix conversion.

Grammar: bare words, "quoted phrases", !negation of a word or phrase,
& (AND), | (OR), parentheses, and implicit AND between adjacent operands
or groups. AND binds tighter than OR. Malformed input never raises; the
parser degrades to whatever it can make sense of.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .tokenizer import is_word_char, tokenize

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    WORD = "word"
    PHRASE = "phrase"
    AND = "&"
    OR = "|"
    OPEN_GROUP = "("
    CLOSE_GROUP = ")"


OPERAND_KINDS = frozenset({TokenKind.WORD, TokenKind.PHRASE})
OPERATOR_KINDS = frozenset({TokenKind.AND, TokenKind.OR})

_SYMBOLS = {
    "(": TokenKind.OPEN_GROUP,
    ")": TokenKind.CLOSE_GROUP,
    "&": TokenKind.AND,
    "|": TokenKind.OR,
}


@dataclass(frozen=True)
class QueryToken:
    """
    One unit of a parsed query.
    - kind: what the token is
    - words: the word (WORD, exactly one) or phrase words (PHRASE, one or more)
    - negated: operand is matched by complement against all indexed pages
    """

    kind: TokenKind
    words: tuple[str, ...] = ()
    negated: bool = False

    @classmethod
    def word(cls, word: str, negated: bool = False) -> QueryToken:
        return cls(TokenKind.WORD, (word,), negated)

    @classmethod
    def phrase(cls, words: Iterable[str], negated: bool = False) -> QueryToken:
        return cls(TokenKind.PHRASE, tuple(words), negated)

    @classmethod
    def operator(cls, symbol: str) -> QueryToken:
        return cls(_SYMBOLS[symbol])

    @property
    def is_operand(self) -> bool:
        return self.kind in OPERAND_KINDS

    @property
    def is_operator(self) -> bool:
        return self.kind in OPERATOR_KINDS

    @property
    def is_phrase(self) -> bool:
        return self.kind is TokenKind.PHRASE

    def positive(self) -> QueryToken:
        """The same operand without negation."""
        return QueryToken(self.kind, self.words, False)

    @property
    def text(self) -> str:
        """Render the token back into query syntax."""
        if self.kind is TokenKind.WORD:
            body = self.words[0]
        elif self.kind is TokenKind.PHRASE:
            body = '"' + " ".join(self.words) + '"'
        else:
            return self.kind.value
        return "!" + body if self.negated else body

    def __str__(self) -> str:
        return self.text


AND = QueryToken(TokenKind.AND)
OR = QueryToken(TokenKind.OR)


def tokenize_query(raw: str) -> list[QueryToken]:
    """
    Scan a raw query string into tokens.

    Parentheses, quotes and operators end the word being built. A '!' with
    nothing pending, followed by a word character or a quote, negates the next
    operand. Any other non-word character is a plain separator. An unterminated
    quote runs to the end of the string; quotes holding no words are dropped.
    """
    tokens: list[QueryToken] = []
    pending: list[str] = []
    negate = False

    def flush() -> None:
        nonlocal negate
        if pending:
            tokens.append(QueryToken.word("".join(pending).lower(), negated=negate))
            pending.clear()
            negate = False

    i = 0
    n = len(raw)
    while i < n:
        ch = raw[i]
        if ch in "()&|":
            flush()
            tokens.append(QueryToken.operator(ch))
        elif ch == '"':
            flush()
            end = raw.find('"', i + 1)
            if end == -1:
                end = n
            words = tokenize(raw[i + 1:end])
            if words:
                tokens.append(QueryToken.phrase(words, negated=negate))
            negate = False
            i = end
        elif ch == "!":
            if not pending and i + 1 < n and (is_word_char(raw[i + 1]) or raw[i + 1] == '"'):
                negate = True
            else:
                flush()
        elif is_word_char(ch):
            pending.append(ch)
        else:
            flush()
        i += 1
    flush()
    return tokens


def parse_operand(text: str) -> QueryToken:
    """
    Parse the textual form of a single operand ("word", "!word", '"a b"',
    '!"a b"') into a token. Extra words outside quotes are ignored.
    """
    for token in tokenize_query(text):
        if token.is_operand:
            return token
    return QueryToken.phrase(())


def _pops_before(new: QueryToken, top: QueryToken) -> bool:
    # Only OR-under-AND stays put; every other operator pair pops first.
    return top.is_operator and not (new.kind is TokenKind.AND and top.kind is TokenKind.OR)


def to_postfix(tokens: Iterable[QueryToken]) -> list[QueryToken]:
    """
    Shunting-yard conversion to postfix, inserting AND wherever two operands,
    or a closing group and an operand/opening group, sit next to each other.
    """
    output: list[QueryToken] = []
    stack: list[QueryToken] = []
    last_operand = False

    def push_operator(op: QueryToken) -> None:
        while stack and _pops_before(op, stack[-1]):
            output.append(stack.pop())
        stack.append(op)

    for token in tokens:
        if token.is_operator:
            last_operand = False
            push_operator(token)
        elif token.kind is TokenKind.OPEN_GROUP:
            if last_operand:
                push_operator(AND)
                last_operand = False
            stack.append(token)
        elif token.kind is TokenKind.CLOSE_GROUP:
            if not any(t.kind is TokenKind.OPEN_GROUP for t in stack):
                logger.debug("Ignoring unmatched ')' in query")
                continue
            while stack[-1].kind is not TokenKind.OPEN_GROUP:
                output.append(stack.pop())
            stack.pop()
            last_operand = True
        else:
            if last_operand:
                push_operator(AND)
            output.append(token)
            last_operand = True

    while stack:
        token = stack.pop()
        if token.kind is not TokenKind.OPEN_GROUP:
            output.append(token)
    return output


def parse_query(raw: str) -> list[QueryToken]:
    """Tokenize a raw query and return it in postfix order."""
    return to_postfix(tokenize_query(raw))
