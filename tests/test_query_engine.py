"""Tests for boolean/phrase query evaluation."""

import pytest

from pagesearch.posting import InvertedIndex, Page
from pagesearch.query_engine import QueryEngine
from pagesearch.query_parser import TokenKind, parse_query
from pagesearch.tokenizer import tokenize

from conftest import doc, urls


@pytest.fixture
def engine(index):
    return QueryEngine.from_index(index)


def plain_evaluation(index, raw):
    """Resolve every operand up front, then apply plain set algebra."""
    stack = []
    for token in parse_query(raw):
        if token.is_operand:
            stack.append(index.search(token))
        elif token.is_operator and len(stack) >= 2:
            right = stack.pop()
            left = stack.pop()
            stack.append(left & right if token.kind is TokenKind.AND else left | right)
    if not stack:
        return set()
    result = stack[0]
    for pages in stack[1:]:
        result = result & pages
    return result


QUERIES = [
    "fox",
    "fox & dog",
    "fox | dog",
    "fox dog",
    "red | lazy & sleeps",
    "(red | lazy) & sleeps",
    "!red & !sleeps",
    "!red | !quick",
    "!red | sleeps",
    "sleeps | !red",
    "quick & !red",
    "!red quick",
    '"red fox" | "lazy dog"',
    '"brown fox" & "lazy dog"',
    '!"brown fox" & !"red fox"',
    '!"brown fox" | "lazy dog"',
    '"lazy dog" | !"brown fox"',
    '!"lazy dog" | !quick',
    '(quick | sleeps) (red | jumps)',
    'quick "brown fox"',
    '"brown fox" quick',
    '("brown fox" | red) !jumps',
    "!(fox)",
    "a | b & c | fox",
    "fox |",
    "& fox",
    "fox ) dog",
    "(fox dog",
    '"brown fox',
    'fox ""',
    '!""',
    "zebra | !zebra",
    "the (lazy | quick) !(dog) | \"brown fox brown\"",
]


class TestQuery:
    def test_and(self, engine):
        assert urls(engine.query("fox & dog")) == [doc(1)]

    def test_or(self, engine):
        assert urls(engine.query("fox | sleeps")) == [doc(1), doc(2), doc(3), doc(4)]

    def test_two_document_and_or(self):
        idx = InvertedIndex()
        first, second = Page("http://x/1.html"), Page("http://x/2.html")
        idx.add_document(first, ["a", "b"])
        idx.add_document(second, ["a"])
        engine = QueryEngine(idx)
        assert engine.query("a & b") == {first}
        assert engine.query("a | b") == {first, second}
        assert engine.query("a b") == {first}

    def test_implicit_and(self, engine):
        assert engine.query("quick fox") == engine.query("quick & fox")
        assert engine.query("(quick)(fox)") == engine.query("quick & fox")

    def test_and_binds_tighter_than_or(self, engine):
        assert urls(engine.query("red | lazy & sleeps")) == [doc(2), doc(3)]
        assert engine.query("red | lazy & sleeps") == engine.query("red | (lazy & sleeps)")
        assert urls(engine.query("(red | lazy) & sleeps")) == [doc(2)]

    def test_groups_on_both_sides(self, engine):
        assert urls(engine.query("(quick | sleeps) (red | jumps)")) == [doc(1), doc(3)]

    def test_phrase(self, engine):
        assert urls(engine.query('"brown fox"')) == [doc(1), doc(4)]
        assert urls(engine.query('quick "brown fox"')) == [doc(1)]

    def test_or_of_two_phrases_is_union(self, engine):
        assert urls(engine.query('"red fox" | "lazy dog"')) == [doc(1), doc(3)]

    def test_negated_word(self, engine, index):
        assert urls(engine.query("!fox")) == [doc(2)]
        assert engine.query("!zebra") == index.universe()

    def test_negated_phrase(self, engine, index):
        assert engine.query('!"brown fox"') == index.universe() - engine.query('"brown fox"')
        assert urls(engine.query('!"brown fox"')) == [doc(2), doc(3)]

    def test_de_morgan(self, engine):
        assert urls(engine.query("!red & !sleeps")) == [doc(1), doc(4)]
        assert urls(engine.query("!red | !quick")) == [doc(1), doc(2), doc(4)]

    def test_mixed_negation(self, engine):
        assert urls(engine.query("quick & !red")) == [doc(1)]
        assert urls(engine.query("!red | sleeps")) == [doc(1), doc(2), doc(4)]

    def test_unknown_words(self, engine):
        assert engine.query("zebra") == set()
        assert engine.query("fox & zebra") == set()
        assert urls(engine.query("fox | zebra")) == [doc(1), doc(3), doc(4)]

    @pytest.mark.parametrize("raw", ["", "   ", "&", "|&|", "()", ")(", "!", '""', "!!", '!""', '!"'])
    def test_empty_or_operand_free_queries(self, engine, raw):
        assert engine.query(raw) == set()

    def test_trailing_and_leading_operators_are_ignored(self, engine):
        fox = engine.query("fox")
        assert engine.query("fox |") == fox
        assert engine.query("& fox") == fox
        assert engine.query("fox & |") == fox

    def test_unbalanced_parentheses(self, engine):
        assert engine.query("fox ) dog") == engine.query("fox dog")
        assert engine.query("(fox dog") == engine.query("fox dog")

    def test_unterminated_phrase(self, engine):
        assert engine.query('"brown fox') == engine.query('"brown fox"')

    def test_empty_quotes_are_ignored(self, engine):
        assert engine.query('fox ""') == engine.query("fox")
        assert engine.query('!""') == set()
        assert engine.query('!"') == set()

    def test_bare_word_and_phrase_share_vocabulary(self):
        idx = InvertedIndex()
        page = Page("http://x/1.html")
        idx.add_document(page, tokenize("ΟΔΟΣ street"))
        engine = QueryEngine(idx)
        assert engine.query("ΟΔΟΣ") == engine.query('"ΟΔΟΣ"') == {page}

    def test_idempotent(self, engine):
        first = engine.query('("brown fox" | red) !jumps')
        for _ in range(3):
            assert engine.query('("brown fox" | red) !jumps') == first
        assert urls(first) == [doc(3), doc(4)]

    def test_does_not_mutate_index(self, engine, index):
        before = index.to_dict()
        engine.query('!"brown fox" | quick & !(red) "lazy dog"')
        assert index.to_dict() == before

    @pytest.mark.parametrize("raw", QUERIES)
    def test_matches_plain_set_evaluation(self, engine, index, raw):
        assert engine.query(raw) == plain_evaluation(index, raw)


class TestExplain:
    def test_postfix_rendering(self, engine):
        assert engine.explain('a | b "c d" !e') == 'a b "c d" & !e & |'
        assert engine.explain("") == ""
