import pytest

from pagesearch.posting import InvertedIndex, Page
from pagesearch.tokenizer import tokenize


CORPUS = {
    "http://test/1.html": "The quick brown fox jumps over the lazy dog",
    "http://test/2.html": "The lazy brown dog sleeps",
    "http://test/3.html": "A quick red fox",
    "http://test/4.html": "brown fox, brown fox!",
}


def urls(pages):
    """Sorted URLs of a page set, for readable assertions."""
    return sorted(p.url for p in pages)


def doc(n):
    return f"http://test/{n}.html"


@pytest.fixture
def index():
    idx = InvertedIndex()
    for url, text in CORPUS.items():
        idx.add_document(Page(url), tokenize(text))
    return idx
