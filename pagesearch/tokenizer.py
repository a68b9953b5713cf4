"""
HTML parser and tokenizer shared by indexing and querying.
Extracts visible text and links from HTML pages and splits text into
lowercase words of letters and decimal digits.
"""

import warnings
from itertools import groupby
from pathlib import Path
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning, MarkupResemblesLocatorWarning
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)


def is_word_char(ch: str) -> bool:
    """True if ch belongs inside a word: a letter or a decimal digit of any script."""
    return ch.isalpha() or ch.isdecimal()


def tokenize(text: str) -> list[str]:
    """
    Split text into words. Every maximal run of letters and decimal digits is one
    word; everything else is a boundary. Words are lowercased.
    """
    if not text:
        return []
    return ["".join(run).lower() for is_word, run in groupby(text, key=is_word_char) if is_word]


def _parse(html_content: str) -> BeautifulSoup:
    return BeautifulSoup(html_content, "lxml")


def extract_text_from_html(html_content: str) -> str:
    """
    Extract visible text from HTML content, stripping tags and scripts.
    """
    soup = _parse(html_content)
    for element in soup(["script", "style"]):
        element.decompose()
    return soup.get_text(separator=" ", strip=True)


def get_tokens_from_html(html_content: str) -> list[str]:
    """
    Extract text from HTML and return its word sequence.
    """
    return tokenize(extract_text_from_html(html_content))


def extract_links_from_html(html_content: str) -> list[str]:
    """
    Return the raw href of every <a> element, in document order.
    Relative links are returned as written; resolving them is the caller's job.
    """
    soup = _parse(html_content)
    links: list[str] = []
    for tag in soup.find_all("a", href=True):
        href = tag["href"].strip()
        if href:
            links.append(href)
    return links


def read_html_file(filepath: Path) -> str:
    """
    Read HTML file content, handling common encodings.
    """
    for encoding in ("utf-8", "latin-1", "cp1252"):
        try:
            return Path(filepath).read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError(f"Could not decode file: {filepath}")
