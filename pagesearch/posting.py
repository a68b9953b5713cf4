"""
Page and positional inverted index data structures.

The index maps each word to the pages containing it, and within each page to
the ordered positions (word offsets) where it occurs. Negation is realized as
set complement against every indexed page.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

from .query_parser import QueryToken, parse_operand


class DuplicateDocumentError(ValueError):
    """Raised when a page is indexed a second time."""


class Page:
    """
    A crawled page.
    - url: where the page was found
    - doc_id: assigned by the index the first time the page is recorded
    - connectivity: references to this page seen so far (starts at 1)
    """

    __slots__ = ("url", "doc_id", "connectivity")

    def __init__(self, url: str, doc_id: int | None = None, connectivity: int = 1) -> None:
        self.url = url
        self.doc_id = doc_id
        self.connectivity = connectivity

    def increment(self) -> None:
        """Record one more reference to this page."""
        self.connectivity += 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Page):
            return NotImplemented
        return self.doc_id == other.doc_id and self.url == other.url

    def __hash__(self) -> int:
        # doc_id is assigned after creation; the url never changes.
        return hash(self.url)

    def __repr__(self) -> str:
        return f"Page(url={self.url!r}, doc_id={self.doc_id}, connectivity={self.connectivity})"


class ReadWriteLock:
    """
    Many concurrent readers or one writer. Waiting writers block new readers.
    Not reentrant: a reader must not take the lock again while holding it.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writers_waiting = 0
        self._writing = False

    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def writing(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writing or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class InvertedIndex:
    """
    Positional inverted index: word -> {doc_id -> [positions]}.
    Append-only: pages are added once and never removed or re-indexed.
    Safe for concurrent readers alongside a single writer.
    """

    def __init__(self) -> None:
        self._index: dict[str, dict[int, list[int]]] = {}
        self._pages: dict[int, Page] = {}
        self._words: dict[int, tuple[str, ...]] = {}
        self._by_url: dict[str, int] = {}
        # Canonical copy of every word; equal words across pages share storage.
        self._vocabulary: dict[str, str] = {}
        self._next_id = 1
        self._lock = ReadWriteLock()

    # ----- building -----

    def add_document(self, page: Page, words: Iterable[str]) -> int | None:
        """
        Record the word sequence of a page and the position of every word.
        Returns the page's new doc_id, or None (and records nothing) when the
        sequence is empty. Pages that already carry a doc_id are refused.
        """
        words = list(words)
        if not words:
            return None
        with self._lock.writing():
            if page.url in self._by_url or page.doc_id is not None:
                raise DuplicateDocumentError(f"Page already indexed: {page.url}")
            page.doc_id = self._next_id
            self._record(page, words)
        return page.doc_id

    def _record(self, page: Page, words: list[str]) -> None:
        doc_id = page.doc_id
        sequence = tuple(self._vocabulary.setdefault(w, w) for w in words)
        self._pages[doc_id] = page
        self._words[doc_id] = sequence
        self._by_url[page.url] = doc_id
        self._next_id = max(self._next_id, doc_id + 1)
        for position, word in enumerate(sequence):
            self._index.setdefault(word, {}).setdefault(doc_id, []).append(position)

    # ----- lookups -----

    def page(self, doc_id: int) -> Page:
        """Return the page with this doc_id. Unknown ids are a caller bug."""
        page = self._pages.get(doc_id)
        assert page is not None, f"unknown doc_id {doc_id}"
        return page

    def page_for_url(self, url: str) -> Page | None:
        with self._lock.reading():
            doc_id = self._by_url.get(url)
            return self._pages[doc_id] if doc_id is not None else None

    def pages(self) -> list[Page]:
        """All indexed pages in doc_id order."""
        with self._lock.reading():
            return [self._pages[d] for d in sorted(self._pages)]

    def words(self, page: Page) -> tuple[str, ...]:
        """The recorded word sequence of an indexed page."""
        with self._lock.reading():
            self.page(page.doc_id)
            return self._words[page.doc_id]

    def positions(self, word: str, page: Page) -> list[int]:
        """Positions of word in page, or [] if it does not occur there."""
        with self._lock.reading():
            return list(self._index.get(word, {}).get(page.doc_id, []))

    @property
    def vocabulary_size(self) -> int:
        return len(self._index)

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page: object) -> bool:
        return isinstance(page, Page) and self._pages.get(page.doc_id) == page

    # ----- search -----

    def universe(self) -> set[Page]:
        """Every indexed page."""
        with self._lock.reading():
            return set(self._pages.values())

    def _doc_ids(self, word: str) -> set[int]:
        return set(self._index.get(word, ()))

    def _to_pages(self, doc_ids: Iterable[int]) -> set[Page]:
        return {self.page(d) for d in doc_ids}

    def search_word(self, word: str) -> set[Page]:
        """
        Pages containing word. A leading '!' returns every page that does not
        contain the rest of the word. Unknown words match nothing.
        """
        if word.startswith("!"):
            return self.complement(self.search_word(word[1:]))
        with self._lock.reading():
            return self._to_pages(self._doc_ids(word))

    def search_phrase(self, words: Iterable[str], within: Iterable[Page] | None = None) -> set[Page]:
        """
        Pages containing the words consecutively and in order. If within is
        given, only those pages are considered.
        """
        words = list(words)
        if not words:
            return set()
        with self._lock.reading():
            if within is None:
                candidates = self._doc_ids(words[0])
            else:
                candidates = {p.doc_id for p in within if p.doc_id in self._pages}
                candidates &= self._doc_ids(words[0])
            for word in words[1:]:
                if not candidates:
                    break
                candidates &= self._doc_ids(word)
            if len(words) > 1:
                candidates = {d for d in candidates if self._has_phrase(d, words)}
            return self._to_pages(candidates)

    def _has_phrase(self, doc_id: int, words: list[str]) -> bool:
        following = [set(self._index[w][doc_id]) for w in words[1:]]
        for start in self._index[words[0]][doc_id]:
            if all(start + offset in positions for offset, positions in enumerate(following, 1)):
                return True
        return False

    def search(self, operand: QueryToken | str) -> set[Page]:
        """
        Pages matching a single query operand: a word, a negated word, a phrase
        or a negated phrase. Accepts a token or its query-syntax text.
        """
        if isinstance(operand, str):
            operand = parse_operand(operand)
        if operand.is_phrase:
            matches = self.search_phrase(operand.words)
        else:
            matches = self.search_word(operand.words[0])
        return self.complement(matches) if operand.negated else matches

    def complement(self, pages: Iterable[Page]) -> set[Page]:
        """Every indexed page not in pages."""
        result = self.universe()
        result.difference_update(pages)
        return result

    # ----- persistence -----

    def to_dict(self) -> dict:
        """Serialize to a JSON-serializable dict for saving."""
        with self._lock.reading():
            return {
                "pages": [
                    {
                        "doc_id": doc_id,
                        "url": self._pages[doc_id].url,
                        "connectivity": self._pages[doc_id].connectivity,
                        "words": list(self._words[doc_id]),
                    }
                    for doc_id in sorted(self._pages)
                ]
            }

    @classmethod
    def from_dict(cls, data: dict) -> InvertedIndex:
        """Rebuild an index saved with to_dict, keeping doc ids."""
        index = cls()
        for entry in data["pages"]:
            page = Page(entry["url"], int(entry["doc_id"]), int(entry.get("connectivity", 1)))
            words = [str(w) for w in entry["words"]]
            if page.doc_id in index._pages or page.url in index._by_url:
                raise DuplicateDocumentError(f"Page listed twice: {page.url}")
            if words:
                index._record(page, words)
        return index
