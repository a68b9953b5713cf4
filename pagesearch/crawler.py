"""Breadth-first crawler that feeds fetched pages into an inverted index.

Starting from seed URLs, each page is fetched, its visible text tokenized and
indexed, and its links followed. Only links to ``.html``/``.htm`` documents are
queued. A link to an already known page counts as one more reference to it
(its connectivity) instead of being fetched again.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
import logging
from pathlib import Path
from urllib.parse import urldefrag, urljoin, urlparse
from urllib.request import url2pathname

import httpx

from .index_builder import build_index
from .posting import InvertedIndex, Page
from .tokenizer import extract_links_from_html, get_tokens_from_html, read_html_file


logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = frozenset({"http", "https", "file"})
HTML_SUFFIXES = (".html", ".htm")
DEFAULT_TIMEOUT = 10.0


class FetchError(Exception):
    """A page could not be retrieved."""


def normalize_url(url: str, base: str | None = None) -> str | None:
    """Resolve url against base and drop its fragment.

    Returns None for anything that is not an absolute http(s) or file URL.
    """
    try:
        resolved = urljoin(base, url) if base else url
        resolved, _fragment = urldefrag(resolved.strip())
        parsed = urlparse(resolved)
    except ValueError:
        return None
    if parsed.scheme not in SUPPORTED_SCHEMES:
        return None
    if parsed.scheme != "file" and not parsed.netloc:
        return None
    if parsed.scheme == "file" and not parsed.path:
        return None
    return resolved


def is_html_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(HTML_SUFFIXES)


class WebCrawler:
    """Crawls pages into an index.

    Args:
        index: Index to fill; a new one is created if omitted.
        max_pages: Stop after fetching this many pages.
        client: httpx client for http(s) URLs; one is created per crawl if omitted.
        timeout: Request timeout in seconds for a created client.
    """

    def __init__(
        self,
        index: InvertedIndex | None = None,
        *,
        max_pages: int | None = None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.index = index if index is not None else InvertedIndex()
        self.max_pages = max_pages
        self.timeout = timeout
        self._client = client
        self._pages: dict[str, Page] = {}
        self._queue: deque[Page] = deque()
        self.fetched = 0
        self.failed = 0

    @property
    def pages(self) -> dict[str, Page]:
        """Every page discovered so far, by URL (fetched or not)."""
        return dict(self._pages)

    def crawl(self, seed_urls: Iterable[str]) -> InvertedIndex:
        """Crawl from the seeds until no new pages remain (or max_pages is hit)."""
        for url in seed_urls:
            normalized = normalize_url(url)
            if normalized is None:
                logger.warning("URL %r is malformed and will be ignored", url)
                continue
            if normalized in self._pages:
                continue
            if self.index.page_for_url(normalized) is not None:
                logger.info("%s is already indexed; not crawling it again", normalized)
                continue
            page = Page(normalized)
            self._pages[normalized] = page
            self._queue.append(page)

        if self._client is not None:
            build_index(self._iter_pages(self._client), self.index)
        else:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                build_index(self._iter_pages(client), self.index)

        logger.info(
            "Crawl finished: %d fetched, %d failed, %d pages indexed",
            self.fetched,
            self.failed,
            len(self.index),
        )
        return self.index

    def _iter_pages(self, client: httpx.Client) -> Iterator[tuple[Page, list[str]]]:
        while self._queue:
            if self.max_pages is not None and self.fetched >= self.max_pages:
                logger.info("Reached max_pages=%d; %d URLs left unvisited", self.max_pages, len(self._queue))
                self._queue.clear()
                return
            page = self._queue.popleft()
            try:
                html = self.fetch(page.url, client)
            except FetchError as e:
                self.failed += 1
                logger.warning("Skipping %s: %s", page.url, e)
                continue
            self.fetched += 1
            self._discover_links(page, html)
            yield page, get_tokens_from_html(html)

    def fetch(self, url: str, client: httpx.Client) -> str:
        """Return the HTML body at url."""
        parsed = urlparse(url)
        if parsed.scheme == "file":
            path = Path(url2pathname(parsed.path))
            try:
                return read_html_file(path)
            except (OSError, ValueError) as e:
                raise FetchError(str(e)) from e
        try:
            response = client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(str(e)) from e
        return response.text

    def _discover_links(self, page: Page, html: str) -> None:
        for href in extract_links_from_html(html):
            url = normalize_url(href, base=page.url)
            if url is None:
                logger.debug("Ignoring link %r on %s", href, page.url)
                continue
            known = self._pages.get(url) or self.index.page_for_url(url)
            if known is not None:
                known.increment()
            elif is_html_url(url):
                new_page = Page(url)
                self._pages[url] = new_page
                self._queue.append(new_page)
