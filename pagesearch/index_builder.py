"""
Index builder: feeds pages into a positional inverted index, builds one from a
directory of saved pages, and saves/loads indexes as JSON.
"""

import json
import logging
import os
from pathlib import Path
from typing import Iterable
from urllib.parse import urlparse

from .tokenizer import get_tokens_from_html, read_html_file
from .posting import InvertedIndex, Page

logger = logging.getLogger(__name__)

# Bumped whenever the saved layout changes.
INDEX_FORMAT_VERSION = 1

DEFAULT_INDEX_PATH = Path("data") / "index.json"


class IndexFormatError(ValueError):
    """Raised when a saved index cannot be read back."""


def _strip_fragment(url: str) -> str:
    """Remove URL fragment (#...) for page identity."""
    parsed = urlparse(url)
    if parsed.fragment:
        parsed = parsed._replace(fragment="")
    return parsed.geturl()


def _read_doc_content_and_url(filepath: Path) -> tuple[str, str | None]:
    """
    Read document content and URL from a file.
    - .json: returns (content, url with fragment stripped). url from "url" key.
    - .html/.htm: returns (content, None).
    """
    filepath = Path(filepath)
    suffix = filepath.suffix.lower()
    if suffix == ".json":
        raw = filepath.read_text(encoding="utf-8")
        data = json.loads(raw)
        if "content" not in data:
            raise ValueError(f"JSON file has no 'content' field: {filepath}")
        content = data["content"]
        url = data.get("url")
        if url is not None:
            url = _strip_fragment(url)
        return content, url
    content = read_html_file(filepath)
    return content, None


def build_index(
    pairs: Iterable[tuple[Page, Iterable[str]]],
    index: InvertedIndex | None = None,
) -> InvertedIndex:
    """
    Add every (page, words) pair to an index (a new one unless given).
    Indexing the same page twice raises DuplicateDocumentError.
    """
    if index is None:
        index = InvertedIndex()
    for page, words in pairs:
        doc_id = index.add_document(page, words)
        if doc_id is None:
            logger.debug("No words on %s; not indexed", page.url)
    return index


def _iter_directory_pages(data_dir: Path):
    doc_files = [
        p for p in data_dir.rglob("*")
        if p.is_file() and p.suffix.lower() in (".html", ".htm", ".json")
    ]
    for filepath in sorted(doc_files, key=lambda p: str(p)):
        try:
            content, url = _read_doc_content_and_url(filepath)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s: %s", filepath, e)
            continue
        if url is None:
            url = filepath.resolve().as_uri()
        yield Page(url), get_tokens_from_html(content)


def build_index_from_directory(
    data_dir: Path,
    index: InvertedIndex | None = None,
) -> InvertedIndex:
    """
    Build inverted index from all HTML/JSON page files in a directory
    (recursive, in path order). JSON files need a "content" key and may carry
    the page's "url"; other pages are identified by their file:// URI.
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Data directory not found: {data_dir}")
    index = build_index(_iter_directory_pages(data_dir), index)
    logger.info("Indexed %d pages from %s", len(index), data_dir)
    return index


def save_index(index: InvertedIndex, path: Path) -> Path:
    """
    Write the index as JSON. The file is replaced only once fully written,
    so a failed save leaves any previous file in place.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"format": INDEX_FORMAT_VERSION, **index.to_dict()}
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.info("Saved %d pages to %s", len(index), path)
    return path


def load_index(path: Path) -> InvertedIndex:
    """Load an index written by save_index."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Index file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise IndexFormatError(f"Index file is not valid JSON: {path}") from e
    if not isinstance(data, dict) or data.get("format") != INDEX_FORMAT_VERSION:
        raise IndexFormatError(f"Unsupported index format in {path}")
    try:
        index = InvertedIndex.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise IndexFormatError(f"Corrupt index file {path}: {e}") from e
    logger.info("Loaded %d pages from %s", len(index), path)
    return index
