"""
Command-line search over a saved page index.

Query syntax:
    word            pages containing the word
    "a phrase"      pages containing the words consecutively
    !word, !"a b"   pages NOT matching the word/phrase
    a & b, a b      both (adjacent terms are ANDed)
    a | b           either
    ( ... )         grouping; & binds tighter than |

Usage (from repo root, after building the index):
    python -m pagesearch.search_cli --index data/index.json
    python -m pagesearch.search_cli --index data/index.json '"brown fox" | !dog'
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

from .index_builder import DEFAULT_INDEX_PATH, IndexFormatError, load_index
from .log_setup import add_logging_arguments, setup_logging
from .posting import Page
from .query_engine import QueryEngine


def format_results(pages: Iterable[Page], limit: int | None = None) -> list[str]:
    """One line per page in doc_id order, optionally truncated to limit."""
    ordered = sorted(pages, key=lambda p: p.doc_id)
    if limit is not None:
        ordered = ordered[:limit]
    return [f"{p.doc_id:5d}  {p.url}  (links in: {p.connectivity})" for p in ordered]


def run_query(engine: QueryEngine, raw_query: str, limit: int | None = None, explain: bool = False) -> int:
    """Answer one query on stdout. Returns the number of matches."""
    if explain:
        print(f"postfix: {engine.explain(raw_query) or '<empty>'}")
    matches = engine.query(raw_query)
    if not matches:
        print("No pages matched the query.")
        return 0
    shown = format_results(matches, limit)
    print(f"{len(matches)} matching pages" + (f" (showing {len(shown)})" if len(shown) < len(matches) else "") + ":")
    for line in shown:
        print(line)
    return len(matches)


def run_search_loop(engine: QueryEngine, limit: int | None = None, explain: bool = False) -> None:
    """
    Interactive command-line search loop.
    """
    print(f"Loaded index with {len(engine.index)} pages.")
    print("Enter queries. Empty line or Ctrl+C to exit.")
    while True:
        try:
            raw_query = input("query> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not raw_query:
            break
        run_query(engine, raw_query, limit=limit, explain=explain)


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Boolean and phrase search over a page index.")
    parser.add_argument(
        "query",
        nargs="*",
        help="Query to run once; omit for an interactive prompt.",
    )
    parser.add_argument(
        "--index",
        type=Path,
        default=DEFAULT_INDEX_PATH,
        help=f"Path to the saved index (default: {DEFAULT_INDEX_PATH}).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Show at most this many pages per query.",
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Print each query in postfix form before its results.",
    )
    add_logging_arguments(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)
    setup_logging(args)

    try:
        index = load_index(args.index)
    except (FileNotFoundError, IndexFormatError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    engine = QueryEngine.from_index(index)
    if args.query:
        run_query(engine, " ".join(args.query), limit=args.limit, explain=args.explain)
    else:
        run_search_loop(engine, limit=args.limit, explain=args.explain)


if __name__ == "__main__":
    main()
