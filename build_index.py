"""
Crawl pages (or read a folder of saved pages) and save a searchable index.

Usage:
    python build_index.py https://example.com/index.html
    python build_index.py --data-dir data/pages --output data/index.json

Output:
  - data/index.json   (pages, their word sequences and connectivity)
  - Summary table printed to console
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from pagesearch.crawler import WebCrawler
from pagesearch.index_builder import DEFAULT_INDEX_PATH, build_index_from_directory, save_index
from pagesearch.log_setup import add_logging_arguments, setup_logging


def get_index_path() -> Path:
    base = Path(__file__).resolve().parent
    return base / DEFAULT_INDEX_PATH


def main() -> None:
    parser = argparse.ArgumentParser(description="Build a boolean/phrase search index")
    parser.add_argument(
        "urls",
        nargs="*",
        help="Seed URLs to crawl (http, https or file).",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Index saved .html/.json pages from this folder instead of crawling.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Output path for the index (default: {DEFAULT_INDEX_PATH})",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Stop crawling after this many pages.",
    )
    add_logging_arguments(parser)
    args = parser.parse_args()
    setup_logging(args)

    output_path = args.output or get_index_path()

    if args.data_dir is not None:
        if not args.data_dir.exists():
            print(f"No data folder found at {args.data_dir}.")
            sys.exit(1)
        index = build_index_from_directory(args.data_dir)
    elif args.urls:
        crawler = WebCrawler(max_pages=args.max_pages)
        index = crawler.crawl(args.urls)
    else:
        print("Error: No URLs or --data-dir specified.")
        sys.exit(1)

    if len(index) == 0:
        print("No pages with any text were found; nothing to index.")
        sys.exit(1)

    try:
        save_index(index, output_path)
    except OSError as e:
        print(f"Error: Index generation failed! {e}")
        sys.exit(1)

    index_size_kb = output_path.stat().st_size / 1024

    print()
    print("| Metric                    | Value |")
    print("|---------------------------|-------|")
    print(f"| Number of indexed pages   | {len(index)} |")
    print(f"| Number of unique words    | {index.vocabulary_size} |")
    print(f"| Total size of index (KB)  | {index_size_kb:.2f} |")
    print()
    print(f"Index saved to: {output_path}")


if __name__ == "__main__":
    main()
