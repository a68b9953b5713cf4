"""Boolean and phrase search over a positional inverted index of crawled pages."""

from .posting import Page, InvertedIndex, DuplicateDocumentError
from .query_parser import QueryToken, TokenKind, tokenize_query, to_postfix, parse_query
from .query_engine import QueryEngine
from .index_builder import build_index, build_index_from_directory, save_index, load_index, IndexFormatError
from .crawler import WebCrawler
from .tokenizer import tokenize, get_tokens_from_html
