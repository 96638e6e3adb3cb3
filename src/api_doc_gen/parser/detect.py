"""Detect the source language of a file and load its tree-sitter grammar."""

from functools import lru_cache
from pathlib import Path

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Parser

SUFFIX_LANGUAGES = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}


def detect_language(file_path: Path | str) -> str | None:
    """Detect the grammar to parse a file with.

    Returns: 'javascript', 'typescript', 'tsx', or None when unsupported.
    """
    return SUFFIX_LANGUAGES.get(Path(file_path).suffix.lower())


@lru_cache(maxsize=None)
def get_language(name: str) -> Language:
    if name == "javascript":
        return Language(tree_sitter_javascript.language())
    if name == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    if name == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    raise ValueError(f"Unsupported language: {name}")


def make_parser(name: str) -> Parser:
    """Return a fresh parser for *name*.

    Parsers are not shared between threads; languages are.
    """
    return Parser(get_language(name))
