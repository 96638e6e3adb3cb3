"""Syntax extractor: finds route registrations and their comment blocks.

Works in two passes over one file. The first pass collects every
route-shaped call site and every comment, the second associates each call
site with the comment block that ends right before it.
"""

import logging
import re
from pathlib import Path

from tree_sitter import Node

from api_doc_gen.errors import DiagnosticKind, Diagnostics
from api_doc_gen.parser.annotations import has_tags
from api_doc_gen.parser.base import CallSite, CommentBlock, ExtractedRoute, FileExtraction
from api_doc_gen.parser.detect import detect_language, make_parser
from api_doc_gen.parser.patterns import DEFAULT_ROUTER_PATTERN, RouteMatch, match_call

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION_GAP = 1


class _Comment:
    __slots__ = ("text", "start", "end", "is_line", "standalone")

    def __init__(self, text: str, start: int, end: int, is_line: bool, standalone: bool):
        self.text = text
        self.start = start
        self.end = end
        self.is_line = is_line
        self.standalone = standalone


def extract_file(
    path: Path | str,
    source: bytes | None = None,
    router_pattern: str = DEFAULT_ROUTER_PATTERN,
    annotation_gap: int = DEFAULT_ANNOTATION_GAP,
    display_name: str | None = None,
) -> FileExtraction:
    """Extract route call sites from one file.

    Never raises for content problems: unreadable or unparsable files yield
    an empty result carrying a ``ParseWarning``. Diagnostics and the result
    name the file as *display_name* when given.
    """
    file = display_name or str(path)
    diagnostics = Diagnostics()
    result = FileExtraction(path=file)

    language = detect_language(path)
    if language is None:
        diagnostics.warn(DiagnosticKind.PARSE, "Unsupported file type; skipped", file=file)
        result.diagnostics = list(diagnostics)
        return result

    if source is None:
        try:
            source = Path(path).read_bytes()
        except OSError as e:
            diagnostics.warn(DiagnosticKind.PARSE, f"Cannot read file: {e.strerror or e}", file=file)
            result.diagnostics = list(diagnostics)
            return result

    try:
        text = source.decode("utf-8")
    except UnicodeDecodeError:
        diagnostics.warn(DiagnosticKind.PARSE, "File is not valid UTF-8; skipped", file=file)
        result.diagnostics = list(diagnostics)
        return result

    tree = make_parser(language).parse(source)
    if tree.root_node.has_error:
        line = _first_error_line(tree.root_node)
        diagnostics.warn(DiagnosticKind.PARSE, "Syntax error; file skipped", file=file, line=line)
        result.diagnostics = list(diagnostics)
        return result

    router_re = re.compile(router_pattern)
    lines = text.splitlines()
    matches, comments = _collect(tree.root_node, router_re, lines)

    calls: list[CallSite] = []
    for found in matches:
        if found.path is None:
            diagnostics.warn(
                DiagnosticKind.DYNAMIC_ROUTE,
                f"{found.method.value} route path is not a static literal; route skipped",
                file=file,
                line=found.line,
            )
            continue
        calls.append(
            CallSite(
                method=found.method,
                path=found.path,
                line=found.line,
                column=found.column,
                pattern=found.pattern,
                handlers=found.handlers,
                anchors=found.anchors,
            )
        )

    blocks, transparent = _group_comments(comments, lines)
    result.routes = associate(calls, blocks, lines, annotation_gap, transparent)
    result.diagnostics = list(diagnostics)
    logger.debug("%s: %d route(s), %d diagnostic(s)", file, len(result.routes), len(result.diagnostics))
    return result


def _first_error_line(root: Node) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return 0


def _collect(root: Node, router_re: re.Pattern, lines: list[str]) -> tuple[list[RouteMatch], list[_Comment]]:
    """First pass: every route-shaped call and every comment, in source order."""
    matches: list[RouteMatch] = []
    comments: list[_Comment] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            start_row, start_col = node.start_point[0], node.start_point[1]
            raw = node.text.decode("utf-8")
            line_text = lines[start_row] if start_row < len(lines) else ""
            comments.append(
                _Comment(
                    text=raw,
                    start=start_row + 1,
                    end=node.end_point[0] + 1,
                    is_line=raw.startswith("//"),
                    standalone=not line_text[:start_col].strip(),
                )
            )
        elif node.type == "call_expression":
            found = match_call(node, router_re)
            if found is not None:
                matches.append(found)
        stack.extend(reversed(node.children))
    matches.sort(key=lambda m: (m.line, m.column))
    comments.sort(key=lambda c: c.start)
    return matches, comments


def _group_comments(comments: list[_Comment], lines: list[str]) -> tuple[list[CommentBlock], set[int]]:
    """Merge runs of ``//`` lines into blocks and keep those carrying tags.

    Also returns the line numbers covered by standalone comments without
    tags, which do not break the adjacency between a block and its call.
    """
    blocks: list[CommentBlock] = []
    transparent: set[int] = set()
    runs: list[list[_Comment]] = []
    for comment in comments:
        if not comment.standalone:
            continue
        previous = runs[-1][-1] if runs else None
        if (
            previous is not None
            and comment.is_line
            and previous.is_line
            and comment.start == previous.end + 1
        ):
            runs[-1].append(comment)
        else:
            runs.append([comment])

    for run in runs:
        text = "\n".join(c.text for c in run)
        start, end = run[0].start, run[-1].end
        if has_tags(text):
            blocks.append(CommentBlock(text=text, start_line=start, end_line=end))
        else:
            transparent.update(range(start, end + 1))
    return blocks, transparent


def associate(
    calls: list[CallSite],
    blocks: list[CommentBlock],
    lines: list[str],
    max_gap: int = DEFAULT_ANNOTATION_GAP,
    transparent: set[int] | None = None,
) -> list[ExtractedRoute]:
    """Second pass: attach each call to the nearest block ending just before it.

    Between the end of the block and the call only blank lines (at most
    *max_gap* of them) and untagged standalone comments may appear. A block
    documents at most one call.
    """
    transparent = transparent or set()
    by_end = {block.end_line: block for block in blocks}
    used: set[int] = set()
    routes: list[ExtractedRoute] = []
    for call in calls:
        block = None
        for anchor in call.anchors or [call.line]:
            candidate = _block_before(anchor, by_end, lines, max_gap, transparent)
            if candidate is not None and candidate.end_line not in used:
                block = candidate
                used.add(candidate.end_line)
                break
        routes.append(ExtractedRoute(call=call, block=block))
    return routes


def _block_before(
    line: int,
    by_end: dict[int, CommentBlock],
    lines: list[str],
    max_gap: int,
    transparent: set[int],
) -> CommentBlock | None:
    blank = 0
    line_no = line - 1
    while line_no >= 1:
        if line_no in by_end:
            return by_end[line_no]
        if line_no in transparent:
            line_no -= 1
            continue
        text = lines[line_no - 1] if line_no <= len(lines) else ""
        if text.strip() or blank >= max_gap:
            return None
        blank += 1
        line_no -= 1
    return None
