"""JSDoc-style annotation resolver.

Turns the raw text of a tag-based comment block into an ``Annotation``::

    /**
     * @route GET /api/users/:id
     * @summary Get one user
     * @tag Users
     * @param {string} id - User id
     * @param {boolean} [verbose=false] - Include profile data
     * @response 200 {User} - Found
     * @response 404 - Not found
     * @security bearerAuth
     */

Problems are recorded on the ``Diagnostics`` passed in; nothing here raises.
"""

import re

from pydantic import BaseModel

from api_doc_gen.errors import DiagnosticKind, Diagnostics
from api_doc_gen.model.routes import HttpMethod, Param, Response, normalize_path, path_params

RECOGNIZED_TAGS = ("route", "summary", "description", "tag", "param", "response", "security")

LOCATION_PREFIXES = ("path", "query", "header", "body")

_TAG_LINE = re.compile(r"@([A-Za-z][\w.-]*)\s*(.*)")
_PARAM = re.compile(r"(?:\{([^}]*)\}\s*)?(\[[^\]]*\]|[^\s\[\]]+)\s*(?:-\s*)?(.*)")
_RESPONSE = re.compile(r"(\S+)(?:\s+\{([^}]+)\})?\s*(?:-\s*)?(.*)")


class Annotation(BaseModel):
    """Structured fields parsed from one comment block."""

    method: HttpMethod | None = None
    path: str | None = None
    summary: str = ""
    description: str = ""
    tags: list[str] = []
    params: list[Param] = []
    responses: dict[int, Response] = {}
    security: list[str] = []
    extensions: dict[str, list[str]] = {}


def strip_comment_markers(text: str, keep_indent: bool = False) -> list[str]:
    """Return the content lines of a ``/** */`` block or ``//`` comment run.

    With *keep_indent* only the marker and the single space after it are
    removed, so indentation inside the comment survives.
    """
    lines = []
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("//"):
            line = line[2:]
        else:
            if line.startswith("/*"):
                line = line[3:] if line.startswith("/**") else line[2:]
            if line.endswith("*/"):
                line = line[:-2]
            if not keep_indent:
                line = line.strip()
            if line.startswith("*"):
                line = line[1:]
        if keep_indent:
            lines.append((line[1:] if line.startswith(" ") else line).rstrip())
        else:
            lines.append(line.strip())
    return lines


def has_tags(text: str) -> bool:
    return any(_TAG_LINE.match(line) for line in strip_comment_markers(text))


def _split_fields(lines: list[str]) -> tuple[list[str], list[tuple[str, str, str, int]]]:
    """Group lines into (tag, value, raw value, line offset) fields.

    Lines without a tag continue the previous field. *value* joins them with
    single spaces; *raw value* keeps line breaks and indentation. Lines
    before the first tag are returned separately as free description text.
    """
    preamble: list[str] = []
    fields: list[tuple[str, list[str], int]] = []
    for offset, line in enumerate(lines):
        match = _TAG_LINE.match(line.strip())
        if match:
            fields.append((match.group(1), [match.group(2).strip()], offset))
        elif fields:
            fields[-1][1].append(line)
        elif line.strip():
            preamble.append(line.strip())

    result = []
    for tag, parts, offset in fields:
        value = " ".join(part.strip() for part in parts if part.strip())
        raw = "\n".join(parts).strip("\n")
        result.append((tag, value, raw, offset))
    return preamble, result


def resolve_annotations(
    text: str,
    path: str = "",
    diagnostics: Diagnostics | None = None,
    file: str = "",
    line: int = 0,
) -> Annotation:
    """Parse a comment block.

    *path* is the path found at the call site. A ``@route`` tag overrides it,
    and parameter locations are inferred against whichever path wins.
    *line* is the first line of the block, used to place diagnostics.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    preamble, fields = _split_fields(strip_comment_markers(text, keep_indent=True))
    result = Annotation(description=" ".join(preamble))

    def warn(kind: DiagnosticKind, message: str, offset: int) -> None:
        diagnostics.warn(kind, message, file=file, line=line + offset if line else 0)

    # @route first: it decides which path parameter names exist
    for tag, value, _, offset in fields:
        if tag == "route":
            _apply_route(result, value, lambda msg, o=offset: warn(DiagnosticKind.ANNOTATION, msg, o))

    effective_path = normalize_path(result.path or path)
    known_path_params = set(path_params(effective_path))
    descriptions: list[str] = []

    for tag, value, raw, offset in fields:
        if tag == "route":
            continue
        elif tag == "summary":
            result.summary = value
        elif tag == "description":
            descriptions.append(value)
        elif tag == "tag":
            if value and value not in result.tags:
                result.tags.append(value)
        elif tag == "param":
            param = _parse_param(value, known_path_params)
            if param is None:
                warn(DiagnosticKind.ANNOTATION, f"Malformed @param: {value!r}", offset)
            else:
                result.params.append(param)
        elif tag == "response":
            _apply_response(result, value, lambda kind, msg, o=offset: warn(kind, msg, o))
        elif tag == "security":
            scheme = value.split()[0] if value else ""
            if not scheme:
                warn(DiagnosticKind.ANNOTATION, "@security without a scheme name", offset)
            elif scheme not in result.security:
                result.security.append(scheme)
        else:
            result.extensions.setdefault(tag, []).append(raw)

    if descriptions:
        result.description = " ".join(descriptions)
    return result


def _apply_route(result: Annotation, value: str, warn) -> None:
    parts = value.split()
    if len(parts) == 1 and parts[0].startswith("/"):
        result.path = normalize_path(parts[0])
        return
    if len(parts) < 2:
        warn(f"Malformed @route: {value!r}")
        return
    method = HttpMethod.parse(parts[0])
    if method is None:
        warn(f"Unknown HTTP method in @route: {parts[0]!r}")
        return
    if not parts[1].startswith("/"):
        warn(f"@route path must start with '/': {parts[1]!r}")
        return
    result.method = method
    result.path = normalize_path(parts[1])


def _parse_param(value: str, known_path_params: set[str]) -> Param | None:
    match = _PARAM.fullmatch(value)
    if not match:
        return None
    param_type, name_part, description = match.groups()
    default = None
    required = True
    if name_part.startswith("["):
        required = False
        name_part = name_part[1:-1].strip()
        if "=" in name_part:
            name_part, default = (s.strip() for s in name_part.split("=", 1))
    if not name_part:
        return None

    location = None
    prefix, dot, rest = name_part.partition(".")
    if dot and prefix in LOCATION_PREFIXES and rest:
        location, name_part = prefix, rest
    if location is None:
        location = "path" if name_part in known_path_params else "query"

    return Param(
        name=name_part,
        location=location,
        param_type=(param_type or "string").strip() or "string",
        required=required,
        default=default,
        description=description.strip(),
    )


def _apply_response(result: Annotation, value: str, warn) -> None:
    match = _RESPONSE.fullmatch(value)
    if not match:
        warn(DiagnosticKind.RESPONSE_CODE, "@response without a status code")
        return
    code_text, schema_ref, description = match.groups()
    if not re.fullmatch(r"\d{3}", code_text) or not 100 <= int(code_text) <= 599:
        warn(DiagnosticKind.RESPONSE_CODE, f"Invalid response status code {code_text!r}; entry dropped")
        return
    result.responses[int(code_text)] = Response(
        description=description.strip(),
        schema_ref=schema_ref.strip() if schema_ref else None,
    )
