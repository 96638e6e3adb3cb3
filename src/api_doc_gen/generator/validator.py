"""Validates generated artifacts for structural correctness."""

import json
import re

import yaml


_TEMPLATE_TOKEN = re.compile(r"\{([^{}]+)\}")
_METHODS = ("get", "post", "put", "patch", "delete", "options", "head")


def _resolve_ref(document: dict, ref: str) -> bool:
    if not ref.startswith("#/"):
        return False
    node = document
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or part not in node:
            return False
        node = node[part]
    return True


def _find_refs(node, found: list[str]) -> list[str]:
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                found.append(value)
            else:
                _find_refs(value, found)
    elif isinstance(node, list):
        for item in node:
            _find_refs(item, found)
    return found


def validate_openapi(document: dict) -> list[str]:
    """Check an OpenAPI document for the mistakes a renderer could make.

    Returns a list of problems; an empty list means the document is valid.
    """
    problems = []
    version = document.get("openapi")
    if not isinstance(version, str) or not version.startswith("3."):
        problems.append(f"Unsupported openapi version: {version!r}")
    info = document.get("info")
    if not isinstance(info, dict) or not info.get("title") or not info.get("version"):
        problems.append("info.title and info.version are required")
    paths = document.get("paths")
    if not isinstance(paths, dict):
        problems.append("paths must be a mapping")
        paths = {}

    schemes = document.get("components", {}).get("securitySchemes", {})
    operation_ids: set[str] = set()
    for path, operations in paths.items():
        if not str(path).startswith("/"):
            problems.append(f"Path {path!r} must start with '/'")
        tokens = set(_TEMPLATE_TOKEN.findall(path))
        for method, op in operations.items():
            if method not in _METHODS:
                continue
            where = f"{method.upper()} {path}"
            declared = {p["name"]: p for p in op.get("parameters", []) if p.get("in") == "path"}
            for name in sorted(tokens - set(declared)):
                problems.append(f"{where}: path parameter {name!r} is not declared")
            for name in sorted(set(declared) - tokens):
                problems.append(f"{where}: parameter {name!r} is not in the path template")
            for name, param in declared.items():
                if param.get("required") is not True:
                    problems.append(f"{where}: path parameter {name!r} must be required")

            responses = op.get("responses")
            if not responses:
                problems.append(f"{where}: no responses")
            for code in responses or {}:
                if not isinstance(code, str):
                    problems.append(f"{where}: response key {code!r} is not a string")

            for requirement in op.get("security", []):
                for name in requirement:
                    if name not in schemes:
                        problems.append(f"{where}: unknown security scheme {name!r}")

            op_id = op.get("operationId")
            if op_id in operation_ids:
                problems.append(f"{where}: duplicate operationId {op_id!r}")
            operation_ids.add(op_id)

    for ref in sorted(set(_find_refs(document, []))):
        if not _resolve_ref(document, ref):
            problems.append(f"Unresolvable $ref: {ref}")
    return problems


def validate_json(files: dict[str, bytes]) -> dict[str, str]:
    """Check JSON files parse back.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".json"):
            continue
        try:
            json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            errors[filename] = f"JSONError: {e}"
    return errors


def validate_yaml(files: dict[str, bytes]) -> dict[str, str]:
    """Check YAML files for format errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith((".yaml", ".yml")):
            continue
        try:
            yaml.safe_load(content)
        except yaml.YAMLError as e:
            errors[filename] = f"YAMLError: {e}"
    return errors


def validate_html(files: dict[str, bytes]) -> dict[str, str]:
    """Check generated HTML pages carry a parseable embedded document."""
    errors = {}
    marker = '<script type="application/json" id="api-spec">'
    for filename, content in files.items():
        if not filename.endswith((".html", ".htm")):
            continue
        text = content.decode("utf-8", errors="replace")
        start = text.find(marker)
        end = text.find("</script>", start)
        if start == -1 or end == -1:
            errors[filename] = "HTMLError: embedded API document not found"
            continue
        try:
            json.loads(text[start + len(marker):end])
        except ValueError as e:
            errors[filename] = f"HTMLError: embedded API document is not valid JSON: {e}"
    return errors


def validate_files(files: dict[str, bytes]) -> dict[str, str]:
    """Run all validations on generated files.

    Returns dict of {filename: error_message} for all files with errors.
    """
    errors = {}
    errors.update(validate_json(files))
    errors.update(validate_yaml(files))
    errors.update(validate_html(files))
    return errors
