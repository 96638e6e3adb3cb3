"""OpenAPI 3.0 renderer.

``build_openapi`` turns a RouteModel into a plain dict; the JSON and YAML
renderers only serialize it. Key order is fixed by construction so output
is byte-for-byte reproducible.
"""

import json
import re
from http import HTTPStatus

import yaml

from api_doc_gen.model.routes import Param, RouteDescriptor, RouteModel, SecurityScheme

OPENAPI_VERSION = "3.0.3"

SCHEMA_REF_PREFIX = "#/components/schemas/"

DEFAULT_RESPONSES = {"200": {"description": "Successful response"}}

_TYPE_SCHEMAS = {
    "string": {"type": "string"},
    "str": {"type": "string"},
    "number": {"type": "number"},
    "float": {"type": "number"},
    "integer": {"type": "integer"},
    "int": {"type": "integer"},
    "boolean": {"type": "boolean"},
    "bool": {"type": "boolean"},
    "object": {"type": "object"},
    "array": {"type": "array", "items": {}},
    "date": {"type": "string", "format": "date"},
    "date-time": {"type": "string", "format": "date-time"},
    "datetime": {"type": "string", "format": "date-time"},
    "uuid": {"type": "string", "format": "uuid"},
    "email": {"type": "string", "format": "email"},
    "uri": {"type": "string", "format": "uri"},
    "file": {"type": "string", "format": "binary"},
    "*": {},
    "any": {},
    "mixed": {},
}


def schema_for_type(type_name: str, schemas: dict[str, dict] | None = None) -> dict:
    """Map a JSDoc type expression to a JSON schema."""
    name = type_name.strip()
    if name.endswith("[]"):
        return {"type": "array", "items": schema_for_type(name[:-2], schemas)}
    match = re.fullmatch(r"Array\.?<(.+)>", name)
    if match:
        return {"type": "array", "items": schema_for_type(match.group(1), schemas)}
    if schemas and name in schemas:
        return {"$ref": SCHEMA_REF_PREFIX + name}
    return dict(_TYPE_SCHEMAS.get(name.lower(), {"type": "string"}))


def _coerce_default(value: str, schema: dict):
    kind = schema.get("type")
    try:
        if kind == "integer":
            return int(value)
        if kind == "number":
            return float(value)
    except ValueError:
        return value
    if kind == "boolean" and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value.strip("'\"")


def _param_schema(param: Param, schemas: dict[str, dict]) -> dict:
    schema = schema_for_type(param.param_type, schemas)
    if param.default is not None and "$ref" not in schema:
        schema["default"] = _coerce_default(param.default, schema)
    return schema


def _parameter(param: Param, schemas: dict[str, dict]) -> dict:
    entry = {
        "name": param.name,
        "in": param.location,
        "required": param.required,
    }
    if param.description:
        entry["description"] = param.description
    entry["schema"] = _param_schema(param, schemas)
    return entry


def _request_body(params: list[Param], schemas: dict[str, dict]) -> dict:
    """Fold body parameters into one object schema; dotted names nest."""
    root: dict = {"type": "object", "properties": {}}
    for param in params:
        parts = param.name.split(".")
        node = root
        for part in parts[:-1]:
            child = node["properties"].setdefault(part, {"type": "object"})
            child.setdefault("properties", {})
            node = child
        prop = _param_schema(param, schemas)
        if param.description:
            prop["description"] = param.description
        existing = node["properties"].get(parts[-1])
        if existing is not None:
            existing.update(prop)
        else:
            node["properties"][parts[-1]] = prop
        if param.required:
            node.setdefault("required", []).append(parts[-1])
    return {
        "required": any(p.required for p in params),
        "content": {"application/json": {"schema": root}},
    }


def _responses(route: RouteDescriptor) -> dict:
    if not route.responses:
        return {code: dict(body) for code, body in DEFAULT_RESPONSES.items()}
    result = {}
    for code, response in sorted(route.responses.items()):
        description = response.description
        if not description:
            try:
                description = HTTPStatus(code).phrase
            except ValueError:
                description = "Response"
        entry: dict = {"description": description}
        if response.schema_ref:
            entry["content"] = {
                "application/json": {"schema": {"$ref": SCHEMA_REF_PREFIX + response.schema_ref}}
            }
        result[str(code)] = entry
    return result


def operation_id(route: RouteDescriptor) -> str:
    words = re.findall(r"[A-Za-z0-9]+", route.openapi_path)
    return "_".join([route.method.value.lower(), *words])


def _operation(route: RouteDescriptor, op_id: str, schemas: dict[str, dict]) -> dict:
    op: dict = {
        "operationId": op_id,
        "summary": route.summary or f"{route.method.value} {route.openapi_path}",
    }
    if route.description:
        op["description"] = route.description
    if route.tags:
        op["tags"] = list(route.tags)
    params = [_parameter(p, schemas) for p in route.parameters if p.location != "body"]
    if params:
        op["parameters"] = params
    body = route.params_in("body")
    if body:
        op["requestBody"] = _request_body(body, schemas)
    op["responses"] = _responses(route)
    if route.security:
        op["security"] = [{name: []} for name in route.security]
    if route.deprecated:
        op["deprecated"] = True
    for name in sorted(route.extensions):
        if name.startswith("x-"):
            values = route.extensions[name]
            op[name] = values[0] if len(values) == 1 else list(values)
    return op


def security_scheme_object(scheme: SecurityScheme) -> dict:
    if scheme.type == "http-bearer":
        result = {"type": "http", "scheme": "bearer"}
        if scheme.bearer_format:
            result["bearerFormat"] = scheme.bearer_format
    elif scheme.type == "http-basic":
        result = {"type": "http", "scheme": "basic"}
    elif scheme.type == "api-key":
        result = {"type": "apiKey", "in": scheme.in_, "name": scheme.name or "X-API-Key"}
    elif scheme.type == "oauth2":
        result = {"type": "oauth2", "flows": scheme.flows}
    else:
        result = {"type": "openIdConnect", "openIdConnectUrl": scheme.open_id_connect_url or ""}
    if scheme.description:
        result["description"] = scheme.description
    return result


def _collect_schema_refs(model: RouteModel) -> set[str]:
    return {r.schema_ref for route in model.routes for r in route.responses.values() if r.schema_ref}


def build_openapi(model: RouteModel) -> dict:
    """Build the OpenAPI document for *model* as a plain dict."""
    info = model.info
    doc: dict = {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": info.title,
            "version": info.version,
            "description": info.description,
        },
    }
    if info.servers:
        doc["servers"] = [
            {"url": s.url, **({"description": s.description} if s.description else {})}
            for s in info.servers
        ]

    tag_names = sorted(set(model.tags) | set(model.referenced_tags()))
    if tag_names:
        doc["tags"] = [
            {"name": name, **({"description": model.tags[name]} if model.tags.get(name) else {})}
            for name in tag_names
        ]

    paths: dict = {}
    used_ids: set[str] = set()
    for route in model.sorted_routes():
        op_id = operation_id(route)
        candidate, n = op_id, 2
        while candidate in used_ids:
            candidate, n = f"{op_id}_{n}", n + 1
        used_ids.add(candidate)
        operations = paths.setdefault(route.openapi_path, {})
        operations[route.method.value.lower()] = _operation(route, candidate, model.schemas)
    doc["paths"] = paths

    components: dict = {}
    if model.security_schemes:
        components["securitySchemes"] = {
            name: security_scheme_object(model.security_schemes[name])
            for name in sorted(model.security_schemes)
        }
    schemas = {name: model.schemas[name] for name in sorted(model.schemas)}
    for ref in sorted(_collect_schema_refs(model) - set(schemas)):
        schemas[ref] = {"type": "object"}
    if schemas:
        components["schemas"] = dict(sorted(schemas.items()))
    if components:
        doc["components"] = components
    return doc


def render_openapi_json(model: RouteModel) -> bytes:
    doc = build_openapi(model)
    return (json.dumps(doc, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def render_openapi_yaml(model: RouteModel) -> bytes:
    doc = build_openapi(model)
    text = yaml.safe_dump(doc, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return text.encode("utf-8")
