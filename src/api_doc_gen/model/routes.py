"""Canonical route model shared by the builder and every renderer.

Paths are stored in the internal Express form (``/items/:id``). Renderers
that need the OpenAPI template form call ``to_openapi_path``. A braced
placeholder directly followed by name characters (``/a/{id}_raw``) has no
Express spelling and is kept braced.
"""

import re
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"

    @classmethod
    def parse(cls, name: str) -> "HttpMethod | None":
        try:
            return cls(name.upper())
        except ValueError:
            return None


# Canonical ordering of methods under one path.
METHOD_ORDER = {m: i for i, m in enumerate(HttpMethod)}

PARAM_LOCATIONS = ("path", "query", "header", "body")

# :name, optionally followed by an Express regex constraint and/or "?"
_COLON_PARAM = re.compile(r":([A-Za-z_$][\w$]*)(\((?:[^()\\]|\\.)*\))?(\?)?")
_BRACE_PARAM = re.compile(r"\{([A-Za-z_$][\w$]*)\}")
# a braced name that can be rewritten without merging into what follows
_SAFE_BRACE_PARAM = re.compile(r"\{([A-Za-z_$][\w$]*)\}(?![\w$(?])")
_PARAM_TOKEN = re.compile(_COLON_PARAM.pattern + "|" + _BRACE_PARAM.pattern)


def normalize_path(path: str) -> str:
    """Rewrite ``{name}`` placeholders to the internal ``:name`` form."""
    return _SAFE_BRACE_PARAM.sub(r":\1", path.strip())


def path_params(path: str) -> list[str]:
    """Names of the path parameters in *path*, in order, without duplicates."""
    names: list[str] = []
    for match in _PARAM_TOKEN.finditer(normalize_path(path)):
        name = match.group(1) or match.group(4)
        if name not in names:
            names.append(name)
    return names


def to_openapi_path(path: str) -> str:
    """``/items/:id(\\d+)`` -> ``/items/{id}``."""
    return _PARAM_TOKEN.sub(lambda m: "{" + (m.group(1) or m.group(4)) + "}", normalize_path(path))


class Param(BaseModel):
    """A single operation parameter."""

    name: str
    location: str  # path / query / header / body
    param_type: str = "string"
    required: bool = True
    default: str | None = None
    description: str = ""


class Response(BaseModel):
    description: str = ""
    schema_ref: str | None = None


class SourceLocation(BaseModel):
    """Where a route was found. Used for diagnostics only."""

    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


class RouteDescriptor(BaseModel):
    """One discovered endpoint."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str
    summary: str = ""
    description: str = ""
    tags: list[str] = []
    parameters: list[Param] = []
    responses: dict[int, Response] = {}
    security: list[str] = []
    deprecated: bool = False
    extensions: dict[str, list[str]] = {}
    handlers: list[str] = []
    source: SourceLocation

    @property
    def key(self) -> str:
        return route_key(self.method, self.path)

    @property
    def openapi_path(self) -> str:
        return to_openapi_path(self.path)

    def params_in(self, location: str) -> list[Param]:
        return [p for p in self.parameters if p.location == location]


def route_key(method: HttpMethod, path: str) -> str:
    """Identity of a route. Paths differing only in Express constraints collide."""
    return f"{method.value}:{to_openapi_path(path)}"


class SecurityScheme(BaseModel):
    """Entry of the security-scheme registry."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["http-bearer", "http-basic", "api-key", "oauth2", "openid-connect"]
    description: str = ""
    bearer_format: str | None = None
    name: str | None = None  # api-key header/query/cookie name
    in_: str = Field(default="header", alias="in")
    flows: dict = {}
    open_id_connect_url: str | None = None


class ServerInfo(BaseModel):
    url: str
    description: str = ""


class ApiInfo(BaseModel):
    title: str = "API Documentation"
    version: str = "1.0.0"
    description: str = "Auto-generated API documentation"
    servers: list[ServerInfo] = []


UNTAGGED = "Untagged"


class RouteModel(BaseModel):
    """The complete, deduplicated API surface handed to renderers."""

    model_config = ConfigDict(frozen=True)

    routes: tuple[RouteDescriptor, ...] = ()
    tags: dict[str, str] = {}
    security_schemes: dict[str, SecurityScheme] = {}
    schemas: dict[str, dict] = {}
    info: ApiInfo = Field(default_factory=ApiInfo)

    def get(self, method: HttpMethod | str, path: str) -> RouteDescriptor | None:
        if isinstance(method, str):
            method = HttpMethod(method.upper())
        wanted = route_key(method, normalize_path(path))
        for route in self.routes:
            if route.key == wanted:
                return route
        return None

    def sorted_routes(self) -> list[RouteDescriptor]:
        """Routes ordered by OpenAPI path, then canonical method order."""
        return sorted(self.routes, key=lambda r: (r.openapi_path, METHOD_ORDER[r.method], r.path))

    def referenced_tags(self) -> list[str]:
        names = {tag for route in self.routes for tag in route.tags}
        return sorted(names)

    def routes_by_tag(self) -> list[tuple[str, list[RouteDescriptor]]]:
        """Group routes by tag, alphabetically, with ``Untagged`` last.

        A route carrying several tags appears once under each of them. A tag
        literally named ``Untagged`` is folded into the reserved last group.
        """
        groups: dict[str, list[RouteDescriptor]] = {}
        untagged: list[RouteDescriptor] = []
        for route in self.sorted_routes():
            if not route.tags or UNTAGGED in route.tags:
                untagged.append(route)
            for tag in route.tags:
                if tag != UNTAGGED:
                    groups.setdefault(tag, []).append(route)
        result = [(tag, groups[tag]) for tag in sorted(groups)]
        if untagged:
            result.append((UNTAGGED, untagged))
        return result
