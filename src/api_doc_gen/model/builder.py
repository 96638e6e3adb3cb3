"""Route model builder: merges call sites and annotations into a RouteModel."""

import logging
from collections.abc import Iterable

from api_doc_gen.errors import DiagnosticKind, Diagnostics
from api_doc_gen.model.routes import (
    ApiInfo,
    Param,
    RouteDescriptor,
    RouteModel,
    SecurityScheme,
    SourceLocation,
    normalize_path,
    path_params,
)
from api_doc_gen.parser.annotations import Annotation, resolve_annotations
from api_doc_gen.parser.base import ExtractedRoute, FileExtraction

logger = logging.getLogger(__name__)


def build_model(
    extractions: Iterable[FileExtraction],
    tags: dict[str, str] | None = None,
    security_schemes: dict[str, SecurityScheme] | None = None,
    schemas: dict[str, dict] | None = None,
    info: ApiInfo | None = None,
    warn_unknown_tags: bool = True,
) -> tuple[RouteModel, Diagnostics]:
    """Build the route model from per-file extraction results.

    Files are merged in sorted path order regardless of the order they are
    passed in, so "first seen wins" does not depend on how extraction was
    scheduled. Never raises; every problem ends up in the returned
    diagnostics.
    """
    tags = dict(tags or {})
    security_schemes = dict(security_schemes or {})
    diagnostics = Diagnostics()
    routes: dict[str, RouteDescriptor] = {}
    reported_tags: set[str] = set()

    for extraction in sorted(extractions, key=lambda e: e.path):
        diagnostics.extend(extraction.diagnostics)
        for extracted in extraction.routes:
            descriptor = _build_descriptor(extraction.path, extracted, security_schemes, diagnostics)
            if descriptor is None:
                continue
            existing = routes.get(descriptor.key)
            if existing is not None:
                diagnostics.warn(
                    DiagnosticKind.ROUTE_COLLISION,
                    f"{descriptor.method.value} {descriptor.path} at {descriptor.source} "
                    f"is already defined at {existing.source}; keeping the first definition",
                    file=descriptor.source.file,
                    line=descriptor.source.line,
                )
                continue
            routes[descriptor.key] = descriptor

            if warn_unknown_tags:
                for tag in descriptor.tags:
                    if tag not in tags and tag not in reported_tags:
                        reported_tags.add(tag)
                        diagnostics.warn(
                            DiagnosticKind.UNKNOWN_TAG,
                            f"Tag {tag!r} is not in the tag registry",
                            file=descriptor.source.file,
                            line=descriptor.source.line,
                        )

    model = RouteModel(
        routes=tuple(routes.values()),
        tags=tags,
        security_schemes=security_schemes,
        schemas=dict(schemas or {}),
        info=info or ApiInfo(),
    )
    logger.info("Built route model with %d route(s), %d diagnostic(s)", len(model.routes), len(diagnostics))
    return model, diagnostics


def _build_descriptor(
    file: str,
    extracted: ExtractedRoute,
    security_schemes: dict[str, SecurityScheme],
    diagnostics: Diagnostics,
) -> RouteDescriptor | None:
    call = extracted.call
    source = SourceLocation(file=file, line=call.line)
    if extracted.block is not None:
        annotation = resolve_annotations(
            extracted.block.text,
            call.path,
            diagnostics=diagnostics,
            file=file,
            line=extracted.block.start_line,
        )
    else:
        annotation = Annotation()

    # Annotations take precedence over what the call site says
    method = annotation.method or call.method
    path = normalize_path(annotation.path or call.path)
    if not path.startswith("/"):
        diagnostics.warn(
            DiagnosticKind.PARSE,
            f"Route path {path!r} does not start with '/'; call site skipped",
            file=file,
            line=call.line,
        )
        return None

    security = []
    for scheme in annotation.security:
        if scheme in security_schemes:
            security.append(scheme)
        else:
            diagnostics.warn(
                DiagnosticKind.UNKNOWN_SECURITY_SCHEME,
                f"Security scheme {scheme!r} is not registered; reference dropped",
                file=file,
                line=call.line,
            )

    return RouteDescriptor(
        method=method,
        path=path,
        summary=annotation.summary,
        description=annotation.description,
        tags=annotation.tags,
        parameters=merge_parameters(path, annotation.params, diagnostics, source),
        responses=dict(sorted(annotation.responses.items())),
        security=security,
        deprecated="deprecated" in annotation.extensions,
        extensions=annotation.extensions,
        handlers=call.handlers,
        source=source,
    )


def merge_parameters(
    path: str,
    declared: list[Param],
    diagnostics: Diagnostics | None = None,
    source: SourceLocation | None = None,
) -> list[Param]:
    """Merge annotated parameters with the parameters implied by *path*.

    Path parameters come first, in path order. A declared path parameter
    keeps its type, default and description, but is always required and
    located in the path. Undeclared path parameters are synthesized as
    required strings.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    file, line = (source.file, source.line) if source else ("", 0)
    names = path_params(path)

    declared_path: dict[str, Param] = {}
    others: list[Param] = []
    seen: set[tuple[str, str]] = set()
    for param in declared:
        if param.location == "path" and param.name in names:
            param = param.model_copy(update={"required": True})
        key = (param.name, param.location)
        if key in seen:
            diagnostics.warn(
                DiagnosticKind.ANNOTATION,
                f"Duplicate @param {param.name!r} ({param.location}); keeping the first",
                file=file,
                line=line,
            )
            continue
        if param.location == "path" and param.name not in names:
            diagnostics.warn(
                DiagnosticKind.ANNOTATION,
                f"@param {param.name!r} is declared in the path but {path} has no such parameter",
                file=file,
                line=line,
            )
            continue
        seen.add(key)
        if param.location == "path":
            declared_path[param.name] = param
        else:
            others.append(param)

    merged = [
        declared_path.get(name) or Param(name=name, location="path", param_type="string", required=True)
        for name in names
    ]
    return merged + others
