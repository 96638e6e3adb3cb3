"""Orchestration: walk, extract, build, render and write."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from api_doc_gen.config import DocConfig
from api_doc_gen.errors import Diagnostics, OutputError
from api_doc_gen.generator.html import render_html
from api_doc_gen.generator.markdown import render_markdown
from api_doc_gen.generator.openapi import build_openapi, render_openapi_json, render_openapi_yaml
from api_doc_gen.generator.validator import validate_files, validate_openapi
from api_doc_gen.model.builder import build_model
from api_doc_gen.model.routes import RouteModel
from api_doc_gen.parser.base import FileExtraction
from api_doc_gen.parser.extractor import extract_file
from api_doc_gen.parser.walker import walk_sources

logger = logging.getLogger(__name__)

RENDERERS = {
    "openapi": render_openapi_json,
    "openapi-yaml": render_openapi_yaml,
    "markdown": render_markdown,
    "html": render_html,
}

# Formats that embed the OpenAPI document and so must not be written when it is invalid
_OPENAPI_FORMATS = ("openapi", "openapi-yaml", "html")


def default_jobs() -> int:
    return min(8, os.cpu_count() or 1)


@dataclass
class ArtifactResult:
    """Outcome of rendering and writing one artifact."""

    format: str
    path: Path
    ok: bool
    error: str = ""
    size: int = 0


@dataclass
class GenerationResult:
    model: RouteModel
    diagnostics: Diagnostics
    artifacts: list[ArtifactResult] = field(default_factory=list)

    @property
    def written(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if a.ok]

    @property
    def failed(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if not a.ok]


def _extract(root: Path, config: DocConfig, path: Path) -> FileExtraction:
    return extract_file(
        path,
        router_pattern=config.router_pattern,
        annotation_gap=config.annotation_gap,
        display_name=path.relative_to(root).as_posix(),
    )


def discover(config: DocConfig, root: Path | str) -> tuple[RouteModel, Diagnostics]:
    """Walk *root*, extract every candidate file and build the route model.

    Raises WalkError when *root* cannot be walked. Everything else is
    reported through the returned diagnostics.
    """
    root = Path(root).resolve()
    files = walk_sources(root, config.include, config.exclude)
    logger.info("Found %d candidate file(s) under %s", len(files), root)

    jobs = config.jobs or default_jobs()
    with ThreadPoolExecutor(max_workers=jobs) as pool:
        # map() yields in input order, which is the walker's sorted order
        extractions = list(pool.map(partial(_extract, root, config), files))

    return build_model(
        extractions,
        tags=config.tags,
        security_schemes=config.security_schemes,
        schemas=config.schemas,
        info=config.api_info(),
        warn_unknown_tags=config.warn_unknown_tags,
    )


def _prepare_output_dir(output_dir: Path) -> None:
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Cannot create output directory {output_dir}: {e.strerror or e}") from e
    if not output_dir.is_dir():
        raise OutputError(f"Output path is not a directory: {output_dir}")
    if not os.access(output_dir, os.W_OK | os.X_OK):
        raise OutputError(f"Output directory is not writable: {output_dir}")


def _write_one(model: RouteModel, fmt: str, path: Path, openapi_problems: list[str]) -> ArtifactResult:
    if fmt in _OPENAPI_FORMATS and openapi_problems:
        return ArtifactResult(fmt, path, ok=False, error="Invalid OpenAPI document: " + "; ".join(openapi_problems))
    try:
        data = RENDERERS[fmt](model)
        errors = validate_files({path.name: data})
        if errors:
            return ArtifactResult(fmt, path, ok=False, error=errors[path.name])
        path.write_bytes(data)
    except Exception as e:
        logger.debug("Writing %s failed", path, exc_info=True)
        return ArtifactResult(fmt, path, ok=False, error=str(e))
    logger.info("Wrote %s (%d bytes)", path, len(data))
    return ArtifactResult(fmt, path, ok=True, size=len(data))


def write_artifacts(
    model: RouteModel,
    output_dir: Path | str,
    formats: list[str],
    filenames: dict[str, str],
    jobs: int | None = None,
) -> list[ArtifactResult]:
    """Render and write every requested format.

    Each artifact succeeds or fails on its own. Raises OutputError when the
    output directory cannot be used or when no artifact could be written.
    """
    output_dir = Path(output_dir)
    _prepare_output_dir(output_dir)

    openapi_problems = []
    if any(fmt in _OPENAPI_FORMATS for fmt in formats):
        openapi_problems = validate_openapi(build_openapi(model))

    targets = [(fmt, output_dir / filenames[fmt]) for fmt in formats]
    with ThreadPoolExecutor(max_workers=jobs or default_jobs()) as pool:
        results = list(pool.map(lambda t: _write_one(model, t[0], t[1], openapi_problems), targets))

    if results and not any(r.ok for r in results):
        details = "; ".join(f"{r.path.name}: {r.error}" for r in results)
        raise OutputError(f"No artifact could be written ({details})")
    return results


def generate(config: DocConfig, root: Path | str, output_dir: Path | str | None = None) -> GenerationResult:
    """Run the whole pipeline and return what was built and written."""
    model, diagnostics = discover(config, root)
    output_dir = Path(output_dir if output_dir is not None else config.output.directory)
    formats = config.output.formats
    filenames = {fmt: config.output.filename_for(fmt) for fmt in formats}
    artifacts = write_artifacts(model, output_dir, formats, filenames, config.jobs)
    return GenerationResult(model=model, diagnostics=diagnostics, artifacts=artifacts)
