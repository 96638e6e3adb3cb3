"""CLI entry point for api-doc-gen."""

import logging
from pathlib import Path

import click

from api_doc_gen.config import CONFIG_ENV_VAR, FORMATS, DocConfig, load_config
from api_doc_gen.errors import Diagnostics, DocGenError
from api_doc_gen.pipeline import discover, generate as run_pipeline


def _report(diagnostics: Diagnostics) -> None:
    for diagnostic in diagnostics.sorted():
        click.secho(diagnostic.format(), fg="yellow", err=True)


def _load(project: Path, config_path: Path | None, overrides: dict, exclude: tuple[str, ...] = ()) -> DocConfig:
    config = load_config(project, config_path=config_path, overrides=overrides)
    if exclude:
        # --exclude adds to the configured patterns instead of replacing them
        config = config.model_copy(update={"exclude": config.exclude + list(exclude)})
    return config


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """API Doc Gen: generate API documentation from Express-style route files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("project", default=".", type=click.Path(path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Output directory for generated files.")
@click.option("-f", "--format", "formats", multiple=True, type=click.Choice([*FORMATS, "all"]), help="Output format; repeatable. 'all' selects every format.")
@click.option("-c", "--config", "config_path", type=click.Path(path_type=Path), envvar=CONFIG_ENV_VAR, default=None, help="Config file (overrides project and home config).")
@click.option("--include", multiple=True, help="Glob of files to scan; repeatable. Replaces the configured globs.")
@click.option("--exclude", multiple=True, help="Glob of files to skip; repeatable. Added to the configured globs.")
@click.option("--title", default=None, help="API title.")
@click.option("--api-version", default=None, help="API version string.")
@click.option("--server", "servers", multiple=True, help="Server URL; repeatable.")
@click.option("--jobs", type=click.IntRange(min=1), default=None, help="Worker threads for parsing and rendering.")
@click.pass_context
def generate(
    ctx: click.Context,
    project: Path,
    output: Path | None,
    formats: tuple[str, ...],
    config_path: Path | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    title: str | None,
    api_version: str | None,
    servers: tuple[str, ...],
    jobs: int | None,
):
    """Scan PROJECT for routes and write documentation artifacts."""
    overrides: dict = {}
    if title is not None:
        overrides["title"] = title
    if api_version is not None:
        overrides["version"] = api_version
    if servers:
        overrides["servers"] = [{"url": url} for url in servers]
    if include:
        overrides["include"] = list(include)
    if jobs is not None:
        overrides["jobs"] = jobs
    output_overrides: dict = {}
    if output is not None:
        output_overrides["directory"] = str(output)
    if formats:
        output_overrides["formats"] = list(FORMATS) if "all" in formats else list(formats)
    if output_overrides:
        overrides["output"] = output_overrides

    try:
        config = _load(project, config_path, overrides, exclude)
        click.echo(f"Scanning {project}...")
        result = run_pipeline(config, project)
    except DocGenError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(e.exit_code)

    _report(result.diagnostics)
    click.echo(f"Found {len(result.model.routes)} routes.")
    for artifact in result.artifacts:
        if artifact.ok:
            click.echo(f"  Created {artifact.path}")
        else:
            click.secho(f"  Failed {artifact.path}: {artifact.error}", fg="red", err=True)
    click.echo(
        f"Done! Generated {len(result.written)} files in {config.output.directory}"
        + (f" ({len(result.diagnostics)} warnings)" if result.diagnostics else "")
    )


@main.command()
@click.argument("project", default=".", type=click.Path(path_type=Path))
@click.option("-c", "--config", "config_path", type=click.Path(path_type=Path), envvar=CONFIG_ENV_VAR, default=None, help="Config file (overrides project and home config).")
@click.option("--include", multiple=True, help="Glob of files to scan; repeatable.")
@click.option("--exclude", multiple=True, help="Glob of files to skip; repeatable.")
@click.pass_context
def routes(ctx: click.Context, project: Path, config_path: Path | None, include: tuple[str, ...], exclude: tuple[str, ...]):
    """List the routes discovered in PROJECT without writing anything."""
    overrides = {"include": list(include)} if include else {}
    try:
        config = _load(project, config_path, overrides, exclude)
        model, diagnostics = discover(config, project)
    except DocGenError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(e.exit_code)

    _report(diagnostics)
    for route in model.sorted_routes():
        click.echo(f"{route.method.value:<7} {route.path}  {route.source}")
    click.echo(f"{len(model.routes)} routes.")
