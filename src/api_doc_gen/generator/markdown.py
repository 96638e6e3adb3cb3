"""Markdown reference renderer."""

import re

from api_doc_gen.model.routes import UNTAGGED, Response, RouteDescriptor, RouteModel

# Matches the OpenAPI default for operations without declared responses
DEFAULT_RESPONSES = {200: Response(description="Successful response")}


def _cell(text: str | None) -> str:
    """Make *text* safe for a single Markdown table cell."""
    if not text:
        return "-"
    return " ".join(str(text).split()).replace("|", "\\|")


def _anchor(heading: str) -> str:
    """GitHub-style heading anchor."""
    slug = re.sub(r"[^\w\- ]", "", heading.strip().lower())
    return slug.replace(" ", "-")


def _render_route(route: RouteDescriptor) -> list[str]:
    lines = [f"### {route.method.value} {route.openapi_path}", ""]

    if route.deprecated:
        lines += ["> **Deprecated.**", ""]
    if route.summary:
        lines += [route.summary, ""]
    if route.description:
        lines += [route.description, ""]

    if route.parameters:
        lines += [
            "**Parameters:**",
            "",
            "| Name | In | Type | Required | Default | Description |",
            "|------|----|------|----------|---------|-------------|",
        ]
        for p in route.parameters:
            lines.append(
                f"| {_cell(p.name)} | {p.location} | {_cell(p.param_type)} | "
                f"{'Yes' if p.required else 'No'} | {_cell(p.default)} | {_cell(p.description)} |"
            )
        lines.append("")

    lines += [
        "**Responses:**",
        "",
        "| Status | Description | Schema |",
        "|--------|-------------|--------|",
    ]
    for code, response in sorted((route.responses or DEFAULT_RESPONSES).items()):
        lines.append(f"| {code} | {_cell(response.description)} | {_cell(response.schema_ref)} |")
    lines.append("")

    if route.security:
        lines += [f"**Security:** {', '.join(route.security)}", ""]

    lines += ["---", ""]
    return lines


def render_markdown(model: RouteModel) -> bytes:
    """Render the human-readable reference.

    Operations are grouped by tag in alphabetical order; untagged operations
    come last under "Untagged". A route with several tags is listed under
    each of them.
    """
    info = model.info
    lines = [f"# {info.title}", ""]
    if info.description:
        lines += [info.description, ""]
    lines += [f"**Version:** {info.version}", ""]

    if info.servers:
        lines += ["## Servers", ""]
        for server in info.servers:
            suffix = f" - {server.description}" if server.description else ""
            lines.append(f"- {server.url}{suffix}")
        lines.append("")

    groups = model.routes_by_tag()
    if not groups:
        lines += ["_No routes were found._", ""]
        return "\n".join(lines).encode("utf-8")

    lines += ["## Contents", ""]
    for tag, routes in groups:
        lines.append(f"- [{tag}](#{_anchor(tag)}) ({len(routes)})")
    lines.append("")

    for tag, routes in groups:
        lines += [f"## {tag}", ""]
        if tag != UNTAGGED and model.tags.get(tag):
            lines += [model.tags[tag], ""]
        for route in routes:
            lines += _render_route(route)

    return "\n".join(lines).encode("utf-8")
