"""Configuration loading.

Configuration is layered, each source overriding the one before it:

1. built-in defaults
2. ``~/.api-doc-gen.yaml``
3. ``<project>/api-doc-gen.yaml`` (or ``.yml``)
4. the file given with ``--config`` or ``API_DOC_GEN_CONFIG``
5. command-line flags
"""

import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from api_doc_gen.errors import ConfigError
from api_doc_gen.model.routes import ApiInfo, SecurityScheme, ServerInfo
from api_doc_gen.parser.patterns import DEFAULT_ROUTER_PATTERN

PROJECT_CONFIG_NAMES = ("api-doc-gen.yaml", "api-doc-gen.yml")
HOME_CONFIG_NAME = ".api-doc-gen.yaml"
CONFIG_ENV_VAR = "API_DOC_GEN_CONFIG"

FORMATS = ("openapi", "openapi-yaml", "markdown", "html")

DEFAULT_FILENAMES = {
    "openapi": "openapi.json",
    "openapi-yaml": "openapi.yaml",
    "markdown": "API.md",
    "html": "index.html",
}

_SOURCE_EXT = "{js,mjs,cjs,ts,mts,cts}"

DEFAULT_INCLUDE = [
    f"**/routes/**/*.{_SOURCE_EXT}",
    f"**/controllers/**/*.{_SOURCE_EXT}",
    f"**/api/**/*.{_SOURCE_EXT}",
    f"**/*.routes.{_SOURCE_EXT}",
    f"**/*.controller.{_SOURCE_EXT}",
]

DEFAULT_EXCLUDE = [
    "**/node_modules/**",
    "**/test/**",
    "**/tests/**",
    "**/__tests__/**",
    "**/*.test.*",
    "**/*.spec.*",
    "**/dist/**",
    "**/build/**",
]


def _default_security_schemes() -> dict[str, SecurityScheme]:
    return {"bearerAuth": SecurityScheme(type="http-bearer", bearer_format="JWT")}


class OutputConfig(BaseModel):
    directory: str = "api-docs"
    formats: list[str] = ["openapi", "markdown", "html"]
    filenames: dict[str, str] = {}

    @field_validator("formats")
    @classmethod
    def _known_formats(cls, value: list[str]) -> list[str]:
        unknown = [f for f in value if f not in FORMATS]
        if unknown:
            raise ValueError(f"unknown output format(s): {', '.join(unknown)}")
        return list(dict.fromkeys(value))

    @field_validator("filenames")
    @classmethod
    def _known_filename_keys(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = [f for f in value if f not in FORMATS]
        if unknown:
            raise ValueError(f"filename override for unknown format(s): {', '.join(unknown)}")
        return value

    def filename_for(self, fmt: str) -> str:
        return self.filenames.get(fmt, DEFAULT_FILENAMES[fmt])


class DocConfig(BaseModel):
    """Everything a generation run needs besides the source root."""

    title: str = "API Documentation"
    version: str = "1.0.0"
    description: str = "Auto-generated API documentation"
    servers: list[ServerInfo] = []

    include: list[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE))

    tags: dict[str, str] = {}
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=_default_security_schemes)
    schemas: dict[str, dict] = {}

    router_pattern: str = DEFAULT_ROUTER_PATTERN
    annotation_gap: int = Field(default=1, ge=0)
    jobs: int | None = Field(default=None, ge=1)
    warn_unknown_tags: bool = True

    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator("router_pattern")
    @classmethod
    def _valid_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid router_pattern: {e}") from e
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_descriptions(cls, value):
        # "tags: {Users: null}" is a tag without description
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    def api_info(self) -> ApiInfo:
        return ApiInfo(
            title=self.title,
            version=self.version,
            description=self.description,
            servers=self.servers,
        )


def deep_merge(base: dict, override: dict) -> dict:
    """Merge *override* into a copy of *base*; nested mappings merge, the rest replaces."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_config_file(path: Path) -> dict:
    """Read one YAML (or JSON) config file into a mapping."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e.strerror or e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def find_config_files(project_dir: Path, config_path: Path | None = None, home: Path | None = None) -> list[Path]:
    """Config files that apply to *project_dir*, lowest precedence first."""
    files = []
    home = home if home is not None else Path.home()
    home_config = home / HOME_CONFIG_NAME
    if home_config.is_file():
        files.append(home_config)
    for name in PROJECT_CONFIG_NAMES:
        candidate = project_dir / name
        if candidate.is_file():
            files.append(candidate)
            break
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        files.append(config_path)
    return files


def load_config(
    project_dir: Path,
    config_path: Path | None = None,
    overrides: dict | None = None,
    home: Path | None = None,
) -> DocConfig:
    """Load and validate the layered configuration for *project_dir*."""
    data: dict = {}
    for path in find_config_files(project_dir, config_path, home):
        data = deep_merge(data, read_config_file(path))
    data = deep_merge(data, overrides or {})
    try:
        return DocConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
