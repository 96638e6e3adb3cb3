"""Error taxonomy and the diagnostics accumulator.

Fatal conditions are raised as ``DocGenError`` subclasses. Everything the
generator can recover from is recorded as a ``Diagnostic`` and carried along
in a ``Diagnostics`` collection until the end of the run.
"""

from enum import Enum

from pydantic import BaseModel


class DocGenError(Exception):
    """Base class for conditions that abort a generation run."""

    kind = "internal"
    exit_code = 1


class ConfigError(DocGenError):
    """The configuration could not be loaded or is invalid."""

    kind = "config"
    exit_code = 2


class WalkError(DocGenError):
    """The source root is missing or unreadable."""

    kind = "config"
    exit_code = 2


class OutputError(DocGenError):
    """The output directory is unwritable or no artifact could be written."""

    kind = "output"
    exit_code = 3


class DiagnosticKind(str, Enum):
    PARSE = "ParseWarning"
    DYNAMIC_ROUTE = "DynamicRouteWarning"
    RESPONSE_CODE = "ResponseCodeWarning"
    ANNOTATION = "AnnotationWarning"
    ROUTE_COLLISION = "RouteCollisionWarning"
    UNKNOWN_TAG = "UnknownTagWarning"
    UNKNOWN_SECURITY_SCHEME = "UnknownSecuritySchemeWarning"


class Diagnostic(BaseModel):
    """A single recoverable problem found during a run."""

    kind: DiagnosticKind
    message: str
    file: str = ""
    line: int = 0

    def format(self) -> str:
        where = f"{self.file}:{self.line}" if self.line else self.file
        prefix = f"{where}: " if where else ""
        return f"{prefix}{self.kind.value}: {self.message}"


class Diagnostics:
    """Ordered collection of diagnostics threaded through discovery."""

    def __init__(self, items: list[Diagnostic] | None = None):
        self._items: list[Diagnostic] = list(items or [])

    def warn(self, kind: DiagnosticKind, message: str, file: str = "", line: int = 0) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, file=str(file), line=line)
        self._items.append(diagnostic)
        return diagnostic

    def extend(self, other: "Diagnostics | list[Diagnostic]") -> None:
        self._items.extend(other)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self._items if d.kind == kind]

    def sorted(self) -> list[Diagnostic]:
        """Return diagnostics ordered by file path, then line.

        The sort is stable, so diagnostics at the same position keep the
        order in which they were recorded.
        """
        return sorted(self._items, key=lambda d: (d.file, d.line))

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
