"""Intermediate models produced by the syntax extractor.

The extractor works per file and never sees other files, so everything it
finds is collected into a ``FileExtraction`` that the builder merges later.
"""

from pydantic import BaseModel

from api_doc_gen.errors import Diagnostic
from api_doc_gen.model.routes import HttpMethod


class CallSite(BaseModel):
    """A route-registration call found in the syntax tree."""

    method: HttpMethod
    path: str
    line: int  # 1-based line of the call expression
    column: int = 0
    pattern: str  # name of the call shape that matched
    handlers: list[str] = []
    # lines whose preceding comment block may document this call, in
    # order of preference
    anchors: list[int] = []


class CommentBlock(BaseModel):
    """A JSDoc block or a run of ``//`` comments containing ``@`` tags."""

    text: str
    start_line: int
    end_line: int


class ExtractedRoute(BaseModel):
    call: CallSite
    block: CommentBlock | None = None


class FileExtraction(BaseModel):
    """Everything discovered in one source file."""

    path: str
    routes: list[ExtractedRoute] = []
    diagnostics: list[Diagnostic] = []
