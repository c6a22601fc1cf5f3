"""
This module defines the request and response bodies of the two HTTP backends
the chat client delegates to: the graph query backend and the code-preview
sandbox backend.

Both backends answer with a JSON body on success and a JSON error body with a
non-2xx status on failure. The field names follow the JSON the backends put on
the wire (`sandboxID`, `filePath`, `templateUsed`, `neo4jError`); the models
expose snake_case attributes and accept either spelling on input.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SANDBOX_FILE_PATH = "src/components/GeneratedPreview.tsx"
DEFAULT_SANDBOX_TEMPLATE = "chatbot-ui-nextjs-preview"
DEFAULT_SANDBOX_PORT = 3000


class QueryRequest(BaseModel):
    """Body of a graph query request."""

    query: str
    params: Dict[str, Any] = Field(default_factory=dict)


class QueryResponse(BaseModel):
    """Successful query response: one normalized mapping per result record."""

    records: List[Dict[str, Any]] = Field(default_factory=list)


class QueryErrorBody(BaseModel):
    """Error body returned by the query backend with a non-2xx status."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    error: str = "Failed to execute query"
    details: Optional[str] = None
    neo4j_error: Optional[str] = Field(default=None, alias="neo4jError")


class GraphFragment(BaseModel):
    """
    A code fragment to render inside the preview sandbox.

    Attributes:
        template: Sandbox template id or name.
        file_path: Target file, relative to the sandbox project root.
        code: Source code of the component to preview.
        port: Port the preview server listens on inside the sandbox.
    """

    model_config = ConfigDict(populate_by_name=True)

    template: Optional[str] = None
    file_path: Optional[str] = Field(default=None, alias="filePath")
    code: str
    port: Optional[int] = None

    def to_request(self) -> Dict[str, Any]:
        """Serializes the fragment to the JSON body the sandbox backend expects."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SandboxLogs(BaseModel):
    """Diagnostic output captured while preparing the sandbox."""

    mkdir_stdout: Optional[str] = None
    mkdir_stderr: Optional[str] = None


class SandboxSuccess(BaseModel):
    """Successful sandbox response: the public preview URL and the code it runs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str
    code: str
    sandbox_id: str = Field(alias="sandboxID")
    logs: Optional[SandboxLogs] = None

    @property
    def ok(self) -> bool:
        return True


class SandboxFailure(BaseModel):
    """Error body returned by the sandbox backend, or synthesized by the client."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    error: str
    details: Optional[str] = None
    template_used: Optional[str] = Field(default=None, alias="templateUsed")
    stack: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def summary(self) -> str:
        """The most specific human-readable description of the failure."""
        return self.details or self.error


SandboxResult = Union[SandboxSuccess, SandboxFailure]


def parse_sandbox_failure(payload: Any, fallback: str) -> SandboxFailure:
    """
    Builds a `SandboxFailure` from an error body, tolerating missing fields.

    Args:
        payload: The decoded JSON error body (any shape).
        fallback: Error text to use when the body carries none.

    Returns:
        A `SandboxFailure` instance.
    """
    if not isinstance(payload, Mapping):
        return SandboxFailure(error=fallback)
    error = payload.get("error")
    return SandboxFailure(
        error=error if isinstance(error, str) and error else fallback,
        details=_optional_text(payload.get("details")),
        template_used=_optional_text(payload.get("templateUsed")),
        stack=_optional_text(payload.get("stack")),
    )


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


__all__ = [
    "DEFAULT_SANDBOX_FILE_PATH",
    "DEFAULT_SANDBOX_TEMPLATE",
    "DEFAULT_SANDBOX_PORT",
    "QueryRequest",
    "QueryResponse",
    "QueryErrorBody",
    "GraphFragment",
    "SandboxLogs",
    "SandboxSuccess",
    "SandboxFailure",
    "SandboxResult",
    "parse_sandbox_failure",
]
