"""
This package defines the shared data contracts used between the Ad Optimiser
chat client, the backend agent orchestrator and the HTTP backends the client
delegates to.

It is the single source of truth for frame shapes, sender roles and the query
and sandbox request/response bodies, so the client and the gateway agree on
every field name that crosses a process boundary.
"""
from .backends import (
    DEFAULT_SANDBOX_FILE_PATH,
    DEFAULT_SANDBOX_PORT,
    DEFAULT_SANDBOX_TEMPLATE,
    GraphFragment,
    QueryErrorBody,
    QueryRequest,
    QueryResponse,
    SandboxFailure,
    SandboxLogs,
    SandboxResult,
    SandboxSuccess,
    parse_sandbox_failure,
)
from .messaging import (
    AGENT_SENDER,
    ANALYSIS_AGENT,
    CHAT_MANAGER_RECIPIENT,
    GRAPH_GENERATOR_AGENT,
    ORCHESTRATOR_AGENT,
    QUERY_GENERATOR_AGENT,
    SYSTEM_ERROR_SENDER,
    USER_PROXY_SENDER,
    USER_SENDER,
    BackendToolCall,
    BackendToolResponse,
    FrameType,
    OutboundFrame,
    ToolFunction,
    now_ms,
    parse_tool_calls,
    parse_tool_responses,
)

__all__ = [
    "CHAT_MANAGER_RECIPIENT",
    "USER_SENDER",
    "AGENT_SENDER",
    "SYSTEM_ERROR_SENDER",
    "ORCHESTRATOR_AGENT",
    "QUERY_GENERATOR_AGENT",
    "ANALYSIS_AGENT",
    "GRAPH_GENERATOR_AGENT",
    "USER_PROXY_SENDER",
    "FrameType",
    "ToolFunction",
    "BackendToolCall",
    "BackendToolResponse",
    "OutboundFrame",
    "now_ms",
    "parse_tool_calls",
    "parse_tool_responses",
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

__version__ = "0.1.0"
