"""
This module defines the FastAPI routes of the Ad Optimiser gateway.

The router exposes the two backends the chat client calls, the graph query
route and the sandbox preview route, plus a health check. Services are injected
by the app factory. Every failure is answered with an explicit status code and
a JSON error body in the shape the client parses (``error``, ``details`` and,
per route, ``neo4jError`` or ``templateUsed``).
"""
import logging
import traceback
from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from neo4j.exceptions import Neo4jError

from adoptimiser_contracts import GraphFragment

from .query_service import GraphQueryService, QueryConfigurationError
from .sandbox_service import PreviewSandboxService

LOGGER = logging.getLogger(__name__)


def get_router(query_service: GraphQueryService, sandbox_service: PreviewSandboxService) -> APIRouter:
    """
    Creates the API router for the gateway.

    Args:
        query_service: Executes graph queries.
        sandbox_service: Builds sandbox previews.

    Returns:
        A configured `APIRouter` instance.
    """
    router = APIRouter()

    @router.get("/health")
    def health_check():
        """Provides a simple health check endpoint for the service."""
        return {
            "status": "healthy",
            "neo4j_configured": query_service.configured,
            "sandbox_configured": sandbox_service.configured,
        }

    @router.post("/api/neo4j")
    def run_query(payload: Dict[str, Any] = Body(...)):
        """
        Executes one Cypher query and returns its records.

        Expects ``{"query": str, "params": object?}``.
        """
        query = payload.get("query")
        if not isinstance(query, str) or not query.strip():
            return JSONResponse({"error": "Query must be a non-empty string"}, status_code=400)
        params = payload.get("params")
        if params is not None and not isinstance(params, dict):
            return JSONResponse({"error": "Params must be an object"}, status_code=400)

        try:
            records = query_service.run(query, params)
        except QueryConfigurationError as exc:
            return JSONResponse(
                {"error": "Invalid request or server configuration error", "details": str(exc)},
                status_code=500,
            )
        except Neo4jError as exc:
            LOGGER.error("Error executing Cypher query %r: %s (code %s)", query, exc.message, exc.code)
            return JSONResponse(
                {
                    "error": "Failed to execute Cypher query",
                    "details": exc.message or str(exc),
                    "neo4jError": exc.code or "N/A",
                },
                status_code=500,
            )
        except Exception as exc:
            LOGGER.error("Error executing Cypher query %r: %s", query, exc)
            return JSONResponse(
                {"error": "Failed to execute Cypher query", "details": str(exc), "neo4jError": "N/A"},
                status_code=500,
            )
        return {"records": records}

    @router.post("/api/sandbox/graph")
    def build_preview(payload: Dict[str, Any] = Body(...)):
        """
        Builds a live preview of a generated component.

        Expects a graph fragment ``{"code": str, "template"?, "filePath"?, "port"?}``.
        """
        if not sandbox_service.configured:
            return JSONResponse(
                {"error": "Sandbox feature is not configured (missing API key)."},
                status_code=503,
            )
        code = payload.get("code")
        if not isinstance(code, str) or not code.strip():
            return JSONResponse({"error": "Code must be provided in the fragment."}, status_code=400)

        requested_template = payload.get("template")
        template_used = requested_template if isinstance(requested_template, str) and requested_template else (
            sandbox_service.settings.sandbox_template_id
        )
        try:
            fragment = GraphFragment.model_validate(payload)
            result = sandbox_service.preview(fragment)
        except Exception as exc:
            LOGGER.error("Error in sandbox route (intended template: %s): %s", template_used, exc, exc_info=True)
            body = {
                "error": "Failed to process sandbox request",
                "details": str(exc),
                "templateUsed": template_used,
            }
            if sandbox_service.settings.expose_stack:
                body["stack"] = traceback.format_exc()
            return JSONResponse(body, status_code=500)
        return result.model_dump(by_alias=True, exclude_none=True)

    return router
