"""MCP Server - FastAPI Application.

HTTP transport for the MCP dispatcher: one JSON-RPC message per POST, the
session carried in the ``Mcp-Session-Id`` header, and permissive CORS for
direct browser and agent-runtime calls.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from datastore import DataStore, create_data_store
from domains import domain_store_options, load_all_domains
from shared.config import Settings, get_settings
from shared.errors import ParseError
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models import JsonRpcErrorObj, JsonRpcRequest, JsonRpcResponse
from mcp_server.audit import AuditLogger
from mcp_server.auth import PermissionResolver
from mcp_server.dispatcher import McpDispatcher, ServerInfo
from mcp_server.registry import PromptRegistry, ResourceRegistry, ToolRegistry
from mcp_server.router import ToolRouter
from mcp_server.sessions import SessionRegistry, generate_session_id

logger = get_logger(__name__)

SESSION_HEADER = "Mcp-Session-Id"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Content-Type, Authorization, X-Client-Info, Apikey, Accept, Mcp-Session-Id"
    ),
}


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    tool_count: int
    session_count: int


def build_dispatcher(settings: Settings, store: DataStore) -> McpDispatcher:
    """
    Wire the dispatcher and its collaborators over one data store.

    Args:
        settings: Application settings
        store: Data store backend

    Returns:
        Ready-to-use dispatcher with all domains registered
    """
    server_settings = settings.mcp_server

    tools = ToolRegistry()
    resources = ResourceRegistry()
    prompts = PromptRegistry()
    load_all_domains(
        store, tools, resources, prompts,
        default_limit=server_settings.default_result_limit
    )

    router = ToolRouter(
        registry=tools,
        permissions=PermissionResolver(
            store, cache_ttl_seconds=server_settings.permission_cache_ttl_seconds
        ),
        audit_logger=AuditLogger(store, mirror_path=server_settings.audit_log_path),
        namespace=server_settings.permission_namespace,
    )

    return McpDispatcher(
        sessions=SessionRegistry(
            ttl_minutes=server_settings.session_ttl_minutes,
            max_sessions=server_settings.max_sessions,
        ),
        tools=tools,
        router=router,
        resources=resources,
        prompts=prompts,
        server_info=ServerInfo(
            name=server_settings.server_name,
            version=server_settings.server_version,
            protocol_version=server_settings.protocol_version,
        ),
    )


def _parse_message(body: bytes) -> JsonRpcRequest:
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ParseError(str(e)) from e

    if not isinstance(payload, dict):
        raise ParseError("Request body must be a JSON object")

    try:
        return JsonRpcRequest.model_validate(payload)
    except ValidationError as e:
        raise ParseError(str(e)) from e


def _parse_error_response(error: ParseError, session_id: str) -> JSONResponse:
    response = JsonRpcResponse(
        id=None,
        error=JsonRpcErrorObj(code=error.code, message=error.message, data=error.data),
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=response.to_wire(),
        headers={SESSION_HEADER: session_id, **CORS_HEADERS},
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DataStore] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings (cached settings if omitted)
        store: Data store backend (built from settings if omitted)

    Returns:
        Configured application
    """
    settings = settings or get_settings()
    if store is None:
        store = create_data_store(settings.data_store, **domain_store_options())

    dispatcher = build_dispatcher(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        setup_logging(settings.log_level, json_output=settings.environment == "production")
        logger.info(
            "MCP Server started",
            backend=settings.data_store.backend,
            tool_count=len(dispatcher.tools),
            methods=dispatcher.methods
        )

        yield

        logger.info("Shutting down MCP Server")
        await store.close()

    app = FastAPI(
        title="CRM Support MCP Server",
        description="MCP JSON-RPC server for CRM support tickets",
        version=settings.mcp_server.server_version,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER],
    )

    async def handle_rpc(request: Request) -> Response:
        """Handle one JSON-RPC message."""
        session_id = request.headers.get(SESSION_HEADER) or generate_session_id()
        body = await request.body()

        try:
            message = _parse_message(body)
        except ParseError as e:
            logger.warning("Rejected malformed request", session_id=session_id, error=e.data)
            return _parse_error_response(e, session_id)

        bind_context(session_id=session_id, rpc_method=message.method, rpc_id=message.id)
        try:
            response = await dispatcher.dispatch(message, session_id)
        finally:
            clear_context()

        return JSONResponse(
            content=response.to_wire(),
            headers={SESSION_HEADER: session_id, **CORS_HEADERS},
        )

    async def preflight() -> Response:
        return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)

    for path in ("/mcp", "/"):
        app.add_api_route(path, handle_rpc, methods=["POST"], tags=["MCP"])
        app.add_api_route(path, preflight, methods=["OPTIONS"], tags=["MCP"])

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.mcp_server.server_version,
            "tool_count": len(dispatcher.tools),
            "session_count": len(dispatcher.sessions),
        }

    return app


app = create_app()


def main():
    """Run the MCP Server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mcp_server.main:app",
        host=settings.mcp_server.host,
        port=settings.mcp_server.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
