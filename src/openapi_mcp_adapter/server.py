"""MCP server setup for the OpenAPI adapter."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent
from pydantic import PrivateAttr
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .config import DEFAULT_BASE_URL, Settings
from .executors import RestExecutor
from .models import ToolCatalogResult, ToolDescriptor
from .openapi import OpenAPILoader, get_base_url
from .service import InvocationBridge
from .tool_catalog import ToolCatalog

logger = logging.getLogger(__name__)

# transport name -> keyword arguments for FastMCP.http_app
HTTP_TRANSPORTS: Dict[str, Dict[str, Any]] = {
    "http": {"transport": "http", "stateless_http": True, "json_response": True},
    "streamable-http": {
        "transport": "streamable-http",
        "stateless_http": True,
        "json_response": True,
    },
    "sse": {"transport": "sse"},
}


# keywords holding sub-schemas, by container shape
_SCHEMA_MAPS = ("properties", "$defs")
_SCHEMA_LISTS = ("oneOf", "anyOf", "allOf")


def relax_output_schema(schema: Any) -> Any:
    """Copy of ``schema`` that accepts partial and recursive response bodies.

    Refs become open schemas since tool listings ship without definitions.
    ``required`` and closed objects are dropped.
    """
    if not isinstance(schema, dict):
        return schema
    if "$ref" in schema:
        return {"description": schema["description"]} if schema.get("description") else {}

    relaxed: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "required":
            continue
        if key == "additionalProperties" and value is not True:
            if isinstance(value, dict):
                relaxed[key] = relax_output_schema(value)
            continue
        if key in _SCHEMA_MAPS and isinstance(value, dict):
            relaxed[key] = {name: relax_output_schema(sub) for name, sub in value.items()}
        elif key in _SCHEMA_LISTS and isinstance(value, list):
            relaxed[key] = [relax_output_schema(sub) for sub in value]
        elif key == "items":
            relaxed[key] = relax_output_schema(value)
        else:
            relaxed[key] = value
    return relaxed


def _structured(payload: Any) -> Dict[str, Any]:
    if isinstance(payload, dict):
        return payload
    if payload is None:
        return {}
    return {"result": payload}


class OpenAPITool(Tool):
    """A catalog entry registered with FastMCP; calls go through the bridge."""

    _bridge: InvocationBridge = PrivateAttr()

    def __init__(
        self,
        bridge: InvocationBridge,
        key: str,
        descriptor: ToolDescriptor,
        expose_output_schema: bool = True,
    ) -> None:
        output_schema = descriptor.output_schema if expose_output_schema else None
        # MCP only accepts object-typed output schemas
        if output_schema is not None and output_schema.get("type") != "object":
            output_schema = None
        super().__init__(
            name=key,
            description=descriptor.description,
            parameters=descriptor.input_schema,
            output_schema=relax_output_schema(output_schema),
        )
        self._bridge = bridge

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        result = await self._bridge.call_tool(self.name, arguments)
        if result.get("is_error"):
            raise ToolError(result["content"][0]["text"])

        payload = result["content"][0]["json"]
        text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
        return ToolResult(
            content=[TextContent(type="text", text=text)],
            # an advertised output schema requires structured content on every success
            structured_content=_structured(payload) if self.output_schema is not None else None,
        )


async def load_catalog(
    settings: Settings, spec: Optional[Dict[str, Any]] = None
) -> tuple[Dict[str, Any], ToolCatalogResult]:
    if spec is None:
        loader = OpenAPILoader(
            timeout_seconds=settings.openapi_timeout_seconds,
            verify_ssl=settings.openapi_verify_ssl,
        )
        spec = await loader.load_spec(settings.spec_location())

    catalog = ToolCatalog(
        reserved_headers=(settings.openapi_version_header,),
        operation_allowlist=settings.operation_allowlist(),
    ).build(spec)
    return spec, catalog


async def build_server(
    settings: Settings, spec: Optional[Dict[str, Any]] = None
) -> tuple[FastMCP, object | None]:
    spec, catalog = await load_catalog(settings, spec)

    base_url = settings.openapi_base_url or get_base_url(spec) or DEFAULT_BASE_URL
    logger.info("Using base URL: %s", base_url)
    executor = RestExecutor(
        base_url=base_url,
        headers=settings.default_headers(),
        timeout_seconds=settings.openapi_timeout_seconds,
        verify_ssl=settings.openapi_verify_ssl,
        download_dir=settings.adapter_download_dir,
    )
    bridge = InvocationBridge(
        catalog.operation_index, executor, max_concurrency=settings.adapter_max_concurrency
    )

    mcp = FastMCP(settings.service_name, instructions=_instructions(spec))
    for key, entry in catalog.entries.items():
        mcp.add_tool(
            OpenAPITool(bridge, key, entry.tool, settings.adapter_expose_output_schema)
        )
        logger.info("Registered tool: %s", key)

    app = _get_http_app(mcp, settings)
    _attach_auth(app, settings)
    _attach_healthcheck(app)
    return mcp, app


def _bearer_token(header: str) -> str:
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def _attach_auth(app, settings: Settings) -> None:  # type: ignore[no-untyped-def]
    """Guard every route except health checks and CORS preflight with a static bearer token."""
    if app is None:
        return
    expected = settings.adapter_auth_token
    if not expected:
        logger.warning("ADAPTER_AUTH_TOKEN not set; HTTP transport is unauthenticated")
        return

    async def require_token(request, call_next):  # type: ignore[no-untyped-def]
        exempt = request.method == "OPTIONS" or request.url.path.endswith("/health")
        if exempt or _bearer_token(request.headers.get("authorization", "")) == expected:
            return await call_next(request)
        logger.warning("Rejected unauthenticated %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    app.add_middleware(BaseHTTPMiddleware, dispatch=require_token)


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    if app is None:
        return

    async def health(_request):  # type: ignore[no-untyped-def]
        return JSONResponse({"status": "ok"})

    app.add_route("/health", health, methods=["GET"])


def _instructions(spec: Dict[str, Any]) -> str:
    info = spec.get("info") or {}
    title = info.get("title") or "HTTP API"
    return (
        f"Tools generated from the OpenAPI description of {title}. "
        "Each tool performs one HTTP request against the upstream API."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport == "streamablehttp":
        transport = "streamable-http"
    options = HTTP_TRANSPORTS.get(transport)
    if options is None:
        return None

    app = mcp.http_app(**options)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app
