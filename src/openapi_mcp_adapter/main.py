"""CLI entry point for the OpenAPI MCP adapter."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

import uvicorn

from .auth import AppKeyGenerator, AuthenticationError
from .config import DEFAULT_BASE_URL, Settings, get_settings
from .logging import configure_logging, redact_settings
from .openapi import SpecLoadError, get_base_url
from .server import build_server, load_catalog

logger = logging.getLogger(__name__)

TRANSPORTS = ["stdio", "http", "streamable-http", "sse"]


async def _run(settings: Settings) -> None:
    mcp, app = await build_server(settings)
    transport = settings.adapter_transport.lower()

    if transport == "stdio":
        await mcp.run_stdio_async()
        return
    if not app:
        raise RuntimeError(f"HTTP app unavailable for transport={transport}")
    config = uvicorn.Config(app, host=settings.adapter_host, port=settings.adapter_port)
    server = uvicorn.Server(config)
    await server.serve()


async def _get_key(settings: Settings) -> None:
    base_url = settings.openapi_base_url
    if not base_url:
        spec, _ = await load_catalog(settings)
        base_url = get_base_url(spec) or DEFAULT_BASE_URL
    generator = AppKeyGenerator(base_url, timeout_seconds=settings.openapi_timeout_seconds)
    await generator.generate_app_key()


async def _list_tools(settings: Settings) -> None:
    _, catalog = await load_catalog(settings)
    if not catalog.entries:
        print("No tools available. Make sure an OpenAPI specification is provided.")
        return
    print(f"Available tools ({len(catalog.entries)}):")
    for index, key in enumerate(catalog.entries, start=1):
        print(f"  {index}. {key}")


async def _validate(settings: Settings) -> None:
    spec, catalog = await load_catalog(settings)
    info = spec.get("info") or {}
    base_url = settings.openapi_base_url or get_base_url(spec) or DEFAULT_BASE_URL
    print("Server configuration is valid!")
    print(f"  API:       {info.get('title', '<untitled>')} {info.get('version', '')}".rstrip())
    print(f"  Spec:      {settings.spec_location()}")
    print(f"  Base URL:  {base_url}")
    print(f"  Transport: {settings.adapter_transport}")
    print(f"  Tools:     {len(catalog.entries)}")


COMMANDS = {
    "run": _run,
    "get-key": _get_key,
    "list-tools": _list_tools,
    "validate": _validate,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openapi-mcp-adapter",
        description="Expose an OpenAPI described HTTP API as MCP tools",
    )
    parser.add_argument("--spec-path", help="OpenAPI document path or URL (YAML or JSON)")
    parser.add_argument("--base-url", help="Override the API base URL from the document")
    parser.add_argument("--log-level", help="Logging level (default: ADAPTER_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command")
    run = subparsers.add_parser("run", help="Run the MCP server (default)")
    run.add_argument("--transport", choices=TRANSPORTS)
    run.add_argument("--host")
    run.add_argument("--port", type=int)
    subparsers.add_parser("get-key", help="Generate an app key interactively")
    subparsers.add_parser("list-tools", help="List the tools generated from the document")
    subparsers.add_parser("validate", help="Validate the document and configuration")
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "openapi_spec_path": args.spec_path,
        "openapi_base_url": args.base_url,
        "adapter_log_level": args.log_level,
        "adapter_transport": getattr(args, "transport", None),
        "adapter_host": getattr(args, "host", None),
        "adapter_port": getattr(args, "port", None),
    }
    update = {key: value for key, value in overrides.items() if value is not None}
    return get_settings().model_copy(update=update)


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = _settings_from_args(args)
    configure_logging(settings.adapter_log_level)
    logger.debug("Settings: %s", redact_settings(settings.model_dump()))

    command = COMMANDS[args.command or "run"]
    try:
        asyncio.run(command(settings))
    except (SpecLoadError, AuthenticationError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
