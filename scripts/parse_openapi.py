"""Convert an OpenAPI document into the tool catalog and write it as JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict

from openapi_mcp_adapter.openapi import OpenAPILoader
from openapi_mcp_adapter.tool_catalog import ToolCatalog

FORMATS = ("mcp", "openai", "anthropic")


def _render(catalog: ToolCatalog, spec: Dict[str, Any], output_format: str) -> Any:
    result = catalog.build(spec)
    if output_format == "openai":
        return catalog.to_openai_tools(result)
    if output_format == "anthropic":
        return catalog.to_anthropic_tools(result)
    return {
        "tools": {
            group: {"methods": [tool.to_dict() for tool in tools]}
            for group, tools in result.tools.items()
        }
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the tools generated from an OpenAPI document")
    parser.add_argument(
        "spec",
        nargs="?",
        default=os.getenv("OPENAPI_SPEC_PATH", "./scripts/openapi.json"),
        help="OpenAPI document path or URL",
    )
    parser.add_argument(
        "output",
        nargs="?",
        default="./scripts/tools.json",
        help="Output JSON file (default: ./scripts/tools.json)",
    )
    parser.add_argument(
        "--format",
        default="mcp",
        choices=FORMATS,
        help="Tool format to write (default: mcp)",
    )
    args = parser.parse_args()

    spec = asyncio.run(OpenAPILoader().load_spec(args.spec))
    payload = _render(ToolCatalog(), spec, args.format)

    output_path = Path(args.output).expanduser().resolve()
    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    print(f"Successfully wrote parsed tools to {output_path}")


if __name__ == "__main__":
    main()
