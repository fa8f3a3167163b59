"""Tool catalog built from an OpenAPI document."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import CatalogEntry, ToolCatalogResult, ToolDescriptor
from .schema_converter import SchemaConverter
from .tool_builder import DEFAULT_VERSION_HEADER, ToolBuilder

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "API"
HTTP_METHODS = {"get", "post", "put", "delete", "patch"}
AUTH_TAG = "Auth"


class ToolCatalog:
    def __init__(
        self,
        converter: Optional[SchemaConverter] = None,
        group: str = DEFAULT_GROUP,
        reserved_headers: Sequence[str] = (DEFAULT_VERSION_HEADER,),
        operation_allowlist: Iterable[str] = (),
    ) -> None:
        self.converter = converter
        self.group = group
        self.reserved_headers = tuple(reserved_headers)
        self.operation_allowlist = set(operation_allowlist)

    def build(self, document: Dict[str, Any]) -> ToolCatalogResult:
        converter = self.converter or SchemaConverter(document)
        builder = ToolBuilder(converter, reserved_headers=self.reserved_headers)

        result = ToolCatalogResult(tools={self.group: []})
        for path, path_item in (document.get("paths") or {}).items():
            if not isinstance(path_item, dict):
                continue
            path_parameters = path_item.get("parameters") or []

            for method, operation in path_item.items():
                if not self._is_callable(method, operation):
                    continue
                if (
                    self.operation_allowlist
                    and operation.get("operationId") not in self.operation_allowlist
                ):
                    continue

                built = builder.build(operation, method, path, path_parameters)
                if not built:
                    continue
                tool, binding = built

                # MCP clients expect hyphenated tool names
                name = builder.ensure_unique_name(tool.name).replace("_", "-")
                tool = ToolDescriptor(
                    name=name,
                    description=tool.description,
                    input_schema=tool.input_schema,
                    output_schema=tool.output_schema,
                )
                key = f"{self.group}-{name}"
                if key in result.operation_index:
                    logger.warning("Duplicate tool name %s (%s %s), skipping", key, method, path)
                    continue

                result.tools[self.group].append(tool)
                result.operation_index[key] = binding
                result.entries[key] = CatalogEntry(
                    key=key, group=self.group, tool=tool, binding=binding
                )

        logger.info("Converted %s OpenAPI operations to tools", len(result.entries))
        return result

    def to_openai_tools(self, result: ToolCatalogResult) -> List[Dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": entry.binding.operation["operationId"],
                    "description": self._plain_description(entry),
                    "parameters": entry.tool.input_schema,
                },
            }
            for entry in result.entries.values()
        ]

    def to_anthropic_tools(self, result: ToolCatalogResult) -> List[Dict[str, Any]]:
        return [
            {
                "name": entry.binding.operation["operationId"],
                "description": self._plain_description(entry),
                "input_schema": entry.tool.input_schema,
            }
            for entry in result.entries.values()
        ]

    def _plain_description(self, entry: CatalogEntry) -> str:
        operation = entry.binding.operation
        return operation.get("summary") or operation.get("description") or ""

    def _is_callable(self, method: str, operation: Any) -> bool:
        method = method.lower()
        if method not in HTTP_METHODS or not isinstance(operation, dict):
            return False
        # Irreversible and credential operations are never exposed
        if method == "delete":
            return False
        return AUTH_TAG not in (operation.get("tags") or [])
