"""Internal models for tool definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Dict[str, Any]
    output_schema: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.output_schema is not None:
            data["outputSchema"] = self.output_schema
        return data


@dataclass(frozen=True)
class OperationBinding:
    method: str
    path: str
    operation: Dict[str, Any]
    parameters: Tuple[Dict[str, Any], ...] = ()
    body_mode: str = "none"
    body_fields: FrozenSet[str] = frozenset()
    file_fields: FrozenSet[str] = frozenset()

    def parameter_names(self, location: Optional[str] = None) -> List[str]:
        return [
            param["name"]
            for param in self.parameters
            if location is None or param.get("in") == location
        ]


@dataclass(frozen=True)
class CatalogEntry:
    key: str
    group: str
    tool: ToolDescriptor
    binding: OperationBinding


@dataclass(frozen=True)
class ToolCatalogResult:
    tools: Dict[str, List[ToolDescriptor]] = field(default_factory=dict)
    operation_index: Dict[str, OperationBinding] = field(default_factory=dict)
    entries: Dict[str, CatalogEntry] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class HttpResult:
    status_code: int
    content_type: str
    payload: Any
