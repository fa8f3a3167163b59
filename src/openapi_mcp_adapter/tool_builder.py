"""Builds one tool descriptor (and its operation binding) per OpenAPI operation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import OperationBinding, ToolDescriptor
from .schema_converter import SchemaConverter

logger = logging.getLogger(__name__)

DEFAULT_VERSION_HEADER = "Anytype-Version"
MAX_TOOL_NAME_LENGTH = 64
SUCCESS_CODES = ("200", "201", "202", "204")

JSON_CONTENT = "application/json"
MULTIPART_CONTENT = "multipart/form-data"
IMAGE_CONTENT = ("image/png", "image/jpeg")


def _media_type(content: Dict[str, Any], media_type: str) -> Optional[Dict[str, Any]]:
    if media_type in content:
        return content[media_type] or {}
    for key, value in content.items():
        if str(key).split(";", 1)[0].strip().lower() == media_type:
            return value or {}
    return None


def _response_for(responses: Dict[Any, Any], code: str) -> Any:
    # YAML loaders produce integer keys for unquoted status codes
    if code in responses:
        return responses[code]
    if code.isdigit():
        return responses.get(int(code))
    return None


def _add_required(required: List[str], names: Iterable[str]) -> None:
    for name in names:
        if name not in required:
            required.append(name)


def _is_file_schema(schema: Dict[str, Any]) -> bool:
    if schema.get("format") == "uri-reference":
        return True
    items = schema.get("items")
    return schema.get("type") == "array" and isinstance(items, dict) and (
        items.get("format") == "uri-reference"
    )


class ToolBuilder:
    def __init__(
        self,
        converter: SchemaConverter,
        reserved_headers: Sequence[str] = (DEFAULT_VERSION_HEADER,),
    ) -> None:
        self.converter = converter
        self.reserved_headers = {header.lower() for header in reserved_headers}
        self._name_counter = 0

    def build_tool(
        self,
        operation: Dict[str, Any],
        method: str,
        path: str,
        path_parameters: Sequence[Any] = (),
    ) -> Optional[ToolDescriptor]:
        built = self.build(operation, method, path, path_parameters)
        return built[0] if built else None

    def build(
        self,
        operation: Dict[str, Any],
        method: str,
        path: str,
        path_parameters: Sequence[Any] = (),
    ) -> Optional[Tuple[ToolDescriptor, OperationBinding]]:
        operation_id = operation.get("operationId")
        if not operation_id:
            logger.warning("Operation without operationId at %s %s", method.upper(), path)
            return None

        input_schema: Dict[str, Any] = {
            "$defs": {},
            "type": "object",
            "properties": {},
            "required": [],
        }
        properties = input_schema["properties"]
        required = input_schema["required"]

        parameters = self.resolve_parameters(operation, path_parameters)
        for param in parameters:
            schema = self.converter.convert(param["schema"], frozenset(), True)
            if param.get("description"):
                schema["description"] = param["description"]
            properties[param["name"]] = schema
            if param.get("required"):
                _add_required(required, [param["name"]])

        body_mode, body_fields, file_fields = self._merge_request_body(
            operation, properties, required
        )

        tool = ToolDescriptor(
            name=operation_id,
            description=self._build_description(operation),
            input_schema=input_schema,
            output_schema=self._extract_output_schema(operation.get("responses") or {}),
        )
        binding = OperationBinding(
            method=method.lower(),
            path=path,
            operation=operation,
            parameters=tuple(parameters),
            body_mode=body_mode,
            body_fields=frozenset(body_fields),
            file_fields=frozenset(file_fields),
        )
        return tool, binding

    def resolve_parameters(
        self, operation: Dict[str, Any], path_parameters: Sequence[Any] = ()
    ) -> List[Dict[str, Any]]:
        """Resolved, exposed parameters in declaration order.

        Operation level parameters replace path item level ones with the same
        ``(name, in)``; reserved headers and parameters without a schema are
        dropped.
        """
        merged: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for raw in [*path_parameters, *(operation.get("parameters") or [])]:
            param = self._resolve_object(raw)
            if not param or not param.get("name"):
                logger.warning("Skipping unresolvable parameter: %r", raw)
                continue
            merged[(param["name"], param.get("in", "query"))] = param

        parameters: List[Dict[str, Any]] = []
        for param in merged.values():
            if param["name"].lower() in self.reserved_headers:
                continue
            if not isinstance(param.get("schema"), dict):
                logger.debug("Parameter %s has no schema, skipping", param["name"])
                continue
            parameters.append(param)
        return parameters

    def ensure_unique_name(self, name: str) -> str:
        if len(name) <= MAX_TOOL_NAME_LENGTH:
            return name
        self._name_counter += 1
        truncated = name[: MAX_TOOL_NAME_LENGTH - 5]
        return f"{truncated}-{self._name_counter:04d}"

    def _resolve_object(self, obj: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(obj, dict):
            return None
        ref = obj.get("$ref")
        if isinstance(ref, str):
            resolved = self.converter.resolve_ref(ref)
            if not isinstance(resolved, dict):
                logger.warning("Failed to resolve ref %s", ref)
                return None
            return resolved
        return obj

    def _merge_request_body(
        self,
        operation: Dict[str, Any],
        properties: Dict[str, Any],
        required: List[str],
    ) -> Tuple[str, List[str], List[str]]:
        body = self._resolve_object(operation.get("requestBody"))
        content = (body or {}).get("content") or {}
        if not content:
            return "none", [], []

        form = _media_type(content, MULTIPART_CONTENT)
        if form and form.get("schema"):
            form_schema = self.converter.convert(form["schema"], frozenset(), True)
            form_properties = form_schema.get("properties")
            if form_schema.get("type") != "object" or not form_properties:
                logger.warning(
                    "Ignoring non-object multipart body of %s", operation.get("operationId")
                )
                return "none", [], []
            properties.update(form_properties)
            _add_required(required, form_schema.get("required") or [])
            file_fields = [name for name, prop in form_properties.items() if _is_file_schema(prop)]
            return "multipart", list(form_properties), file_fields

        json_body = _media_type(content, JSON_CONTENT)
        if json_body and json_body.get("schema"):
            body_schema = self.converter.convert(json_body["schema"], frozenset(), True)
            body_properties = body_schema.get("properties")
            if body_schema.get("type") == "object" and body_properties:
                properties.update(body_properties)
                _add_required(required, body_schema.get("required") or [])
                return "json", list(body_properties), []
            properties["body"] = body_schema
            _add_required(required, ["body"])
            return "json_wrapped", ["body"], []

        return "none", [], []

    def _build_description(self, operation: Dict[str, Any]) -> str:
        description = operation.get("summary") or operation.get("description") or ""
        errors: List[str] = []
        for code, response in (operation.get("responses") or {}).items():
            code = str(code)
            if not code.startswith(("4", "5")):
                continue
            resolved = self._resolve_object(response) or {}
            errors.append(f"{code}: {resolved.get('description') or ''}")
        if errors:
            description += "\nError Responses:\n" + "\n".join(errors)
        return description

    def _extract_output_schema(self, responses: Dict[Any, Any]) -> Optional[Dict[str, Any]]:
        success = None
        for code in SUCCESS_CODES:
            success = _response_for(responses, code)
            if success is not None:
                break
        if success is None:
            return None

        response = self._resolve_object(success)
        if not response or not response.get("content"):
            return None
        content = response["content"]
        response_description = response.get("description") or ""

        json_body = _media_type(content, JSON_CONTENT)
        if json_body and json_body.get("schema"):
            output_schema = self.converter.convert(json_body["schema"], frozenset(), True)
            # Definitions are left out to keep tool listings small
            output_schema["$defs"] = {}
            if response_description and not output_schema.get("description"):
                output_schema["description"] = response_description
            return output_schema

        if any(_media_type(content, image) is not None for image in IMAGE_CONTENT):
            return {"type": "string", "format": "binary", "description": response_description}

        return {"type": "string", "description": response_description}
