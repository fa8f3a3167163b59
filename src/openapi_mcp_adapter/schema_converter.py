"""OpenAPI schema object -> JSON schema conversion."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)

COMPONENTS_SCHEMAS_PREFIX = "#/components/schemas/"
DEFS_PREFIX = "#/$defs/"

EMOJI_ICON_REF = "#/components/schemas/apimodel.EmojiIcon"
BINARY_DESCRIPTION = "absolute paths to local files"


def to_defs_ref(ref: str) -> str:
    if ref.startswith(COMPONENTS_SCHEMAS_PREFIX):
        return DEFS_PREFIX + ref[len(COMPONENTS_SCHEMAS_PREFIX):]
    return ref


def _is_ref(schema: Any) -> bool:
    return isinstance(schema, dict) and isinstance(schema.get("$ref"), str)


class SchemaConverter:
    """Converts OpenAPI schema objects into JSON schema trees.

    Resolved ``$ref`` conversions are memoized per converter instance, so one
    converter is meant to live for exactly one catalog build.
    """

    def __init__(self, document: Dict[str, Any]) -> None:
        self.document = document
        self._cache: Dict[str, Dict[str, Any]] = {}

    def resolve_ref(self, ref: str, seen: FrozenSet[str] = frozenset()) -> Optional[Any]:
        """Walk a local ``#/...`` pointer through the document.

        Returns ``None`` for non-local refs, refs already on the current
        branch and pointers that lead nowhere.
        """
        if not ref.startswith("#/"):
            return None
        if ref in seen:
            return None

        current: Any = self.document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if isinstance(current, dict):
                current = current.get(part)
            elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
                current = current[int(part)]
            else:
                return None
            if current is None:
                return None
        return current

    def convert(
        self,
        schema: Dict[str, Any],
        seen: FrozenSet[str] = frozenset(),
        resolve_refs: bool = True,
    ) -> Dict[str, Any]:
        if not isinstance(schema, dict):
            logger.warning("Ignoring non-object schema: %r", schema)
            return {}
        if _is_ref(schema):
            return self._convert_ref(schema, seen, resolve_refs)
        return self._convert_inline(schema, seen, resolve_refs)

    def _convert_ref(
        self, schema: Dict[str, Any], seen: FrozenSet[str], resolve_refs: bool
    ) -> Dict[str, Any]:
        ref = schema["$ref"]
        if not resolve_refs:
            if ref.startswith(COMPONENTS_SCHEMAS_PREFIX):
                result: Dict[str, Any] = {"$ref": to_defs_ref(ref)}
                if "description" in schema:
                    result["description"] = schema["description"]
                return result
            logger.warning("Ref %s is not in the components collection, resolving it", ref)

        cached = self._cache.get(ref)
        if cached is not None:
            return copy.deepcopy(cached)

        resolved = self.resolve_ref(ref, seen)
        if not isinstance(resolved, dict):
            if ref in seen:
                logger.warning("Cyclic ref %s, keeping it unexpanded", ref)
            else:
                logger.warning("Failed to resolve ref %s", ref)
            return {
                "$ref": to_defs_ref(ref),
                "description": schema.get("description") or "",
            }

        converted = self.convert(resolved, seen | {ref}, resolve_refs)
        self._cache[ref] = converted
        return copy.deepcopy(converted)

    def _convert_inline(
        self, schema: Dict[str, Any], seen: FrozenSet[str], resolve_refs: bool
    ) -> Dict[str, Any]:
        result: Dict[str, Any] = {}

        if schema.get("type"):
            result["type"] = schema["type"]

        if schema.get("format") == "binary":
            result["format"] = "uri-reference"
            description = schema.get("description")
            result["description"] = (
                f"{description} ({BINARY_DESCRIPTION})" if description else BINARY_DESCRIPTION
            )
        else:
            if schema.get("format"):
                result["format"] = schema["format"]
            if schema.get("description"):
                result["description"] = schema["description"]

        if schema.get("enum"):
            result["enum"] = schema["enum"]
        if "default" in schema:
            result["default"] = schema["default"]

        if schema.get("type") == "object":
            properties = schema.get("properties")
            if properties:
                result["properties"] = {
                    name: self.convert(prop, seen, resolve_refs)
                    for name, prop in properties.items()
                }
            if schema.get("required"):
                result["required"] = list(schema["required"])
            additional = schema.get("additionalProperties", True)
            if additional is True:
                result["additionalProperties"] = True
            elif isinstance(additional, dict):
                result["additionalProperties"] = self.convert(additional, seen, resolve_refs)
            else:
                result["additionalProperties"] = False

        if schema.get("type") == "array" and schema.get("items"):
            result["items"] = self.convert(schema["items"], seen, resolve_refs)

        one_of = schema.get("oneOf")
        if one_of:
            if any(_is_ref(item) and item["$ref"] == EMOJI_ICON_REF for item in one_of):
                return _emoji_icon_schema(schema.get("description"))
            if all(_is_ref(item) and item["$ref"].endswith("PropertyValue") for item in one_of):
                return _property_value_schema(link=False)
            if all(_is_ref(item) and item["$ref"].endswith("PropertyLinkValue") for item in one_of):
                return _property_value_schema(link=True)

        for keyword in ("oneOf", "anyOf", "allOf"):
            if schema.get(keyword):
                result[keyword] = [
                    self.convert(item, seen, resolve_refs) for item in schema[keyword]
                ]

        return result


def _emoji_icon_schema(description: Optional[str]) -> Dict[str, Any]:
    result: Dict[str, Any] = {"type": "object"}
    if description:
        result["description"] = description
    result["properties"] = {
        "emoji": {"type": "string", "description": "The emoji of the icon"},
        "format": {
            "type": "string",
            "description": "The format of the icon",
            "enum": ["emoji"],
        },
    }
    result["additionalProperties"] = True
    return result


def _string_property(description: str, example: Any) -> Dict[str, Any]:
    return {"type": "string", "description": description, "examples": [example]}


def _id_list_property(description: str, example: str) -> Dict[str, Any]:
    return {
        "type": "array",
        "description": description,
        "items": {"type": "string"},
        "examples": [[example]],
    }


def _property_value_schema(link: bool) -> Dict[str, Any]:
    # One flat shape for every property value variant
    key = _string_property("The key of the property", "last_modified_date")
    if link:
        properties: Dict[str, Any] = {"key": key}
    else:
        properties = {
            "id": _string_property("The id of the property", "last_modified_date"),
            "key": key,
            "name": _string_property("The name of the property", "Last modified date"),
            "object": _string_property("The data model of the object", "property"),
        }

    properties.update(
        {
            "text": _string_property("The text value, if applicable", "Some text..."),
            "number": {
                "type": "number",
                "description": "The number value, if applicable",
                "examples": [42],
            },
            "select": _string_property("The selected tag id, if applicable", "tag_id"),
            "multi_select": _id_list_property("The selected tag ids, if applicable", "tag_id"),
            "date": _string_property(
                "The date value in ISO 8601 format, if applicable", "2025-02-14T12:34:56Z"
            ),
            "files": _id_list_property("The file ids, if applicable", "file_id"),
            "checkbox": {
                "type": "boolean",
                "description": "The checkbox value, if applicable",
                "examples": [True],
            },
            "url": _string_property("The url value, if applicable", "https://example.com"),
            "email": _string_property("The email value, if applicable", "example@example.com"),
            "phone": _string_property("The phone number value, if applicable", "+1234567890"),
            "objects": _id_list_property("The object ids, if applicable", "object_id"),
        }
    )
    return {"type": "object", "properties": properties}
