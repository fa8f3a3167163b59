from __future__ import annotations

from openapi_mcp_adapter.tool_catalog import ToolCatalog


def test_catalog_filters_and_names(document):
    result = ToolCatalog().build(document)

    assert list(result.operation_index) == [
        "API-get-object",
        "API-update-object",
        "API-upload-file",
        "API-set-tags",
        "API-get-icon",
    ]
    assert [tool.name for tool in result.tools["API"]] == [
        "get-object",
        "update-object",
        "upload-file",
        "set-tags",
        "get-icon",
    ]


def test_delete_and_auth_operations_never_appear(document):
    document["paths"]["/v1/things"] = {
        "delete": {"operationId": "purge", "responses": {}},
        "DELETE": {"operationId": "purge_upper", "responses": {}},
        "get": {"operationId": "login", "tags": ["Auth", "Other"], "responses": {}},
    }

    result = ToolCatalog().build(document)
    operation_ids = {binding.operation["operationId"] for binding in result.operation_index.values()}

    assert not {"purge", "purge_upper", "login", "delete_object", "create_api_key"} & operation_ids
    assert all(binding.method != "delete" for binding in result.operation_index.values())


def test_non_operation_keys_are_ignored(document):
    path_item = document["paths"]["/v1/spaces/{space_id}/objects/{object_id}"]
    path_item["summary"] = "Objects"
    path_item["trace"] = {"operationId": "trace_object"}

    result = ToolCatalog().build(document)

    assert "API-trace-object" not in result.operation_index


def test_every_tool_has_a_binding_under_the_same_key(document):
    result = ToolCatalog().build(document)

    keys = [f"API-{tool.name}" for tool in result.tools["API"]]
    assert keys == list(result.operation_index)
    assert keys == list(result.entries)
    for key, entry in result.entries.items():
        assert entry.binding is result.operation_index[key]
        assert entry.group == "API"


def test_long_names_are_unique_and_bounded():
    long_id = "list_" + "very_long_operation_identifier_" * 3
    document = {
        "openapi": "3.0.0",
        "paths": {
            "/a": {"get": {"operationId": long_id + "a", "responses": {}}},
            "/b": {"get": {"operationId": long_id + "b", "responses": {}}},
            "/c": {"get": {"operationId": "short_name", "responses": {}}},
        },
    }

    result = ToolCatalog().build(document)
    names = [tool.name for tool in result.tools["API"]]

    assert len(names) == len(set(names)) == 3
    assert all(len(name) <= 64 for name in names)
    assert names[0].endswith("-0001")
    assert names[1].endswith("-0002")
    assert "_" not in "".join(names)
    assert names[2] == "short-name"


def test_counter_is_scoped_to_one_build():
    document = {
        "openapi": "3.0.0",
        "paths": {"/a": {"get": {"operationId": "x" * 70, "responses": {}}}},
    }
    catalog = ToolCatalog()

    first = catalog.build(document)
    second = catalog.build(document)

    assert first.tools["API"][0].name == second.tools["API"][0].name == "x" * 59 + "-0001"


def test_operation_allowlist(document):
    result = ToolCatalog(operation_allowlist={"get_icon"}).build(document)

    assert list(result.operation_index) == ["API-get-icon"]


def test_custom_group(document):
    result = ToolCatalog(group="Spaces").build(document)

    assert set(result.tools) == {"Spaces"}
    assert all(key.startswith("Spaces-") for key in result.operation_index)


def test_openai_and_anthropic_exports(document):
    catalog = ToolCatalog()
    result = catalog.build(document)

    openai_tools = catalog.to_openai_tools(result)
    anthropic_tools = catalog.to_anthropic_tools(result)

    assert openai_tools[0]["type"] == "function"
    assert openai_tools[0]["function"]["name"] == "get_object"
    assert openai_tools[0]["function"]["description"] == "Get object"
    assert openai_tools[0]["function"]["parameters"]["type"] == "object"
    assert anthropic_tools[0]["name"] == "get_object"
    assert anthropic_tools[0]["input_schema"] is result.tools["API"][0].input_schema
