"""Shared fixtures: a small OpenAPI document covering the converter's cases."""

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

from openapi_mcp_adapter.config import Settings


BASE_URL = "http://api.test"

SPACES_DOCUMENT: Dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Spaces API", "version": "1.0.0"},
    "servers": [{"url": BASE_URL}],
    "paths": {
        "/v1/spaces/{space_id}/objects/{object_id}": {
            "parameters": [
                {
                    "name": "space_id",
                    "in": "path",
                    "required": True,
                    "description": "The ID of the space",
                    "schema": {"type": "string"},
                }
            ],
            "get": {
                "operationId": "get_object",
                "summary": "Get object",
                "parameters": [
                    {"$ref": "#/components/parameters/ObjectId"},
                    {
                        "name": "Anytype-Version",
                        "in": "header",
                        "required": True,
                        "schema": {"type": "string"},
                    },
                    {
                        "name": "format",
                        "in": "query",
                        "schema": {"type": "string", "enum": ["md", "json"], "default": "md"},
                    },
                ],
                "responses": {
                    "200": {
                        "description": "The object",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/ObjectResponse"}
                            }
                        },
                    },
                    "404": {"$ref": "#/components/responses/NotFound"},
                    "500": {"description": "Internal server error"},
                },
            },
            "patch": {
                "operationId": "update_object",
                "summary": "Update object",
                "parameters": [{"$ref": "#/components/parameters/ObjectId"}],
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/UpdateObjectRequest"}
                        }
                    }
                },
                "responses": {"200": {"description": "Updated"}},
            },
            "delete": {
                "operationId": "delete_object",
                "summary": "Delete object",
                "responses": {"200": {"description": "Deleted"}},
            },
        },
        "/v1/auth/token": {
            "post": {
                "operationId": "create_api_key",
                "tags": ["Auth"],
                "responses": {"201": {"description": "Key"}},
            }
        },
        "/v1/spaces/{space_id}/files": {
            "post": {
                "operationId": "upload_file",
                "summary": "Upload a file",
                "parameters": [
                    {
                        "name": "space_id",
                        "in": "path",
                        "required": True,
                        "schema": {"type": "string"},
                    }
                ],
                "requestBody": {
                    "content": {
                        "multipart/form-data": {
                            "schema": {
                                "type": "object",
                                "required": ["file"],
                                "properties": {
                                    "file": {
                                        "type": "string",
                                        "format": "binary",
                                        "description": "The file to upload",
                                    },
                                    "name": {"type": "string"},
                                },
                            }
                        }
                    }
                },
                "responses": {
                    "201": {
                        "description": "Uploaded",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {"id": {"type": "string"}},
                                }
                            }
                        },
                    }
                },
            }
        },
        "/v1/spaces/{space_id}/tags": {
            "put": {
                "operationId": "set_tags",
                "parameters": [
                    {
                        "name": "space_id",
                        "in": "path",
                        "required": True,
                        "schema": {"type": "string"},
                    }
                ],
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {"type": "array", "items": {"type": "string"}}
                        }
                    }
                },
                "responses": {"204": {"description": "No content"}},
            }
        },
        "/v1/icons/{icon_id}": {
            "get": {
                "operationId": "get_icon",
                "parameters": [
                    {
                        "name": "icon_id",
                        "in": "path",
                        "required": True,
                        "schema": {"type": "string"},
                    }
                ],
                "responses": {
                    "200": {
                        "description": "The icon image",
                        "content": {"image/png": {}},
                    }
                },
            }
        },
        "/v1/search": {
            "post": {
                "description": "Search without an operationId",
                "responses": {"200": {"description": "Results"}},
            }
        },
    },
    "components": {
        "parameters": {
            "ObjectId": {
                "name": "object_id",
                "in": "path",
                "required": True,
                "description": "The ID of the object",
                "schema": {"type": "string"},
            }
        },
        "responses": {"NotFound": {"description": "Resource not found"}},
        "schemas": {
            "ObjectResponse": {
                "type": "object",
                "properties": {"object": {"$ref": "#/components/schemas/Object"}},
            },
            "Object": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "icon": {"$ref": "#/components/schemas/Icon"},
                    "properties": {
                        "type": "array",
                        "items": {"$ref": "#/components/schemas/PropertyWithValue"},
                    },
                },
            },
            "Icon": {
                "oneOf": [
                    {"$ref": "#/components/schemas/apimodel.EmojiIcon"},
                    {"$ref": "#/components/schemas/apimodel.FileIcon"},
                ],
                "description": "The icon of the object",
            },
            "apimodel.EmojiIcon": {
                "type": "object",
                "properties": {"emoji": {"type": "string"}},
            },
            "apimodel.FileIcon": {
                "type": "object",
                "properties": {"file": {"type": "string"}},
            },
            "PropertyWithValue": {
                "oneOf": [
                    {"$ref": "#/components/schemas/TextPropertyValue"},
                    {"$ref": "#/components/schemas/NumberPropertyValue"},
                ]
            },
            "TextPropertyValue": {
                "type": "object",
                "properties": {"text": {"type": "string"}},
            },
            "NumberPropertyValue": {
                "type": "object",
                "properties": {"number": {"type": "number"}},
            },
            "UpdateObjectRequest": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "The new name"},
                    "body": {"type": "string"},
                },
            },
        },
    },
}


@pytest.fixture
def document() -> Dict[str, Any]:
    return copy.deepcopy(SPACES_DOCUMENT)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        openapi_base_url=BASE_URL,
        openapi_api_key="secret-key",
        openapi_api_version="2025-05-20",
        adapter_download_dir=str(tmp_path / "downloads"),
        adapter_transport="stdio",
    )
