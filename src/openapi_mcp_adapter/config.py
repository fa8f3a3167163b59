"""Configuration for the OpenAPI MCP adapter."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Dict, Optional, Set

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SPEC_URL = "http://localhost:31009/docs/openapi.json"
DEFAULT_BASE_URL = "http://localhost:31009"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="openapi-mcp-adapter")

    openapi_spec_path: Optional[str] = Field(default=None)
    openapi_base_url: Optional[str] = Field(default=None)
    openapi_mcp_headers: Optional[str] = Field(default=None)
    openapi_api_key: Optional[str] = Field(default=None)
    openapi_api_version: Optional[str] = Field(default="2025-05-20")
    openapi_version_header: str = Field(default="Anytype-Version")
    openapi_timeout_seconds: float = Field(default=30)
    openapi_verify_ssl: bool = Field(default=True)

    adapter_transport: str = Field(default="stdio")
    adapter_host: str = Field(default="0.0.0.0")
    adapter_port: int = Field(default=8000)
    adapter_auth_token: Optional[str] = Field(default=None)

    adapter_max_concurrency: int = Field(default=20)
    adapter_operation_allowlist: Optional[str] = Field(default=None)
    adapter_download_dir: Optional[str] = Field(default=None)
    adapter_expose_output_schema: bool = Field(default=True)

    adapter_log_level: str = Field(default="INFO")

    def spec_location(self) -> str:
        return self.openapi_spec_path or DEFAULT_SPEC_URL

    def operation_allowlist(self) -> Set[str]:
        if not self.adapter_operation_allowlist:
            return set()
        return {
            item.strip()
            for item in self.adapter_operation_allowlist.split(",")
            if item.strip()
        }

    def default_headers(self) -> Dict[str, str]:
        """Headers sent with every upstream request.

        The version pin comes first so an explicit header bundle can override
        it; ``openapi_api_key`` wins over any bundled ``Authorization``.
        """
        headers: Dict[str, str] = {}
        if self.openapi_api_version:
            headers[self.openapi_version_header] = self.openapi_api_version
        headers.update(self._bundled_headers())
        if self.openapi_api_key:
            headers["Authorization"] = f"Bearer {self.openapi_api_key}"
        return headers

    def _bundled_headers(self) -> Dict[str, str]:
        if not self.openapi_mcp_headers:
            return {}
        try:
            data = json.loads(self.openapi_mcp_headers)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring invalid OPENAPI_MCP_HEADERS: %s", exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring OPENAPI_MCP_HEADERS: expected a JSON object")
            return {}
        return {str(key): str(value) for key, value in data.items()}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
