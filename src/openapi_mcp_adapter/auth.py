"""Interactive app key acquisition against the upstream API."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx


logger = logging.getLogger(__name__)

VERSION_HEADER = "Anytype-Version"


class AuthenticationError(Exception):
    pass


@dataclass
class AppKey:
    app_key: str
    api_version: Optional[str]

    def mcp_headers(self) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.app_key}"}
        if self.api_version:
            headers[VERSION_HEADER] = self.api_version
        return headers


async def _prompt_stdin(question: str) -> str:
    return await asyncio.to_thread(input, question)


class AppKeyGenerator:
    """Challenge/response flow: request a display code, then trade it for a key."""

    def __init__(
        self,
        base_url: str,
        app_name: str = "openapi_mcp_adapter",
        timeout_seconds: float = 30,
        prompt: Callable[[str], Awaitable[str]] = _prompt_stdin,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.app_name = app_name
        self.timeout_seconds = timeout_seconds
        self.prompt = prompt

    async def start_authentication(self) -> str:
        data = await self._post("/v1/auth/display_code", {"app_name": self.app_name})
        challenge_id = data.get("challenge_id") if isinstance(data, dict) else None
        if not challenge_id:
            raise AuthenticationError("Failed to get challenge ID")
        return challenge_id

    async def complete_authentication(self, challenge_id: str, code: str) -> AppKey:
        data, headers = await self._post_with_headers(
            "/v1/auth/token", {"challenge_id": challenge_id, "code": code}
        )
        app_key = data.get("app_key") if isinstance(data, dict) else None
        if not app_key:
            raise AuthenticationError("Authentication failed: no app key received")
        return AppKey(app_key=app_key, api_version=headers.get(VERSION_HEADER))

    async def generate_app_key(self) -> AppKey:
        print("Starting authentication to get app key...")
        challenge_id = await self.start_authentication()
        print("Please check the desktop app for the 4-digit code")
        code = (await self.prompt("Enter the 4-digit code: ")).strip()
        app_key = await self.complete_authentication(challenge_id, code)
        print("Authenticated successfully!")
        print(render_mcp_config(app_key))
        return app_key

    async def _post(self, path: str, params: Dict[str, Any]) -> Any:
        data, _ = await self._post_with_headers(path, params)
        return data

    async def _post_with_headers(
        self, path: str, params: Dict[str, Any]
    ) -> tuple[Any, httpx.Headers]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, params=params)
                response.raise_for_status()
                return response.json(), response.headers
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Authentication request to %s failed: %s", url, exc)
            raise AuthenticationError(f"Authentication request failed: {exc}") from exc


def render_mcp_config(app_key: AppKey, server_name: str = "openapi") -> str:
    config = {
        "mcpServers": {
            server_name: {
                "command": "openapi-mcp-adapter",
                "args": ["run"],
                "env": {"OPENAPI_MCP_HEADERS": json.dumps(app_key.mcp_headers())},
            }
        }
    }
    return (
        f"\nYour APP KEY: {app_key.app_key}\n"
        "\nAdd this to your MCP settings file as:\n"
        f"{json.dumps(config, indent=2)}\n"
    )
