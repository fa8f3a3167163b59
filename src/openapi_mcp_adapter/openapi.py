"""OpenAPI document loader."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import yaml


logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    pass


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def _is_yaml(location: str, content_type: str = "") -> bool:
    return location.lower().endswith((".yaml", ".yml")) or "yaml" in content_type.lower()


def get_base_url(spec: Dict[str, Any]) -> Optional[str]:
    servers = spec.get("servers") or []
    if not servers:
        return None
    server = servers[0]
    if isinstance(server, dict):
        return server.get("url")
    return None


class OpenAPILoader:
    def __init__(self, timeout_seconds: float = 30, verify_ssl: bool = True) -> None:
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl

    async def load_spec(self, location: str) -> Dict[str, Any]:
        if _is_url(location):
            raw, content_type = await self._fetch(location)
        else:
            raw, content_type = self._read(location), ""

        spec = self.parse(raw, prefer_yaml=_is_yaml(location, content_type))
        self._check_version(spec, location)
        logger.info(
            "Loaded OpenAPI spec %s (%s paths)", location, len(spec.get("paths") or {})
        )
        return spec

    def parse(self, raw: str, prefer_yaml: bool = False) -> Dict[str, Any]:
        try:
            if prefer_yaml:
                data = yaml.safe_load(raw)
            else:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise SpecLoadError(f"Failed to parse OpenAPI specification: {exc}") from exc

        if not isinstance(data, dict):
            raise SpecLoadError("OpenAPI specification must be a mapping")
        return data

    async def _fetch(self, url: str) -> tuple[str, str]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, verify=self.verify_ssl
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.ConnectError as exc:
            raise SpecLoadError(
                f"Can't connect to {url}. Please ensure the API is running and reachable."
            ) from exc
        except httpx.HTTPError as exc:
            raise SpecLoadError(f"Failed to fetch OpenAPI specification from {url}: {exc}") from exc
        return response.text, response.headers.get("content-type", "")

    def _read(self, location: str) -> str:
        path = Path(location).expanduser().resolve()
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SpecLoadError(f"Failed to read OpenAPI specification file {path}: {exc}") from exc

    def _check_version(self, spec: Dict[str, Any], location: str) -> None:
        version = str(spec.get("openapi") or "")
        if not version.startswith("3."):
            raise SpecLoadError(
                f"Unsupported OpenAPI version {version or '<missing>'!r} in {location}; "
                "only OpenAPI 3.x is supported"
            )
