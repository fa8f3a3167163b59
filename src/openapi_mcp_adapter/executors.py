"""Execution layer turning tool calls into REST requests."""

from __future__ import annotations

import json
import logging
import mimetypes
import re
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import anyio
import httpx

from .logging import redact_payload
from .models import HttpResult, OperationBinding

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")
_TEXT_MEDIA_TYPES = {"application/xml", "application/yaml", "application/x-yaml"}


class ExecutionError(Exception):
    def __init__(
        self, message: str, status_code: Optional[int] = None, body: Any = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _media(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class RestExecutor:
    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 30,
        verify_ssl: bool = True,
        download_dir: Optional[str] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self.download_dir = download_dir

    async def execute(self, binding: OperationBinding, arguments: Dict[str, Any]) -> HttpResult:
        request = await self.build_request(binding, arguments)
        logger.debug(
            "Calling %s %s headers=%s",
            request["method"],
            request["url"],
            redact_payload(request["headers"]),
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                verify=self.verify_ssl,
                follow_redirects=True,
            ) as client:
                response = await client.request(**request)
        except httpx.TimeoutException as exc:
            raise ExecutionError(f"Request timed out after {self.timeout_seconds}s: {exc!r}") from exc
        except httpx.HTTPError as exc:
            raise ExecutionError(f"Request failed: {exc}") from exc

        if not response.is_success:
            body = self._error_body(response)
            text = response.text or response.reason_phrase
            logger.error("HTTP error %s: %s", response.status_code, text)
            raise ExecutionError(
                f"HTTP {response.status_code} error: {text}",
                status_code=response.status_code,
                body=body,
            )

        return await self._map_response(response)

    async def build_request(
        self, binding: OperationBinding, arguments: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Split tool arguments back into URL, query, headers and body."""
        headers: Dict[str, str] = dict(self.headers)
        path_values: Dict[str, Any] = {}
        query: List[Tuple[str, str]] = []
        cookies: List[str] = []

        for param in binding.parameters:
            name = param["name"]
            value = arguments.get(name)
            if value is None:
                continue
            location = param.get("in", "query")
            if location == "path":
                path_values[name] = value
            elif location == "header":
                headers[name] = _stringify(value)
            elif location == "cookie":
                cookies.append(f"{name}={_stringify(value)}")
            elif isinstance(value, list):
                query.extend((name, _stringify(item)) for item in value)
            else:
                query.append((name, _stringify(value)))

        if cookies:
            headers["Cookie"] = "; ".join(cookies)

        request: Dict[str, Any] = {
            "method": binding.method.upper(),
            "url": self._build_url(binding.path, path_values),
            "headers": headers,
            "params": query,
        }

        parameter_names = set(binding.parameter_names())
        if binding.body_mode == "json":
            body = {
                key: value
                for key, value in arguments.items()
                if key not in parameter_names or key in binding.body_fields
            }
            if body:
                request["json"] = body
        elif binding.body_mode == "json_wrapped":
            if arguments.get("body") is not None:
                request["json"] = arguments["body"]
        elif binding.body_mode == "multipart":
            data, files = await self._build_multipart(binding, arguments, parameter_names)
            # httpx has to generate the boundary header itself
            for key in [key for key in headers if key.lower() == "content-type"]:
                del headers[key]
            request["data"] = data
            request["files"] = files

        return request

    def _build_url(self, path: str, path_values: Dict[str, Any]) -> str:
        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in path_values:
                return match.group(0)
            return quote(_stringify(path_values[name]), safe="")

        resolved = _PLACEHOLDER.sub(substitute, path)
        missing = _PLACEHOLDER.findall(resolved)
        if missing:
            raise ExecutionError(f"Missing path parameter(s): {', '.join(missing)}")
        return self.base_url + resolved

    async def _build_multipart(
        self,
        binding: OperationBinding,
        arguments: Dict[str, Any],
        parameter_names: set[str],
    ) -> Tuple[Dict[str, str], List[Tuple[str, Tuple[str, bytes, str]]]]:
        data: Dict[str, str] = {}
        files: List[Tuple[str, Tuple[str, bytes, str]]] = []

        for key, value in arguments.items():
            if value is None:
                continue
            if key in binding.file_fields:
                paths = value if isinstance(value, list) else [value]
                for file_path in paths:
                    files.append((key, await self._read_file(str(file_path))))
            elif key not in parameter_names or key in binding.body_fields:
                data[key] = value if isinstance(value, str) else json.dumps(value)

        return data, files

    async def _read_file(self, file_path: str) -> Tuple[str, bytes, str]:
        path = anyio.Path(Path(file_path).expanduser())
        try:
            content = await path.read_bytes()
        except OSError as exc:
            raise ExecutionError(f"Failed to read file {file_path}: {exc}") from exc
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return path.name, content, mime_type

    async def _map_response(self, response: httpx.Response) -> HttpResult:
        content_type = response.headers.get("content-type", "")
        media = _media(content_type)

        if not response.content:
            payload: Any = None
        elif media == "application/json" or media.endswith("+json") or not media:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
        elif media.startswith("text/") or media in _TEXT_MEDIA_TYPES:
            payload = response.text
        else:
            payload = await self._save_download(response.content, media)

        return HttpResult(status_code=response.status_code, content_type=media, payload=payload)

    async def _save_download(self, content: bytes, media: str) -> Dict[str, Any]:
        directory = anyio.Path(self.download_dir or tempfile.gettempdir())
        await directory.mkdir(parents=True, exist_ok=True)
        extension = mimetypes.guess_extension(media) or ""
        target = directory / f"{uuid.uuid4().hex}{extension}"
        await target.write_bytes(content)
        logger.info("Saved %s response (%s bytes) to %s", media, len(content), target)
        return {"file": str(target), "content_type": media, "size": len(content)}

    def _error_body(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text
