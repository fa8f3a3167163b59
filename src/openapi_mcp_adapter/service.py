"""Invocation bridge between tool calls and the upstream REST API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from .executors import ExecutionError, RestExecutor
from .logging import redact_payload
from .models import OperationBinding

logger = logging.getLogger(__name__)


class InvocationBridge:
    """
    Maps inbound tool calls onto HTTP requests.

    Every outcome, including unknown tools and transport failures, comes back
    as a result mapping:
    - success: ``{"content": [{"type": "json", "json": ...}], "status_code": ...}``
    - failure: ``{"content": [{"type": "text", "text": ...}], "is_error": True, ...}``
    """

    def __init__(
        self,
        operation_index: Mapping[str, OperationBinding],
        executor: RestExecutor,
        max_concurrency: int = 20,
    ) -> None:
        self.operation_index = operation_index
        self.executor = executor
        self.semaphore = asyncio.Semaphore(max_concurrency)

    async def call_tool(self, name: str, arguments: Any = None) -> Dict[str, Any]:
        binding = self.operation_index.get(name)
        if binding is None:
            logger.error("Tool not found: %s", name)
            return self._format_error(f"Tool not found: {name}")

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return self._format_error(
                f"Arguments for {name} must be a JSON object, got {type(arguments).__name__}"
            )

        async with self.semaphore:
            logger.info("Executing tool=%s payload=%s", name, redact_payload(arguments))
            try:
                result = await self.executor.execute(binding, arguments)
            except ExecutionError as exc:
                logger.error("Tool execution failed: tool=%s error=%s", name, exc)
                return self._format_error(str(exc), exc.status_code, exc.body)

        return self._format_result(result.payload, result.status_code)

    def _format_result(self, result: Any, status_code: int) -> Dict[str, Any]:
        return {"content": [{"type": "json", "json": result}], "status_code": status_code}

    def _format_error(
        self, message: str, status_code: Optional[int] = None, body: Any = None
    ) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "content": [{"type": "text", "text": message}],
            "is_error": True,
            "status_code": status_code,
        }
        if body is not None:
            error["body"] = body
        return error
