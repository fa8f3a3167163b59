"""Logging setup and credential masking for upstream headers and settings."""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any, Dict, Mapping, Optional

MASK = "***REDACTED***"

_SENSITIVE_KEYS = re.compile(
    r"(token|secret|api[_-]?key|app[_-]?key|password|authorization|cookie)", re.IGNORECASE
)
# settings holding a JSON object of upstream headers
_HEADER_BUNDLE_KEYS = {"openapi_mcp_headers"}


def configure_logging(level: str) -> None:
    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Tool arguments or headers with credential-looking values masked."""
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        if _SENSITIVE_KEYS.search(str(key)):
            redacted[key] = MASK
        elif isinstance(value, Mapping):
            redacted[key] = redact_payload(value)
        elif isinstance(value, list):
            redacted[key] = [
                redact_payload(item) if isinstance(item, Mapping) else item for item in value
            ]
        else:
            redacted[key] = value
    return redacted


def redact_header_bundle(raw: Optional[str]) -> Optional[str]:
    """Mask every value of an ``OPENAPI_MCP_HEADERS`` style JSON object.

    Header names stay visible; an unparsable bundle is masked whole.
    """
    if not raw:
        return raw
    try:
        headers = json.loads(raw)
    except json.JSONDecodeError:
        return MASK
    if not isinstance(headers, dict):
        return MASK
    return json.dumps({name: MASK for name in headers})


def redact_settings(values: Mapping[str, Any]) -> Dict[str, Any]:
    redacted = redact_payload(values)
    for key in _HEADER_BUNDLE_KEYS:
        if key in redacted:
            redacted[key] = redact_header_bundle(redacted[key])
    return redacted
