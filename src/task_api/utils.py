from __future__ import annotations

import json
from typing import Any, Dict

from .errors import InvalidInputError


# PUBLIC_INTERFACE
def success_envelope(data: Any) -> Dict[str, Any]:
    """
    Build the standard success envelope.

    Args:
        data: Payload of the response. None is kept and serialized as null.

    Returns:
        Dict with keys: success, data.
    """
    return {"success": True, "data": data}


# PUBLIC_INTERFACE
def error_envelope(message: str) -> Dict[str, Any]:
    """Build the standard failure envelope: success false plus an error message."""
    return {"success": False, "error": message}


# PUBLIC_INTERFACE
def parse_json_body(raw: bytes) -> Any:
    """
    Decode a raw request body as JSON.

    Raises:
        InvalidInputError: if the body is empty/whitespace, or not valid UTF-8 JSON.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInputError("request body is not valid JSON") from exc
    if not text.strip():
        raise InvalidInputError("request body must not be empty")
    try:
        return json.loads(text)
    except ValueError as exc:
        raise InvalidInputError("request body is not valid JSON") from exc
