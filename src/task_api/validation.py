"""
Input validation rules for task fields.

These are plain functions without side effects. The HTTP layer applies them to
request bodies and the store applies them again to its own arguments, since the
store can be used without going through the API.
"""
from __future__ import annotations

import re
from typing import Any, Mapping, Union

from .errors import InvalidInputError
from .models import TaskPatch

MAX_TITLE_LENGTH = 200

_INT_RE = re.compile(r"^[+-]?\d+$", re.ASCII)

# Characters removed by trimming: ECMAScript WhiteSpace and LineTerminator
TRIM_CHARS = (
    "\t\n\v\f\r \u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
    "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)


def utf16_length(value: str) -> int:
    """Length of `value` in UTF-16 code units (astral characters count twice)."""
    return len(value.encode("utf-16-le", "surrogatepass")) // 2


# PUBLIC_INTERFACE
def validate_id(raw: Any) -> int:
    """Return `raw` as a positive integer id or raise InvalidInputError."""
    if isinstance(raw, bool):
        raise InvalidInputError("invalid task id")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _INT_RE.match(raw.strip(TRIM_CHARS)):
        value = int(raw.strip(TRIM_CHARS))
    else:
        raise InvalidInputError("invalid task id")
    if value <= 0:
        raise InvalidInputError("invalid task id")
    return value


# PUBLIC_INTERFACE
def validate_title(raw: Any) -> str:
    """
    Return the trimmed title or raise InvalidInputError.

    The length limit applies to the title as submitted, in UTF-16 code units.
    """
    if not isinstance(raw, str):
        raise InvalidInputError("title must be a string")
    trimmed = raw.strip(TRIM_CHARS)
    if not trimmed:
        raise InvalidInputError("title must not be empty")
    if utf16_length(raw) > MAX_TITLE_LENGTH:
        raise InvalidInputError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    return trimmed


# PUBLIC_INTERFACE
def validate_completed(raw: Any) -> bool:
    """Return `raw` if it is strictly a boolean, otherwise raise InvalidInputError."""
    if not isinstance(raw, bool):
        raise InvalidInputError("completed must be a boolean")
    return raw


def _require_object(body: Any) -> Mapping[str, Any]:
    if not isinstance(body, Mapping):
        raise InvalidInputError("request body must be a JSON object")
    return body


# PUBLIC_INTERFACE
def parse_patch(changes: Union[TaskPatch, Mapping[str, Any]], *, require_fields: bool = False) -> TaskPatch:
    """
    Validate the supplied fields of an update and return them as a TaskPatch.

    Unknown keys are ignored. With `require_fields`, a patch carrying neither
    `title` nor `completed` is rejected.
    """
    if isinstance(changes, TaskPatch):
        changes = changes.changes()
    changes = _require_object(changes)

    fields = {}
    if "title" in changes:
        fields["title"] = validate_title(changes["title"])
    if "completed" in changes:
        fields["completed"] = validate_completed(changes["completed"])
    if require_fields and not fields:
        raise InvalidInputError("no fields provided to update")
    return TaskPatch(**fields)


# PUBLIC_INTERFACE
def validate_update_payload(body: Any) -> TaskPatch:
    """Validate a PATCH request body; at least one field must be present."""
    return parse_patch(_require_object(body), require_fields=True)


# PUBLIC_INTERFACE
def validate_create_payload(body: Any) -> str:
    """Validate a POST request body and return the trimmed title."""
    body = _require_object(body)
    if "title" not in body:
        raise InvalidInputError("title is required")
    return validate_title(body["title"])
