"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

The schema is built from an application backed by an in-memory store, so no
database is needed, and written to interfaces/openapi.json so that API clients
and documentation tools can consume a stable spec without running the server.

Usage:
    python -m task_api.generate_openapi [output-path]
"""
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags
from .repositories import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = os.path.join("interfaces", "openapi.json")


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains every tag declared in openapi_tags,
    without overriding tag definitions that are already present.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def build_schema() -> Dict[str, Any]:
    """Return the OpenAPI document of the task API."""
    schema = create_app(store=TaskStore(None)).openapi()
    _ensure_tags(schema)
    return schema


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Write the OpenAPI schema to `out_path` (default interfaces/openapi.json) and return the path."""
    out_path = out_path or DEFAULT_OUTPUT
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(build_schema(), f, indent=2, ensure_ascii=False)
    logger.info("Wrote OpenAPI schema to %s", out_path)
    return out_path


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    path = generate_openapi(args[0] if args else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
