"""Helpers for the JSON documents kept in the data directory."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def read_json_document(path: Path) -> dict[str, Any] | None:
    """Return the parsed document, or ``None`` when the file does not exist yet."""
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def write_json_document(path: Path, document: dict[str, Any]) -> None:
    """Write ``document`` to a temporary file, then swap it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    tmp_path.replace(path)
