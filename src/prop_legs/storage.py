"""Local file helpers for slates and reports."""

from __future__ import annotations

import json
import os
import uuid
from contextlib import suppress
from pathlib import Path
from typing import Any


def atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".tmp-{path.name}-{uuid.uuid4().hex}")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def atomic_write_json(path: Path, value: Any) -> None:
    payload = json.dumps(value, sort_keys=True, ensure_ascii=True, indent=2) + "\n"
    atomic_write_text(path, payload)


def load_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON in {path}: {exc}") from exc


def load_rows(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array or JSONL file of objects; non-object entries are skipped."""
    if not path.exists():
        raise FileNotFoundError(f"file not found: {path}")
    if path.suffix == ".jsonl":
        rows: list[dict[str, Any]] = []
        for line in path.read_text(encoding="utf-8").splitlines():
            raw = line.strip()
            if not raw:
                continue
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"invalid JSONL in {path}: {exc}") from exc
            if isinstance(payload, dict):
                rows.append(payload)
        return rows
    payload = load_json(path)
    if isinstance(payload, dict):
        payload = payload.get("rows", [])
    if not isinstance(payload, list):
        raise ValueError(f"expected a list of rows in {path}")
    return [row for row in payload if isinstance(row, dict)]


def load_mapping(path: Path) -> dict[str, Any]:
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object in {path}")
    return payload
