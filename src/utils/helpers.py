"""Shared helpers for Cloud Build tooling."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


def ensure_output_directory(path: str) -> None:
    """Create the parent directory of an output file if needed."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def load_payload_file(path: str) -> dict[str, Any]:
    """Read a JSON or YAML request body from disk."""
    with open(path, "r", encoding="utf-8") as handle:
        if path.endswith((".yaml", ".yml")):
            payload = yaml.safe_load(handle) or {}
        else:
            payload = json.load(handle)

    if not isinstance(payload, dict):
        raise ValueError(f"{path} must contain a JSON/YAML object.")
    return payload


def write_json_output(payload: Any, output: str | None) -> str:
    """Serialize `payload` as pretty JSON to `output` (or return it for stdout)."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        ensure_output_directory(output)
        with open(output, "w", encoding="utf-8") as handle:
            handle.write(text)
    return text
