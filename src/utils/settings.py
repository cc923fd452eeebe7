"""Client settings for Cloud Build scripts.

Settings are resolved from explicit values (e.g. CLI flags), then a YAML file,
then a JSON payload in an environment variable. The project id additionally
falls back to `GOOGLE_CLOUD_PROJECT`.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from utils.auth import resolve_auth_method
from utils.google_api import CLOUD_BUILD_BASE_URL

DEFAULT_SETTINGS_CONFIG = "config/cloudbuild.yaml"
SETTINGS_ENV_VAR = "CLOUDBUILD_CONFIG_JSON"
PROJECT_ENV_VAR = "GOOGLE_CLOUD_PROJECT"

_PROJECT_ID_MISSING_ERROR = (
    "No project id configured. Provide --project-id, set project_id in "
    f"{DEFAULT_SETTINGS_CONFIG}, or export {PROJECT_ENV_VAR}."
)

# The original client accepted camelCase option names; keep them as aliases.
_KEY_ALIASES = {
    "projectId": "project_id",
    "keyFilename": "key_filename",
    "autoRetry": "auto_retry",
    "maxRetries": "max_retries",
    "baseUrl": "base_url",
}


@dataclass(frozen=True)
class CloudBuildSettings:
    """Connection settings for a `CloudBuildManager`."""

    project_id: str
    auth: str = "adc"
    key_filename: str | None = None
    credentials: dict[str, Any] | None = None
    auto_retry: bool = True
    max_retries: int = 3
    base_url: str = CLOUD_BUILD_BASE_URL


def load_settings(config_path: str | None = None, **overrides: Any) -> CloudBuildSettings:
    """Load Cloud Build settings.

    The file can either be a raw mapping or wrap it in a top-level `cloudbuild`
    key, e.g.:

    ```yaml
    cloudbuild:
      project_id: my-project
      auth: service
      key_filename: credentials.json
      max_retries: 5
    ```

    Args:
        config_path: Optional explicit YAML path.
        **overrides: Explicit values; `None` values are ignored.

    Returns:
        The resolved settings.

    Without an explicit `auth`, a `key_filename` or inline `credentials`
    selects service account auth; otherwise ADC is used.

    Raises:
        ValueError: If the configuration is malformed, no project id is found,
            or `auth` contradicts the configured key material.
    """
    raw = _load_settings_from_file(config_path)
    if raw is None:
        raw = _load_settings_from_env() or {}

    merged = _normalize_keys(raw)
    merged.update(
        {key: value for key, value in _normalize_keys(overrides).items() if value is not None}
    )

    if not merged.get("project_id"):
        merged["project_id"] = os.getenv(PROJECT_ENV_VAR)
    if not merged.get("project_id"):
        raise ValueError(_PROJECT_ID_MISSING_ERROR)

    _validate(merged)
    merged["auth"] = resolve_auth_method(
        merged.get("auth"),
        credentials_path=merged.get("key_filename"),
        credentials_info=merged.get("credentials"),
    )
    return CloudBuildSettings(**merged)


def _normalize_keys(raw: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(CloudBuildSettings)}
    cleaned: dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown Cloud Build setting: '{key}'")
        cleaned[name] = value
    return cleaned


def _validate(settings: dict[str, Any]) -> None:
    max_retries = settings.get("max_retries")
    if max_retries is not None and (
        isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0
    ):
        raise ValueError("max_retries must be a non-negative integer.")

    auto_retry = settings.get("auto_retry")
    if auto_retry is not None and not isinstance(auto_retry, bool):
        raise ValueError("auto_retry must be a boolean.")

    credentials = settings.get("credentials")
    if credentials is not None and not isinstance(credentials, dict):
        raise ValueError("credentials must be a mapping with service account key fields.")


def _resolve_settings_path(config_path: str | None) -> Path | None:
    if config_path:
        return Path(config_path)

    default_path = Path(DEFAULT_SETTINGS_CONFIG)
    if default_path.exists():
        return default_path

    return None


def _load_settings_from_file(config_path: str | None) -> dict[str, Any] | None:
    path_to_load = _resolve_settings_path(config_path)
    if not path_to_load or not path_to_load.exists():
        return None

    with open(path_to_load, "r", encoding="utf-8") as config_file:
        raw_data = yaml.safe_load(config_file) or {}

    if not isinstance(raw_data, dict):
        raise ValueError("Cloud Build config must be a mapping.")

    raw_settings = raw_data.get("cloudbuild", raw_data)
    if raw_settings is None:
        return None
    if not isinstance(raw_settings, dict):
        raise ValueError("Cloud Build config must be a mapping.")
    return raw_settings


def _load_settings_from_env() -> dict[str, Any] | None:
    env_payload = os.getenv(SETTINGS_ENV_VAR)
    if not env_payload:
        return None

    try:
        parsed = json.loads(env_payload)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Failed to parse {SETTINGS_ENV_VAR} environment variable as JSON.",
        ) from exc

    if not isinstance(parsed, dict):
        raise ValueError(f"{SETTINGS_ENV_VAR} must contain a JSON object.")
    return parsed
