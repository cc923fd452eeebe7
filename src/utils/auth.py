"""Authentication helpers for the Cloud Build API."""

from __future__ import annotations

import os
from typing import Any, Iterable, Mapping

import httplib2
from google.auth import default as google_auth_default
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import InstalledAppFlow

CLOUD_PLATFORM_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
AUTH_METHODS = ("service", "user", "adc")


def resolve_auth_method(
    auth_method: str | None,
    *,
    credentials_path: str | None = None,
    credentials_info: Mapping[str, Any] | None = None,
) -> str:
    """Return the auth method implied by the configured credential sources.

    Without an explicit method, a key file or inline key selects "service" and
    nothing selects "adc". Combinations that would ignore a configured key
    are rejected.
    """
    has_key = bool(credentials_path) or credentials_info is not None
    if not auth_method:
        return "service" if has_key else "adc"

    if auth_method not in AUTH_METHODS:
        raise ValueError("auth must be 'service', 'user', or 'adc'")
    if auth_method == "adc" and has_key:
        raise ValueError("auth 'adc' cannot be combined with a key file or inline credentials.")
    if auth_method == "user" and credentials_info is not None:
        raise ValueError("Inline credentials require auth 'service'.")
    return auth_method


def get_credentials(
    auth_method: str | None,
    credentials_path: str | None,
    scopes: Iterable[str] = CLOUD_PLATFORM_SCOPES,
    *,
    credentials_info: Mapping[str, Any] | None = None,
):
    """
    Return Google credentials from a service account key, OAuth user flow, or ADC.

    Parameters
    ----------
    auth_method:
        One of "service", "user", "adc", or None to infer it from the
        credential sources (see `resolve_auth_method`).
    credentials_path:
        Service account key file ("service") or OAuth client secrets file ("user").
    scopes:
        Iterable of OAuth scopes to request.
    credentials_info:
        Inline service account key material (the parsed JSON key). Takes
        precedence over `credentials_path`.
    """
    method = resolve_auth_method(
        auth_method,
        credentials_path=credentials_path,
        credentials_info=credentials_info,
    )
    scopes_list = list(scopes)

    if method == "adc":
        credentials, _ = google_auth_default(scopes=scopes_list)
        return credentials

    if method == "user":
        _ensure_credentials_file(credentials_path)
        flow = InstalledAppFlow.from_client_secrets_file(credentials_path, scopes_list)
        return flow.run_local_server(port=0)

    if credentials_info is not None:
        return service_account.Credentials.from_service_account_info(
            dict(credentials_info),
            scopes=scopes_list,
        )
    _ensure_credentials_file(credentials_path)
    return service_account.Credentials.from_service_account_file(
        credentials_path,
        scopes=scopes_list,
    )


def authorized_http(credentials) -> AuthorizedHttp:
    """Wrap credentials into an httplib2 transport that refreshes tokens itself."""
    return AuthorizedHttp(credentials, http=httplib2.Http())


def _ensure_credentials_file(path: str | None) -> None:
    if not path or not os.path.exists(path):
        raise FileNotFoundError(
            f"Credentials file not found: {path or '<unset>'}. "
            "Provide --credentials /path/to/file.json or key_filename in the settings.",
        )
