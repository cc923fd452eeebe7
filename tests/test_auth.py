from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from utils.auth import (
    CLOUD_PLATFORM_SCOPES,
    authorized_http,
    get_credentials,
    resolve_auth_method,
)


def test_get_credentials_adc_uses_default() -> None:
    creds = MagicMock()
    with patch("utils.auth.google_auth_default", return_value=(creds, "proj")) as default:
        assert get_credentials("adc", None) is creds
    default.assert_called_once_with(scopes=CLOUD_PLATFORM_SCOPES)


def test_get_credentials_service_from_inline_info() -> None:
    info = {"client_email": "sa@p.iam.gserviceaccount.com", "private_key": "k"}
    with patch("utils.auth.service_account.Credentials") as credentials_cls:
        get_credentials("service", None, credentials_info=info)
    credentials_cls.from_service_account_info.assert_called_once_with(
        info, scopes=CLOUD_PLATFORM_SCOPES
    )


def test_get_credentials_service_from_key_file(tmp_path) -> None:
    key_file = tmp_path / "credentials.json"
    key_file.write_text("{}", encoding="utf-8")
    with patch("utils.auth.service_account.Credentials") as credentials_cls:
        get_credentials("service", str(key_file))
    credentials_cls.from_service_account_file.assert_called_once_with(
        str(key_file), scopes=CLOUD_PLATFORM_SCOPES
    )


def test_get_credentials_service_requires_existing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        get_credentials("service", str(tmp_path / "missing.json"))


def test_get_credentials_rejects_unknown_method() -> None:
    with pytest.raises(ValueError):
        get_credentials("token", None)


def test_authorized_http_wraps_credentials() -> None:
    creds = MagicMock()
    http = authorized_http(creds)
    assert http.credentials is creds


@pytest.mark.parametrize(
    ("auth_method", "credentials_path", "credentials_info", "expected"),
    [
        (None, None, None, "adc"),
        (None, "key.json", None, "service"),
        (None, None, {"client_email": "sa@p"}, "service"),
        ("user", "client_secrets.json", None, "user"),
        ("service", "key.json", None, "service"),
    ],
)
def test_resolve_auth_method(auth_method, credentials_path, credentials_info, expected) -> None:
    assert (
        resolve_auth_method(
            auth_method,
            credentials_path=credentials_path,
            credentials_info=credentials_info,
        )
        == expected
    )


@pytest.mark.parametrize(
    ("auth_method", "credentials_path", "credentials_info"),
    [
        ("adc", "key.json", None),
        ("adc", None, {"client_email": "sa@p"}),
        ("user", None, {"client_email": "sa@p"}),
    ],
)
def test_resolve_auth_method_rejects_ignored_key_material(
    auth_method, credentials_path, credentials_info
) -> None:
    with pytest.raises(ValueError):
        resolve_auth_method(
            auth_method,
            credentials_path=credentials_path,
            credentials_info=credentials_info,
        )


def test_get_credentials_infers_service_account_from_inline_info() -> None:
    info = {"client_email": "sa@p.iam.gserviceaccount.com", "private_key": "k"}
    with (
        patch("utils.auth.google_auth_default") as default,
        patch("utils.auth.service_account.Credentials") as credentials_cls,
    ):
        get_credentials(None, None, credentials_info=info)
    credentials_cls.from_service_account_info.assert_called_once_with(
        info, scopes=CLOUD_PLATFORM_SCOPES
    )
    default.assert_not_called()
