from __future__ import annotations

import httplib2
import pytest
from googleapiclient.errors import HttpError

from utils.google_api import execute_with_retry, http_status, iter_page_items


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": str(status)}), b"{}")


def test_http_status_reads_response_status() -> None:
    assert http_status(_http_error(409)) == 409
    assert http_status(ValueError("no response")) is None


def test_execute_with_retry_retries_transient_errors(monkeypatch) -> None:
    monkeypatch.setattr("utils.google_api.time.sleep", lambda _s: None)
    calls = {"n": 0}

    def flaky() -> dict:
        calls["n"] += 1
        if calls["n"] < 3:
            raise _http_error(503)
        return {"ok": True}

    assert execute_with_retry(flaky, retries=3) == {"ok": True}
    assert calls["n"] == 3


def test_execute_with_retry_gives_up_after_retries(monkeypatch) -> None:
    monkeypatch.setattr("utils.google_api.time.sleep", lambda _s: None)
    calls = {"n": 0}

    def always_failing() -> dict:
        calls["n"] += 1
        raise _http_error(429)

    with pytest.raises(HttpError):
        execute_with_retry(always_failing, retries=2)
    assert calls["n"] == 3


def test_execute_with_retry_does_not_retry_client_errors() -> None:
    calls = {"n": 0}

    def not_found() -> dict:
        calls["n"] += 1
        raise _http_error(404)

    with pytest.raises(HttpError):
        execute_with_retry(not_found)
    assert calls["n"] == 1


def test_iter_page_items_follows_tokens_and_skips_non_dicts() -> None:
    pages = {
        None: {"triggers": [{"id": "a"}, "junk"], "nextPageToken": "t2"},
        "t2": {"triggers": [{"id": "b"}]},
    }
    seen_tokens: list[str | None] = []

    def fetch_page(token: str | None) -> dict:
        seen_tokens.append(token)
        return pages[token]

    items = list(iter_page_items(fetch_page, items_field="triggers"))

    assert items == [{"id": "a"}, {"id": "b"}]
    assert seen_tokens == [None, "t2"]


def test_iter_page_items_handles_missing_items_field() -> None:
    items = list(iter_page_items(lambda _t: {}, items_field="triggers"))
    assert items == []
