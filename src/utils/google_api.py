"""Small helpers around Google API client requests, pagination and retries."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Iterator, TypeVar

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLOUD_BUILD_BASE_URL = "https://cloudbuild.googleapis.com/v1"

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def http_status(error: BaseException) -> int | None:
    """Return the HTTP status carried by an `HttpError`, if any."""
    resp = getattr(error, "resp", None)
    status = getattr(resp, "status", None)
    return int(status) if isinstance(status, int) else None


def is_retryable_google_api_error(error: BaseException) -> bool:
    """Return True when an exception is likely transient/retryable."""
    if isinstance(error, HttpError):
        return http_status(error) in _RETRYABLE_STATUS_CODES
    if isinstance(error, (TimeoutError, ConnectionError, OSError)):
        return True
    return False


def execute_with_retry(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    base_delay_s: float = 0.5,
    max_delay_s: float = 8.0,
) -> T:
    """Execute `fn()` with exponential backoff retries for transient errors.

    Args:
        fn: Callable that performs a single API request and returns the decoded payload.
        retries: Number of retries after the initial attempt. Zero disables retrying.
        base_delay_s: Base delay in seconds.
        max_delay_s: Max delay in seconds.

    Returns:
        The return value of `fn()`.

    Raises:
        The last exception if all retries fail or the error is non-retryable.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            if attempt >= retries or not is_retryable_google_api_error(exc):
                raise
            delay_s = min(max_delay_s, base_delay_s * (2**attempt))
            delay_s *= 0.5 + random.random()  # jitter in [0.5x, 1.5x)
            logger.info(
                "Transient Cloud Build API error (%s), retry %d/%d in %.2fs",
                exc,
                attempt + 1,
                retries,
                delay_s,
            )
            time.sleep(delay_s)
            attempt += 1


def iter_page_items(
    fetch_page: Callable[[str | None], dict[str, Any]],
    *,
    items_field: str,
    page_token: str | None = None,
    max_api_calls: int | None = None,
) -> Iterator[dict[str, Any]]:
    """Lazily yield items across a paginated list endpoint.

    Pages are only requested once the items of the previous page have been
    consumed, so abandoning the iterator stops issuing requests.

    Args:
        fetch_page: Function that accepts an optional page token and returns a parsed
            response payload (dict).
        items_field: Response field containing list items (e.g., "triggers").
        page_token: Token of the first page to fetch, if resuming a listing.
        max_api_calls: Optional cap on the number of pages requested.
    """
    api_calls = 0

    while True:
        page = fetch_page(page_token)
        api_calls += 1
        raw_items = page.get(items_field) or []
        if isinstance(raw_items, list):
            yield from (x for x in raw_items if isinstance(x, dict))
        page_token = page.get("nextPageToken")
        if not page_token:
            return
        if max_api_calls is not None and api_calls >= max_api_calls:
            return
