"""Cloud Build trigger operations for a project (create/list/operations)."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Iterator

from googleapiclient.http import HttpRequest
from googleapiclient.model import JsonModel

from managers.build_trigger import BuildTrigger
from managers.models import (
    BuildTriggerConfig,
    BuildTriggerMetadata,
    BuildTriggerQuery,
    Operation,
)
from utils.auth import authorized_http, get_credentials
from utils.google_api import CLOUD_BUILD_BASE_URL, execute_with_retry, iter_page_items
from utils.settings import CloudBuildSettings

logger = logging.getLogger(__name__)

_PROJECT_ID_MISSING_ERROR = "A project id is needed to use Cloud Build."
_USER_PROJECT_HEADER = "x-goog-user-project"


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class CloudBuildManager:
    """Build trigger operations (create/list/run/operations) for one project.

    Requests are built as method/path/query/body and sent through the
    authorized `http` transport; non-2xx responses raise `HttpError`.
    """

    def __init__(
        self,
        http: Any,
        project_id: str,
        *,
        base_url: str = CLOUD_BUILD_BASE_URL,
        auto_retry: bool = True,
        max_retries: int = 3,
    ):
        if not project_id:
            raise ValueError(_PROJECT_ID_MISSING_ERROR)
        self.http = http
        self.project_id = project_id
        self.base_url = base_url.rstrip("/")
        self.auto_retry = auto_retry
        self.max_retries = max_retries
        self._model = JsonModel(data_wrapper=False)

    @classmethod
    def from_credentials(cls, credentials: Any, project_id: str, **kwargs: Any) -> CloudBuildManager:
        return cls(authorized_http(credentials), project_id, **kwargs)

    @classmethod
    def from_settings(cls, settings: CloudBuildSettings) -> CloudBuildManager:
        """Authenticate with the configured method and build a manager."""
        credentials = get_credentials(
            settings.auth,
            settings.key_filename,
            credentials_info=settings.credentials,
        )
        return cls.from_credentials(
            credentials,
            settings.project_id,
            base_url=settings.base_url,
            auto_retry=settings.auto_retry,
            max_retries=settings.max_retries,
        )

    @property
    def triggers_path(self) -> str:
        return f"/projects/{self.project_id}/triggers"

    def request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one API request and return the decoded JSON payload.

        `userProject` in `query` is sent as the quota project header; `None`
        query values are dropped.
        """
        params = dict(query or {})
        user_project = params.pop("userProject", None)
        params = {k: _query_value(v) for k, v in params.items() if v is not None}

        headers, _, query_string, payload = self._model.request({}, {}, params, body)
        if user_project:
            headers[_USER_PROJECT_HEADER] = user_project

        uri = f"{self.base_url}{path}{query_string}"
        logger.debug("Cloud Build API %s %s", method, uri)
        req = HttpRequest(
            self.http,
            self._model.response,
            uri,
            method=method,
            body=payload,
            headers=headers,
        )
        retries = self.max_retries if self.auto_retry else 0
        return execute_with_retry(req.execute, retries=retries)

    def build_trigger(
        self, trigger_id: str, metadata: BuildTriggerMetadata | None = None
    ) -> BuildTrigger:
        """Return a handle for an existing trigger id (no request is made)."""
        return BuildTrigger(self, trigger_id, metadata)

    def create_build_trigger(self, config: BuildTriggerConfig | None = None) -> BuildTrigger:
        """Create a trigger; an empty config is valid and gets server defaults."""
        created = self.request("POST", self.triggers_path, body=dict(config or {}))
        trigger = self.build_trigger(created.get("id"), created)
        logger.info("Created build trigger %s in project %s", trigger.id, self.project_id)
        return trigger

    def _fetch_trigger_page(
        self, query: BuildTriggerQuery, page_token: str | None
    ) -> dict[str, Any]:
        return self.request(
            "GET",
            self.triggers_path,
            query={
                "pageSize": query.get("pageSize"),
                "pageToken": page_token,
                "userProject": query.get("userProject"),
            },
        )

    def get_build_triggers(
        self, query: BuildTriggerQuery | None = None
    ) -> tuple[list[BuildTrigger], BuildTriggerQuery | None]:
        """List triggers.

        Args:
            query: Listing options. With `autoPaginate`, every page (bounded by
                `maxApiCalls`/`maxResults`) is fetched and no next query is returned.

        Returns:
            Tuple of (triggers, next_query). `next_query` is the given query with
            the new `pageToken`, or None when there are no further pages.
        """
        query = query or {}
        if query.get("autoPaginate"):
            return list(self.iter_build_triggers(query)), None

        page = self._fetch_trigger_page(query, query.get("pageToken"))
        raw_triggers = page.get("triggers") or []
        triggers = [self.build_trigger(t.get("id"), t) for t in raw_triggers if isinstance(t, dict)]

        next_query: BuildTriggerQuery | None = None
        next_page_token = page.get("nextPageToken")
        if next_page_token:
            next_query = {**query, "pageToken": next_page_token}

        return triggers, next_query

    def iter_build_triggers(self, query: BuildTriggerQuery | None = None) -> Iterator[BuildTrigger]:
        """Lazily yield triggers across pages, fetching each page on demand."""
        query = query or {}
        records: Iterator[dict[str, Any]] = iter_page_items(
            lambda page_token: self._fetch_trigger_page(query, page_token),
            items_field="triggers",
            page_token=query.get("pageToken"),
            max_api_calls=query.get("maxApiCalls"),
        )
        max_results = query.get("maxResults")
        if max_results is not None:
            records = itertools.islice(records, max_results)

        for record in records:
            yield self.build_trigger(record.get("id"), record)

    def get_operation(self, name: str) -> Operation:
        """Fetch a long-running operation by its full resource name."""
        payload = self.request("GET", f"/{name.lstrip('/')}")
        return Operation.from_api(payload)

    def wait_for_operation(
        self,
        name: str,
        *,
        timeout_s: float = 600.0,
        poll_interval_s: float = 5.0,
    ) -> Operation:
        """Poll an operation until it is done.

        Raises:
            TimeoutError: If the operation is still running after `timeout_s`.
        """
        deadline = time.monotonic() + timeout_s
        while True:
            operation = self.get_operation(name)
            if operation.done:
                return operation
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Operation {name} did not finish within {timeout_s}s.")
            logger.debug("Operation %s still running, polling again in %ss", name, poll_interval_s)
            time.sleep(poll_interval_s)
