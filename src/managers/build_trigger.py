"""Operations on a single Cloud Build trigger."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from googleapiclient.errors import HttpError

from managers.models import BuildTriggerMetadata, Operation
from utils.google_api import http_status

if TYPE_CHECKING:
    from managers.cloud_build_manager import CloudBuildManager

logger = logging.getLogger(__name__)

TRIGGER_ID_MISSING_ERROR = "A build trigger id is needed to use Cloud Build."

_NOT_FOUND = 404
_CONFLICT = 409


class BuildTrigger:
    """Handle to one build trigger, addressed by its server-assigned id.

    `metadata` is the last trigger payload seen for this id. It is refreshed by
    `get` and `patch` but never cleared, not even after `delete`.
    """

    def __init__(
        self,
        manager: CloudBuildManager,
        trigger_id: str,
        metadata: BuildTriggerMetadata | None = None,
        *,
        user_project: str | None = None,
    ):
        if not trigger_id:
            raise ValueError(TRIGGER_ID_MISSING_ERROR)
        self.manager = manager
        self._id = trigger_id
        self.metadata: BuildTriggerMetadata = metadata or {}
        self.user_project = user_project

    @property
    def id(self) -> str:
        return self._id

    @property
    def path(self) -> str:
        return f"{self.manager.triggers_path}/{self._id}"

    def __repr__(self) -> str:
        return f"BuildTrigger(id={self._id!r}, project_id={self.manager.project_id!r})"

    def _options(self, options: dict[str, Any] | None) -> dict[str, Any]:
        merged = dict(options or {})
        if self.user_project and "userProject" not in merged:
            merged["userProject"] = self.user_project
        return merged

    def get(self, options: dict[str, Any] | None = None) -> BuildTrigger:
        """Fetch the trigger and refresh `metadata`.

        A 409 conflict is retried once; a second conflict is raised.
        """
        return self._get(options, retry_on_conflict=True)

    def _get(self, options: dict[str, Any] | None, *, retry_on_conflict: bool) -> BuildTrigger:
        try:
            metadata = self.manager.request("GET", self.path, query=self._options(options))
        except HttpError as error:
            if retry_on_conflict and http_status(error) == _CONFLICT:
                logger.warning("Conflict while fetching build trigger %s, retrying once", self._id)
                return self._get(options, retry_on_conflict=False)
            raise

        self.metadata = metadata
        return self

    def exists(self, options: dict[str, Any] | None = None) -> bool:
        """Return whether the trigger exists. Only a 404 maps to False."""
        try:
            self.get(options)
        except HttpError as error:
            if http_status(error) == _NOT_FOUND:
                return False
            raise
        return True

    def delete(self, options: dict[str, Any] | None = None) -> None:
        """Delete the trigger. Deleting it twice raises the API's 404."""
        self.manager.request("DELETE", self.path, query=self._options(options))
        logger.info("Deleted build trigger %s", self._id)

    def patch(
        self,
        options: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> BuildTrigger:
        """Send a PATCH with `options` as query parameters and `body` as-is.

        Neither is checked against the trigger schema; the API rejects bad fields.
        """
        updated = self.manager.request("PATCH", self.path, query=self._options(options), body=body)
        if isinstance(updated, dict) and updated:
            self.metadata = updated
        return self

    def run(
        self,
        options: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Operation:
        """Start a build from the trigger.

        Args:
            options: Query options (e.g. `userProject`).
            body: Optional `RepoSource` selecting the revision to build.

        Returns:
            The started operation. Poll it with `CloudBuildManager.get_operation`.
        """
        payload = self.manager.request(
            "POST", f"{self.path}:run", query=self._options(options), body=body
        )
        operation = Operation.from_api(payload)
        logger.info("Started build operation %s from trigger %s", operation.name, self._id)
        return operation
