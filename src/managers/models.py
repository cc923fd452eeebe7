"""Payload shapes for the Cloud Build trigger API.

Request/response bodies stay plain dicts using the API's camelCase field names;
the TypedDicts below only document their shape. Operations are decoded into
dataclasses because callers branch on `done`/`error`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict


class RepoSource(TypedDict, total=False):
    """Location of the source in a Google Cloud Source Repository.

    Exactly one of `branchName`, `tagName` or `commitSha` selects the revision.
    """

    projectId: str
    repoName: str
    dir: str
    branchName: str
    tagName: str
    commitSha: str


class BuildTriggerConfig(TypedDict, total=False):
    """Writable trigger fields (create/patch body)."""

    description: str
    triggerTemplate: RepoSource
    disabled: bool
    substitutions: dict[str, str]
    ignoredFiles: list[str]
    includedFiles: list[str]
    build: dict[str, Any]
    filename: str


class BuildTriggerMetadata(BuildTriggerConfig, total=False):
    """Trigger resource as returned by the API."""

    id: str
    createTime: str


class BuildTriggerQuery(TypedDict, total=False):
    """Options for listing triggers."""

    autoPaginate: bool
    maxApiCalls: int
    maxResults: int
    pageSize: int
    pageToken: str
    userProject: str


@dataclass(frozen=True)
class Status:
    """Error status of a failed operation."""

    code: int
    message: str
    details: list[Any] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Status:
        return cls(
            code=int(payload.get("code") or 0),
            message=str(payload.get("message") or ""),
            details=list(payload.get("details") or []),
        )


@dataclass(frozen=True)
class Operation:
    """A long-running server-side job, e.g. a build started by running a trigger."""

    name: str
    done: bool = False
    metadata: dict[str, Any] | None = None
    error: Status | None = None
    response: dict[str, Any] | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Operation:
        raw_error = payload.get("error")
        return cls(
            name=str(payload.get("name") or ""),
            done=bool(payload.get("done", False)),
            metadata=payload.get("metadata"),
            error=Status.from_api(raw_error) if isinstance(raw_error, dict) else None,
            response=payload.get("response"),
        )

    @property
    def failed(self) -> bool:
        return self.done and self.error is not None
