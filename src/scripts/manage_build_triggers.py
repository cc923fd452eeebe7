#!/usr/bin/env python3
"""
List, create, run and delete Cloud Build triggers from the command line.

Examples:
    manage_build_triggers.py --project-id my-project list --all
    manage_build_triggers.py create --body trigger.yaml
    manage_build_triggers.py run 0a1b2c --branch main --wait
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Any

from googleapiclient.errors import HttpError

SRC_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from managers.build_trigger import BuildTrigger  # noqa: E402
from managers.cloud_build_manager import CloudBuildManager  # noqa: E402
from managers.models import BuildTriggerQuery, Operation, RepoSource  # noqa: E402
from utils.helpers import load_payload_file, write_json_output  # noqa: E402
from utils.settings import DEFAULT_SETTINGS_CONFIG, load_settings  # noqa: E402


def trigger_payload(trigger: BuildTrigger) -> dict[str, Any]:
    return {"id": trigger.id, **trigger.metadata}


def operation_payload(operation: Operation) -> dict[str, Any]:
    payload: dict[str, Any] = {"name": operation.name, "done": operation.done}
    if operation.metadata is not None:
        payload["metadata"] = operation.metadata
    if operation.error is not None:
        payload["error"] = {
            "code": operation.error.code,
            "message": operation.error.message,
            "details": operation.error.details,
        }
    if operation.response is not None:
        payload["response"] = operation.response
    return payload


def _revision_body(args: argparse.Namespace) -> RepoSource | None:
    body: RepoSource = {}
    if args.branch:
        body["branchName"] = args.branch
    if args.tag:
        body["tagName"] = args.tag
    if args.commit_sha:
        body["commitSha"] = args.commit_sha
    if len(body) > 1:
        raise ValueError("Provide at most one of --branch, --tag or --commit-sha.")
    return body or None


def run_command(manager: CloudBuildManager, args: argparse.Namespace) -> Any:
    """Execute the selected subcommand and return a JSON-serializable result."""
    options = {"userProject": args.user_project} if args.user_project else None

    if args.command == "list":
        query: BuildTriggerQuery = {}
        if args.page_size:
            query["pageSize"] = args.page_size
        if args.page_token:
            query["pageToken"] = args.page_token
        if args.user_project:
            query["userProject"] = args.user_project
        if args.all:
            query["autoPaginate"] = True
        triggers, next_query = manager.get_build_triggers(query)
        return {
            "triggers": [trigger_payload(t) for t in triggers],
            "nextPageToken": (next_query or {}).get("pageToken"),
        }

    if args.command == "create":
        config = load_payload_file(args.body) if args.body else {}
        return trigger_payload(manager.create_build_trigger(config))

    if args.command == "operation":
        if args.wait:
            return operation_payload(
                manager.wait_for_operation(args.name, timeout_s=args.timeout)
            )
        return operation_payload(manager.get_operation(args.name))

    trigger = manager.build_trigger(args.trigger_id)

    if args.command == "get":
        return trigger_payload(trigger.get(options))

    if args.command == "exists":
        return {"id": trigger.id, "exists": trigger.exists(options)}

    if args.command == "delete":
        trigger.delete(options)
        return {"id": trigger.id, "deleted": True}

    if args.command == "patch":
        body = load_payload_file(args.body) if args.body else None
        return trigger_payload(trigger.patch(options, body))

    if args.command == "run":
        operation = trigger.run(options, _revision_body(args))
        if args.wait:
            operation = manager.wait_for_operation(operation.name, timeout_s=args.timeout)
        return operation_payload(operation)

    raise ValueError(f"Unknown command: {args.command}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Manage Google Cloud Build triggers for a project.",
    )
    parser.add_argument("--project-id", help="GCP project id. Defaults to the settings file/env.")
    parser.add_argument(
        "--config-path",
        help=f"Path to the Cloud Build settings YAML. Defaults to {DEFAULT_SETTINGS_CONFIG}.",
    )
    parser.add_argument(
        "--auth",
        choices=["service", "user", "adc"],
        help=(
            "Auth method: service (Service Account), user (OAuth), or adc (gcloud / ADC). "
            "Default: service when a key file or inline key is configured, otherwise adc."
        ),
    )
    parser.add_argument(
        "--credentials",
        help=(
            "Path to Service Account JSON (for --auth service) or OAuth client_secrets.json "
            "(for --auth user). Not required for --auth adc."
        ),
    )
    parser.add_argument(
        "--user-project",
        help="Project billed for the request (sent as the quota project).",
    )
    parser.add_argument(
        "--no-retry",
        action="store_true",
        help="Disable retries of transient (429/5xx) API errors.",
    )
    parser.add_argument(
        "--output",
        help="Optional path to write the result as JSON. Defaults to printing to stdout.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Python logging level (e.g. INFO, DEBUG). Default: WARNING",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List build triggers.")
    list_parser.add_argument("--all", action="store_true", help="Fetch every page.")
    list_parser.add_argument("--page-size", type=int, help="Page size hint.")
    list_parser.add_argument("--page-token", help="Continue a previous listing.")

    create_parser = subparsers.add_parser("create", help="Create a build trigger.")
    create_parser.add_argument("--body", help="JSON/YAML file with the trigger configuration.")

    for name, help_text in (
        ("get", "Show a build trigger."),
        ("exists", "Check whether a build trigger exists."),
        ("delete", "Delete a build trigger."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("trigger_id")

    patch_parser = subparsers.add_parser("patch", help="Patch a build trigger.")
    patch_parser.add_argument("trigger_id")
    patch_parser.add_argument("--body", help="JSON/YAML file with the fields to send.")

    run_parser = subparsers.add_parser("run", help="Run a build trigger.")
    run_parser.add_argument("trigger_id")
    run_parser.add_argument("--branch", help="Branch to build.")
    run_parser.add_argument("--tag", help="Tag to build.")
    run_parser.add_argument("--commit-sha", help="Commit to build.")
    run_parser.add_argument("--wait", action="store_true", help="Poll until the build finishes.")
    run_parser.add_argument("--timeout", type=float, default=600.0, help="Wait timeout in seconds.")

    operation_parser = subparsers.add_parser("operation", help="Show a long-running operation.")
    operation_parser.add_argument("name", help="Operation name, e.g. operations/build/p/abc")
    operation_parser.add_argument("--wait", action="store_true", help="Poll until done.")
    operation_parser.add_argument(
        "--timeout", type=float, default=600.0, help="Wait timeout in seconds."
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    try:
        settings = load_settings(
            args.config_path,
            project_id=args.project_id,
            auth=args.auth,
            key_filename=args.credentials,
            auto_retry=False if args.no_retry else None,
        )
        manager = CloudBuildManager.from_settings(settings)

        output = write_json_output(run_command(manager, args), args.output)
        if args.output:
            print(f"Wrote result to {args.output}")
        else:
            print(output)
    except HttpError as error:
        print(f"Cloud Build API error: {error}")
        raise
    except Exception as error:
        print(f"Error: {error}")
        raise


if __name__ == "__main__":
    main()
