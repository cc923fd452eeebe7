from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

from fake_http import RecordingHttp


def pytest_configure() -> None:
    src_root = Path(__file__).resolve().parents[1] / "src"
    sys.path.insert(0, str(src_root))


@pytest.fixture
def make_manager():
    """Build a CloudBuildManager for project "p" over a scripted response sequence."""
    from managers.cloud_build_manager import CloudBuildManager

    def _make(*responses: tuple[dict[str, str], str], **kwargs: Any):
        http = RecordingHttp(list(responses))
        kwargs.setdefault("auto_retry", False)
        return CloudBuildManager(http, "p", **kwargs), http

    return _make
