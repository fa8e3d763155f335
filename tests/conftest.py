from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

import pytest

from publisher.app.dependencies import reset_cached_dependencies
from publisher.app.logging_config import LOGGER_NAME
from tests.support import FakeObjectStore, create_remote


@pytest.fixture(autouse=True)
def _isolated_settings(  # pyright: ignore[reportUnusedFunction]
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    for name in (
        "CLUSTER_PUBLISHER_KUBECONFIG",
        "CLUSTER_PUBLISHER_DEFAULT_BRANCH",
        "CLUSTER_PUBLISHER_DEFAULT_BASE_PATH",
        "CLUSTER_PUBLISHER_KEEP_WORK_DIR",
        "CLUSTER_PUBLISHER_LOG_DIR",
        "CLUSTER_PUBLISHER_TELEMETRY_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CLUSTER_PUBLISHER_DATA_DIR", str(tmp_path / "runtime-data"))
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()
    # CliRunner closes its captured streams, so drop handlers bound to them.
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def remote(tmp_path: Path) -> Path:
    if shutil.which("git") is None:
        pytest.skip("git executable is required")
    return create_remote(tmp_path / "origin")
