#!/usr/bin/env python3
# file: tests/release_scripts/conftest.py
# version: 1.0.0
# guid: a9e4c2f7-6d1b-4b3e-8c5a-1f7d3b9e2a64

"""Shared fixtures for release helper tests."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

import release_common


@pytest.fixture(autouse=True)
def reset_release_state(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Reset cached configuration and verbosity between tests."""
    for name in (
        "GITHUB_TOKEN",
        "GITHUB_API_URL",
        "GITHUB_HOST",
        "GIT_SSH_COMMAND",
        "RELEASE_FILE",
        "RELEASE_REMOTE",
        "RELEASE_TAG",
        "RELEASE_QUIET",
        "RELEASE_VERBOSE",
        "RELEASE_TRANSACTION",
        "RELEASE_CHECK",
        "RELEASE_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HUB_CONFIG", str(tmp_path / "hub"))
    release_common._CONFIG_CACHE.clear()  # type: ignore[attr-defined]
    release_common.set_verbosity(release_common.NORMAL)
    yield
    release_common._CONFIG_CACHE.clear()  # type: ignore[attr-defined]
    release_common.set_verbosity(release_common.NORMAL)
