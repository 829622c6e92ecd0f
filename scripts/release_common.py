#!/usr/bin/env python3
# file: scripts/release_common.py
# version: 1.0.0
# guid: 3f1c9a2e-7b4d-4e8a-9c61-0d2b5e7a8f13

"""Shared utilities for the release publishing helper scripts."""

from __future__ import annotations

from contextlib import contextmanager
import os
from pathlib import Path
import re
import sys
import time
from typing import Any

import yaml

QUIET = 0
NORMAL = 1
VERBOSE = 2

DEFAULT_HUB_CONFIG = "~/.config/hub"

_VERBOSITY = NORMAL
_CONFIG_CACHE: dict[str, Any] = {}

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ReleaseError(Exception):
    """Release helper error with optional hint and exit status."""

    def __init__(
        self,
        message: str,
        hint: str = "",
        exit_code: int = 1,
    ) -> None:
        """Initialize release error."""
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.exit_code = exit_code

    def __str__(self) -> str:
        """Format error with its hint."""
        parts = [f"❌ {self.message}"]
        if self.hint:
            parts.append(f"💡 Hint: {self.hint}")
        return "\n".join(parts)


class ApiError(ReleaseError):
    """A hosting API call returned a non-success response."""

    def __init__(
        self,
        call: str,
        status: int | None,
        detail: str = "",
        hint: str = "",
    ) -> None:
        """Initialize API error for the named call."""
        status_text = f"HTTP {status}" if status is not None else "no response"
        message = f"{call} failed ({status_text})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, hint=hint)
        self.call = call
        self.status = status


def set_verbosity(level: int) -> None:
    """Set console verbosity for info and debug output."""
    global _VERBOSITY
    _VERBOSITY = level


def get_verbosity() -> int:
    """Return the current console verbosity."""
    return _VERBOSITY


def info(message: str) -> None:
    """Print an informational line unless running quietly."""
    if _VERBOSITY >= NORMAL:
        print(sanitize_log(message))


def debug(message: str) -> None:
    """Print a diagnostic line in verbose mode."""
    if _VERBOSITY >= VERBOSE:
        print(sanitize_log(message))


def warn(message: str) -> None:
    """Print a warning line to stderr."""
    print(sanitize_log(f"⚠️  {message}"), file=sys.stderr)


def env_flag(name: str, default: bool = False) -> bool:
    """Return True when the environment variable holds a truthy value."""
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def load_hub_config(path: Path | None = None) -> dict[str, Any]:
    """Load and cache the per-user hub YAML configuration."""
    if path is None:
        path = Path(os.environ.get("HUB_CONFIG", DEFAULT_HUB_CONFIG))
    config_file = path.expanduser()
    cache_key = str(config_file)

    if cache_key in _CONFIG_CACHE:
        return _CONFIG_CACHE[cache_key]

    if not config_file.exists():
        _CONFIG_CACHE[cache_key] = {}
        return _CONFIG_CACHE[cache_key]

    try:
        with config_file.open(encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as error:
        raise ReleaseError(
            f"Invalid YAML in {config_file}: {error}",
            hint=f"Validate with: yamllint {config_file}",
        ) from error

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ReleaseError(
            f"{config_file} must contain a YAML dictionary",
            hint="Expected a 'github.com' key holding a list of accounts",
        )

    _CONFIG_CACHE[cache_key] = data
    return data


def read_token(host: str = "github.com", path: Path | None = None) -> str:
    """Return the OAuth token stored for host, or an empty string."""
    entries = load_hub_config(path).get(host)
    if isinstance(entries, dict):
        entries = [entries]
    if not isinstance(entries, list):
        return ""
    for entry in entries:
        if isinstance(entry, dict) and entry.get("oauth_token"):
            return str(entry["oauth_token"])
    return ""


def resolve_token(explicit: str | None = None, host: str = "github.com") -> str:
    """Pick the API token: explicit value, then GITHUB_TOKEN, then hub config."""
    if explicit:
        return explicit
    from_env = os.environ.get("GITHUB_TOKEN")
    if from_env:
        return from_env
    return read_token(host)


@contextmanager
def timed_operation(operation_name: str):
    """Context manager that reports duration for an operation."""
    start_time = time.time()
    try:
        yield
    finally:
        duration = time.time() - start_time
        debug(f"⏱️  {operation_name} took {duration:.2f}s")


def handle_error(error: Exception, context: str) -> None:
    """Print error details and exit with the matching status."""
    exit_code = 1
    if isinstance(error, ReleaseError):
        message = str(error)
        exit_code = error.exit_code
    else:
        message = f"❌ Unexpected error in {context}: {error}"
    print(sanitize_log(message), file=sys.stderr)
    sys.exit(exit_code)


def sanitize_log(message: str) -> str:
    """Mask sensitive tokens from log messages."""
    sanitized = re.sub(r"gh[pousr]_[a-zA-Z0-9]{36,}", "***GITHUB_TOKEN***", message)
    sanitized = re.sub(
        r"Bearer\s+[a-zA-Z0-9\-._~+/]+=*",
        "Bearer ***TOKEN***",
        sanitized,
    )
    sanitized = re.sub(
        r"(Authorization:\s*token)\s+\S+",
        r"\1 ***TOKEN***",
        sanitized,
    )
    return sanitized
