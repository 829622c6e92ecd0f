#!/usr/bin/env python3
# file: tests/release_scripts/test_release_common.py
# version: 1.0.0
# guid: e2b8d4a1-7c3f-4e9b-a6d2-3c8f1a5e7b90

"""Unit tests for release_common module."""

from __future__ import annotations

from pathlib import Path

import pytest

import release_common


def test_release_error_formatting() -> None:
    """ReleaseError includes message and hint."""
    error = release_common.ReleaseError("Test error", hint="Try this fix")

    result = str(error)

    assert "❌ Test error" in result
    assert "💡 Hint: Try this fix" in result
    assert error.exit_code == 1


def test_api_error_names_call_and_status() -> None:
    """ApiError message names the failing call."""
    error = release_common.ApiError("Create release", 422, "Validation Failed")

    assert error.call == "Create release"
    assert error.status == 422
    assert "Create release failed (HTTP 422): Validation Failed" in str(error)


def test_api_error_without_response() -> None:
    error = release_common.ApiError("Get release", None, "connection refused")

    assert "no response" in str(error)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", True), ("TRUE", True), ("yes", True), ("on", True), ("0", False), ("no", False), ("", False)],
)
def test_env_flag(monkeypatch: pytest.MonkeyPatch, value: str, expected: bool) -> None:
    """env_flag accepts the usual truthy spellings."""
    monkeypatch.setenv("RELEASE_TRANSACTION", value)

    assert release_common.env_flag("RELEASE_TRANSACTION") is expected


def test_env_flag_unset_uses_default() -> None:
    assert release_common.env_flag("RELEASE_CHECK", default=True) is True


def test_sanitize_log_masks_tokens() -> None:
    """sanitize_log hides tokens and authorization headers."""
    token = "ghp_" + "a" * 36
    message = f"token={token} Authorization: token secret123 Bearer abc.def"

    sanitized = release_common.sanitize_log(message)

    assert token not in sanitized
    assert "secret123" not in sanitized
    assert "abc.def" not in sanitized
    assert "***GITHUB_TOKEN***" in sanitized


def test_read_token_from_hub_config(tmp_path: Path) -> None:
    """read_token returns the oauth_token of the first github.com entry."""
    config = tmp_path / "hub.yml"
    config.write_text(
        "github.com:\n- user: octocat\n  oauth_token: abc123\n  protocol: https\n",
        encoding="utf-8",
    )

    assert release_common.read_token(path=config) == "abc123"


def test_read_token_missing_file(tmp_path: Path) -> None:
    assert release_common.read_token(path=tmp_path / "absent") == ""


def test_load_hub_config_invalid_yaml(tmp_path: Path) -> None:
    """load_hub_config reports malformed YAML with a hint."""
    config = tmp_path / "hub.yml"
    config.write_text("github.com: [unclosed\n", encoding="utf-8")

    with pytest.raises(release_common.ReleaseError) as exc_info:
        release_common.load_hub_config(config)

    assert "Invalid YAML" in str(exc_info.value)


def test_load_hub_config_rejects_non_mapping(tmp_path: Path) -> None:
    config = tmp_path / "hub.yml"
    config.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(release_common.ReleaseError):
        release_common.load_hub_config(config)


def test_resolve_token_precedence(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Explicit token beats GITHUB_TOKEN, which beats the hub config."""
    config = tmp_path / "hub"
    config.write_text("github.com:\n- oauth_token: from-file\n", encoding="utf-8")

    assert release_common.resolve_token() == "from-file"

    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    assert release_common.resolve_token() == "from-env"
    assert release_common.resolve_token("explicit") == "explicit"


def test_quiet_suppresses_info(capsys: pytest.CaptureFixture[str]) -> None:
    release_common.set_verbosity(release_common.QUIET)

    release_common.info("hello")
    release_common.debug("details")

    assert capsys.readouterr().out == ""


def test_verbose_prints_debug(capsys: pytest.CaptureFixture[str]) -> None:
    release_common.set_verbosity(release_common.VERBOSE)

    release_common.debug("details")

    assert "details" in capsys.readouterr().out


def test_handle_error_uses_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    """handle_error exits with the error's status and prints to stderr."""
    with pytest.raises(SystemExit) as exc_info:
        release_common.handle_error(
            release_common.ReleaseError("bad usage", exit_code=2),
            "Test",
        )

    assert exc_info.value.code == 2
    assert "bad usage" in capsys.readouterr().err


def test_handle_error_unexpected() -> None:
    with pytest.raises(SystemExit) as exc_info:
        release_common.handle_error(RuntimeError("boom"), "Test")

    assert exc_info.value.code == 1
