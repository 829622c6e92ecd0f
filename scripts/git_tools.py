#!/usr/bin/env python3
# file: scripts/git_tools.py
# version: 1.0.0
# guid: 8a2d6c4f-1e3b-4f7a-b5d9-6c0e2a4f8b71

"""Git helpers for release publishing: remotes, tags, and artifacts."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import release_common

DEFAULT_REMOTE = "origin"
DEFAULT_HOST = "github.com"

ARCHIVE_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz", ".tgz", ".zip")

_URL_PATTERN = re.compile(
    r"^(?:ssh|git|https?|git\+ssh)://"
    r"(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]+)(?::\d+)?/(?P<path>.+)$"
)
_SCP_PATTERN = re.compile(r"^(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]+):(?P<path>[^/].*)$")
_SIGNATURE_PATTERN = re.compile(
    r"-----BEGIN (PGP SIGNATURE|SSH SIGNATURE|SIGNED MESSAGE)-----"
    r".*?-----END \1-----\n?",
    re.DOTALL,
)


@dataclass
class RemoteRepository:
    """A git remote resolved to a hosted owner/repo pair."""

    name: str
    push_url: str
    host: str
    owner: str
    repo: str
    user: str = "git"

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def ssh_target(self) -> str:
        return f"{self.user}@{self.host}"

    @property
    def ssh_path(self) -> str:
        return f"{self.owner}/{self.repo}.git"


def run_git(*args: str) -> str:
    """Run a git command and return its stripped stdout."""
    command = ["git", *args]
    release_common.debug(f"$ {' '.join(command)}")
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as error:
        detail = (error.stderr or "").strip()
        raise release_common.ReleaseError(
            f"git {' '.join(args)} failed: {detail or error}",
            hint="Run the helper from inside a git checkout",
        ) from error
    return result.stdout.strip()


def _split_url(url: str) -> tuple[str, str, str]:
    for pattern in (_URL_PATTERN, _SCP_PATTERN):
        match = pattern.match(url)
        if match:
            return match.group("user") or "", match.group("host"), match.group("path")
    raise release_common.ReleaseError(
        f"Push URL is not a repository URL: {url}",
        hint="Expected git@host:owner/repo.git or https://host/owner/repo",
    )


def parse_push_url(url: str) -> tuple[str, str, str]:
    """Split a push URL into (host, owner, repo)."""
    _, host, path = _split_url(url.strip())
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    parts = path.split("/")
    if len(parts) != 2 or not all(parts):
        raise release_common.ReleaseError(
            f"Push URL does not name an owner/repo pair: {url}",
            hint="Expected git@host:owner/repo.git or https://host/owner/repo",
        )
    owner, repo = parts
    return host, owner, repo


def resolve_remote(name: str = DEFAULT_REMOTE) -> RemoteRepository:
    """Resolve a configured remote to its hosted repository."""
    output = run_git("remote", "show", "-n", name)
    push_url = ""
    for line in output.splitlines():
        key, _, value = line.strip().partition(":")
        if key.replace(" ", "") == "PushURL":
            push_url = value.strip()
            break

    if not push_url or push_url == name:
        raise release_common.ReleaseError(
            f"Remote '{name}' has no push URL",
            hint=f"Add it with: git remote add {name} git@github.com:owner/repo.git",
        )

    user, _, _ = _split_url(push_url)
    host, owner, repo = parse_push_url(push_url)
    expected_host = os.environ.get("GITHUB_HOST", DEFAULT_HOST)
    if host != expected_host:
        raise release_common.ReleaseError(
            f"Remote '{name}' ({push_url}) does not look like a GitHub repository",
            hint=f"Push URL host must be {expected_host}",
        )

    return RemoteRepository(
        name=name,
        push_url=push_url,
        host=host,
        owner=owner,
        repo=repo,
        user=user or "git",
    )


def latest_tag() -> str:
    """Return the most recent annotated tag reachable from HEAD."""
    try:
        tag = run_git("describe", "--abbrev=0")
    except release_common.ReleaseError as error:
        raise release_common.ReleaseError(
            "No tag found",
            hint="Create a signed tag first: git tag -s v1.0.0",
        ) from error
    if not tag:
        raise release_common.ReleaseError(
            "No tag found",
            hint="Create a signed tag first: git tag -s v1.0.0",
        )
    return tag


def tag_message(tag: str) -> str:
    """Return the raw annotation of a tag, signature included."""
    try:
        run_git("rev-parse", "-q", "--verify", f"refs/tags/{tag}")
    except release_common.ReleaseError as error:
        raise release_common.ReleaseError(
            f"Tag not found: {tag}",
            hint="List tags with: git tag --list",
        ) from error
    return run_git("for-each-ref", "--format=%(contents)", f"refs/tags/{tag}")


def release_body(message: str, tag: str) -> str:
    """Turn a tag annotation into release notes text."""
    text = message.replace("\r\n", "\n").replace("\r", "\n")
    text = _SIGNATURE_PATTERN.sub("", text)
    lines = [line for line in text.split("\n") if line.strip() != tag]
    text = "\n".join(lines)
    text = "".join(ch for ch in text if ch in "\n\t" or ch.isprintable())
    return text.strip()


def find_artifacts(source: Optional[str]) -> list[Path]:
    """Expand an artifact source into the files to upload."""
    if source is None:
        return []
    if source == "":
        raise release_common.ReleaseError(
            "Empty artifact path given",
            hint="Pass a file or a directory containing archives to --file",
            exit_code=2,
        )

    path = Path(source)
    if path.is_file():
        return [path]
    if path.is_dir():
        archives = sorted(
            (
                child
                for child in path.iterdir()
                if child.is_file() and child.name.endswith(ARCHIVE_SUFFIXES)
            ),
            key=lambda child: child.name,
        )
        if not archives:
            raise release_common.ReleaseError(
                f"No archives found in {path}",
                hint=f"Expected files ending in {', '.join(ARCHIVE_SUFFIXES)}",
            )
        return archives

    raise release_common.ReleaseError(
        f"Artifact not found: {source}",
        hint="Build the release archive before publishing",
    )
