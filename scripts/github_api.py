#!/usr/bin/env python3
# file: scripts/github_api.py
# version: 1.0.0
# guid: d47b0e93-5a2c-4c1f-8e6d-2b9f7a3c5e08

"""GitHub release API calls used by the release publisher."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
import tempfile
from typing import Any, Optional

import requests

import release_common

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
USER_AGENT = "release-publisher/1.0"

_CONTENT_TYPES = (
    (".tar.gz", "application/gzip"),
    (".tgz", "application/gzip"),
    (".tar.bz2", "application/x-bzip2"),
    (".tar.xz", "application/x-xz"),
    (".zip", "application/zip"),
)


@dataclass
class Release:
    """A release resource as returned by the API."""

    id: int
    tag_name: str
    draft: bool
    html_url: str
    upload_url: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "Release":
        """Build a release from an API response payload."""
        if not isinstance(data, dict) or "id" not in data:
            raise release_common.ReleaseError(
                "Release response is missing the release id",
                hint="Inspect the kept response files for the raw payload",
            )
        return cls(
            id=int(data["id"]),
            tag_name=str(data.get("tag_name", "")),
            draft=bool(data.get("draft", False)),
            html_url=str(data.get("html_url", "")),
            upload_url=str(data.get("upload_url", "")),
        )

    @property
    def asset_url(self) -> str:
        """Upload URL with its `{?name,label}` template suffix removed."""
        return self.upload_url.split("{", 1)[0]


def content_type_for(path: Path) -> str:
    """Return the upload content type for an artifact name."""
    for suffix, content_type in _CONTENT_TYPES:
        if path.name.endswith(suffix):
            return content_type
    return "application/octet-stream"


class ResponseJournal:
    """Keeps raw API responses on disk until the run succeeds.

    Each response body lands in a `.release-<random>.json` file and upload
    responses are appended to one `.release-upload-<random>.log` file, all in
    the working directory. Leaving the block normally deletes them; leaving
    it with an exception keeps them for postmortem inspection.
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        """Initialize journal writing into directory or the cwd."""
        self.directory = Path(directory) if directory else Path.cwd()
        self.paths: list[Path] = []
        self._upload_log: Optional[Path] = None

    def __enter__(self) -> "ResponseJournal":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.cleanup()
        elif self.paths:
            kept = ", ".join(str(path) for path in self.paths)
            release_common.warn(f"Keeping API responses for inspection: {kept}")
        return False

    def record(self, call: str, body: str) -> Path:
        """Write a response body to a new scratch file."""
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.directory,
            prefix=".release-",
            suffix=".json",
            delete=False,
        ) as handle:
            handle.write(body)
        path = Path(handle.name)
        self.paths.append(path)
        release_common.debug(f"📝 {call} response saved to {path}")
        return path

    def log_upload(self, name: str, body: str) -> Path:
        """Append an upload response to the upload log."""
        if self._upload_log is None:
            descriptor, raw_path = tempfile.mkstemp(
                dir=self.directory,
                prefix=".release-upload-",
                suffix=".log",
            )
            os.close(descriptor)
            self._upload_log = Path(raw_path)
            self.paths.append(self._upload_log)
        with self._upload_log.open("a", encoding="utf-8") as handle:
            handle.write(f"{name}\t{body}\n")
        return self._upload_log

    def cleanup(self) -> None:
        """Delete every scratch file written so far."""
        for path in self.paths:
            path.unlink(missing_ok=True)
        self.paths = []
        self._upload_log = None


def _error_detail(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()[:200]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return ""


def _hint_for(status: int) -> str:
    if status == 401:
        return "Set GITHUB_TOKEN or add an oauth_token entry to ~/.config/hub"
    if status in (403, 404):
        return "Check that the token has repo scope and access to the repository"
    if status == 422:
        return "The tag may not exist on the remote yet: git push origin <tag>"
    return ""


class GitHubClient:
    """Minimal client for the repository release endpoints."""

    def __init__(
        self,
        slug: str,
        token: str,
        api_url: Optional[str] = None,
        journal: Optional[ResponseJournal] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.slug = slug
        self.api_url = (
            api_url or os.environ.get("GITHUB_API_URL") or DEFAULT_API_URL
        ).rstrip("/")
        self.journal = journal
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": USER_AGENT,
            }
        )
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    @property
    def repo_url(self) -> str:
        return f"{self.api_url}/repos/{self.slug}"

    def _request(
        self,
        call: str,
        method: str,
        url: str,
        allow_missing: bool = False,
        upload_name: str = "",
        **kwargs: Any,
    ) -> Optional[requests.Response]:
        release_common.debug(f"🌐 {method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as error:
            raise release_common.ApiError(call, None, str(error)) from error

        if self.journal is not None:
            if upload_name:
                self.journal.log_upload(upload_name, response.text)
            else:
                self.journal.record(call, response.text)

        if allow_missing and response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            raise release_common.ApiError(
                call,
                response.status_code,
                _error_detail(response),
                hint=_hint_for(response.status_code),
            )
        return response

    def get_release_by_tag(self, tag: str) -> Optional[Release]:
        """Return the release for tag, or None when there is none."""
        response = self._request(
            "Get release",
            "GET",
            f"{self.repo_url}/releases/tags/{tag}",
            allow_missing=True,
        )
        if response is None:
            return None
        return Release.from_json(response.json())

    def create_release(self, tag: str, body: str, draft: bool = True) -> Release:
        """Create a release named after its tag."""
        payload = {"tag_name": tag, "name": tag, "draft": draft, "body": body}
        response = self._request(
            "Create release",
            "POST",
            f"{self.repo_url}/releases",
            json=payload,
        )
        return Release.from_json(response.json())

    def upload_asset(self, release: Release, path: Path) -> dict[str, Any]:
        """Attach a local file to a release under its base name."""
        if not release.upload_url:
            raise release_common.ReleaseError(
                f"Release {release.tag_name} has no upload URL",
            )
        with path.open("rb") as handle:
            response = self._request(
                f"Upload {path.name}",
                "POST",
                release.asset_url,
                upload_name=path.name,
                params={"name": path.name},
                data=handle,
                headers={"Content-Type": content_type_for(path)},
            )
        return response.json()

    def publish_release(self, release: Release) -> Release:
        """Turn a draft into a published release."""
        response = self._request(
            "Publish release",
            "PATCH",
            f"{self.repo_url}/releases/{release.id}",
            json={"draft": False},
        )
        return Release.from_json(response.json())

    def list_collaborators(self) -> list[Any]:
        """List collaborators; succeeds only with push-level access."""
        response = self._request(
            "List collaborators",
            "GET",
            f"{self.repo_url}/collaborators",
        )
        return response.json()
