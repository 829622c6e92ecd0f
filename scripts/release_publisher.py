#!/usr/bin/env python3
# file: scripts/release_publisher.py
# version: 1.0.0
# guid: 0b5e3d7a-9f21-4c68-8d4e-7a1c3f9b2e56

"""Publish a GitHub release from an annotated git tag."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
import os
import signal
import sys
from typing import Optional

import git_tools
import github_api
import push_access
import release_common


@dataclass
class PublishConfig:
    """Settings for one publisher run, resolved from flags and environment."""

    remote: str = git_tools.DEFAULT_REMOTE
    tag: Optional[str] = None
    artifact: Optional[str] = None
    token: Optional[str] = None
    transaction: bool = False
    check: bool = False
    timeout: Optional[float] = None


@dataclass
class PublishResult:
    """Outcome of a publish run."""

    tag: str
    url: str
    created: bool
    uploaded: list[str] = field(default_factory=list)


def suspend_for_review(url: str) -> None:
    """Stop the own process until an operator sends SIGCONT."""
    release_common.info(f"⏸️  Draft ready for review: {url}")
    release_common.info(f"   Resume with: kill -CONT {os.getpid()}")
    sys.stdout.flush()
    os.kill(os.getpid(), signal.SIGSTOP)
    release_common.info("▶️  Resumed, publishing")


def _client_for(
    remote: git_tools.RemoteRepository,
    config: PublishConfig,
    journal: github_api.ResponseJournal,
    client: Optional[github_api.GitHubClient],
) -> github_api.GitHubClient:
    if client is None:
        client = github_api.GitHubClient(
            remote.slug,
            release_common.resolve_token(config.token, remote.host),
            timeout=config.timeout,
        )
    client.journal = journal
    return client


def publish(
    config: PublishConfig,
    remote: Optional[git_tools.RemoteRepository] = None,
    client: Optional[github_api.GitHubClient] = None,
) -> PublishResult:
    """Create, fill, and publish the release for the configured tag.

    Local inputs (remote, tag, artifacts) are validated before the first
    API call. An existing release for the tag ends the run successfully
    without changes.
    """
    if remote is None:
        remote = git_tools.resolve_remote(config.remote)
    tag = config.tag or git_tools.latest_tag()
    artifacts = git_tools.find_artifacts(config.artifact)
    body = git_tools.release_body(git_tools.tag_message(tag), tag)

    release_common.info(f"📦 Releasing {tag} to {remote.slug}")

    with github_api.ResponseJournal() as journal:
        client = _client_for(remote, config, journal, client)

        existing = client.get_release_by_tag(tag)
        if existing is not None:
            if existing.draft:
                release_common.warn(
                    f"Release {tag} exists as an unpublished draft: {existing.html_url}"
                )
            else:
                release_common.info(
                    f"✅ Release {tag} already published: {existing.html_url}"
                )
            return PublishResult(tag=tag, url=existing.html_url, created=False)

        with release_common.timed_operation("Create draft"):
            draft = client.create_release(tag, body, draft=True)
        release_common.info(f"📝 Draft created: {draft.html_url}")

        uploaded: list[str] = []
        for artifact in artifacts:
            release_common.info(f"⬆️  Uploading {artifact.name}")
            with release_common.timed_operation(f"Upload {artifact.name}"):
                client.upload_asset(draft, artifact)
            uploaded.append(artifact.name)

        if config.transaction:
            suspend_for_review(draft.html_url)

        published = client.publish_release(draft)
        url = published.html_url or draft.html_url
        release_common.info(f"🚀 Published {tag}: {url}")

    return PublishResult(tag=tag, url=url, created=True, uploaded=uploaded)


def check_access(
    config: PublishConfig,
    remote: Optional[git_tools.RemoteRepository] = None,
    client: Optional[github_api.GitHubClient] = None,
) -> bool:
    """Probe push and API access without creating anything."""
    if remote is None:
        remote = git_tools.resolve_remote(config.remote)

    granted = push_access.check_push_access(
        remote.ssh_target,
        remote.ssh_path,
        timeout=config.timeout,
    )
    if not granted:
        release_common.info(f"❌ No push access to {remote.push_url}")
        return False

    with github_api.ResponseJournal() as journal:
        client = _client_for(remote, config, journal, client)
        client.list_collaborators()

    release_common.info(f"✅ Push and API access to {remote.slug} confirmed")
    return True


def _env_or_none(name: str) -> Optional[str]:
    return os.environ.get(name) or None


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser with environment-backed defaults."""
    parser = argparse.ArgumentParser(
        description="Publish a GitHub release from an annotated git tag",
    )
    parser.add_argument(
        "-f",
        "--file",
        default=_env_or_none("RELEASE_FILE"),
        help="Artifact to attach, or a directory of archives (env: RELEASE_FILE)",
    )
    parser.add_argument(
        "-r",
        "--remote",
        default=_env_or_none("RELEASE_REMOTE") or git_tools.DEFAULT_REMOTE,
        help="Git remote hosting the release (env: RELEASE_REMOTE)",
    )
    parser.add_argument(
        "-t",
        "--tag",
        default=_env_or_none("RELEASE_TAG"),
        help="Tag to release, defaults to the latest annotated tag (env: RELEASE_TAG)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=release_common.env_flag("RELEASE_QUIET"),
        help="Only print errors (env: RELEASE_QUIET)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=release_common.env_flag("RELEASE_VERBOSE"),
        help="Show git commands and API calls (env: RELEASE_VERBOSE)",
    )
    parser.add_argument(
        "-x",
        "--transaction",
        action="store_true",
        default=release_common.env_flag("RELEASE_TRANSACTION"),
        help="Stop before publishing the draft until SIGCONT (env: RELEASE_TRANSACTION)",
    )
    parser.add_argument(
        "-c",
        "--check",
        action="store_true",
        default=release_common.env_flag("RELEASE_CHECK"),
        help="Only check push and API access (env: RELEASE_CHECK)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="API token (env: GITHUB_TOKEN, else ~/.config/hub)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=_env_or_none("RELEASE_HTTP_TIMEOUT"),
        help="Network timeout in seconds, none by default (env: RELEASE_HTTP_TIMEOUT)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for CLI usage."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.quiet and args.verbose:
        parser.error("--quiet and --verbose cannot be combined")
    if args.file == "":
        parser.error("--file must not be empty")

    if args.quiet:
        release_common.set_verbosity(release_common.QUIET)
    elif args.verbose:
        release_common.set_verbosity(release_common.VERBOSE)

    config = PublishConfig(
        remote=args.remote,
        tag=args.tag,
        artifact=args.file,
        token=args.token,
        transaction=args.transaction,
        check=args.check,
        timeout=args.timeout,
    )

    try:
        if config.check:
            sys.exit(0 if check_access(config) else 1)
        with release_common.timed_operation("Release"):
            publish(config)
    except Exception as error:  # pylint: disable=broad-except
        release_common.handle_error(error, "Release publishing")


if __name__ == "__main__":
    main()
