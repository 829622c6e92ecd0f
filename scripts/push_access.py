#!/usr/bin/env python3
# file: scripts/push_access.py
# version: 1.0.0
# guid: 61e8f2b5-0c9d-4a37-a4e2-9d5b1f6c3a20

"""Check push access to a repository over SSH without pushing.

The probe starts the remote `git-receive-pack` and reads its reference
advertisement. The advertisement only completes with a flush packet
(`0000`) when the caller is allowed to push; on success the probe answers
with its own flush ("no commands") so no pack data is ever sent.
"""

from __future__ import annotations

import argparse
from contextlib import suppress
import os
import shlex
import subprocess
import sys
import threading
from typing import BinaryIO, Optional

import release_common

FLUSH_PACKET = b"0000"


def _read_exact(stream: BinaryIO, size: int) -> Optional[bytes]:
    data = b""
    while len(data) < size:
        chunk = stream.read(size - len(data))
        if not chunk:
            return None
        data += chunk
    return data


def read_pkt_line(stream: BinaryIO) -> Optional[bytes]:
    """Read one complete pkt-line.

    Returns the payload, `b""` for a flush packet, or None when the stream
    ends early or the length header is malformed.
    """
    header = _read_exact(stream, 4)
    if header is None:
        return None
    try:
        length = int(header, 16)
    except ValueError:
        return None
    if length == 0:
        return b""
    if length < 4:
        return None
    return _read_exact(stream, length - 4)


def wait_for_flush(stream: BinaryIO) -> bool:
    """Consume the advertisement; True only if it ends with a flush."""
    while True:
        payload = read_pkt_line(stream)
        if payload is None:
            release_common.debug("🔌 Session ended before the advertisement completed")
            return False
        if payload == b"":
            return True
        if payload.startswith(b"ERR "):
            message = payload[4:].decode("utf-8", "replace").strip()
            release_common.debug(f"❌ Remote refused: {message}")
            return False


def ssh_command() -> list[str]:
    """Return the ssh invocation, honouring GIT_SSH_COMMAND."""
    custom = os.environ.get("GIT_SSH_COMMAND")
    if custom:
        return shlex.split(custom)
    return ["ssh"]


def _quote_path(path: str) -> str:
    return "'" + path.replace("'", "'\\''") + "'"


def _close_session(process: subprocess.Popen) -> None:
    if process.stdin is not None:
        with suppress(BrokenPipeError):
            process.stdin.close()
    try:
        process.wait(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
    if process.stdout is not None:
        process.stdout.close()


def check_push_access(
    ssh_target: str,
    repo_path: str,
    timeout: Optional[float] = None,
) -> bool:
    """Return True when ssh_target accepts pushes to repo_path."""
    command = [
        *ssh_command(),
        "-x",
        "-o",
        "BatchMode=yes",
        ssh_target,
        f"git-receive-pack {_quote_path(repo_path)}",
    ]
    release_common.debug(f"$ {' '.join(command)}")
    verbose = release_common.get_verbosity() >= release_common.VERBOSE
    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=None if verbose else subprocess.DEVNULL,
        )
    except FileNotFoundError as error:
        raise release_common.ReleaseError(
            f"Cannot start ssh: {error}",
            hint="Install OpenSSH or set GIT_SSH_COMMAND",
        ) from error

    timer = None
    if timeout:
        timer = threading.Timer(timeout, process.kill)
        timer.start()
    try:
        granted = wait_for_flush(process.stdout)
        if granted:
            with suppress(BrokenPipeError):
                process.stdin.write(FLUSH_PACKET)
                process.stdin.flush()
        return granted
    finally:
        if timer is not None:
            timer.cancel()
        _close_session(process)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for CLI usage."""
    parser = argparse.ArgumentParser(
        description="Check push access to a repository over SSH",
    )
    parser.add_argument("host", help="SSH target, for example git@github.com")
    parser.add_argument("path", help="Repository path, for example owner/repo.git")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds (default: wait for the remote)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show the ssh command and the remote's errors",
    )
    args = parser.parse_args(argv)

    if args.verbose:
        release_common.set_verbosity(release_common.VERBOSE)

    try:
        granted = check_push_access(args.host, args.path, timeout=args.timeout)
    except Exception as error:  # pylint: disable=broad-except
        release_common.handle_error(error, "Push access check")
        return

    release_common.debug(
        f"{'✅' if granted else '❌'} Push access to {args.host}:{args.path}"
    )
    sys.exit(0 if granted else 1)


if __name__ == "__main__":
    main()
