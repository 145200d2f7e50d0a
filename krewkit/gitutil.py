"""Helpers around the git command line for managing plugin index clones."""

from __future__ import annotations

import logging
import os
import subprocess
import sys

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when a git command fails."""


def git_exec(pwd: str | os.PathLike[str], *args: str) -> str:
    """Run git with ``args`` in ``pwd`` and return its trimmed combined output."""
    logger.debug("Going to run git %s", " ".join(args))
    cwd = os.fspath(pwd) or None
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as err:
        raise GitError(f"command execution failure: {err}") from err
    output = result.stdout.decode("utf-8", errors="replace")
    if logger.isEnabledFor(logging.DEBUG):
        sys.stderr.write(output)
    if result.returncode != 0:
        raise GitError(
            f"command execution failure, output={output!r}: exit status {result.returncode}"
        )
    return output.strip()


def is_git_cloned(git_path: str | os.PathLike[str]) -> bool:
    """Tell whether ``git_path`` holds a ``.git`` directory."""
    try:
        st = os.stat(os.path.join(os.fspath(git_path), ".git"))
    except FileNotFoundError:
        return False
    return os.path.isdir(os.path.join(os.fspath(git_path), ".git")) and bool(st)


def ensure_cloned(uri: str, destination_path: str | os.PathLike[str]) -> None:
    """Clone ``uri`` into ``destination_path`` unless a clone is already there."""
    if not is_git_cloned(destination_path):
        git_exec("", "clone", "-v", uri, os.fspath(destination_path))


def _update_and_clean_untracked(destination_path: str) -> None:
    try:
        git_exec(destination_path, "fetch", "-v")
    except GitError as err:
        raise GitError(f"fetch index at {destination_path!r} failed: {err}") from err
    try:
        git_exec(destination_path, "reset", "--hard", "@{upstream}")
    except GitError as err:
        raise GitError(f"reset index at {destination_path!r} failed: {err}") from err
    try:
        git_exec(destination_path, "clean", "-xfd")
    except GitError as err:
        raise GitError(f"clean index at {destination_path!r} failed: {err}") from err


def ensure_updated(uri: str, destination_path: str | os.PathLike[str]) -> None:
    """Make sure ``destination_path`` is a pristine, up-to-date clone of ``uri``."""
    ensure_cloned(uri, destination_path)
    _update_and_clean_untracked(os.fspath(destination_path))


def get_remote_url(directory: str | os.PathLike[str]) -> str:
    """Return the URL of the ``origin`` remote of the repository in ``directory``."""
    return git_exec(directory, "config", "--get", "remote.origin.url")