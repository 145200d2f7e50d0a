"""Listing, adding and removing configured plugin indexes."""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass

from krewkit import gitutil
from krewkit.environment import (
    DEFAULT_INDEX_NAME,
    DEFAULT_INDEX_URI,
    Paths,
    multi_index_enabled,
)

_VALID_NAME = re.compile(r"[A-Za-z0-9_-]+")


class IndexOperationError(Exception):
    """Raised when an index operation cannot be carried out."""


@dataclass(frozen=True)
class Index:
    """Name and remote URL of a configured index."""

    name: str
    url: str


def list_indexes(paths: Paths) -> list[Index]:
    """Return the configured indexes, sorted by name."""
    if not multi_index_enabled():
        return [Index(DEFAULT_INDEX_NAME, DEFAULT_INDEX_URI)]
    try:
        names = sorted(os.listdir(paths.index_base()))
    except OSError as err:
        raise IndexOperationError(f"failed to list directory: {err}") from err

    indexes = []
    for name in names:
        try:
            remote = gitutil.get_remote_url(paths.index_path(name))
        except gitutil.GitError as err:
            raise IndexOperationError(
                f"failed to list the remote URL for index {name}: {err}"
            ) from err
        indexes.append(Index(name, remote))
    return indexes


def add_index(paths: Paths, name: str, url: str) -> None:
    """Clone a new index ``name`` from ``url``."""
    directory = paths.index_path(name)
    try:
        os.stat(directory)
    except FileNotFoundError:
        gitutil.ensure_cloned(url, directory)
        return
    raise IndexOperationError("index already exists")


def delete_index(paths: Paths, name: str) -> None:
    """Remove index ``name``; raises ``FileNotFoundError`` if it is absent."""
    directory = paths.index_path(name)
    os.stat(directory)
    if os.path.isdir(directory) and not os.path.islink(directory):
        shutil.rmtree(directory)
    else:
        os.remove(directory)


def is_valid_index_name(name: str) -> bool:
    """Tell whether ``name`` only uses letters, digits, ``_`` and ``-``."""
    return _VALID_NAME.fullmatch(name) is not None