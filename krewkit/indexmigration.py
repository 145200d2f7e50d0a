"""Migration of the single-index layout to the multi-index layout."""

from __future__ import annotations

import logging
import os

from krewkit.environment import Paths

logger = logging.getLogger(__name__)


def is_migrated(paths: Paths) -> bool:
    """Tell whether the index directory no longer holds a ``.git`` directory."""
    try:
        os.stat(os.path.join(paths.index_base(), ".git"))
    except FileNotFoundError:
        return True
    return False


def migrate(paths: Paths) -> None:
    """Move the old index clone to the ``default`` index location."""
    if is_migrated(paths):
        logger.info("Already migrated")
        return
    index_path = paths.index_base()
    tmp_path = os.path.join(paths.base_path(), "tmp_index_migration")
    new_path = os.path.join(paths.index_base(), "default")

    try:
        os.rename(index_path, tmp_path)
    except OSError as err:
        raise OSError(
            err.errno,
            f"could not move index directory {index_path!r} "
            f"to temporary location {tmp_path!r}: {err.strerror}",
        ) from err
    try:
        os.mkdir(index_path, 0o777)
    except OSError as err:
        raise OSError(
            err.errno, f"could not create index directory {index_path!r}: {err.strerror}"
        ) from err
    try:
        os.rename(tmp_path, new_path)
    except OSError as err:
        raise OSError(
            err.errno,
            f"could not move temporary index directory {tmp_path!r} "
            f"to new location {new_path!r}: {err.strerror}",
        ) from err
    logger.info("Migration completed successfully.")