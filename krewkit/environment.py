"""Filesystem layout of a krew installation and related settings."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MANIFEST_EXTENSION = ".yaml"
ENABLE_MULTI_INDEX_SWITCH = "X_KREW_ENABLE_MULTI_INDEX"
DEFAULT_INDEX_NAME = "default"
DEFAULT_INDEX_URI = "https://github.com/kubernetes-sigs/krew-index.git"


def multi_index_enabled() -> bool:
    """Tell whether support for multiple plugin indexes is switched on."""
    return ENABLE_MULTI_INDEX_SWITCH in os.environ


@dataclass(frozen=True)
class Paths:
    """The important directories of a krew installation rooted at ``base``."""

    base: str
    tmp: str = field(default_factory=tempfile.gettempdir)

    def base_path(self) -> str:
        """Return the krew base directory."""
        return self.base

    def index_base(self) -> str:
        """Return the directory holding the default index and custom ones."""
        return os.path.join(self.base, "index")

    def index_path(self, name: str) -> str:
        """Return the directory where the index repository ``name`` is cloned."""
        if multi_index_enabled():
            return os.path.join(self.base, "index", name)
        return self.index_base()

    def index_plugins_path(self, name: str) -> str:
        """Return the plugins directory of the index repository ``name``."""
        return os.path.join(self.index_path(name), "plugins")

    def install_receipts_path(self) -> str:
        """Return the directory where plugin receipts are stored."""
        return os.path.join(self.base, "receipts")

    def bin_path(self) -> str:
        """Return the directory holding links to plugin executables."""
        return os.path.join(self.base, "bin")

    def install_path(self) -> str:
        """Return the base directory for plugin installations."""
        return os.path.join(self.base, "store")

    def plugin_install_path(self, plugin: str) -> str:
        """Return the directory a plugin is installed into."""
        return os.path.join(self.install_path(), plugin)

    def plugin_install_receipt_path(self, plugin: str) -> str:
        """Return the path of the install receipt for ``plugin``."""
        return os.path.join(self.install_receipts_path(), plugin + MANIFEST_EXTENSION)

    def plugin_version_install_path(self, plugin: str, version: str) -> str:
        """Return the directory of one installed version of ``plugin``."""
        return os.path.join(self.install_path(), plugin, version)


def get_krew_paths() -> Paths:
    """Return the krew paths, based on ``~/.krew`` unless ``KREW_ROOT`` is set."""
    base = os.path.join(os.path.expanduser("~"), ".krew")
    from_env = os.environ.get("KREW_ROOT", "")
    if from_env:
        base = from_env
        logger.debug("using environment override KREW_ROOT=%s", from_env)
    return Paths(os.path.abspath(base))


def realpath(path: str | os.PathLike[str]) -> str:
    """Resolve one level of symbolic link and return the cleaned path.

    Raises ``OSError`` if the path cannot be read and ``ValueError`` if it is a
    symbolic link to a relative path.
    """
    path = os.fspath(path)
    st = os.lstat(path)
    if stat.S_ISLNK(st.st_mode):
        path = os.readlink(path)
        if not os.path.isabs(path):
            raise ValueError(f"symbolic link is relative ({path})")
    return os.path.normpath(path)