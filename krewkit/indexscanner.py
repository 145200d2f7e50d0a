"""Reading plugin manifests and install receipts from disk."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from typing import IO, Any, TypeVar

import yaml

from krewkit.environment import DEFAULT_INDEX_NAME, MANIFEST_EXTENSION
from krewkit.manifest import Plugin, Receipt
from krewkit.validation import ValidationError, validate_plugin

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ManifestError(Exception):
    """Raised when a manifest or receipt cannot be parsed or is invalid."""


def _decode(raw: bytes | str) -> Mapping[str, Any]:
    data = yaml.safe_load(raw)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"document must be a mapping, not {type(data).__name__}")
    return data


def _read_from_file(path: str | os.PathLike[str], parse: Callable[[Any], T]) -> T:
    with open(path, "rb") as f:
        raw = f.read()
    try:
        return parse(_decode(raw))
    except (yaml.YAMLError, ValueError) as err:
        raise ManifestError(f"failed to parse yaml file: {err}") from err


def _validated(plugin: Plugin) -> Plugin:
    try:
        validate_plugin(plugin.name, plugin)
    except ValidationError as err:
        raise ManifestError(f"plugin manifest validation error: {err}") from err
    return plugin


def _find_plugin_manifest_files(index_dir: str) -> list[str]:
    try:
        with os.scandir(index_dir) as entries:
            return sorted(
                entry.name
                for entry in entries
                if entry.is_file(follow_symlinks=False)
                and os.path.splitext(entry.name)[1] == MANIFEST_EXTENSION
            )
    except OSError as err:
        raise ManifestError(f"failed to open index dir: {err}") from err


def load_plugin_list(index_dir: str | os.PathLike[str]) -> list[Plugin]:
    """Load every valid plugin manifest in ``index_dir``, skipping broken ones."""
    index_dir = os.path.realpath(os.fspath(index_dir), strict=True)
    try:
        files = _find_plugin_manifest_files(index_dir)
    except ManifestError as err:
        raise ManifestError(f"failed to scan plugins in index directory: {err}") from err
    logger.debug("found %d plugins in dir %s", len(files), index_dir)

    plugins = []
    for file in files:
        plugin_name = os.path.splitext(file)[0]
        try:
            plugins.append(load_plugin_by_name(index_dir, plugin_name))
        except (ManifestError, OSError) as err:
            logger.error("failed to read or parse plugin manifest %r: %s", plugin_name, err)
    return plugins


def load_plugin_by_name(plugins_dir: str | os.PathLike[str], plugin_name: str) -> Plugin:
    """Load the manifest of ``plugin_name``; raises ``FileNotFoundError`` if absent."""
    logger.debug("Reading plugin %r from %s", plugin_name, plugins_dir)
    return read_plugin_from_file(
        os.path.join(os.fspath(plugins_dir), plugin_name + MANIFEST_EXTENSION)
    )


def read_plugin_from_file(path: str | os.PathLike[str]) -> Plugin:
    """Read and validate a manifest file; raises ``FileNotFoundError`` if absent."""
    return _validated(_read_from_file(path, Plugin.from_dict))


def read_plugin(stream: IO[bytes] | IO[str]) -> Plugin:
    """Read and validate a manifest from ``stream``, closing it afterwards."""
    with stream:
        raw = stream.read()
    try:
        plugin = Plugin.from_dict(_decode(raw))
    except (yaml.YAMLError, ValueError) as err:
        raise ManifestError(f"failed to decode plugin manifest: {err}") from err
    return _validated(plugin)


def read_receipt_from_file(path: str | os.PathLike[str]) -> Receipt:
    """Read an install receipt; a missing source index means the default one."""
    receipt = _read_from_file(path, Receipt.from_dict)
    if not receipt.status.source.name:
        receipt.status.source.name = DEFAULT_INDEX_NAME
    return receipt