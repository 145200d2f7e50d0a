"""Checks that a plugin manifest file is valid and installable on every platform."""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass

from krewkit.environment import MANIFEST_EXTENSION
from krewkit.indexscanner import ManifestError, read_plugin_from_file
from krewkit.manifest import LabelSelector, Platform, Plugin, SelectorError
from krewkit.validation import ValidationError, validate_plugin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OSArchPair:
    """An operating system and processor architecture krew runs on."""

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


_ALL_PLATFORMS = (
    OSArchPair("windows", "386"),
    OSArchPair("windows", "amd64"),
    OSArchPair("linux", "386"),
    OSArchPair("linux", "amd64"),
    OSArchPair("linux", "arm"),
    OSArchPair("linux", "arm64"),
    OSArchPair("darwin", "386"),
    OSArchPair("darwin", "amd64"),
)


def all_platforms() -> list[OSArchPair]:
    """Return every ``<os,arch>`` pair krew is supported on."""
    return list(_ALL_PLATFORMS)


def _describe(selector: LabelSelector | None) -> str:
    if selector is None:
        return "nil"
    return json.dumps(selector.to_dict(), sort_keys=True)


def selector_matches_os_arch(selector: LabelSelector | None, env: OSArchPair) -> bool:
    """Tell whether ``selector`` selects the platform ``env``."""
    if selector is None:
        return False
    try:
        return selector.matches({"os": env.os, "arch": env.arch})
    except SelectorError:
        logger.warning("Failed to convert label selector: %s", _describe(selector))
        return False


def find_any_matching_platform(selector: LabelSelector | None) -> OSArchPair | None:
    """Return the first supported platform matched by ``selector``, if any."""
    for env in all_platforms():
        if selector_matches_os_arch(selector, env):
            logger.debug("%s MATCHED <%s>", _describe(selector), env)
            return env
        logger.debug("%s didn't match <%s>", _describe(selector), env)
    return None


def check_overlapping_platform_selectors(platforms: Sequence[Platform]) -> None:
    """Raise if one supported platform is selected by several platform specs."""
    for env in all_platforms():
        matches = [
            i
            for i, platform in enumerate(platforms)
            if selector_matches_os_arch(platform.selector, env)
        ]
        if len(matches) > 1:
            indexes = "[" + " ".join(str(i) for i in matches) + "]"
            raise ManifestError(
                f"multiple spec.platforms (at indexes {indexes}) have overlapping "
                f"selectors that select {env}"
            )


def install_platform_spec(manifest_file: str | os.PathLike[str], platform: Platform) -> None:
    """Install the manifest for ``platform`` into a throw-away krew root."""
    env = find_any_matching_platform(platform.selector)
    if env is None:
        raise ManifestError(
            f"no supported platform matched platform selector: {_describe(platform.selector)}"
        )

    with tempfile.TemporaryDirectory(prefix="krew-test") as tmp_dir:
        child_env = {
            "KREW_ROOT": tmp_dir,
            "KREW_OS": env.os,
            "KREW_ARCH": env.arch,
        }
        logger.debug("installing plugin with: %s", child_env)
        child_env["PATH"] = os.environ.get("PATH", "")
        cmd = [
            "kubectl", "krew", "install", "--manifest", os.fspath(manifest_file), "-v=4",
        ]
        try:
            result = subprocess.run(
                cmd,
                env=child_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as err:
            raise ManifestError(f"plugin install command failed: {err}") from err
        if result.returncode != 0:
            output = (result.stdout or b"").decode("utf-8", errors="replace")
            output = output.replace("\n", "\n\t")
            raise ManifestError(
                f"plugin install command failed: {output}: exit status {result.returncode}"
            )


def validate_manifest_file(path: str | os.PathLike[str], install: bool = True) -> Plugin:
    """Validate the manifest at ``path`` and return the plugin it describes.

    With ``install`` set, the plugin is also installed once for each of its
    platforms to make sure the archives can be fetched and unpacked.
    """
    path = os.fspath(path)
    logger.debug("reading file %s", path)
    try:
        plugin = read_plugin_from_file(path)
    except (OSError, ManifestError) as err:
        raise ManifestError(f"failed to read plugin file: {err}") from err

    filename = os.path.basename(path)
    extension = os.path.splitext(filename)[1]
    if extension != MANIFEST_EXTENSION:
        raise ManifestError(
            f"expected manifest extension {json.dumps(MANIFEST_EXTENSION)} "
            f"but found {json.dumps(extension)}"
        )
    name_from_file = filename[: -len(extension)]
    logger.debug("inferred plugin name as %s", name_from_file)

    try:
        validate_plugin(name_from_file, plugin)
    except ValidationError as err:
        raise ManifestError(f"plugin validation error: {err}") from err
    logger.info("structural validation OK")

    for i, platform in enumerate(plugin.spec.platforms):
        if find_any_matching_platform(platform.selector) is None:
            raise ManifestError(
                f"spec.platform[{i}]'s selector ({_describe(platform.selector)}) "
                "doesn't match any supported platforms"
            )
    logger.info("all spec.platform[] items are used")

    try:
        check_overlapping_platform_selectors(plugin.spec.platforms)
    except ManifestError as err:
        raise ManifestError(f"overlapping platform selectors found: {err}") from err
    logger.info("no overlapping spec.platform[].selector")

    if install:
        for i, platform in enumerate(plugin.spec.platforms):
            logger.info("installing spec.platform[%d]", i)
            try:
                install_platform_spec(path, platform)
            except ManifestError as err:
                raise ManifestError(f"spec.platforms[{i}] failed to install: {err}") from err
            logger.info("installed  spec.platforms[%d]", i)
        logger.info("all %d spec.platforms installed fine", len(plugin.spec.platforms))
    return plugin


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point; returns the process exit status."""
    parser = argparse.ArgumentParser(
        prog="validate-krew-manifest", description="Make sure a manifest file is valid."
    )
    parser.add_argument("-manifest", "--manifest", default="", help="path to plugin manifest file")
    parser.add_argument("-v", "--verbosity", type=int, default=0, help="log level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbosity >= 2 else logging.INFO,
        format="%(levelname)s %(message)s",
    )
    if not args.manifest:
        logger.error("-manifest must be specified")
        return 1
    try:
        validate_manifest_file(args.manifest)
    except ManifestError as err:
        logger.error("%s", err)
        return 1
    return 0