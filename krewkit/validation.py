"""Structural validation of plugin manifests."""

from __future__ import annotations

import json
import re

from krewkit.manifest import (
    CURRENT_API_VERSION,
    PLUGIN_KIND,
    FileOperation,
    LabelSelector,
    Platform,
    Plugin,
)

SHA256_PATTERN = r"^[a-f0-9]{64}$"
SAFE_PLUGIN_PATTERN = r"^[\w-]+$"

_SAFE_PLUGIN = re.compile(r"[\w-]+", re.ASCII)
_VALID_SHA256 = re.compile(r"[a-f0-9]{64}")

_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"
_SEMVER = re.compile(
    r"v(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)"
    rf"(?:-{_IDENT}(?:\.{_IDENT})*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
)

_WINDOWS_FORBIDDEN = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)


class ValidationError(ValueError):
    """Raised when a manifest is not structurally valid."""


def _quote(value: str) -> str:
    return json.dumps(value)


def is_safe_plugin_name(name: str) -> bool:
    """Tell whether ``name`` is safe to use as a plugin name and file name."""
    if _SAFE_PLUGIN.fullmatch(name) is None:
        return False
    return name.upper() not in _WINDOWS_FORBIDDEN


def is_supported_api_version(api_version: str) -> bool:
    """Tell whether manifests of ``api_version`` are understood."""
    return api_version == CURRENT_API_VERSION


def is_valid_sha256(s: str) -> bool:
    """Tell whether ``s`` is a lower-case hex SHA-256 digest."""
    return _VALID_SHA256.fullmatch(s) is not None


def validate_plugin(name: str, plugin: Plugin) -> None:
    """Check that ``plugin`` is a well-formed manifest for a plugin called ``name``."""
    if not is_supported_api_version(plugin.api_version):
        raise ValidationError(
            f"plugin manifest has apiVersion={_quote(plugin.api_version)}, not supported in "
            "this version of krew (try updating plugin index or install a newer version of krew)"
        )
    if plugin.kind != PLUGIN_KIND:
        raise ValidationError(
            f"plugin manifest has kind={_quote(plugin.kind)}, "
            f"but only {_quote(PLUGIN_KIND)} is supported"
        )
    if not is_safe_plugin_name(name):
        raise ValidationError(
            f"the plugin name {_quote(name)} is not allowed, "
            f"must match {_quote(SAFE_PLUGIN_PATTERN)}"
        )
    if plugin.name != name:
        raise ValidationError(
            f"plugin should be named {_quote(name)}, not {_quote(plugin.name)}"
        )
    spec = plugin.spec
    if not spec.short_description:
        raise ValidationError("should have a short description")
    if "\r" in spec.short_description or "\n" in spec.short_description:
        raise ValidationError("should not have line breaks in short description")
    if not spec.platforms:
        raise ValidationError("should have a platform specified")
    if not spec.version:
        raise ValidationError("should have a version specified")
    if _SEMVER.fullmatch(spec.version) is None:
        raise ValidationError(
            f"failed to parse plugin version: {_quote(spec.version)} is not a valid "
            "semantic version with a 'v' prefix"
        )
    for platform in spec.platforms:
        try:
            validate_platform(platform)
        except ValidationError as err:
            raise ValidationError(
                f"platform ({platform!r}) is badly constructed: {err}"
            ) from err


def validate_platform(platform: Platform) -> None:
    """Check ``platform`` for structural validity."""
    if not platform.uri:
        raise ValidationError("`uri` has to be set")
    if not platform.sha256:
        raise ValidationError("`sha256` sum has to be set")
    if not is_valid_sha256(platform.sha256):
        raise ValidationError(
            f"`sha256` value {platform.sha256} is not valid, "
            f"must match pattern {SHA256_PATTERN}"
        )
    if not platform.bin:
        raise ValidationError("`bin` has to be set")
    try:
        validate_files(platform.files)
    except ValidationError as err:
        raise ValidationError(f"`files` is invalid: {err}") from err
    try:
        validate_selector(platform.selector)
    except ValidationError as err:
        raise ValidationError(f"invalid platform selector: {err}") from err


def validate_files(files: list[FileOperation] | None) -> None:
    """Check that file operations are either unspecified or complete."""
    if files is None:
        return
    if not files:
        raise ValidationError("`files` has to be unspecified or non-empty")
    for op in files:
        if not op.from_:
            raise ValidationError("`from` field has to be set")
        if not op.to:
            raise ValidationError("`to` field has to be set")


def validate_selector(selector: LabelSelector | None) -> None:
    """Check that a platform selector is non-empty and only uses os and arch."""
    if selector is None:
        raise ValidationError("nil selector is not supported")
    if selector.match_labels is None and not selector.match_expressions:
        raise ValidationError("empty selector is not supported")

    keys = list(selector.match_labels or {})
    keys.extend(expr.key for expr in selector.match_expressions or [])
    for key in keys:
        if key not in ("os", "arch"):
            raise ValidationError(f"key {_quote(key)} not supported")

    if selector.match_labels is not None and not selector.match_labels:
        raise ValidationError("`matchLabels` specified but empty")
    if selector.match_expressions is not None and not selector.match_expressions:
        raise ValidationError("`matchExpressions` specified but empty")