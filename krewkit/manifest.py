"""Plugin manifests, install receipts and label selectors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

CURRENT_API_VERSION = "krew.googlecontainertools.github.com/v1alpha2"
PLUGIN_KIND = "Plugin"

OP_IN = "In"
OP_NOT_IN = "NotIn"
OP_EXISTS = "Exists"
OP_DOES_NOT_EXIST = "DoesNotExist"


class SelectorError(ValueError):
    """Raised when a label selector cannot be evaluated."""


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping, not {type(data).__name__}")
    return data


def _string(data: Mapping[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what}.{key} must be a string, not {type(value).__name__}")
    return value


def _list(data: Mapping[str, Any], key: str, what: str) -> list[Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"{what}.{key} must be a list, not {type(value).__name__}")
    return value


def _string_list(values: list[Any], what: str) -> list[str]:
    for value in values:
        if not isinstance(value, str):
            raise ValueError(f"{what} must only hold strings")
    return list(values)


@dataclass
class LabelSelectorRequirement:
    """One set-based requirement of a label selector."""

    key: str
    operator: str
    values: list[str] = field(default_factory=list)

    def _check(self) -> None:
        if self.operator in (OP_IN, OP_NOT_IN):
            if not self.values:
                raise SelectorError(
                    f"for 'in', 'notin' operators, values set can't be empty (key {self.key!r})"
                )
        elif self.operator in (OP_EXISTS, OP_DOES_NOT_EXIST):
            if self.values:
                raise SelectorError(
                    f"values set must be empty for exists and does not exist (key {self.key!r})"
                )
        else:
            raise SelectorError(f"{self.operator!r} is not a valid selector operator")

    def _matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator == OP_IN:
            return present and labels[self.key] in self.values
        if self.operator == OP_NOT_IN:
            return not present or labels[self.key] not in self.values
        if self.operator == OP_EXISTS:
            return present
        return not present


@dataclass
class LabelSelector:
    """Selects label sets by exact labels and set-based expressions."""

    match_labels: dict[str, str] | None = None
    match_expressions: list[LabelSelectorRequirement] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LabelSelector:
        data = _mapping(data, "selector")
        labels = data.get("matchLabels")
        match_labels: dict[str, str] | None = None
        if labels is not None:
            labels = _mapping(labels, "selector.matchLabels")
            match_labels = {}
            for key, value in labels.items():
                if not isinstance(key, str) or not isinstance(value, str):
                    raise ValueError("selector.matchLabels must map strings to strings")
                match_labels[key] = value
        raw_exprs = _list(data, "matchExpressions", "selector")
        exprs: list[LabelSelectorRequirement] | None = None
        if raw_exprs is not None:
            exprs = []
            for raw in raw_exprs:
                raw = _mapping(raw, "selector.matchExpressions[]")
                values = _list(raw, "values", "selector.matchExpressions[]") or []
                exprs.append(
                    LabelSelectorRequirement(
                        key=_string(raw, "key", "selector.matchExpressions[]"),
                        operator=_string(raw, "operator", "selector.matchExpressions[]"),
                        values=_string_list(values, "selector.matchExpressions[].values"),
                    )
                )
        return cls(match_labels=match_labels, match_expressions=exprs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.match_labels is not None:
            out["matchLabels"] = dict(self.match_labels)
        if self.match_expressions is not None:
            exprs = []
            for req in self.match_expressions:
                item: dict[str, Any] = {"key": req.key, "operator": req.operator}
                if req.values:
                    item["values"] = list(req.values)
                exprs.append(item)
            out["matchExpressions"] = exprs
        return out

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Tell whether ``labels`` satisfies every part of the selector."""
        exprs = self.match_expressions or []
        for req in exprs:
            req._check()
        for key, value in (self.match_labels or {}).items():
            if key not in labels or labels[key] != value:
                return False
        return all(req._matches(labels) for req in exprs)


@dataclass
class FileOperation:
    """Copies files matching ``from_`` to ``to`` during installation."""

    from_: str
    to: str


@dataclass
class Platform:
    """Download and install instructions for a set of platforms."""

    uri: str = ""
    sha256: str = ""
    bin: str = ""
    files: list[FileOperation] | None = None
    selector: LabelSelector | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Platform:
        data = _mapping(data, "platform")
        raw_files = _list(data, "files", "platform")
        files = None
        if raw_files is not None:
            files = []
            for raw in raw_files:
                raw = _mapping(raw, "platform.files[]")
                files.append(
                    FileOperation(
                        from_=_string(raw, "from", "platform.files[]"),
                        to=_string(raw, "to", "platform.files[]"),
                    )
                )
        raw_selector = data.get("selector")
        return cls(
            uri=_string(data, "uri", "platform"),
            sha256=_string(data, "sha256", "platform"),
            bin=_string(data, "bin", "platform"),
            files=files,
            selector=None if raw_selector is None else LabelSelector.from_dict(raw_selector),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.uri:
            out["uri"] = self.uri
        if self.sha256:
            out["sha256"] = self.sha256
        if self.bin:
            out["bin"] = self.bin
        if self.files is not None:
            out["files"] = [{"from": op.from_, "to": op.to} for op in self.files]
        if self.selector is not None:
            out["selector"] = self.selector.to_dict()
        return out


@dataclass
class PluginSpec:
    """The descriptive and installable part of a plugin manifest."""

    version: str = ""
    short_description: str = ""
    description: str = ""
    caveats: str = ""
    homepage: str = ""
    platforms: list[Platform] = field(default_factory=list)


_SPEC_KEYS = (
    ("version", "version"),
    ("short_description", "shortDescription"),
    ("description", "description"),
    ("caveats", "caveats"),
    ("homepage", "homepage"),
)


@dataclass
class Plugin:
    """A plugin manifest."""

    name: str = ""
    api_version: str = CURRENT_API_VERSION
    kind: str = PLUGIN_KIND
    spec: PluginSpec = field(default_factory=PluginSpec)

    @classmethod
    def from_dict(cls, data: Any) -> Plugin:
        data = _mapping(data, "manifest")
        metadata = _mapping(data.get("metadata"), "metadata")
        raw_spec = _mapping(data.get("spec"), "spec")
        spec = PluginSpec(
            **{attr: _string(raw_spec, key, "spec") for attr, key in _SPEC_KEYS},
            platforms=[
                Platform.from_dict(p) for p in _list(raw_spec, "platforms", "spec") or []
            ],
        )
        return cls(
            name=_string(metadata, "name", "metadata"),
            api_version=_string(data, "apiVersion", "manifest"),
            kind=_string(data, "kind", "manifest"),
            spec=spec,
        )

    def to_dict(self) -> dict[str, Any]:
        spec: dict[str, Any] = {
            key: getattr(self.spec, attr)
            for attr, key in _SPEC_KEYS
            if getattr(self.spec, attr)
        }
        spec["platforms"] = [p.to_dict() for p in self.spec.platforms]
        out: dict[str, Any] = {}
        if self.api_version:
            out["apiVersion"] = self.api_version
        if self.kind:
            out["kind"] = self.kind
        out["metadata"] = {"name": self.name} if self.name else {}
        out["spec"] = spec
        return out


@dataclass
class SourceIndex:
    """The index a plugin was installed from."""

    name: str = ""


@dataclass
class ReceiptStatus:
    """Installation status recorded in a receipt."""

    source: SourceIndex = field(default_factory=SourceIndex)


@dataclass
class Receipt:
    """Record of an installed plugin: its manifest and install status."""

    plugin: Plugin = field(default_factory=Plugin)
    status: ReceiptStatus = field(default_factory=ReceiptStatus)

    @classmethod
    def from_dict(cls, data: Any) -> Receipt:
        data = _mapping(data, "receipt")
        status = _mapping(data.get("status"), "status")
        source = _mapping(status.get("source"), "status.source")
        return cls(
            plugin=Plugin.from_dict(data),
            status=ReceiptStatus(SourceIndex(_string(source, "name", "status.source"))),
        )

    def to_dict(self) -> dict[str, Any]:
        out = self.plugin.to_dict()
        out["status"] = {"source": {"name": self.status.source.name}}
        return out