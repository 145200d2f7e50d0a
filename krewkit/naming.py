"""Plugin naming across indexes and tabular output helpers."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TextIO

from krewkit.environment import DEFAULT_INDEX_NAME
from krewkit.manifest import Plugin, Receipt

_CANONICAL_NAME = re.compile(r"[\w-]+/[\w-]+", re.ASCII)

_PADDING = 2


def index_of(receipt: Receipt) -> str:
    """Return the name of the index a receipt's plugin came from."""
    return receipt.status.source.name or DEFAULT_INDEX_NAME


def is_default_index(name: str) -> bool:
    """Tell whether ``name`` refers to the default index."""
    return name == "" or name == DEFAULT_INDEX_NAME


def display_name(plugin: Plugin, index_name: str) -> str:
    """Return the plugin name, prefixed by its index unless that is the default."""
    if is_default_index(index_name):
        return plugin.name
    return f"{index_name}/{plugin.name}"


def canonical_name(plugin: Plugin, index_name: str) -> str:
    """Return ``INDEX/NAME`` for a plugin, even in the default index."""
    if is_default_index(index_name):
        index_name = DEFAULT_INDEX_NAME
    return f"{index_name}/{plugin.name}"


def is_canonical_name(s: str) -> bool:
    """Tell whether ``s`` has the ``INDEX/NAME`` form."""
    return _CANONICAL_NAME.fullmatch(s) is not None


def _align(lines: list[list[str]]) -> list[str]:
    """Align tab-separated cells into columns; a line's last cell is never padded."""
    out: list[str] = []
    widths: list[int] = []

    def write_lines(line0: int, line1: int) -> None:
        for line in lines[line0:line1]:
            parts = []
            for j, cell in enumerate(line):
                parts.append(cell)
                if j < len(widths):
                    parts.append(" " * (widths[j] - len(cell)))
            out.append("".join(parts))

    def layout(line0: int, line1: int) -> None:
        column = len(widths)
        this = line0
        while this < line1:
            if column >= len(lines[this]) - 1:
                this += 1
                continue
            write_lines(line0, this)
            line0 = this
            width = 0
            while this < line1 and column < len(lines[this]) - 1:
                width = max(width, len(lines[this][column]) + _PADDING)
                this += 1
            widths.append(width)
            layout(line0, this)
            widths.pop()
            line0 = this
        write_lines(line0, line1)

    layout(0, len(lines))
    return out


def print_table(out: TextIO, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    """Write ``columns`` and ``rows`` to ``out`` as space-aligned columns."""
    text = "".join("\t".join(values) + "\n" for values in [columns, *rows])
    lines = [line.split("\t") for line in text.split("\n")[:-1]]
    for line in _align(lines):
        out.write(line + "\n")


def sort_by_first_column(rows: list[list[str]]) -> list[list[str]]:
    """Sort ``rows`` in place by their first cell and return them."""
    rows.sort(key=lambda row: row[0])
    return rows


def limit_string(s: str, length: int) -> str:
    """Shorten ``s`` to ``length`` characters, ending in ``...`` when cut."""
    if len(s) > length and length > 3:
        return s[: length - 3] + "..."
    return s