import io

import pytest

from krewkit.manifest import Plugin, Receipt, ReceiptStatus, SourceIndex
from krewkit.naming import (
    canonical_name,
    display_name,
    index_of,
    is_canonical_name,
    is_default_index,
    limit_string,
    print_table,
    sort_by_first_column,
)


def _receipt(source_name):
    return Receipt(plugin=Plugin(name="foo"), status=ReceiptStatus(SourceIndex(source_name)))


def test_is_default_index():
    assert is_default_index("") is True
    assert is_default_index("default") is True
    assert is_default_index("foo") is False


def test_index_of():
    assert index_of(_receipt("")) == "default"
    assert index_of(_receipt("default")) == "default"
    assert index_of(_receipt("foo")) == "foo"


@pytest.mark.parametrize(
    "plugin_name, index, expected",
    [
        ("foo", "default", "foo"),
        ("foo", "", "foo"),
        ("bar", "foo", "foo/bar"),
    ],
)
def test_display_name(plugin_name, index, expected):
    assert display_name(Plugin(name=plugin_name), index) == expected


def test_canonical_name():
    assert canonical_name(Plugin(name="foo"), "") == "default/foo"
    assert canonical_name(Plugin(name="bar"), "default") == "default/bar"
    assert canonical_name(Plugin(name="quux"), "custom") == "custom/quux"


@pytest.mark.parametrize(
    "arg, expected",
    [
        ("foo", False),
        ("../index/foo", False),
        ("index/foo", True),
        ("", False),
        ("0-0", False),
        ("a/", False),
        ("/b", False),
        ("a-a/b-b", True),
        ("a//b", False),
        ("a / b", False),
        ("a /b", False),
        ("a/ b", False),
    ],
)
def test_is_canonical_name(arg, expected):
    assert is_canonical_name(arg) is expected


def test_print_table_aligns_columns():
    out = io.StringIO()
    print_table(out, ["NAME", "V"], [["a", "x"], ["bbb", "y"]])
    assert out.getvalue() == "NAME  V\na     x\nbbb   y\n"


def test_print_table_header_only():
    out = io.StringIO()
    print_table(out, ["PLUGIN", "VERSION"], [])
    assert out.getvalue() == "PLUGIN  VERSION\n"


def test_print_table_short_row_breaks_block():
    out = io.StringIO()
    print_table(out, ["A", "B"], [["x"], ["yy", "z"]])
    assert out.getvalue() == "A  B\nx\nyy  z\n"


def test_print_table_three_columns():
    out = io.StringIO()
    print_table(
        out,
        ["NAME", "DESCRIPTION", "INSTALLED"],
        [["ctx", "Switch contexts", "yes"], ["ns", "Switch ns", "no"]],
    )
    assert out.getvalue().splitlines() == [
        "NAME  DESCRIPTION      INSTALLED",
        "ctx   Switch contexts  yes",
        "ns    Switch ns        no",
    ]


def test_sort_by_first_column():
    rows = [["b", "1"], ["a", "2"], ["c", "3"]]
    result = sort_by_first_column(rows)
    assert result == [["a", "2"], ["b", "1"], ["c", "3"]]
    assert rows == result


@pytest.mark.parametrize(
    "s, length, expected",
    [
        ("abcdefgh", 5, "ab..."),
        ("abc", 5, "abc"),
        ("abcde", 5, "abcde"),
        ("abcdefgh", 3, "abcdefgh"),
    ],
)
def test_limit_string(s, length, expected):
    assert limit_string(s, length) == expected


def test_limit_string_never_exceeds_length():
    text = "x" * 120
    assert len(limit_string(text, 50)) == 50