import pytest

from krewkit.manifest import (
    CURRENT_API_VERSION,
    PLUGIN_KIND,
    FileOperation,
    LabelSelector,
    LabelSelectorRequirement,
    Platform,
    Plugin,
    PluginSpec,
    Receipt,
    ReceiptStatus,
    SelectorError,
    SourceIndex,
)


def sample_plugin():
    return Plugin(
        name="foo",
        spec=PluginSpec(
            version="v1.0.0",
            short_description="short",
            description="long text",
            caveats="be careful",
            homepage="https://example.com/foo",
            platforms=[
                Platform(
                    uri="https://example.com/foo.tar.gz",
                    sha256="a" * 64,
                    bin="foo",
                    files=[FileOperation("*", ".")],
                    selector=LabelSelector(
                        match_labels={"os": "linux"},
                        match_expressions=[
                            LabelSelectorRequirement("arch", "In", ["amd64", "arm64"])
                        ],
                    ),
                )
            ],
        ),
    )


def test_plugin_round_trip():
    plugin = sample_plugin()
    assert Plugin.from_dict(plugin.to_dict()) == plugin


def test_plugin_from_dict_reads_manifest_keys():
    data = {
        "apiVersion": CURRENT_API_VERSION,
        "kind": PLUGIN_KIND,
        "metadata": {"name": "ctx"},
        "spec": {
            "version": "v0.1.0",
            "shortDescription": "switch contexts",
            "platforms": [
                {
                    "uri": "https://example.com/ctx.zip",
                    "sha256": "b" * 64,
                    "bin": "ctx",
                    "selector": {"matchLabels": {"os": "darwin"}},
                }
            ],
        },
        "unknownField": 1,
    }
    plugin = Plugin.from_dict(data)
    assert plugin.name == "ctx"
    assert plugin.api_version == CURRENT_API_VERSION
    assert plugin.kind == PLUGIN_KIND
    assert plugin.spec.short_description == "switch contexts"
    assert plugin.spec.platforms[0].bin == "ctx"
    assert plugin.spec.platforms[0].files is None
    assert plugin.spec.platforms[0].selector.match_labels == {"os": "darwin"}


def test_empty_files_list_is_preserved():
    platform = Platform.from_dict({"files": []})
    assert platform.files == []
    assert Platform.from_dict(platform.to_dict()).files == []


def test_non_string_field_is_rejected():
    with pytest.raises(ValueError):
        Plugin.from_dict({"spec": {"version": 1.5}})


def test_non_mapping_document_is_rejected():
    with pytest.raises(ValueError):
        Plugin.from_dict(["not", "a", "mapping"])


def test_receipt_round_trip():
    receipt = Receipt(sample_plugin(), ReceiptStatus(SourceIndex("custom")))
    again = Receipt.from_dict(receipt.to_dict())
    assert again == receipt
    assert again.status.source.name == "custom"


def test_receipt_without_status_has_empty_source():
    receipt = Receipt.from_dict(sample_plugin().to_dict())
    assert receipt.status.source.name == ""
    assert receipt.plugin == sample_plugin()


def test_match_labels():
    sel = LabelSelector(match_labels={"os": "darwin"})
    assert sel.matches({"os": "darwin", "arch": "amd64"})
    assert not sel.matches({"os": "windows", "arch": "amd64"})
    assert not sel.matches({})


@pytest.mark.parametrize(
    "operator,values,labels,expected",
    [
        ("In", ["darwin", "linux"], {"os": "linux"}, True),
        ("In", ["darwin", "linux"], {"os": "windows"}, False),
        ("In", ["darwin"], {}, False),
        ("NotIn", ["darwin"], {"os": "linux"}, True),
        ("NotIn", ["darwin"], {"os": "darwin"}, False),
        ("NotIn", ["darwin"], {}, True),
        ("Exists", [], {"os": "linux"}, True),
        ("Exists", [], {}, False),
        ("DoesNotExist", [], {}, True),
        ("DoesNotExist", [], {"os": "linux"}, False),
    ],
)
def test_match_expressions(operator, values, labels, expected):
    sel = LabelSelector(match_expressions=[LabelSelectorRequirement("os", operator, values)])
    assert sel.matches(labels) is expected


def test_empty_selector_matches_everything():
    assert LabelSelector().matches({"os": "linux"})


def test_in_without_values_is_an_error():
    sel = LabelSelector(match_expressions=[LabelSelectorRequirement("os", "In", [])])
    with pytest.raises(SelectorError):
        sel.matches({"os": "linux"})


def test_unknown_operator_is_an_error():
    sel = LabelSelector(match_expressions=[LabelSelectorRequirement("os", "Like", ["x"])])
    with pytest.raises(SelectorError):
        sel.matches({"os": "x"})


def test_selector_round_trip_keeps_empty_parts():
    sel = LabelSelector(match_labels={}, match_expressions=[])
    assert LabelSelector.from_dict(sel.to_dict()) == sel