import yaml

from krewkit.manifest import LabelSelector, Platform, Plugin, PluginSpec
from krewkit.overview import (
    PAGE_FOOTER,
    PAGE_HEADER,
    find_repo,
    format_plugin_row,
    format_row,
    main,
    make_github_shield,
    render_overview,
)


def make_plugin(name, homepage="", short="does things"):
    return Plugin(
        name=name,
        spec=PluginSpec(
            version="v1.0.0",
            short_description=short,
            homepage=homepage,
            platforms=[
                Platform(
                    uri="https://example.com/a.tar.gz",
                    sha256="a" * 64,
                    bin="a",
                    selector=LabelSelector(match_labels={"os": "linux"}),
                )
            ],
        ),
    )


def test_find_repo_github():
    assert find_repo("https://github.com/someone/some-repo") == "someone/some-repo"
    assert find_repo("https://github.com/someone/some-repo#readme") == "someone/some-repo"


def test_find_repo_known_and_unknown():
    assert find_repo("https://sigs.k8s.io/krew") == "kubernetes-sigs/krew"
    assert find_repo("https://popeyecli.io") == "derailed/popeye"
    assert find_repo("https://example.com/plugin") == ""
    assert find_repo("") == ""


def test_make_github_shield():
    assert make_github_shield("https://kudo.dev/") == (
        "![GitHub stars](https://img.shields.io/github/stars/"
        "kudobuilder/kudo.svg?label=stars&logo=github)"
    )
    assert make_github_shield("https://example.com") == ""


def test_format_row():
    assert format_row("a", "b", "c") == "a | b | c"
    assert format_row("only") == "only"


def test_format_plugin_row_with_homepage():
    plugin = make_plugin("foo", homepage="https://github.com/o/r", short="  padded  ")
    row = format_plugin_row(plugin)
    columns = row.split(" | ")
    assert columns[0] == "[foo](https://github.com/o/r)"
    assert columns[1] == "padded"
    assert columns[2] == make_github_shield("https://github.com/o/r")


def test_format_plugin_row_without_homepage():
    row = format_plugin_row(make_plugin("bar"))
    assert row.split(" | ") == ["bar", "does things", ""]


def test_render_overview_layout():
    plugins = [make_plugin("foo"), make_plugin("bar")]
    page = render_overview(plugins)
    assert page.startswith(PAGE_HEADER + "\n")
    assert page.endswith(PAGE_FOOTER + "\n")
    body = page[len(PAGE_HEADER) + 1 : -len(PAGE_FOOTER) - 1].splitlines()
    assert body[0] == "Name | Description | Stars"
    assert body[1] == "---- | ----------- | -----"
    assert body[2:] == [format_plugin_row(p) for p in plugins]


def test_main_without_dir_prints_usage(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().err


def test_main_renders_directory(tmp_path, capsys):
    for name in ("alpha", "beta"):
        (tmp_path / f"{name}.yaml").write_text(yaml.safe_dump(make_plugin(name).to_dict()))
    assert main(["--plugins-dir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert out == render_overview([make_plugin("alpha"), make_plugin("beta")])


def test_main_missing_directory(tmp_path):
    assert main(["--plugins-dir", str(tmp_path / "missing")]) == 1