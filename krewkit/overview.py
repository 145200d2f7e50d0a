"""Renders a markdown overview page of the plugins in an index directory."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from collections.abc import Iterable, Sequence

from krewkit.indexscanner import ManifestError, load_plugin_list
from krewkit.manifest import Plugin

logger = logging.getLogger(__name__)

SEPARATOR = " | "

PAGE_HEADER = """## Available kubectl plugins

To install these kubectl plugins:

1. [Install Krew](https://github.com/kubernetes-sigs/krew#installation)
2. Run `kubectl krew install PLUGIN_NAME` to install a plugin via Krew.

The following kubectl plugins are currently available on
[Krew plugin index](https://sigs.k8s.io/krew-index). Note that this table may be
outdated. For the most up-to-date list of plugins, visit the
[krew-index](https://github.com/kubernetes-sigs/krew-index/tree/master/plugins)
repository or run <code>kubectl krew search</code>.
"""

PAGE_FOOTER = """

---

_This page is generated by running the
[generate-plugin-overview](http://sigs.k8s.io/krew/cmd/generate-plugin-overview)
tool._
"""

_GITHUB_REPO = re.compile(r".*github\.com/([^/]+/[^/#]+)")

_KNOWN_HOME_PAGES = {
    "https://sigs.k8s.io/krew": "kubernetes-sigs/krew",
    "https://kubernetes.github.io/ingress-nginx/kubectl-plugin/": "kubernetes/ingress-nginx",
    "https://kudo.dev/": "kudobuilder/kudo",
    "https://kubevirt.io": "kubevirt/kubectl-virt-plugin",
    "https://popeyecli.io": "derailed/popeye",
}


def find_repo(home_page: str) -> str:
    """Return the ``owner/repo`` GitHub repository for a home page, or ``""``."""
    match = _GITHUB_REPO.search(home_page)
    if match:
        return match.group(1)
    return _KNOWN_HOME_PAGES.get(home_page, "")


def make_github_shield(home_page: str) -> str:
    """Return a markdown star-count badge for the home page's repository."""
    repo = find_repo(home_page)
    if not repo:
        return ""
    return (
        "![GitHub stars](https://img.shields.io/github/stars/"
        + repo
        + ".svg?label=stars&logo=github)"
    )


def format_row(*args: str) -> str:
    """Join the columns of one table row."""
    return SEPARATOR.join(args)


def format_plugin_row(plugin: Plugin) -> str:
    """Return the table row describing ``plugin``."""
    name = plugin.name
    homepage = plugin.spec.homepage
    if homepage:
        name = f"[{name.strip()}]({homepage})"
    description = plugin.spec.short_description.strip()
    return format_row(name, description, make_github_shield(homepage))


def render_overview(plugins: Iterable[Plugin]) -> str:
    """Return the whole markdown page listing ``plugins``."""
    lines = [
        PAGE_HEADER,
        format_row("Name", "Description", "Stars"),
        format_row("----", "-----------", "-----"),
    ]
    lines.extend(format_plugin_row(p) for p in plugins)
    lines.append(PAGE_FOOTER)
    return "\n".join(lines) + "\n"


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point; returns the process exit status."""
    parser = argparse.ArgumentParser(
        prog="generate-plugin-overview",
        description="Create a markdown overview page of plugin manifests.",
    )
    parser.add_argument(
        "-plugins-dir",
        "--plugins-dir",
        dest="plugins_dir",
        default="",
        help="The directory containing the plugin manifests",
    )
    args = parser.parse_args(argv)
    if not args.plugins_dir:
        parser.print_usage(sys.stderr)
        return 0
    try:
        plugins = load_plugin_list(args.plugins_dir)
    except (ManifestError, OSError) as err:
        logger.error("%s", err)
        print(err, file=sys.stderr)
        return 1
    sys.stdout.write(render_overview(plugins))
    return 0