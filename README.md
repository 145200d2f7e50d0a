# krewkit

Tooling for kubectl plugin indexes: reading and validating plugin
manifests, managing local git clones of plugin indexes, and downloading,
verifying and unpacking plugin archives.

## Installation

```
pip install .
```

Requires Python 3.10 or newer. The index functions need a `git`
executable on `PATH`.

## Where things live

`krewkit.environment.get_krew_paths()` returns a `Paths` object rooted at
`~/.krew`, or at `KREW_ROOT` when that is set. Inside the base directory:

- `index/` – local clones of plugin indexes
- `receipts/` – one `<plugin>.yaml` receipt per installed plugin
- `store/` – plugin files, `store/<plugin>/<version>/`
- `bin/` – the directory meant to be on your `PATH`

Setting the `X_KREW_ENABLE_MULTI_INDEX` environment variable switches on
support for several named indexes, each cloned under `index/<name>/`.
`krewkit.indexmigration.migrate(paths)` moves an old single clone in
`index/` to `index/default/`.

## Commands

### validate-krew-manifest

```
validate-krew-manifest --manifest plugins/my-plugin.yaml
```

Checks that the manifest is structurally valid, that its file has the
`.yaml` extension and is named after the plugin, that every platform
selector matches at least one supported OS/architecture pair, and that no
pair is matched by more than one platform. It then runs
`kubectl krew install --manifest FILE` once per platform in a temporary
`KREW_ROOT`, so `kubectl` with krew must be on `PATH`. Exits with status 1
on the first failure. `-v 2` turns on debug logging.

### generate-plugin-overview

```
generate-plugin-overview --plugins-dir path/to/index/plugins > plugins.md
```

Prints a Markdown table of every valid plugin manifest in the directory,
linking each plugin's homepage and adding a GitHub stars badge when the
homepage points at a known repository. Without `--plugins-dir` it prints
usage and exits.

## Library use

```python
from krewkit.environment import get_krew_paths
from krewkit.indexscanner import load_plugin_list, read_plugin_from_file
from krewkit.indexoperations import list_indexes
from krewkit.download import Downloader, FileFetcher, Sha256Verifier

paths = get_krew_paths()

for index in list_indexes(paths):
    for plugin in load_plugin_list(paths.index_plugins_path(index.name)):
        print(index.name, plugin.name, plugin.spec.version)

# Reading a manifest also validates it; ManifestError is raised if it is invalid.
plugin = read_plugin_from_file("plugins/my-plugin.yaml")

platform = plugin.spec.platforms[0]
downloader = Downloader(Sha256Verifier(platform.sha256), FileFetcher("my-plugin.tar.gz"))
downloader.get(platform.uri, "/tmp/my-plugin")
```

Other pieces:

- `krewkit.validation` – `validate_plugin`, `validate_platform`,
  `validate_selector`, `is_safe_plugin_name`; errors are `ValidationError`.
- `krewkit.indexoperations` – `add_index`, `delete_index`,
  `is_valid_index_name`.
- `krewkit.gitutil` – `ensure_cloned`, `ensure_updated` (fetch, hard reset
  to upstream, clean), `get_remote_url`; failures raise `GitError`.
- `krewkit.naming` – `display_name`, `canonical_name`, `is_canonical_name`,
  `print_table`, `limit_string`.
- `krewkit.manifest` – the `Plugin`, `Platform`, `Receipt` and
  `LabelSelector` data classes with `from_dict` / `to_dict`.

Archives are recognised by content: zip files and gzipped tarballs are
supported. Entries containing `..` or starting with `/` or `\` are
refused.

## What this package does not do

There is no plugin-manager command: nothing here installs, upgrades,
uninstalls or lists installed plugins, writes install receipts, or
updates indexes from the command line. Those steps are available only as
the library functions above.

## Running the tests

```
pip install .[test]
pytest
```