import pytest

from krewkit.gitutil import (
    GitError,
    ensure_cloned,
    ensure_updated,
    get_remote_url,
    git_exec,
    is_git_cloned,
)


def _git(cwd, *args):
    return git_exec(
        str(cwd),
        "-c", "user.name=tester",
        "-c", "user.email=tester@example.com",
        "-c", "commit.gpgsign=false",
        *args,
    )


@pytest.fixture
def source_repo(tmp_path):
    src = tmp_path / "source"
    src.mkdir()
    _git(src, "init", "-q")
    _git(src, "commit", "-q", "--allow-empty", "-m", "initial")
    return src


def test_git_exec_returns_trimmed_output(tmp_path):
    _git(tmp_path, "init", "-q")
    git_exec(str(tmp_path), "config", "krewkit.setting", "value")
    assert git_exec(str(tmp_path), "config", "--get", "krewkit.setting") == "value"


def test_git_exec_failure(tmp_path):
    with pytest.raises(GitError, match="command execution failure"):
        git_exec(str(tmp_path), "no-such-subcommand-here")


def test_is_git_cloned_empty_dir(tmp_path):
    assert is_git_cloned(tmp_path) is False


def test_is_git_cloned_missing_dir(tmp_path):
    assert is_git_cloned(tmp_path / "missing") is False


def test_is_git_cloned_after_init(tmp_path):
    _git(tmp_path, "init", "-q")
    assert is_git_cloned(tmp_path) is True


def test_is_git_cloned_git_file(tmp_path):
    (tmp_path / ".git").write_text("not a directory")
    assert is_git_cloned(tmp_path) is False


def test_get_remote_url(tmp_path):
    url = "https://example.com/index.git"
    _git(tmp_path, "init", "-q")
    _git(tmp_path, "remote", "add", "origin", url)
    assert get_remote_url(tmp_path) == url


def test_get_remote_url_without_remote(tmp_path):
    _git(tmp_path, "init", "-q")
    with pytest.raises(GitError):
        get_remote_url(tmp_path)


def test_ensure_cloned_clones_and_is_idempotent(tmp_path, source_repo):
    dest = tmp_path / "dest"
    ensure_cloned(str(source_repo), dest)
    assert is_git_cloned(dest) is True
    assert get_remote_url(dest) == str(source_repo)

    marker = dest / "marker"
    marker.write_text("keep")
    ensure_cloned(str(source_repo), dest)
    assert marker.read_text() == "keep"


def test_ensure_cloned_invalid_uri(tmp_path):
    with pytest.raises(GitError):
        ensure_cloned(str(tmp_path / "invalid" / "repo"), tmp_path / "dest")
    assert is_git_cloned(tmp_path / "dest") is False


def test_ensure_updated_resets_and_cleans(tmp_path, source_repo):
    dest = tmp_path / "dest"
    ensure_updated(str(source_repo), dest)
    assert is_git_cloned(dest) is True

    (dest / "untracked.txt").write_text("junk")
    _git(source_repo, "commit", "-q", "--allow-empty", "-m", "second")

    ensure_updated(str(source_repo), dest)
    assert not (dest / "untracked.txt").exists()
    assert git_exec(str(dest), "rev-parse", "HEAD") == git_exec(
        str(source_repo), "rev-parse", "HEAD"
    )


def test_ensure_updated_fetch_failure(tmp_path):
    dest = tmp_path / "dest"
    dest.mkdir()
    _git(dest, "init", "-q")
    _git(dest, "remote", "add", "origin", str(tmp_path / "gone"))
    with pytest.raises(GitError, match="fetch index at"):
        ensure_updated("unused", dest)