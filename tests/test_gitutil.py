import string
import subprocess

import pytest

from repofilter.gitutil import (
    GitCapabilities,
    GitError,
    get_all_refs,
    get_reflog_entries,
    get_replace_refs,
    git_dir,
    is_bare_repository,
    list_all_reflogs,
    probe_git_capabilities,
    validate_git_dir_structure,
)


def _git(repo, *args):
    result = subprocess.run(
        ["git", *args], cwd=repo, stdout=subprocess.PIPE, stderr=subprocess.PIPE
    )
    assert result.returncode == 0, result.stderr
    return result.stdout.decode().strip()


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init")
    _git(path, "config", "user.name", "Test User")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "commit.gpgsign", "false")
    return path


@pytest.fixture
def bare_repo(tmp_path):
    path = tmp_path / "bare"
    path.mkdir()
    _git(path, "init", "--bare")
    return path


def _commit(repo):
    (repo / "test.txt").write_text("test content")
    _git(repo, "add", "test.txt")
    _git(repo, "commit", "-m", "Test commit")


def test_detects_capabilities_from_help_texts():
    fast_export_help = (
        "usage: git fast-export [<options>] <revision-range>\n"
        "  --anonymize-map=<file>\n"
        "  --mark-tags\n"
        "  --reencode=<mode>\n"
    )
    caps = GitCapabilities.from_help_texts(
        fast_export_help,
        "usage: git diff-tree [--combined-all-paths]",
        "usage: git cat-file [--batch-command]",
    )
    assert caps == GitCapabilities(True, True, True, True, True)


def test_missing_flags_disable_capabilities():
    caps = GitCapabilities.from_help_texts(
        "usage: git fast-export", "usage: git diff-tree", "usage: git cat-file"
    )
    assert caps == GitCapabilities(False, False, False, False, False)


def test_recognizes_bracketed_flag_variants():
    caps = GitCapabilities.from_help_texts("--[no-]mark-tags --[no-]reencode", "", "")
    assert caps.fast_export_mark_tags is True
    assert caps.fast_export_reencode is True
    assert caps.fast_export_anonymize_map is False


def test_probe_git_capabilities_reports_combined_all_paths():
    assert probe_git_capabilities().diff_tree_combined_all_paths is True


def test_git_dir_of_working_repo(repo):
    assert git_dir(repo).name == ".git"
    assert git_dir(repo).resolve() == (repo / ".git").resolve()


def test_git_dir_outside_repository_raises(tmp_path):
    plain = tmp_path / "plain"
    plain.mkdir()
    with pytest.raises(GitError):
        git_dir(plain / "missing")


def test_get_all_refs_empty_repo(repo):
    assert get_all_refs(repo) == {}


def test_get_all_refs_with_commits(repo):
    _commit(repo)
    refs = get_all_refs(repo)
    head = _git(repo, "rev-parse", "HEAD")
    heads = {k: v for k, v in refs.items() if k.startswith("refs/heads/")}
    assert heads
    assert set(heads.values()) == {head}


def test_get_all_refs_nonexistent_repo_raises(tmp_path):
    with pytest.raises(GitError):
        get_all_refs(tmp_path / "nope")


def test_is_bare_repository_false(repo):
    assert is_bare_repository(repo) is False


def test_is_bare_repository_true(bare_repo):
    assert is_bare_repository(bare_repo) is True


def test_get_reflog_entries_nonexistent(repo):
    assert get_reflog_entries(repo, "refs/heads/nonexistent") == []


def test_get_reflog_entries_with_commits(repo):
    _commit(repo)
    entries = get_reflog_entries(repo, "HEAD")
    assert entries[0] == _git(repo, "rev-parse", "HEAD")
    assert all(set(e) <= set(string.hexdigits) for e in entries)


def test_list_all_reflogs_empty_repo(repo):
    assert list_all_reflogs(repo) == []


def test_list_all_reflogs_with_commits(repo):
    _commit(repo)
    branch = _git(repo, "symbolic-ref", "--short", "HEAD")
    assert f"refs/heads/{branch}" in list_all_reflogs(repo)


def test_get_replace_refs_empty(repo):
    assert get_replace_refs(repo) == set()


def test_get_replace_refs_reads_files(repo):
    replace_dir = repo / ".git" / "refs" / "replace"
    replace_dir.mkdir(parents=True, exist_ok=True)
    name = "a" * 40
    (replace_dir / name).write_text("b" * 40 + "\n")
    assert get_replace_refs(repo) == {name}


def test_validate_git_dir_structure_non_bare(repo):
    assert validate_git_dir_structure(repo, False).name == ".git"


def test_validate_git_dir_structure_bare(bare_repo):
    assert validate_git_dir_structure(bare_repo, True).resolve() == bare_repo.resolve()


def test_validate_git_dir_structure_mismatch(repo):
    with pytest.raises(GitError, match="Bare repository GIT_DIR should be"):
        validate_git_dir_structure(repo, True)


def test_validate_bare_repo_as_non_bare_fails(bare_repo):
    with pytest.raises(GitError, match="Non-bare repository GIT_DIR should be '.git'"):
        validate_git_dir_structure(bare_repo, False)