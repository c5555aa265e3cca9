"""Queries against git repositories: capabilities, refs, reflogs and layout."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

_USAGE_EXIT_CODE = 129


class GitError(OSError):
    """A git command failed or a repository has an unexpected layout."""


@dataclass(frozen=True)
class GitCapabilities:
    """Optional features of the installed git, as advertised by its help texts."""

    fast_export_anonymize_map: bool = True
    fast_export_mark_tags: bool = True
    fast_export_reencode: bool = True
    diff_tree_combined_all_paths: bool = True
    cat_file_batch_command: bool = True

    @classmethod
    def from_help_texts(
        cls, fast_export_help: str, diff_tree_help: str, cat_file_help: str
    ) -> "GitCapabilities":
        """Detect capabilities from the output of 'git <cmd> -h'."""
        return cls(
            fast_export_anonymize_map="--anonymize-map" in fast_export_help,
            fast_export_mark_tags="--mark-tags" in fast_export_help
            or "--[no-]mark-tags" in fast_export_help,
            fast_export_reencode="--reencode" in fast_export_help
            or "--[no-]reencode" in fast_export_help,
            diff_tree_combined_all_paths="--combined-all-paths" in diff_tree_help,
            cat_file_batch_command="--batch-command" in cat_file_help,
        )


def _capture_git_help(*args: str) -> str:
    result = subprocess.run(
        ["git", *args], stdout=subprocess.PIPE, stderr=subprocess.PIPE
    )
    if result.returncode not in (0, _USAGE_EXIT_CODE):
        raise GitError(f"'git {' '.join(args)}' failed")
    return (result.stdout + result.stderr).decode("utf-8", errors="replace")


def probe_git_capabilities() -> GitCapabilities:
    """Ask the installed git which optional features it supports."""
    return GitCapabilities.from_help_texts(
        _capture_git_help("fast-export", "-h"),
        _capture_git_help("diff-tree", "-h"),
        _capture_git_help("cat-file", "-h"),
    )


def _git_output(repo, *args: str, stderr=subprocess.DEVNULL) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", "-C", str(repo), *args], stdout=subprocess.PIPE, stderr=stderr
    )


def git_dir(repo) -> Path:
    """The repository's GIT_DIR, made absolute relative to the repository if needed."""
    repo = Path(repo)
    result = _git_output(repo, "rev-parse", "--git-dir", stderr=None)
    if result.returncode != 0:
        raise GitError(f"'git -C {str(repo)!r} rev-parse --git-dir' failed")
    path = Path(result.stdout.decode("utf-8", errors="replace").strip())
    return path if path.is_absolute() else repo / path


def get_all_refs(repo_path) -> dict[str, str]:
    """Map every ref name to the object id it points at."""
    result = _git_output(repo_path, "for-each-ref", "--format=%(refname) %(objectname)")
    if result.returncode != 0:
        raise GitError(f"'git -C {str(repo_path)!r} for-each-ref' failed")
    refs: dict[str, str] = {}
    for line in result.stdout.decode("utf-8", errors="replace").splitlines():
        parts = line.split()
        if len(parts) >= 2:
            refs[parts[0]] = parts[1]
    return refs


def is_bare_repository(repo_path) -> bool:
    """True if the repository has no working tree."""
    result = _git_output(repo_path, "rev-parse", "--is-bare-repository")
    if result.returncode != 0:
        raise GitError(
            f"'git -C {str(repo_path)!r} rev-parse --is-bare-repository' failed"
        )
    return result.stdout.decode("utf-8", errors="replace").strip().lower() == "true"


def get_reflog_entries(repo_path, refname: str) -> list[str]:
    """Commit ids recorded in the reflog of a ref; empty if there is no reflog."""
    result = _git_output(repo_path, "reflog", "show", "--format=%H", refname)
    if result.returncode != 0:
        return []
    return [
        line.strip()
        for line in result.stdout.decode("utf-8", errors="replace").splitlines()
        if line.strip()
    ]


def _walk_reflogs(directory: Path, prefix: str):
    if not directory.is_dir():
        return
    for entry in sorted(directory.iterdir()):
        name = f"{prefix}/{entry.name}"
        if entry.is_dir():
            yield from _walk_reflogs(entry, name)
        else:
            yield name


def list_all_reflogs(repo_path) -> list[str]:
    """Names of all reflogs found under GIT_DIR/logs/refs."""
    logs_dir = git_dir(repo_path) / "logs" / "refs"
    if not logs_dir.exists():
        return []
    return list(_walk_reflogs(logs_dir, "refs"))


def _walk_files(directory: Path):
    if not directory.is_dir():
        return
    for entry in directory.iterdir():
        if entry.is_dir():
            yield from _walk_files(entry)
        else:
            yield entry.name


def get_replace_refs(repo_path) -> set[str]:
    """Object ids that have replace refs under GIT_DIR/refs/replace."""
    replace_dir = git_dir(repo_path) / "refs" / "replace"
    if not replace_dir.exists():
        return set()
    return set(_walk_files(replace_dir))


def _same_path(a: Path, b: Path) -> bool:
    if a == b:
        return True
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return False


def validate_git_dir_structure(repo_path, is_bare: bool) -> Path:
    """Check GIT_DIR is '.' for bare and '.git' for non-bare repositories; return it."""
    repo_path = Path(repo_path)
    directory = git_dir(repo_path)
    if is_bare:
        if not _same_path(directory, repo_path):
            raise GitError(
                f"Bare repository GIT_DIR should be '.', but found '{directory}'"
            )
    elif directory.name != ".git":
        raise GitError(
            f"Non-bare repository GIT_DIR should be '.git', but found '{directory.name}'"
        )
    return directory