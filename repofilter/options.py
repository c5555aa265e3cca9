"""Run options for repository filtering and the checks made on them."""

from __future__ import annotations

import dataclasses
import enum
import re
from dataclasses import dataclass, field
from pathlib import Path

from repofilter.gitutil import GitCapabilities

MAX_PATH_BYTES = 4096
USIZE_MAX = 2**64 - 1


class InvalidOptionsError(ValueError):
    """The options contradict each other or exceed supported limits."""


class CapabilityError(RuntimeError):
    """The installed git lacks a feature the options need."""


class CleanupMode(enum.Enum):
    NONE = "none"
    STANDARD = "standard"
    AGGRESSIVE = "aggressive"


class Mode(enum.Enum):
    FILTER = "filter"
    ANALYZE = "analyze"


@dataclass
class AnalyzeThresholds:
    """Limits above which repository analysis reports a warning."""

    warn_total_bytes: int = 1 * 1024 * 1024 * 1024
    crit_total_bytes: int = 5 * 1024 * 1024 * 1024
    warn_blob_bytes: int = 10 * 1024 * 1024
    warn_ref_count: int = 20_000
    warn_object_count: int = 10_000_000
    warn_tree_entries: int = 2_000
    warn_path_length: int = 200
    warn_duplicate_paths: int = 1_000
    warn_commit_msg_bytes: int = 10_000
    warn_max_parents: int = 8


@dataclass
class AnalyzeConfig:
    """Settings for analysis mode."""

    json: bool = False
    top: int = 10
    thresholds: AnalyzeThresholds = field(default_factory=AnalyzeThresholds)


@dataclass
class Options:
    """Everything that controls one filtering or analysis run."""

    source: Path = field(default_factory=lambda: Path("."))
    target: Path = field(default_factory=lambda: Path("."))
    refs: list[str] = field(default_factory=lambda: ["--all"])
    date_order: bool = False
    no_data: bool = False
    quiet: bool = False
    reset: bool = True
    replace_message_file: Path | None = None
    replace_text_file: Path | None = None
    paths: list[bytes] = field(default_factory=list)
    invert_paths: bool = False
    path_globs: list[bytes] = field(default_factory=list)
    path_regexes: list[re.Pattern] = field(default_factory=list)
    path_renames: list[tuple[bytes, bytes]] = field(default_factory=list)
    tag_rename: tuple[bytes, bytes] | None = None
    branch_rename: tuple[bytes, bytes] | None = None
    max_blob_size: int | None = None
    strip_blobs_with_ids: Path | None = None
    write_report: bool = False
    cleanup: CleanupMode = CleanupMode.NONE
    reencode: bool = True
    reencode_requested: bool | None = None
    quotepath: bool = True
    mark_tags: bool = True
    mark_tags_requested: bool | None = None
    fe_stream_override: Path | None = None
    force: bool = False
    enforce_sanity: bool = True
    dry_run: bool = False
    partial: bool = False
    sensitive: bool = False
    no_fetch: bool = False
    backup: bool = False
    backup_path: Path | None = None
    mode: Mode = Mode.FILTER
    analyze: AnalyzeConfig = field(default_factory=AnalyzeConfig)
    debug_mode: bool = False
    git_caps: GitCapabilities = field(default_factory=GitCapabilities)

    def copy(self) -> "Options":
        return dataclasses.replace(self)

    def apply_git_capabilities(self, caps: GitCapabilities) -> None:
        """Record git's capabilities, turning off unsupported defaults.

        Raises CapabilityError when an explicitly requested feature is missing.
        """
        self.git_caps = caps

        if not caps.diff_tree_combined_all_paths:
            raise CapabilityError(
                "need git >= 2.22.0: git diff-tree lacks --combined-all-paths"
            )

        if not caps.fast_export_reencode:
            if self.reencode_requested is True:
                raise CapabilityError(
                    "need git >= 2.23.0: git fast-export lacks --reencode"
                )
            self.reencode = False

        if not caps.fast_export_mark_tags:
            if self.mark_tags_requested is True:
                raise CapabilityError(
                    "need git >= 2.24.0: git fast-export lacks --mark-tags"
                )
            self.mark_tags = False

        if self.sensitive and not caps.cat_file_batch_command:
            raise CapabilityError(
                "need git >= 2.36.0: --sensitive requires 'git cat-file --batch-command'"
            )


def validate_options(opts: Options) -> None:
    """Reject option values that cannot be used for a filtering run."""
    if opts.max_blob_size is not None:
        if opts.max_blob_size <= 0 or opts.max_blob_size >= USIZE_MAX:
            raise InvalidOptionsError(
                "max-blob-size must be greater than zero and smaller than usize::MAX"
            )

    if any(len(entry) > MAX_PATH_BYTES for entry in opts.paths):
        raise InvalidOptionsError("path filter entries exceed supported length")

    for old, new in opts.path_renames:
        if old == new:
            raise InvalidOptionsError("path rename source and destination must differ")
        if len(old) > MAX_PATH_BYTES or len(new) > MAX_PATH_BYTES:
            raise InvalidOptionsError("path rename entries exceed supported length")