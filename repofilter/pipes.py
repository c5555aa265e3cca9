"""Command lines for the fast-export producer and the fast-import consumer."""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path

from repofilter.gitutil import git_dir
from repofilter.options import Options


class PipeError(RuntimeError):
    """A pipeline command cannot be built with the given options."""


@dataclass
class CommandSpec:
    """A program, its arguments and how its standard streams are connected."""

    program: str
    args: list[str] = field(default_factory=list)
    stdin: int | None = None
    stdout: int | None = None
    stderr: int | None = None

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def popen(self, **kwargs) -> subprocess.Popen:
        """Start the command with its configured streams."""
        return subprocess.Popen(
            self.argv, stdin=self.stdin, stdout=self.stdout, stderr=self.stderr, **kwargs
        )


_REENCODE_MISSING = "error: git fast-export lacks --reencode; need git >= 2.23.0"
_MARK_TAGS_MISSING = "error: git fast-export lacks --mark-tags; need git >= 2.24.0"
_OVERRIDE_GATED = (
    "error: --fe_stream_override is gated behind debug mode. "
    "Set FRRS_DEBUG=1 or pass --debug-mode to access debug-only flags."
)


def _stderr_for(opts: Options) -> int | None:
    return subprocess.DEVNULL if opts.quiet else None


def _stream_override_cmd(opts: Options, stream_path: Path) -> CommandSpec:
    if not opts.debug_mode:
        raise PipeError(_OVERRIDE_GATED)
    if sys.platform == "win32":
        program, args = "cmd", ["/C", "type", str(stream_path)]
    else:
        program, args = "cat", [str(stream_path)]
    return CommandSpec(program, args, stdout=subprocess.PIPE, stderr=_stderr_for(opts))


def _auto_no_data(opts: Options) -> bool:
    # Blob payloads are unnecessary when writing back into the same object store
    # and only filtering by id or size, without content replacement.
    same_repo = Path(opts.source) == Path(opts.target)
    no_content_replace = opts.replace_text_file is None
    id_or_size_filters = (
        opts.max_blob_size is not None or opts.strip_blobs_with_ids is not None
    )
    return same_repo and no_content_replace and id_or_size_filters


def build_fast_export_cmd(opts: Options) -> CommandSpec:
    """The command producing the fast-export stream for the options."""
    if opts.fe_stream_override is not None:
        return _stream_override_cmd(opts, opts.fe_stream_override)

    args = ["-C", str(opts.source)]
    if opts.quotepath:
        args += ["-c", "core.quotepath=false"]
    args.append("fast-export")
    args.extend(opts.refs)
    args += [
        "--show-original-ids",
        "--signed-tags=strip",
        "--tag-of-filtered-object=rewrite",
        "--fake-missing-tagger",
        "--reference-excluded-parents",
        "--use-done-feature",
    ]
    if opts.date_order:
        args.append("--date-order")
    if opts.no_data or _auto_no_data(opts):
        args.append("--no-data")

    if opts.reencode:
        if not opts.git_caps.fast_export_reencode:
            raise PipeError(_REENCODE_MISSING)
        args.append("--reencode=yes")
    elif opts.reencode_requested is True:
        raise PipeError(_REENCODE_MISSING)

    if opts.mark_tags:
        if opts.git_caps.fast_export_mark_tags:
            args.append("--mark-tags")
        elif opts.mark_tags_requested is True:
            raise PipeError(_MARK_TAGS_MISSING)
    elif opts.mark_tags_requested is True:
        raise PipeError(_MARK_TAGS_MISSING)

    return CommandSpec("git", args, stdout=subprocess.PIPE, stderr=_stderr_for(opts))


def build_fast_import_cmd(opts: Options) -> CommandSpec:
    """The command consuming the rewritten stream into the target repository."""
    args = ["-C", str(opts.target), "-c", "core.ignorecase=false", "fast-import"]
    args += ["--force", "--quiet"]
    if opts.git_caps.fast_export_anonymize_map:
        args.append("--date-format=raw-permissive")
    try:
        marks_path = git_dir(opts.target) / "filter-repo" / "target-marks"
    except OSError:
        marks_path = None
    if marks_path is not None:
        args.append(f"--export-marks={marks_path}")
    return CommandSpec("git", args, stdin=subprocess.PIPE, stdout=subprocess.PIPE)