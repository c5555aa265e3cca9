"""Command-line argument parsing into run options."""

from __future__ import annotations

import dataclasses
import os
import re
import sys
import tomllib
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from repofilter.gitutil import GitCapabilities, probe_git_capabilities
from repofilter.helptext import CONFIG_FILE_NAME, DEBUG_ENV_VAR, print_help
from repofilter.options import (
    AnalyzeConfig,
    AnalyzeThresholds,
    CapabilityError,
    CleanupMode,
    Mode,
    Options,
)

CONFIG_ENV_VAR = "REPOFILTER_CONFIG"

_U64_MAX = 2**64 - 1
_KIB = 1024
_MIB = 1024 * _KIB
_GIB = 1024 * _MIB
_SIZE_SUFFIXES = {"K": _KIB, "M": _MIB, "G": _GIB}
_INTEGER_RE = re.compile(r"\+?[0-9]+")
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})
_LEGACY_CLEANUP_MODES = {
    "none": CleanupMode.NONE,
    "standard": CleanupMode.STANDARD,
    "aggressive": CleanupMode.AGGRESSIVE,
}
_THRESHOLD_FIELDS = tuple(f.name for f in dataclasses.fields(AnalyzeThresholds))

# flag -> (threshold field, unit named in the missing-value message)
_LEGACY_THRESHOLD_FLAGS = {
    "--analyze-total-warn": ("warn_total_bytes", "BYTES"),
    "--analyze-total-critical": ("crit_total_bytes", "BYTES"),
    "--analyze-large-blob": ("warn_blob_bytes", "BYTES"),
    "--analyze-ref-warn": ("warn_ref_count", "COUNT"),
    "--analyze-object-warn": ("warn_object_count", "COUNT"),
    "--analyze-tree-entries": ("warn_tree_entries", "COUNT"),
    "--analyze-path-length": ("warn_path_length", "LENGTH"),
    "--analyze-duplicate-paths": ("warn_duplicate_paths", "COUNT"),
    "--analyze-commit-msg-warn": ("warn_commit_msg_bytes", "BYTES"),
    "--analyze-max-parents-warn": ("warn_max_parents", "COUNT"),
}

_warned: set[str] = set()


class UsageError(Exception):
    """The command line or configuration cannot be used."""


def _warn_once(key: str) -> bool:
    if key in _warned:
        return False
    _warned.add(key)
    return True


def _to_bytes(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _parse_digits(text: str) -> int | None:
    normalized = text.replace("_", "")
    if not _INTEGER_RE.fullmatch(normalized):
        return None
    value = int(normalized)
    return value if value <= _U64_MAX else None


def parse_integer(text: str, flag: str) -> int:
    """Parse a non-negative integer that may contain '_' separators."""
    value = _parse_digits(text)
    if value is None:
        raise UsageError(f"{flag} expects an integer number")
    return value


def parse_max_blob_size(text: str) -> int:
    """Parse a byte count with an optional K, M or G suffix."""
    error = UsageError(
        "--max-blob-size expects an integer number of bytes "
        "(optionally suffixed with K, M, or G)"
    )
    if not text:
        raise error
    last = text[-1]
    key = last.upper() if last.isascii() else last
    if key in _SIZE_SUFFIXES:
        number, multiplier = text[:-1], _SIZE_SUFFIXES[key]
    elif last.isascii() and last.isalpha():
        raise error
    else:
        number, multiplier = text, 1
    if not number:
        raise error
    value = _parse_digits(number)
    if value is None:
        raise error
    scaled = value * multiplier
    if scaled > _U64_MAX:
        raise error
    return scaled


def debug_env_flag_enabled(raw: str) -> bool:
    """True unless the value is empty or one of 0/false/no/off."""
    normalized = raw.strip().lower()
    return bool(normalized) and normalized not in _FALSE_WORDS


def debug_mode_enabled(args, environ: Mapping[str, str] | None = None) -> bool:
    """Debug mode is on through the environment or a --debug-mode argument."""
    env = os.environ if environ is None else environ
    value = env.get(DEBUG_ENV_VAR)
    if value is not None and debug_env_flag_enabled(value):
        return True
    return "--debug-mode" in args


def _guard_debug(flag: str, debug_mode: bool) -> None:
    if not debug_mode:
        raise UsageError(
            f"{flag} is gated behind debug mode. Set {DEBUG_ENV_VAR}=1 "
            "or pass --debug-mode to access debug-only flags."
        )


def _warn_legacy_threshold(flag: str, config_key: str) -> None:
    if _warn_once(flag):
        print(
            f"warning: {flag} is deprecated; set {config_key} in your "
            f"{CONFIG_FILE_NAME} (or --config) file instead.",
            file=sys.stderr,
        )


def _warn_legacy_cleanup(mode: str) -> None:
    if not _warn_once(f"cleanup:{mode}"):
        return
    messages = {
        "none": "--cleanup=none is deprecated; simply omit --cleanup to keep cleanup disabled.",
        "standard": "--cleanup=standard is deprecated; use --cleanup (boolean) "
        "to request standard cleanup.",
        "aggressive": "--cleanup=aggressive is deprecated; use --cleanup-aggressive "
        "in debug mode if you need the old aggressive behavior.",
    }
    message = messages.get(
        mode,
        "--cleanup with an explicit value is deprecated; "
        "use --cleanup or --cleanup-aggressive instead.",
    )
    print(f"warning: {message}", file=sys.stderr)


def _parse_legacy_cleanup(value: str, opts: Options) -> None:
    _warn_legacy_cleanup(value)
    if value not in _LEGACY_CLEANUP_MODES:
        raise UsageError(f"--cleanup: unknown mode '{value}'")
    if value == "aggressive":
        _guard_debug("--cleanup aggressive", opts.debug_mode)
    opts.cleanup = _LEGACY_CLEANUP_MODES[value]


@dataclass
class _AnalyzeOverrides:
    json: bool | None = None
    top: int | None = None
    thresholds: dict[str, int] = field(default_factory=dict)

    def apply(self, analyze: AnalyzeConfig) -> None:
        if self.json is not None:
            analyze.json = self.json
        if self.top is not None:
            analyze.top = self.top
        for name, value in self.thresholds.items():
            setattr(analyze.thresholds, name, value)


def _config_int(value, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"invalid type for {key}: expected an integer")
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"invalid value for {key}: out of range")
    return value


def apply_config_file(opts: Options, path) -> None:
    """Apply the [analyze] section of a TOML config file to the options.

    Raises OSError if the file cannot be read and ValueError if it is malformed.
    """
    raw = Path(path).read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise OSError(f"stream did not contain valid UTF-8: {exc}") from exc
    data = tomllib.loads(text)

    analyze = data.get("analyze")
    if analyze is None:
        return
    if not isinstance(analyze, dict):
        raise ValueError("invalid type for analyze: expected a table")

    json_flag = analyze.get("json")
    if json_flag is not None and not isinstance(json_flag, bool):
        raise ValueError("invalid type for analyze.json: expected a boolean")
    top = analyze.get("top")
    if top is not None:
        top = _config_int(top, "analyze.top")
    thresholds = analyze.get("thresholds")
    threshold_values: dict[str, int] = {}
    if thresholds is not None:
        if not isinstance(thresholds, dict):
            raise ValueError("invalid type for analyze.thresholds: expected a table")
        for name in _THRESHOLD_FIELDS:
            if name in thresholds:
                threshold_values[name] = _config_int(
                    thresholds[name], f"analyze.thresholds.{name}"
                )

    if json_flag is not None:
        opts.analyze.json = json_flag
    if top is not None:
        opts.analyze.top = max(top, 1)
    if thresholds is not None:
        _guard_debug("analyze.thresholds.*", opts.debug_mode)
        for name, value in threshold_values.items():
            setattr(opts.analyze.thresholds, name, value)


def _extract_config(args: list[str]) -> tuple[list[str], Path | None]:
    remaining: list[str] = []
    config: Path | None = None
    queue = deque(args)
    while queue:
        arg = queue.popleft()
        if arg == "--config":
            if not queue:
                raise UsageError("--config requires a file path")
            config = Path(queue.popleft())
        elif arg.startswith("--config="):
            value = arg[len("--config="):]
            if not value:
                raise UsageError("--config= requires a file path")
            config = Path(value)
        else:
            remaining.append(arg)
    return remaining, config


def _take(queue: deque, message: str) -> str:
    if not queue:
        raise UsageError(message)
    return queue.popleft()


def _split_pair(value: str, flag: str) -> tuple[bytes, bytes]:
    old, sep, new = value.partition(":")
    if not sep:
        raise UsageError(f"{flag} expects OLD:NEW")
    return _to_bytes(old), _to_bytes(new)


def _directory_bytes(value: str) -> bytes:
    d = _to_bytes(value)
    return d if d.endswith(b"/") else d + b"/"


_SIMPLE_FLAGS = {
    "--no-data": "no_data",
    "--quiet": "quiet",
    "--invert-paths": "invert_paths",
    "--write-report": "write_report",
    "--force": "force",
    "-f": "force",
    "--enforce-sanity": "enforce_sanity",
    "--dry-run": "dry_run",
    "--partial": "partial",
    "--sensitive": "sensitive",
    "--sensitive-data-removal": "sensitive",
    "--no-fetch": "no_fetch",
    "--backup": "backup",
}


def _apply_argument(arg: str, queue: deque, opts: Options, overrides: _AnalyzeOverrides) -> None:
    debug = opts.debug_mode
    if arg in _SIMPLE_FLAGS:
        setattr(opts, _SIMPLE_FLAGS[arg], True)
    elif arg in _LEGACY_THRESHOLD_FLAGS:
        name, unit = _LEGACY_THRESHOLD_FLAGS[arg]
        _guard_debug(arg, debug)
        _warn_legacy_threshold(arg, f"analyze.thresholds.{name}")
        value = parse_integer(_take(queue, f"{arg} requires {unit}"), arg)
        setattr(opts.analyze.thresholds, name, value)
        overrides.thresholds[name] = value
    elif arg == "--analyze":
        opts.mode = Mode.ANALYZE
    elif arg == "--analyze-json":
        opts.analyze.json = True
        overrides.json = True
    elif arg == "--analyze-top":
        top = max(parse_integer(_take(queue, "--analyze-top requires COUNT"), arg), 1)
        opts.analyze.top = top
        overrides.top = top
    elif arg == "--debug-mode":
        opts.debug_mode = True
    elif arg == "--source":
        opts.source = Path(_take(queue, "--source requires value"))
    elif arg == "--target":
        opts.target = Path(_take(queue, "--target requires value"))
    elif arg in ("--ref", "--refs"):
        opts.refs.append(_take(queue, "--ref requires value"))
    elif arg == "--date-order":
        _guard_debug(arg, debug)
        opts.date_order = True
    elif arg == "--no-reset":
        _guard_debug(arg, debug)
        opts.reset = False
    elif arg == "--replace-message":
        opts.replace_message_file = Path(_take(queue, "--replace-message requires file"))
    elif arg == "--replace-text":
        opts.replace_text_file = Path(_take(queue, "--replace-text requires file"))
    elif arg == "--path":
        opts.paths.append(_to_bytes(_take(queue, "--path requires value")))
    elif arg == "--path-glob":
        opts.path_globs.append(_to_bytes(_take(queue, "--path-glob requires value")))
    elif arg == "--path-regex":
        pattern = _take(queue, "--path-regex requires value")
        try:
            opts.path_regexes.append(re.compile(_to_bytes(pattern)))
        except re.error as exc:
            raise UsageError(f"invalid --path-regex '{pattern}': {exc}") from exc
    elif arg == "--path-rename":
        value = _take(queue, "--path-rename requires OLD:NEW")
        opts.path_renames.append(_split_pair(value, arg))
    elif arg == "--subdirectory-filter":
        d = _directory_bytes(_take(queue, "--subdirectory-filter requires DIRECTORY"))
        opts.paths.append(d)
        opts.path_renames.append((d, b""))
    elif arg == "--to-subdirectory-filter":
        d = _directory_bytes(_take(queue, "--to-subdirectory-filter requires DIRECTORY"))
        opts.path_renames.append((b"", d))
    elif arg == "--tag-rename":
        value = _take(queue, "--tag-rename requires OLD:NEW (either may be empty)")
        opts.tag_rename = _split_pair(value, arg)
    elif arg == "--branch-rename":
        value = _take(queue, "--branch-rename requires OLD:NEW (either may be empty)")
        opts.branch_rename = _split_pair(value, arg)
    elif arg == "--max-blob-size":
        opts.max_blob_size = parse_max_blob_size(_take(queue, "--max-blob-size requires BYTES"))
    elif arg == "--strip-blobs-with-ids":
        opts.strip_blobs_with_ids = Path(_take(queue, "--strip-blobs-with-ids requires FILE"))
    elif arg == "--cleanup":
        if queue and queue[0] in _LEGACY_CLEANUP_MODES:
            _parse_legacy_cleanup(queue.popleft(), opts)
        else:
            opts.cleanup = CleanupMode.STANDARD
    elif arg.startswith("--cleanup="):
        value = arg[len("--cleanup="):]
        if not value:
            raise UsageError("--cleanup= requires a value of none|standard|aggressive")
        _parse_legacy_cleanup(value, opts)
    elif arg == "--cleanup-aggressive":
        _guard_debug(arg, debug)
        opts.cleanup = CleanupMode.AGGRESSIVE
    elif arg == "--no-reencode":
        _guard_debug(arg, debug)
        opts.reencode = False
        opts.reencode_requested = False
    elif arg == "--no-quotepath":
        _guard_debug(arg, debug)
        opts.quotepath = False
    elif arg == "--no-mark-tags":
        _guard_debug(arg, debug)
        opts.mark_tags = False
        opts.mark_tags_requested = False
    elif arg == "--mark-tags":
        _guard_debug(arg, debug)
        opts.mark_tags = True
        opts.mark_tags_requested = True
    elif arg == "--backup-path":
        opts.backup_path = Path(_take(queue, "--backup-path requires a value"))
    elif arg == "--fe_stream_override":
        _guard_debug(arg, debug)
        opts.fe_stream_override = Path(_take(queue, "--fe_stream_override requires FILE"))
    elif arg in ("-h", "--help"):
        print_help(debug)
        raise SystemExit(0)
    else:
        print_help(debug)
        raise UsageError(f"Unknown argument: {arg}")


def parse_args(
    argv=None,
    environ: Mapping[str, str] | None = None,
    probe: Callable[[], GitCapabilities] | None = None,
) -> Options:
    """Build run options from arguments, the config file and git's capabilities.

    Raises UsageError for unusable input; -h/--help prints help and exits.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    env = os.environ if environ is None else environ
    probe = probe_git_capabilities if probe is None else probe

    env_config = env.get(CONFIG_ENV_VAR)
    args, config_override = _extract_config(args)
    if config_override is None and env_config is not None:
        config_override = Path(env_config)

    opts = Options()
    opts.debug_mode = debug_mode_enabled(args, env)
    overrides = _AnalyzeOverrides()
    queue = deque(args)
    while queue:
        _apply_argument(queue.popleft(), queue, opts, overrides)

    if config_override is not None:
        config_path, explicit = config_override, True
    else:
        config_path, explicit = Path(opts.source) / CONFIG_FILE_NAME, False

    try:
        apply_config_file(opts, config_path)
    except OSError as exc:
        if explicit or not isinstance(exc, FileNotFoundError):
            raise UsageError(f"failed to read config at {config_path}: {exc}") from exc
    except ValueError as exc:
        raise UsageError(
            f"failed to parse config at {config_path}: {exc}\n"
            "note: example key: analyze.thresholds.warn_total_bytes"
        ) from exc

    overrides.apply(opts.analyze)

    try:
        caps = probe()
    except OSError as exc:
        raise UsageError(f"failed to probe git capabilities: {exc}") from exc
    try:
        opts.apply_git_capabilities(caps)
    except CapabilityError as exc:
        raise UsageError(str(exc)) from exc
    return opts