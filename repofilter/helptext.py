"""Command-line help text: sections of options and their aligned rendering."""

from __future__ import annotations

from dataclasses import dataclass, field

PROGRAM_NAME = "repofilter"
CONFIG_FILE_NAME = ".repofilter.toml"
DEBUG_ENV_VAR = "REPOFILTER_DEBUG"

_INDENT = "  "
_MIN_ALIGN_WIDTH = 25
_DEBUG_GATE = f"(require --debug-mode or {DEBUG_ENV_VAR}=1)"


@dataclass
class HelpOption:
    """One option and the lines describing it; an empty name gives description-only lines."""

    name: str
    description: list[str] = field(default_factory=list)


@dataclass
class HelpSection:
    """A titled group of options."""

    title: str
    options: list[HelpOption] = field(default_factory=list)


def format_help_option(option: HelpOption, align_width: int) -> str:
    """Render an option with its description starting at the alignment column."""
    if not option.description:
        return f"{_INDENT}{option.name}"
    if not option.name:
        return "".join(f"{_INDENT}{line}\n" for line in option.description)
    padding = " " * (align_width - len(option.name))
    first, *rest = option.description
    lines = [f"{_INDENT}{option.name}{padding}{first}\n"]
    lines.extend(f"{_INDENT}{' ' * align_width}{line}\n" for line in rest)
    return "".join(lines)


def format_help_section(section: HelpSection) -> str:
    """Render a section title and its options, aligned, followed by a blank line."""
    if not section.options:
        return f"{section.title}\n"
    widest = max(len(option.name) for option in section.options)
    align_width = max(widest + 2, _MIN_ALIGN_WIDTH)
    body = "".join(format_help_option(option, align_width) for option in section.options)
    return f"{section.title}\n{body}\n"


def _opt(name: str, *description: str) -> HelpOption:
    return HelpOption(name, list(description))


def base_help_sections() -> list[HelpSection]:
    """Sections describing the options available to every user."""
    return [
        HelpSection(
            "Repository & ref selection:",
            [
                _opt("--source DIR", "Source Git working directory (default .)"),
                _opt("--target DIR", "Target Git working directory (default .)"),
                _opt("--refs REF", "Ref to export (repeatable; defaults to --all)"),
                _opt("--no-data", "Do not include blob data in fast-export"),
            ],
        ),
        HelpSection(
            "Path selection & rewriting:",
            [
                _opt("--path PREFIX", "Include-only files under PREFIX (repeatable)"),
                _opt("--path-glob GLOB", "Include by glob (repeatable)"),
                _opt("--path-regex REGEX", "Include by regex (repeatable)"),
                _opt("--invert-paths", "Invert path selection (drop matches)"),
                _opt("--path-rename OLD:NEW", "Rename path prefix in file changes"),
                _opt("--subdirectory-filter D", "Equivalent to --path D/ --path-rename D/:"),
                _opt("--to-subdirectory-filter D", "Equivalent to --path-rename :D/"),
            ],
        ),
        HelpSection(
            "Blob filtering & redaction:",
            [
                _opt("--replace-text FILE", "Literal/regex (feature-gated) replacements for blobs"),
                _opt("--max-blob-size BYTES", "Drop blobs larger than BYTES"),
                _opt("--strip-blobs-with-ids FILE", "Drop blobs by 40-hex id (one per line)"),
            ],
        ),
        HelpSection(
            "Commit, tag & ref updates:",
            [
                _opt("--replace-message FILE", "Literal replacements in commit/tag messages"),
                _opt("--tag-rename OLD:NEW", "Rename tags with given prefix"),
                _opt("--branch-rename OLD:NEW", "Rename branches with given prefix"),
            ],
        ),
        HelpSection(
            "Execution behavior & output:",
            [
                _opt("--write-report", "Write .git/filter-repo/report.txt summary"),
                _opt(
                    "--cleanup",
                    "Run post-import cleanup (reflog expire + git gc)",
                    "(disabled by default)",
                ),
                _opt("--quiet", "Reduce output noise"),
                _opt("--force, -f", "Bypass safety prompts and checks where applicable"),
                _opt("--enforce-sanity", "Explicitly enable safety checks (default behavior)"),
                _opt("--dry-run", "Prepare and validate without writing changes"),
                _opt("--partial", "Only rewrite current repo; skip remote cleanup"),
                _opt(
                    "--sensitive",
                    "Enable sensitive-history mode (fetch all refs,",
                    "avoid remote cleanup; see --no-fetch)",
                ),
                _opt("--no-fetch", "In sensitive mode, skip fetching refs from origin"),
            ],
        ),
        HelpSection(
            "Safety & backup:",
            [
                _opt(
                    "--backup",
                    "Create a backup bundle of selected refs before",
                    "rewriting (skipped with --dry-run)",
                ),
                _opt(
                    "--backup-path PATH",
                    "Destination directory or file for the bundle.",
                    "If PATH is a directory, a timestamped filename",
                    "is generated. If PATH has an extension, that",
                    "exact file is written. Defaults to",
                    ".git/filter-repo/backup-<timestamp>.bundle",
                ),
            ],
        ),
        HelpSection(
            "Repository analysis:",
            [
                _opt("--analyze", "Collect repository metrics instead of rewriting"),
                _opt("--analyze-json", "Emit JSON-formatted analysis report"),
                _opt("--analyze-top N", "Number of largest blobs/trees to show (default 10)"),
            ],
        ),
    ]


def debug_help_sections() -> list[HelpSection]:
    """Sections describing options that need debug mode."""
    return [
        HelpSection(
            f"Debug / fast-export passthrough {_DEBUG_GATE}:",
            [
                _opt("--date-order", "Request date-order traversal from git fast-export"),
                _opt("--no-reencode", "Disable re-encoding of commit/tag messages"),
                _opt("--no-quotepath", "Disable Git's path quoting for non-ASCII"),
                _opt("--no-mark-tags", "Do not mark annotated tags in fast-export"),
                _opt("--mark-tags", "Explicitly mark annotated tags in fast-export"),
            ],
        ),
        HelpSection(
            f"Debug / analysis thresholds {_DEBUG_GATE}:",
            [
                _opt(
                    "",
                    f"Configure analyze.thresholds.* via {CONFIG_FILE_NAME} or --config.",
                    "Legacy --analyze-*-warn CLI flags remain for compatibility but emit warnings.",
                ),
            ],
        ),
        HelpSection(
            f"Debug / cleanup behavior {_DEBUG_GATE}:",
            [
                _opt("--no-reset", "Skip final 'git reset --hard' in target"),
                _opt(
                    "--cleanup-aggressive",
                    "Extend cleanup with git gc --aggressive and",
                    "--expire-unreachable=now",
                ),
            ],
        ),
        HelpSection(
            f"Debug / stream overrides {_DEBUG_GATE}:",
            [_opt("--fe_stream_override FILE", "Read fast-export stream from FILE instead of git")],
        ),
    ]


def misc_help_section() -> HelpSection:
    """The closing section with config, debug and help options."""
    return HelpSection(
        "Misc:",
        [
            _opt(
                "--config FILE",
                "Load options from TOML config file (default",
                f"<source>/{CONFIG_FILE_NAME})",
            ),
            _opt("--debug-mode", f"Enable debug/test flags (same as {DEBUG_ENV_VAR}=1)"),
            _opt("-h, --help", "Show this help message"),
        ],
    )


def render_help(debug_mode: bool) -> str:
    """The full help text; debug-only sections are included in debug mode."""
    sections = list(base_help_sections())
    if debug_mode:
        sections.extend(debug_help_sections())
    sections.append(misc_help_section())
    header = f"{PROGRAM_NAME} (prototype)\nUsage: {PROGRAM_NAME} [options]\n\n"
    return header + "".join(format_help_section(section) for section in sections)


def print_help(debug_mode: bool) -> None:
    """Write the help text to standard output."""
    print(render_help(debug_mode), end="")