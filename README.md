# repofilter

Building blocks for rewriting Git history: path quoting and matching for the
fast-export/fast-import stream format, literal and regex text replacement,
short-hash rewriting in commit messages, repository queries, option handling
with Git capability checks, command-line parsing, and the construction of the
`git fast-export` / `git fast-import` command lines.

The package has no runtime dependencies beyond the standard library. A `git`
executable on `PATH` is needed for the functions that query or change a
repository.

## Paths in the stream

`repofilter.pathutil` works on raw bytes, as Git does:

```python
from repofilter.pathutil import (
    dequote_c_style_bytes,
    enquote_c_style_bytes,
    decode_fast_export_path_bytes,
    glob_match_bytes,
    needs_c_style_quote,
    sanitize_and_encode_path_for_import,
)

enquote_c_style_bytes(b"tab\there")          # b'"tab\\there"'
dequote_c_style_bytes(b"caf\\303\\251")      # b'caf\xc3\xa9'
decode_fast_export_path_bytes(b'"a\\"b"\n')  # b'a"b'
needs_c_style_quote(b"plain/path.txt")       # False
glob_match_bytes(b"src/**/*.rs", b"src/a/b.rs")  # True
glob_match_bytes(b"*.txt", b"dir/x.txt")     # False: '*' stops at '/'

sanitize_and_encode_path_for_import(b"bad\x01name")  # control bytes become '_'
```

`sanitize_invalid_windows_path_bytes` replaces `<>:"|?*` with `_` and trims
trailing dots and spaces from the last component when running on Windows; on
other platforms it returns the path unchanged.

## Replacing text

A replacement file holds one rule per line. Blank lines and lines starting
with `#` are skipped. `old==>new` replaces literally; a line without `==>`
replaces the text with `***REMOVED***`.

- `MessageReplacer.from_file(path)` reads every rule line as a literal rule
  and `apply(data)` applies them in order.
- `RegexReplacer.from_file(path)` reads only lines starting with `regex:`
  (Python `re` syntax on bytes) and returns `None` if there are none. In the
  replacement, `$1`, `$2`, … refer to groups and `$$` is a literal dollar
  sign. `apply_regex(data)` applies the rules in order.

```python
from repofilter.message import MessageReplacer, RegexReplacer

literal = MessageReplacer.from_file("replacements.txt")
cleaned = literal.apply(b"the password is hunter2")

regexes = RegexReplacer.from_file("replacements.txt")
if regexes is not None:
    cleaned = regexes.apply_regex(cleaned)
```

A regex rule that is not valid UTF-8 or does not compile raises
`ReplacementFileError`.

`ShortHashMapper.from_debug_dir(directory)` reads a `commit-map` file of
`old new` hash pairs and returns a mapper, or `None` when the file is missing
or empty. `rewrite(data)` replaces full commit ids and unambiguous abbreviated
ids (7 to 40 hex digits) with their new values, keeping the abbreviation
length; `update_mapping(old_full, new_full)` adds or changes a pair.

## Asking Git

```python
from repofilter.gitutil import (
    get_all_refs,
    get_reflog_entries,
    is_bare_repository,
    list_all_reflogs,
    probe_git_capabilities,
)

caps = probe_git_capabilities()            # a GitCapabilities
refs = get_all_refs("path/to/repo")        # {"refs/heads/main": "<sha>", ...}
is_bare_repository("path/to/repo")         # False
get_reflog_entries("path/to/repo", "HEAD") # ["<sha>", ...]; [] if no reflog
list_all_reflogs("path/to/repo")           # ["refs/heads/main", ...]
```

`git_dir`, `get_replace_refs` and `validate_git_dir_structure` complete the
set. Failures of the underlying `git` commands, and a GIT_DIR layout that does
not fit the repository type, raise `GitError`.

`repofilter.migrate.migrate_origin_to_heads(opts)` turns
`refs/remotes/origin/*` into local branches where none exist yet and deletes
the remote-tracking refs, returning the `update-ref` instructions it issued.
`fetch_all_refs_if_needed(opts)` fetches every ref from `origin` in sensitive
mode (unless `no_fetch` or `dry_run` is set) and returns whether it did.

## Options and commands

`repofilter.options.Options` holds every setting with its default.
`validate_options(opts)` raises `InvalidOptionsError` for unusable values, and
`Options.apply_git_capabilities(caps)` turns off features the installed Git
lacks, raising `CapabilityError` when one of them was asked for explicitly.

`repofilter.pipes.build_fast_export_cmd(opts)` and
`build_fast_import_cmd(opts)` return a `CommandSpec` (program, arguments and
stream settings; `argv` and `popen()` to start it). An impossible combination
raises `PipeError`.

`repofilter.cli.parse_args(argv, environ, probe)` turns a command line into
`Options`. It reads the `[analyze]` table of a TOML configuration file, given
with `--config FILE`, the `REPOFILTER_CONFIG` environment variable, or found
as `<source>/.repofilter.toml`. Debug-only flags need `--debug-mode` or
`REPOFILTER_DEBUG=1`. Bad input raises `UsageError`; `-h`/`--help` prints the
help and raises `SystemExit(0)`. `repofilter.helptext.render_help(debug_mode)`
returns the help text and `print_help(debug_mode)` writes it to standard
output.

## What the package does not do

The package provides the pieces around a history rewrite but not the rewrite
itself: it does not read or transform the fast-export stream (commits, file
changes, tags), run repository analysis, perform pre-flight safety checks,
create backup bundles, or clean up afterwards. There is no installed command;
`parse_args` produces options for a caller to act on.