import dataclasses
import os
import subprocess
from pathlib import Path

import pytest

from repofilter.options import Options
from repofilter.pipes import CommandSpec, PipeError, build_fast_export_cmd, build_fast_import_cmd


def _with_caps(opts, **changes):
    opts.git_caps = dataclasses.replace(opts.git_caps, **changes)
    return opts


def test_fast_export_skips_flags_without_capability():
    opts = Options()
    opts.reencode = False
    opts.mark_tags = True
    _with_caps(opts, fast_export_reencode=False, fast_export_mark_tags=False)
    args = build_fast_export_cmd(opts).args
    assert "--reencode=yes" not in args
    assert "--mark-tags" not in args


def test_fast_export_errors_when_mark_tags_requested_without_support():
    opts = _with_caps(Options(), fast_export_mark_tags=False)
    opts.mark_tags_requested = True
    with pytest.raises(PipeError, match=r"git >= 2\.24\.0"):
        build_fast_export_cmd(opts)


def test_fast_export_errors_when_reencode_requested_without_support():
    opts = _with_caps(Options(), fast_export_reencode=False)
    opts.reencode_requested = True
    with pytest.raises(PipeError, match=r"git >= 2\.23\.0"):
        build_fast_export_cmd(opts)


def test_fast_export_safe_defaults():
    spec = build_fast_export_cmd(Options())
    assert spec.program == "git"
    assert spec.args[:2] == ["-C", "."]
    pairs = list(zip(spec.args, spec.args[1:]))
    assert ("-c", "core.quotepath=false") in pairs
    assert "--reencode=yes" in spec.args
    assert "--mark-tags" in spec.args
    assert "--no-mark-tags" not in spec.args
    assert "--no-data" not in spec.args
    assert spec.stdout == subprocess.PIPE


def test_fast_export_refs_follow_subcommand():
    opts = Options(refs=["refs/heads/main", "refs/tags/v1"])
    args = build_fast_export_cmd(opts).args
    start = args.index("fast-export")
    assert args[start + 1:start + 3] == ["refs/heads/main", "refs/tags/v1"]


def test_fast_export_date_order_and_quotepath_off():
    opts = Options(date_order=True, quotepath=False)
    args = build_fast_export_cmd(opts).args
    assert "--date-order" in args
    assert "core.quotepath=false" not in args


def test_fast_export_auto_no_data_for_size_filter_in_same_repo():
    args = build_fast_export_cmd(Options(max_blob_size=1000)).args
    assert "--no-data" in args


def test_fast_export_no_auto_no_data_with_text_replacement():
    opts = Options(max_blob_size=1000, replace_text_file=Path("rules.txt"))
    assert "--no-data" not in build_fast_export_cmd(opts).args


def test_fast_export_no_auto_no_data_for_other_target():
    opts = Options(max_blob_size=1000, target=Path("elsewhere"))
    assert "--no-data" not in build_fast_export_cmd(opts).args


def test_fast_export_explicit_no_data():
    assert "--no-data" in build_fast_export_cmd(Options(no_data=True)).args


def test_quiet_discards_stderr():
    assert build_fast_export_cmd(Options(quiet=True)).stderr == subprocess.DEVNULL
    assert build_fast_export_cmd(Options()).stderr is None


def test_stream_override_requires_debug_mode():
    opts = Options(fe_stream_override=Path("stream.txt"))
    with pytest.raises(PipeError, match="debug mode"):
        build_fast_export_cmd(opts)


def test_stream_override_reads_file(tmp_path):
    stream = tmp_path / "stream.txt"
    stream.write_bytes(b"feature done\ndone\n")
    spec = build_fast_export_cmd(Options(fe_stream_override=stream, debug_mode=True))
    assert str(stream) in spec.args
    proc = spec.popen()
    out, _ = proc.communicate()
    assert proc.returncode == 0
    assert out.replace(b"\r\n", b"\n") == b"feature done\ndone\n"


def test_command_spec_argv():
    spec = CommandSpec("git", ["status"])
    assert spec.argv == ["git", "status"]


def test_fast_import_respects_raw_permissive_capability(tmp_path):
    subprocess.run(["git", "init", "."], cwd=tmp_path, capture_output=True, check=True)
    opts = Options(target=tmp_path)
    opts = _with_caps(opts, fast_export_anonymize_map=True)
    with_cap = build_fast_import_cmd(opts).args
    assert "--date-format=raw-permissive" in with_cap

    without = _with_caps(opts.copy(), fast_export_anonymize_map=False)
    assert "--date-format=raw-permissive" not in build_fast_import_cmd(without).args


def test_fast_import_exports_marks_into_git_dir(tmp_path):
    subprocess.run(["git", "init", "."], cwd=tmp_path, capture_output=True, check=True)
    spec = build_fast_import_cmd(Options(target=tmp_path))
    marks = [arg for arg in spec.args if arg.startswith("--export-marks=")]
    assert len(marks) == 1
    assert marks[0].endswith(os.path.join(".git", "filter-repo", "target-marks"))
    assert spec.args[:5] == ["-C", str(tmp_path), "-c", "core.ignorecase=false", "fast-import"]
    assert spec.stdin == subprocess.PIPE


def test_fast_import_without_repository_has_no_marks(tmp_path):
    missing = tmp_path / "does-not-exist"
    spec = build_fast_import_cmd(Options(target=missing))
    assert not any(arg.startswith("--export-marks=") for arg in spec.args)
    assert "--force" in spec.args and "--quiet" in spec.args