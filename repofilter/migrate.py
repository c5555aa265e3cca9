"""Ref housekeeping around the 'origin' remote before a rewrite."""

from __future__ import annotations

import subprocess
import sys

from repofilter.gitutil import GitError, get_all_refs
from repofilter.options import Options

_ORIGIN_PREFIX = "refs/remotes/origin/"
_ORIGIN_HEAD = "refs/remotes/origin/HEAD"


def _has_origin_remote(repo) -> bool:
    try:
        result = subprocess.run(
            ["git", "-C", str(repo), "remote"], capture_output=True
        )
    except OSError:
        return False
    if result.returncode != 0:
        return False
    remotes = result.stdout.decode("utf-8", errors="replace").splitlines()
    return any(line.strip() == "origin" for line in remotes)


def fetch_all_refs_if_needed(opts: Options) -> bool:
    """In sensitive mode, fetch every ref from origin; True if a fetch was run."""
    if not opts.sensitive or opts.no_fetch or opts.dry_run:
        return False
    if not _has_origin_remote(opts.source):
        return False
    print(
        "NOTICE: Fetching all refs from origin to ensure full sensitive-history coverage",
        file=sys.stderr,
    )
    try:
        subprocess.run(
            [
                "git", "-C", str(opts.source), "fetch", "-q", "--prune",
                "--update-head-ok", "--refmap", "", "origin", "+refs/*:refs/*",
            ]
        )
    except OSError:
        pass
    return True


def migrate_origin_to_heads(opts: Options) -> list[str]:
    """Turn refs/remotes/origin/* into local branches and drop the remote refs.

    Returns the update-ref instructions that were issued.
    """
    if opts.partial or opts.dry_run:
        return []
    try:
        refs = get_all_refs(opts.source)
    except GitError:
        return []

    to_create: list[tuple[str, str]] = []
    to_delete: list[tuple[str, str]] = []
    for refname, oid in sorted(refs.items()):
        if not refname.startswith(_ORIGIN_PREFIX):
            continue
        if refname != _ORIGIN_HEAD:
            newref = "refs/heads/" + refname[len(_ORIGIN_PREFIX):]
            if newref not in refs:
                to_create.append((newref, oid))
        to_delete.append((refname, oid))

    if not to_create and not to_delete:
        return []

    instructions = [f"create {ref} {oid}" for ref, oid in to_create]
    instructions += [f"delete {ref} {oid}" for ref, oid in to_delete]
    payload = "".join(line + "\n" for line in instructions).encode("utf-8")
    subprocess.run(
        ["git", "-C", str(opts.source), "update-ref", "--no-deref", "--stdin"],
        input=payload,
    )
    return instructions