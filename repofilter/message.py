"""Literal and regex replacement rules, and short-hash rewriting of messages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

REMOVED = b"***REMOVED***"
_ARROW = b"==>"
_REGEX_PREFIX = b"regex:"
_DOLLAR = ord("$")
_MIN_SHORT_HASH_LEN = 7
_NULL_OID = b"0" * 40
_SHORT_HASH_RE = re.compile(rb"\b[0-9a-f]{7,40}\b", re.IGNORECASE)


class ReplacementFileError(ValueError):
    """A replacement file holds a rule that cannot be used."""


def find_subslice(haystack: bytes, needle: bytes) -> int | None:
    """Position of the first occurrence of needle, or None."""
    pos = haystack.find(needle)
    return None if pos < 0 else pos


def replace_all_bytes(haystack: bytes, needle: bytes, replacement: bytes) -> bytes:
    """Replace non-overlapping occurrences left to right; an empty needle changes nothing."""
    if not needle:
        return bytes(haystack)
    return bytes(haystack).replace(needle, replacement)


def _rule_lines(content: bytes):
    for raw in content.split(b"\n"):
        if raw and not raw.startswith(b"#"):
            yield raw


def _split_rule(raw: bytes) -> tuple[bytes, bytes]:
    pos = find_subslice(raw, _ARROW)
    if pos is None:
        return raw, REMOVED
    return raw[:pos], raw[pos + len(_ARROW):]


@dataclass
class MessageReplacer:
    """Literal byte replacements applied in order."""

    pairs: list[tuple[bytes, bytes]] = field(default_factory=list)

    @classmethod
    def from_file(cls, path) -> "MessageReplacer":
        """Read 'FROM==>TO' lines; a line without '==>' maps to ***REMOVED***."""
        content = Path(path).read_bytes()
        pairs = [
            (src, dst)
            for src, dst in (_split_rule(raw) for raw in _rule_lines(content))
            if src
        ]
        return cls(pairs)

    def apply(self, data: bytes) -> bytes:
        for src, dst in self.pairs:
            data = replace_all_bytes(data, src, dst)
        return data


@dataclass
class ShortHashMapper:
    """Rewrites full and abbreviated commit ids using an old-to-new commit map."""

    lookup: dict[bytes, bytes | None]
    prefix_index: dict[bytes, list[bytes]]
    _cache: dict[bytes, bytes | None] = field(default_factory=dict, repr=False)

    @classmethod
    def from_debug_dir(cls, directory) -> "ShortHashMapper | None":
        """Load 'commit-map' from the directory; None if it is missing or empty."""
        try:
            content = (Path(directory) / "commit-map").read_bytes()
        except FileNotFoundError:
            return None
        lookup: dict[bytes, bytes | None] = {}
        prefix_index: dict[bytes, list[bytes]] = {}
        for raw in content.split(b"\n"):
            line = raw.rstrip(b"\r\n")
            parts = line.split(b" ", 1)
            if len(parts) != 2 or not parts[0] or not parts[1]:
                continue
            old, new = parts
            old_norm = old.lower()
            new_entry = None if new == _NULL_OID else new.lower()
            prefix_index.setdefault(old_norm[:_MIN_SHORT_HASH_LEN], []).append(old_norm)
            lookup[old_norm] = new_entry
        if not lookup:
            return None
        return cls(lookup, prefix_index)

    def rewrite(self, data: bytes) -> bytes:
        def replace(match: re.Match) -> bytes:
            found = match.group(0)
            translated = self._translate(found)
            return found if translated is None else translated

        return _SHORT_HASH_RE.sub(replace, data)

    def _translate(self, candidate: bytes) -> bytes | None:
        if len(candidate) < _MIN_SHORT_HASH_LEN:
            return None
        key = candidate.lower()
        if key in self._cache:
            return self._cache[key]
        if len(candidate) == 40:
            resolved = self.lookup.get(key)
        else:
            resolved = self._lookup_prefix(key)
        self._cache[key] = resolved
        return resolved

    def _lookup_prefix(self, short: bytes) -> bytes | None:
        if len(short) < _MIN_SHORT_HASH_LEN:
            return None
        entries = self.prefix_index.get(short[:_MIN_SHORT_HASH_LEN])
        if not entries:
            return None
        length = len(short)
        matches = [full for full in entries if len(full) >= length and full[:length] == short]
        if len(matches) != 1:
            return None
        new_full = self.lookup.get(matches[0])
        return None if new_full is None else new_full[:length]

    def update_mapping(self, old_full: bytes, new_full: bytes) -> None:
        if not old_full or not new_full:
            return
        old_norm = old_full.lower()
        entries = self.prefix_index.setdefault(old_norm[:_MIN_SHORT_HASH_LEN], [])
        if old_norm not in entries:
            entries.append(old_norm)
        self.lookup[old_norm] = new_full.lower()
        self._cache.clear()


def _expand_template(template: bytes, match: re.Match) -> bytes:
    """Expand $1..$N group references; '$$' is a literal dollar."""
    out = bytearray()
    i = 0
    n = len(template)
    while i < n:
        b = template[i]
        if b != _DOLLAR:
            out.append(b)
            i += 1
            continue
        i += 1
        if i >= n:
            out.append(_DOLLAR)
            break
        nb = template[i]
        if nb == _DOLLAR:
            out.append(_DOLLAR)
            i += 1
            continue
        end = i
        while end < n and 0x30 <= template[end] <= 0x39:
            end += 1
        if end > i:
            num = int(template[i:end])
            i = end
            if num > 0:
                if num <= match.re.groups and (group := match.group(num)) is not None:
                    out += group
                continue
        out.append(_DOLLAR)
        out.append(nb)
        i += 1
    return bytes(out)


@dataclass
class RegexReplacer:
    """Regex replacements read from 'regex:' lines of a replacement file."""

    rules: list[tuple[re.Pattern, bytes, bool]] = field(default_factory=list)

    @classmethod
    def from_file(cls, path) -> "RegexReplacer | None":
        """Read 'regex:PATTERN==>REPL' lines; None if the file has none."""
        content = Path(path).read_bytes()
        rules: list[tuple[re.Pattern, bytes, bool]] = []
        for raw in _rule_lines(content):
            if not raw.startswith(_REGEX_PREFIX):
                continue
            pattern, replacement = _split_rule(raw[len(_REGEX_PREFIX):])
            try:
                pattern.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ReplacementFileError(f"invalid UTF-8 in regex rule: {exc}") from exc
            try:
                compiled = re.compile(pattern)
            except re.error as exc:
                raise ReplacementFileError(f"invalid regex pattern: {exc}") from exc
            rules.append((compiled, replacement, b"$" in replacement))
        return cls(rules) if rules else None

    def apply_regex(self, data: bytes) -> bytes:
        for pattern, replacement, has_dollar in self.rules:
            if has_dollar:
                data = pattern.sub(lambda m, tpl=replacement: _expand_template(tpl, m), data)
            else:
                data = pattern.sub(lambda m, rep=replacement: rep, data)
        return data