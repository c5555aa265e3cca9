"""Byte-level helpers for path quoting, sanitising and glob matching."""

from __future__ import annotations

import sys

_BACKSLASH = ord("\\")
_QUOTE = ord('"')
_SLASH = ord("/")
_STAR = ord("*")
_QUESTION = ord("?")

_SIMPLE_ESCAPES = {
    ord("\\"): ord("\\"),
    ord('"'): ord('"'),
    ord("n"): ord("\n"),
    ord("t"): ord("\t"),
    ord("r"): ord("\r"),
}

_ENQUOTE_ESCAPES = {
    ord('"'): b'\\"',
    ord("\\"): b"\\\\",
    ord("\n"): b"\\n",
    ord("\t"): b"\\t",
    ord("\r"): b"\\r",
}

_WINDOWS_INVALID = frozenset(b'<>:"|?*')
_OCTAL_DIGITS = frozenset(b"01234567")


def _sanitize_windows(p: bytes) -> bytes:
    """Replace characters Windows forbids and trim trailing dots/spaces of the last component."""
    cleaned = bytes(ord("_") if b in _WINDOWS_INVALID else b for b in p)
    head, sep, tail = cleaned.rpartition(b"/")
    return head + sep + tail.rstrip(b". ")


def sanitize_invalid_windows_path_bytes(p: bytes) -> bytes:
    """Make a path acceptable on Windows; on other platforms the path is returned unchanged."""
    if sys.platform == "win32":
        return _sanitize_windows(p)
    return bytes(p)


def dequote_c_style_bytes(s: bytes) -> bytes:
    """Undo C-style escaping: \\\\ \\" \\n \\t \\r and octal \\ooo."""
    out = bytearray()
    i = 0
    n = len(s)
    while i < n:
        b = s[i]
        i += 1
        if b != _BACKSLASH:
            out.append(b)
            continue
        if i >= n:
            out.append(_BACKSLASH)
            break
        c = s[i]
        i += 1
        if c in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[c])
        elif c in _OCTAL_DIGITS:
            value = c - ord("0")
            end = i
            while end < n and end - i < 2 and s[end] in _OCTAL_DIGITS:
                value = (value << 3) | (s[end] - ord("0"))
                end += 1
            i = end
            out.append(value & 0xFF)
        else:
            out.append(c)
    return bytes(out)


def enquote_c_style_bytes(data: bytes) -> bytes:
    """Wrap bytes in double quotes, escaping specials and non-printable bytes as octal."""
    out = bytearray(b'"')
    for b in data:
        escaped = _ENQUOTE_ESCAPES.get(b)
        if escaped is not None:
            out += escaped
        elif b <= 0x1F or b >= 0x7F:
            out += b"\\%03o" % b
        else:
            out.append(b)
    out.append(_QUOTE)
    return bytes(out)


def sanitize_fast_import_path_bytes(p: bytes) -> bytes:
    """Map ASCII control bytes (0x00-0x1F, 0x7F) to underscores."""
    return bytes(ord("_") if b <= 0x1F or b == 0x7F else b for b in p)


def sanitize_and_encode_path_for_import(path: bytes) -> bytes:
    """Sanitise a path and quote it if fast-import needs quoting."""
    safe = sanitize_fast_import_path_bytes(sanitize_invalid_windows_path_bytes(path))
    return enquote_c_style_bytes(safe) if needs_c_style_quote(safe) else safe


def decode_fast_export_path_bytes(path: bytes) -> bytes:
    """Decode a path as written by fast-export, removing quoting if present."""
    trimmed = path[:-1] if path.endswith(b"\n") else path
    if len(trimmed) >= 2 and trimmed.startswith(b'"') and trimmed.endswith(b'"'):
        return dequote_c_style_bytes(trimmed[1:-1])
    if trimmed.startswith(b'"'):
        return dequote_c_style_bytes(trimmed[1:])
    return bytes(trimmed)


def needs_c_style_quote(data: bytes) -> bool:
    """True if the bytes hold space, control, non-ASCII, backslash or quote characters."""
    return any(b <= 0x20 or b >= 0x7F or b in (_QUOTE, _BACKSLASH) for b in data)


def _glob_match(p: bytes, t: bytes) -> bool:
    while True:
        if not p:
            return not t
        if p[:2] == b"**":
            rest = p[2:]
            if rest[:1] == b"/":
                rest = rest[1:]
            return any(_glob_match(rest, t[i:]) for i in range(len(t) + 1))
        if p[0] == _STAR:
            rest = p[1:]
            i = 0
            while True:
                if _glob_match(rest, t[i:]):
                    return True
                if i >= len(t) or t[i] == _SLASH:
                    return False
                i += 1
        if p[0] == _QUESTION:
            if not t or t[0] == _SLASH:
                return False
        elif not t or p[0] != t[0]:
            return False
        p, t = p[1:], t[1:]


def glob_match_bytes(pat: bytes, text: bytes) -> bool:
    """Match text against a glob where '*' and '?' stop at '/', and '**' crosses it."""
    return _glob_match(bytes(pat), bytes(text))