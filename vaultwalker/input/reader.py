"""Low-level terminal input decoding.

Reads raw bytes from the terminal and turns them into key tokens. Escape
sequences are recognized with a short timeout so a lone ESC still works.
"""

from __future__ import annotations

import codecs
import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_CONTROL_TOKENS = {
    b"\x03": "CTRL_C",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\x15": "CTRL_U",
    b"\t": "TAB",
    b"\r": "ENTER_CR",
    b"\n": "ENTER_LF",
}

_CSI_FINAL_TOKENS = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"H": "HOME",
    b"F": "END",
}

_CSI_TILDE_TOKENS = {
    "1": "HOME",
    "3": "DELETE",
    "4": "END",
    "5": "PAGE_UP",
    "6": "PAGE_DOWN",
    "7": "HOME",
    "8": "END",
}

# Token for sequences that were read in full but have no binding.
UNKNOWN_KEY = "UNKNOWN"
_CSI_MAX_LENGTH = 16


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    return ch or None


def _read_utf8(fd: int, first: bytes) -> str:
    """Complete a multi-byte UTF-8 character that started with ``first``."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    text = decoder.decode(first)
    while not text:
        more = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if more is None:
            return decoder.decode(b"", final=True)
        text = decoder.decode(more)
    return text


def _read_csi(fd: int) -> str:
    """Consume a CSI sequence up to its final byte (0x40-0x7E) and name it."""
    params = b""
    while len(params) < _CSI_MAX_LENGTH:
        ch = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if ch is None:
            return UNKNOWN_KEY
        if 0x40 <= ch[0] <= 0x7E:
            break
        params += ch
    else:
        return UNKNOWN_KEY

    fields = params.decode("ascii", errors="replace").split(";")
    if ch == b"~":
        return _CSI_TILDE_TOKENS.get(fields[0], UNKNOWN_KEY)
    if ch in _CSI_FINAL_TOKENS and (not params or fields[0] == "1"):
        # Modified arrows (e.g. ``1;5C``) act like the plain key.
        return _CSI_FINAL_TOKENS[ch]
    return UNKNOWN_KEY


def _read_escape(fd: int) -> str:
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq == b"O":
        # SS3 arrows sent by some terminals in application mode.
        final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        return _CSI_FINAL_TOKENS.get(final or b"", UNKNOWN_KEY)
    if seq != b"[":
        _PENDING_BYTES.append(seq)
        return "ESC"
    return _read_csi(fd)


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Return the next key token, or ``""`` when ``timeout_ms`` elapses first."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""
        ch = os.read(fd, 1)
        if not ch:
            return ""

    if ch in _CONTROL_TOKENS:
        return _CONTROL_TOKENS[ch]
    if ch == b"\x1b":
        return _read_escape(fd)
    if ch[0] >= 0x80:
        return _read_utf8(fd, ch)
    return ch.decode("ascii", errors="replace")
