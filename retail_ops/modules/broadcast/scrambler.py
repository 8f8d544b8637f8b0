"""
Light obfuscation for chat text on the broadcast channel.

XOR against ``key + SALT`` then base64. This hides text from a casual look at
the wire and nothing more; it is not encryption.
"""
from __future__ import annotations

import base64
import binascii
from itertools import cycle

SALT = "CYBERPUNK_RETAIL_PROTOCOL_V1"
UNREADABLE = "[ENCRYPTED DATA]"


def _xor(text: str, key: str) -> str:
    return "".join(chr(ord(ch) ^ ord(k)) for ch, k in zip(text, cycle(key + SALT)))


def scramble(text: str, key: str) -> str:
    """Characters that do not fit in one byte after mixing leave ``text`` unscrambled."""
    try:
        return base64.b64encode(_xor(text, key).encode("latin-1")).decode("ascii")
    except UnicodeEncodeError:
        return text


def unscramble(payload: str, key: str) -> str:
    try:
        raw = base64.b64decode(payload, validate=True).decode("latin-1")
    except (binascii.Error, ValueError):
        return UNREADABLE
    return _xor(raw, key)
