"""Location key sanitizing.

Map cell text arrives straight from a third-party page. Before it is
used as a key or echoed to subscribers, everything outside a small
allowed set is stripped: ASCII word characters, whitespace, the flag
glyph (both of its code points) and ``#``.

Whitespace is the ECMAScript set, which differs from Python's ``\\s``:
it includes U+FEFF and excludes the U+001C..U+001F separators.
"""

from __future__ import annotations

import re

from mapwatch._constants import FLAG_GLYPH

_WHITESPACE = "\t\n\x0b\x0c\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"

_DISALLOWED = re.compile(f"[^A-Za-z0-9_{_WHITESPACE}\u2694\ufe0f#]")


def sanitize(raw: str) -> str:
    """Return *raw* with every disallowed character removed."""
    if not raw:
        return ""
    return _DISALLOWED.sub("", raw)


def location_key(right_text: str, top_text: str) -> str:
    """Build the canonical key for a cell from its right and top fragments."""
    return f"{sanitize(right_text)}{sanitize(top_text)}"


def is_flagged(left_text: str) -> bool:
    """Whether a cell's left fragment carries the flag glyph."""
    return FLAG_GLYPH in sanitize(left_text)
