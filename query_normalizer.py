# query_normalizer.py

"""
filepath: query_normalizer.py

Turns raw user input into the canonical key the region search matches on.

    "jakarta barat"  -> "Jakarta Barat"
    "jakarta-barat"  -> "Jakartabarat"   (separators are dropped, not spaced)
"""

from __future__ import annotations

import string

_ALLOWED = frozenset(string.ascii_letters + string.digits + " ")
_DIGITS = frozenset(string.digits)

POSTAL_CODE_LENGTH = 5


def _title_tokens(text: str) -> str:
    # split(" ") keeps runs of spaces, so only the first char of each token changes
    return " ".join(tok[:1].upper() + tok[1:] for tok in text.split(" "))


def normalize_query(raw: str) -> str:
    """Lowercase, keep only ASCII letters/digits/spaces, title-case tokens, trim.

    Punctuation is deleted before tokenizing, so hyphen-joined words fuse into
    one token. The function is idempotent and maps "" to "".
    """
    lowered = raw.lower()
    kept = "".join(ch for ch in lowered if ch in _ALLOWED)
    return _title_tokens(kept).strip()


def is_valid_postal_code(value: str) -> bool:
    """True when ``value`` is exactly five ASCII digits."""
    return len(value) == POSTAL_CODE_LENGTH and all(ch in _DIGITS for ch in value)
