"""Merchant pattern derivation and matching."""

from __future__ import annotations

import re
from functools import lru_cache

__all__ = [
    "derive_merchant_pattern",
    "matches_merchant_pattern",
    "merchant_display_name",
]

_REFERENCE_MARKERS = frozenset({"REF", "REFERENCE", "RECEIPT", "INV", "INVOICE", "TXN", "ID", "NO", "AU", "AUS"})
_REFERENCE_TOKEN = re.compile(r"^[#*]?[A-Z]*\d[\w\-/.#*]*$")
_CARD_SUFFIX = re.compile(r"^(X+\d*|\*+\d*)$")
_WHITESPACE = re.compile(r"\s+")


def _is_reference_token(token: str) -> bool:
    stripped = token.strip(".,:;-")
    if not stripped:
        return True
    if stripped in _REFERENCE_MARKERS:
        return True
    return bool(_REFERENCE_TOKEN.match(stripped) or _CARD_SUFFIX.match(stripped))


@lru_cache(maxsize=512)
def derive_merchant_pattern(description: str) -> str:
    """Return an upper-case prefix identifying the merchant of ``description``.

    Trailing numeric and reference suffixes are stripped so the prefix also
    matches future charges from the same merchant, e.g. ``"NETFLIX 123456"``
    and ``"Netflix 998877"`` both give ``"NETFLIX"``.
    """

    if not description:
        return ""

    tokens = _WHITESPACE.sub(" ", description.strip().upper()).split(" ")
    while len(tokens) > 1 and _is_reference_token(tokens[-1]):
        tokens.pop()

    pattern = " ".join(tokens)
    if any(ch.isdigit() for ch in pattern) and _is_reference_token(pattern):
        # Description made only of a reference; keep its non-digit stem
        # while it still prefixes the description ("7-ELEVEN" stays whole).
        stem = re.sub(r"[\d#*]+", "", pattern).strip()
        if stem and pattern.startswith(stem):
            return stem
    return pattern


def matches_merchant_pattern(description: str, pattern: str) -> bool:
    """Case-insensitive prefix match of ``description`` against ``pattern``.

    User-declared patterns may use SQL ``LIKE`` wildcards: ``%`` for any run
    of characters and ``_`` for a single character.
    """

    if not pattern or not description:
        return False

    if "%" in pattern or "_" in pattern:
        regex = "".join(
            ".*" if ch == "%" else "." if ch == "_" else re.escape(ch)
            for ch in pattern.rstrip("%")
        )
        return re.match(regex, description, flags=re.IGNORECASE) is not None

    return description.strip().upper().startswith(pattern.strip().upper())


@lru_cache(maxsize=512)
def merchant_display_name(description: str) -> str:
    """Create a clean display label for a merchant pattern or description."""

    if not description:
        return "Unknown merchant"

    cleaned = re.sub(
        r"^(direct debit|standing order|card payment)\s+",
        "",
        derive_merchant_pattern(description),
        flags=re.IGNORECASE,
    )
    return cleaned.strip().title()
