"""Golfer name normalization shared by the matcher and the roster tools."""

from __future__ import annotations

import re
from typing import Dict, List

# Whole-word generational suffixes, compared after the trailing period is dropped.
SUFFIXES = frozenset({"jr", "sr", "ii", "iii", "iv", "r"})

# Latin fold table. Characters not listed pass through unchanged.
_FOLD_GROUPS: Dict[str, str] = {
    "àáâãäåā": "a",
    "æ": "ae",
    "çčć": "c",
    "ď": "d",
    "èéêëēę": "e",
    "ìíîïī": "i",
    "ł": "l",
    "ñń": "n",
    "òóôõöøō": "o",
    "œ": "oe",
    "řŕ": "r",
    "šś": "s",
    "ß": "ss",
    "ť": "t",
    "ùúûüū": "u",
    "ýÿ": "y",
    "žźż": "z",
}
_FOLD = str.maketrans({ch: base for group, base in _FOLD_GROUPS.items() for ch in group})

_WHITESPACE = re.compile(r"\s+")


def fold_diacritics(text: str) -> str:
    return text.translate(_FOLD)


def normalize(raw_name: str) -> str:
    """Return the comparable form of a player name.

    Lower-cases, folds accented Latin letters, drops suffix tokens such as
    ``Jr.`` or ``III`` and collapses whitespace. ``normalize`` is idempotent.
    """
    if not raw_name:
        return ""
    text = fold_diacritics(str(raw_name).lower())
    words = [w for w in _WHITESPACE.split(text.strip()) if w]
    kept = [w for w in words if w.rstrip(".") not in SUFFIXES]
    return " ".join(kept)


def tokens(name: str, min_len: int = 2) -> List[str]:
    """Split a name into normalized tokens of at least ``min_len`` characters."""
    return [t for t in normalize(name).split(" ") if len(t) >= min_len]


__all__ = ["SUFFIXES", "fold_diacritics", "normalize", "tokens"]
