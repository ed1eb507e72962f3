from __future__ import annotations

import random
from collections.abc import Sequence

DEFAULT_WORDS = [
    "ice cream",
    "rainbow",
    "elephant",
    "volcano",
    "dragon",
    "hamburger",
    "headphones",
    "bicycle",
    "piano",
    "rocket",
]


def pick_word(words: Sequence[str] | None = None) -> str:
    pool = [w.strip() for w in (words or DEFAULT_WORDS) if w and w.strip()]
    if not pool:
        pool = DEFAULT_WORDS
    return random.choice(pool)
