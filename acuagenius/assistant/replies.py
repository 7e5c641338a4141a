"""Yes / no detection for replies to a confirmation prompt."""

from __future__ import annotations

import re
from enum import Enum

# Pictographs, dingbats (✅ ❌ ✔ ✖ ☑) and the variation selector that follows them.
_EMOJI_RE = re.compile("[\U0001F300-\U0001FAFF\u2600-\u27BF\u2B00-\u2BFF\uFE0F\u200D]")
_PUNCTUATION_RE = re.compile(r"[,;:.!¡¿?\"'()]")

_AFFIRMATIVE_RE = re.compile(r"^(?:s[ií]|ok|dale|claro|confirmo|acepto)$")
_AFFIRMATIVE_WORD_RE = re.compile(r"(?<!\w)sí(?!\w)")
_NEGATIVE_RE = re.compile(r"^(?:no(?!\w)|cancela|olv[ií]da)")


class ReplyKind(str, Enum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    UNCLEAR = "unclear"


def normalize_reply(text: str) -> str:
    cleaned = _EMOJI_RE.sub("", text)
    cleaned = _PUNCTUATION_RE.sub("", cleaned)
    return cleaned.lower().strip()


def is_affirmative(text: str) -> bool:
    """``sí`` / ``si`` / ``ok`` / ``dale`` / ``claro`` / ``confirmo`` / ``acepto``.

    An accented ``sí`` anywhere as a standalone word also counts
    ("sí, hazlo"); the unaccented ``si`` only counts on its own since it is
    also the conditional "if".
    """
    cleaned = normalize_reply(text)
    if not cleaned:
        return False
    return bool(_AFFIRMATIVE_RE.match(cleaned) or _AFFIRMATIVE_WORD_RE.search(cleaned))


def is_negative(text: str) -> bool:
    """``no`` or anything starting with ``cancela`` / ``olvida``."""
    cleaned = normalize_reply(text)
    return bool(_NEGATIVE_RE.match(cleaned))


def classify_reply(text: str) -> ReplyKind:
    # Affirmative is checked first so a reply can never be both.
    if is_affirmative(text):
        return ReplyKind.AFFIRMATIVE
    if is_negative(text):
        return ReplyKind.NEGATIVE
    return ReplyKind.UNCLEAR
