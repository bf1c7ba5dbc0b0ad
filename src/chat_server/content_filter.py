"""
Content Filter

Masks disallowed words in message text before it is stored.
"""

import re
from typing import Iterable, Optional

# Words masked when no list is configured
DEFAULT_BANNED_WORDS = ("死ね", "殺す")

MASK_CHARACTER = "*"


class ContentFilter:
    """
    Replaces banned words with a mask of the same length.

    Matching is case-insensitive. At each position the longest banned
    word wins, and masked text is never scanned again, so overlapping
    words are not masked twice.
    """

    def __init__(
        self,
        words: Iterable[str] = DEFAULT_BANNED_WORDS,
        mask_character: str = MASK_CHARACTER,
    ):
        unique = {}
        for word in words:
            if word and word.strip():
                unique.setdefault(word.strip().casefold(), word.strip())
        self.words = sorted(unique.values(), key=len, reverse=True)
        self.mask_character = mask_character
        self._pattern: Optional[re.Pattern] = None
        if self.words:
            self._pattern = re.compile(
                "|".join(re.escape(word) for word in self.words), re.IGNORECASE
            )

    def mask(self, text: str) -> str:
        """Return text with every banned word masked."""
        if self._pattern is None or not text:
            return text
        return self._pattern.sub(
            lambda match: self.mask_character * len(match.group(0)), text
        )


def mask_banned_words(text: str, words: Iterable[str] = DEFAULT_BANNED_WORDS) -> str:
    """Mask banned words using a one-off filter."""
    return ContentFilter(words).mask(text)
