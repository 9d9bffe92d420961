"""Title keyword counting for hourly digests."""
from __future__ import annotations

import re
from collections import Counter

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "from", "up", "about", "into", "over", "after", "is", "are", "was", "were",
    "be", "been", "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "should", "can", "could", "may", "might", "must", "shall", "i", "you", "he", "she",
    "it", "we", "they", "my", "your", "his", "her", "its", "our", "their",
})

_SPLIT = re.compile(r"[\W_]+")


class WordCounter:
    """Counts lower-cased title words longer than two characters, minus stop words."""

    def __init__(self, stopwords: frozenset[str] = STOPWORDS, min_length: int = 3) -> None:
        self._stopwords = stopwords
        self._min_length = min_length

    def count_words(self, title: str) -> Counter[str]:
        words = Counter()
        for word in _SPLIT.split(title.lower()):
            if len(word) >= self._min_length and word not in self._stopwords:
                words[word] += 1
        return words
