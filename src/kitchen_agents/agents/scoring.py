"""Keyword and pattern scoring used by agents to claim a message."""

import re
from dataclasses import dataclass, field
from typing import Pattern, Sequence, Tuple

MAX_SCORE = 100


@dataclass(frozen=True)
class KeywordScorer:
    """Scores a message by keyword hits plus bonuses for compound patterns.

    Every keyword found in the lower-cased message adds ``keyword_weight``; every
    matching pattern adds its own bonus. The sum is clamped to ``[0, 100]``.
    """

    keywords: Tuple[str, ...]
    keyword_weight: int
    patterns: Tuple[Tuple[Pattern[str], int], ...] = field(default_factory=tuple)

    @classmethod
    def build(cls, keywords: Sequence[str], keyword_weight: int, patterns: Sequence[Tuple[str, int]] = ()) -> "KeywordScorer":
        compiled = tuple((re.compile(pattern), bonus) for pattern, bonus in patterns)
        return cls(keywords=tuple(k.lower() for k in keywords), keyword_weight=keyword_weight, patterns=compiled)

    def score(self, message: str) -> int:
        text = message.lower()
        total = sum(self.keyword_weight for keyword in self.keywords if keyword in text)
        total += sum(bonus for pattern, bonus in self.patterns if pattern.search(text))
        return max(0, min(total, MAX_SCORE))
