"""
Matching Value Objects
======================

Immutable value objects and pure scoring helpers for the matching domain.
"""

from dataclasses import dataclass
from typing import Tuple

from src.config import KnowledgeCategory, UNKNOWN_CATEGORY


@dataclass(frozen=True)
class CategoryRule:
    """Keyword rule mapping a question to a knowledge category."""
    category: str
    keywords: Tuple[str, ...]

    def matches(self, question: str) -> bool:
        return any(keyword in question for keyword in self.keywords)


class CategoryDetector:
    """
    Keyword-based category detection.

    Rules are checked in order, first match wins. Keywords are matched as
    case-insensitive substrings.
    """

    DEFAULT_RULES: Tuple[CategoryRule, ...] = (
        CategoryRule(
            KnowledgeCategory.DOI.value,
            ("doi", "digital object identifier", "publication", "paper", "article", "journal"),
        ),
        CategoryRule(
            KnowledgeCategory.ACCESS.value,
            ("login", "password", "access", "account", "sign in", "authentication", "credentials"),
        ),
        CategoryRule(
            KnowledgeCategory.HOSTING.value,
            ("hosting", "server", "domain", "website", "deployment", "bandwidth", "storage"),
        ),
    )

    def __init__(self, rules: Tuple[CategoryRule, ...] = DEFAULT_RULES):
        self._rules = rules

    def detect(self, question: str) -> str:
        """Category label for a question, or "Unknown"."""
        lowered = (question or "").lower()
        for rule in self._rules:
            if rule.matches(lowered):
                return rule.category
        return UNKNOWN_CATEGORY


class ScoreCalculator:
    """
    Pure functions for confidence scoring.

    Every score leaving the matching domain is in [0, 1].
    """

    @staticmethod
    def clamp(value: float) -> float:
        return max(0.0, min(1.0, float(value)))

    @staticmethod
    def lexical_score(rank: float, floor: float = 0.85, ceiling: float = 0.95) -> float:
        """
        Map a raw full-text rank into [floor, ceiling].

        Ranks are clamped to [0, 1] first, so any lexical hit scores at least
        ``floor``.
        """
        bounded = max(0.0, min(1.0, float(rank)))
        return round(floor + bounded * (ceiling - floor), 6)

    @staticmethod
    def weighted_score(similarity: float, confidence_weight: float) -> float:
        """Scan score: similarity floored at 0, scaled by the entry weight."""
        return ScoreCalculator.clamp(max(0.0, similarity) * confidence_weight)
