"""
Matching Domain Layer
=====================

Domain layer for knowledge-base matching.

Contains:
- Entities: KnowledgeEntry, ConfidenceThreshold, MatchResult and collaborator hits
- Value Objects: CategoryDetector, ScoreCalculator

This layer is framework-agnostic and contains pure business logic.
"""

from src.matching.domain.entities import (
    ConfidenceThreshold,
    KnowledgeEntry,
    LexicalHit,
    MatchResult,
    VectorHit,
)
from src.matching.domain.value_objects import (
    CategoryDetector,
    CategoryRule,
    ScoreCalculator,
)

__all__ = [
    "ConfidenceThreshold",
    "KnowledgeEntry",
    "LexicalHit",
    "MatchResult",
    "VectorHit",
    "CategoryDetector",
    "CategoryRule",
    "ScoreCalculator",
]
