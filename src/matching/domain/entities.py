"""
Matching Domain Entities
========================

Domain entities for knowledge-base matching.

Contains pure Python business objects: the KB entry snapshot, the live
confidence threshold and the match result it classifies.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from src.config import EntryStatus, KnowledgeCategory, MatchSource
from src.core import ValidationException


@dataclass(frozen=True)
class KnowledgeEntry:
    """
    Snapshot of one knowledge-base question/answer record.

    Immutable once loaded; admin edits produce a new snapshot on the next
    load. ``question_embeddings`` optionally maps question text to a stored
    vector so the exhaustive scan can skip re-embedding.
    """
    id: str
    primary_question: str
    answer_text: str
    category: KnowledgeCategory
    confidence_weight: float = 1.0
    alternate_questions: Tuple[str, ...] = ()
    status: EntryStatus = EntryStatus.ACTIVE
    question_embeddings: Optional[Dict[str, List[float]]] = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self):
        """Validate entry."""
        if not 0.0 <= self.confidence_weight <= 1.0:
            raise ValueError("confidence_weight must be between 0 and 1")

    @property
    def question_variants(self) -> Tuple[str, ...]:
        """Primary question followed by the alternates, in order."""
        return (self.primary_question,) + tuple(self.alternate_questions)

    @property
    def is_active(self) -> bool:
        return self.status == EntryStatus.ACTIVE

    def stored_embedding(self, question: str) -> Optional[List[float]]:
        """Pre-computed vector for a question variant, if one was stored."""
        if not self.question_embeddings:
            return None
        return self.question_embeddings.get(question)


class ConfidenceThreshold:
    """
    Process-wide cutoff at or above which a match is an answer.

    Reads are lock-free. Writes validate and replace the value atomically;
    the lock only serializes concurrent admin updates.
    """

    def __init__(self, value: float = 0.7):
        self._lock = threading.Lock()
        self._value = self._validate(value)

    @staticmethod
    def _validate(value: float) -> float:
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationException("Confidence threshold must be a number")
        if not 0.0 <= value <= 1.0:
            raise ValidationException(
                "Confidence threshold must be between 0.0 and 1.0",
                {"threshold": value}
            )
        return value

    @property
    def value(self) -> float:
        return self._value

    def update(self, value: float) -> float:
        """Replace the threshold. Raises ValidationException when out of [0, 1]."""
        validated = self._validate(value)
        with self._lock:
            self._value = validated
        return validated

    def is_met(self, score: float) -> bool:
        return score >= self._value


@dataclass(frozen=True)
class VectorHit:
    """Nearest-neighbour hit from the vector index."""
    score: float
    metadata: dict


@dataclass(frozen=True)
class LexicalHit:
    """Ranked full-text hit over KB question text."""
    entry: KnowledgeEntry
    rank: float


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of one matching request.

    ``source`` is the discriminant: NONE always carries no entry, every
    other source always carries the entry that produced the score.
    ``is_confident`` is evaluated against the live threshold, so a runtime
    threshold change re-classifies results already computed.
    """
    matched_entry: Optional[KnowledgeEntry]
    confidence_score: float
    source: MatchSource
    threshold: ConfidenceThreshold = field(compare=False, repr=False)
    processing_time_ms: int = 0

    def __post_init__(self):
        """Validate result."""
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError("confidence_score must be between 0 and 1")
        if (self.source == MatchSource.NONE) != (self.matched_entry is None):
            raise ValueError("source NONE must carry no entry, other sources must carry one")

    @property
    def is_confident(self) -> bool:
        return self.threshold.is_met(self.confidence_score)

    @classmethod
    def no_match(
        cls,
        threshold: ConfidenceThreshold,
        best_score: float = 0.0,
        processing_time_ms: int = 0
    ) -> "MatchResult":
        """Non-confident result carrying the best score seen."""
        return cls(
            matched_entry=None,
            confidence_score=best_score,
            source=MatchSource.NONE,
            threshold=threshold,
            processing_time_ms=processing_time_ms
        )

    def with_timing(self, processing_time_ms: int) -> "MatchResult":
        return MatchResult(
            matched_entry=self.matched_entry,
            confidence_score=self.confidence_score,
            source=self.source,
            threshold=self.threshold,
            processing_time_ms=processing_time_ms
        )
