"""
Matching Application Services
=============================

Hybrid knowledge-base matching.

Orchestrates the embedding provider, vector index, lexical search and
knowledge store into one confidence-scored MatchResult. Collaborator
failures are absorbed here; nothing but a MatchResult leaves
``find_best_match``.
"""

import time
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from src.config import KNOWLEDGE_CATEGORIES, KnowledgeCategory, MatchingMode, MatchSource
from src.core import ConfigurationException, ProviderException
from src.infrastructure.embeddings import cosine_similarity
from src.matching.domain import (
    CategoryDetector,
    ConfidenceThreshold,
    KnowledgeEntry,
    LexicalHit,
    MatchResult,
    ScoreCalculator,
    VectorHit,
)
from src.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class IEmbeddingProvider(ABC):
    """Interface for turning text into vectors."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed text. Raises ProviderException on failure."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Whether the provider is reachable."""


class IVectorIndex(ABC):
    """Interface for nearest-neighbour search over KB question vectors."""

    @abstractmethod
    async def query(self, vector: List[float], top_k: int = 1) -> List[VectorHit]:
        """Nearest hits, best first. Raises ProviderException on failure."""


class ILexicalSearch(ABC):
    """Interface for ranked full-text search over KB question text."""

    @abstractmethod
    async def search(self, text: str) -> List[LexicalHit]:
        """Ranked hits, best first. Raises ProviderException on failure."""


class IKnowledgeStore(ABC):
    """Interface for knowledge-base reads."""

    @abstractmethod
    async def list_active(self) -> List[KnowledgeEntry]:
        """Active entries in stable store order."""

    @abstractmethod
    async def get_by_id(self, entry_id: str) -> Optional[KnowledgeEntry]:
        """Entry by id, or None."""


# ========== Application Services ==========

class MatchingEngine:
    """
    Finds the best KB answer for a question and scores its confidence.

    Steps, each tried only when the previous one yields nothing:
    1. vector search, top_k=1 (vector mode)
    2. lexical fallback, rank normalized into [floor, ceiling]
    3. weighted exhaustive scan (scan mode)
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        knowledge_store: IKnowledgeStore,
        vector_index: Optional[IVectorIndex] = None,
        lexical_search: Optional[ILexicalSearch] = None,
        threshold: Optional[ConfidenceThreshold] = None,
        mode: Optional[MatchingMode] = None,
        category_detector: Optional[CategoryDetector] = None,
        lexical_floor: float = 0.85,
        lexical_ceiling: float = 0.95
    ):
        if mode is None:
            mode = MatchingMode.VECTOR if vector_index is not None else MatchingMode.SCAN
        if mode == MatchingMode.VECTOR and vector_index is None:
            raise ConfigurationException("Vector matching mode requires a vector index")

        self._embeddings = embedding_provider
        self._store = knowledge_store
        self._vector_index = vector_index
        self._lexical = lexical_search
        self._threshold = threshold or ConfidenceThreshold()
        self._mode = MatchingMode(mode)
        self._detector = category_detector or CategoryDetector()
        self._lexical_floor = lexical_floor
        self._lexical_ceiling = lexical_ceiling

    @property
    def mode(self) -> MatchingMode:
        return self._mode

    @property
    def threshold(self) -> ConfidenceThreshold:
        return self._threshold

    @property
    def confidence_threshold(self) -> float:
        return self._threshold.value

    def update_confidence_threshold(self, value: float) -> float:
        """
        Replace the process-wide threshold.

        Raises:
            ValidationException: If value is outside [0, 1]
        """
        old_value = self._threshold.value
        new_value = self._threshold.update(value)
        logger.info(
            "Confidence threshold updated",
            extra={"old_threshold": old_value, "new_threshold": new_value}
        )
        return new_value

    def detect_category(self, question: str) -> str:
        return self._detector.detect(question)

    async def find_best_match(self, question: str) -> MatchResult:
        """
        Find the best KB entry for a question.

        Args:
            question: Non-empty user question

        Returns:
            MatchResult; never raises for collaborator failures
        """
        start_time = time.perf_counter()
        question = question.strip()

        try:
            result = await self._match(question)
        except Exception as e:
            logger.error(
                "Matching failed, treating as no match",
                extra={"error": str(e), "error_type": type(e).__name__}
            )
            result = MatchResult.no_match(self._threshold)

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        result = result.with_timing(latency_ms)

        logger.info(
            "Match completed",
            extra={
                "source": result.source.value,
                "confidence_score": round(result.confidence_score, 4),
                "is_confident": result.is_confident,
                "entry_id": result.matched_entry.id if result.matched_entry else None,
                "latency_ms": latency_ms,
            }
        )
        return result

    async def _match(self, question: str) -> MatchResult:
        entries: List[KnowledgeEntry] = []
        if self._mode == MatchingMode.SCAN:
            entries = await self._store.list_active()
            if not entries:
                logger.info("Knowledge base is empty")
                return MatchResult.no_match(self._threshold)

        try:
            query_vector = await self._embeddings.embed(question)
        except ProviderException as e:
            logger.error("Question embedding failed", extra={"error": e.message})
            return MatchResult.no_match(self._threshold)

        best_seen = 0.0

        if self._mode == MatchingMode.VECTOR:
            result, score = await self._vector_step(query_vector)
            if result:
                return result
            best_seen = max(best_seen, score)

        if self._lexical is not None:
            result, score = await self._lexical_step(question)
            if result:
                return result
            best_seen = max(best_seen, score)

        if self._mode == MatchingMode.SCAN:
            result, score = await self._scan_step(query_vector, entries)
            if result:
                return result
            best_seen = max(best_seen, score)

        return MatchResult.no_match(self._threshold, best_seen)

    async def _vector_step(self, query_vector: List[float]) -> Tuple[Optional[MatchResult], float]:
        try:
            with log_latency(logger, "vector_query", top_k=1):
                hits = await self._vector_index.query(query_vector, top_k=1)
        except ProviderException as e:
            logger.warning("Vector search failed, falling back", extra={"error": e.message})
            return None, 0.0

        if not hits:
            return None, 0.0

        score = ScoreCalculator.clamp(hits[0].score)
        if not self._threshold.is_met(score):
            return None, score

        entry = await self._entry_from_metadata(hits[0].metadata)
        if entry is None:
            logger.warning("Vector hit carried unusable metadata", extra={"metadata_keys": list(hits[0].metadata)})
            return None, 0.0

        return MatchResult(entry, score, MatchSource.VECTOR, self._threshold), score

    async def _entry_from_metadata(self, metadata: dict) -> Optional[KnowledgeEntry]:
        answer_text = metadata.get("answer_text")
        category = metadata.get("category")
        db_id = metadata.get("db_id")

        if answer_text and category in KNOWLEDGE_CATEGORIES and db_id:
            try:
                return KnowledgeEntry(
                    id=str(db_id),
                    primary_question=metadata.get("text") or "",
                    answer_text=answer_text,
                    category=KnowledgeCategory(category),
                    confidence_weight=float(metadata.get("confidence_weight", 1.0)),
                )
            except (TypeError, ValueError) as e:
                logger.debug("Vector metadata incomplete, loading entry", extra={"db_id": db_id, "error": str(e)})

        if db_id:
            return await self._store.get_by_id(str(db_id))
        return None

    async def _lexical_step(self, question: str) -> Tuple[Optional[MatchResult], float]:
        try:
            with log_latency(logger, "lexical_search"):
                hits = await self._lexical.search(question)
        except ProviderException as e:
            logger.warning("Lexical search failed, falling back", extra={"error": e.message})
            return None, 0.0

        if not hits:
            return None, 0.0

        top = hits[0]
        score = ScoreCalculator.lexical_score(top.rank, self._lexical_floor, self._lexical_ceiling)
        if not self._threshold.is_met(score):
            return None, score

        return MatchResult(top.entry, score, MatchSource.TEXT, self._threshold), score

    async def _scan_step(
        self,
        query_vector: List[float],
        entries: List[KnowledgeEntry]
    ) -> Tuple[Optional[MatchResult], float]:
        best_entry: Optional[KnowledgeEntry] = None
        best_score = 0.0

        for entry in entries:
            try:
                similarity = await self._max_similarity(query_vector, entry)
            except Exception as e:
                logger.warning(
                    "Skipping entry that failed to score",
                    extra={"entry_id": entry.id, "error": str(e)}
                )
                continue

            score = ScoreCalculator.weighted_score(similarity, entry.confidence_weight)
            # Strict comparison: on ties the earlier entry in store order wins
            if score > best_score:
                best_entry = entry
                best_score = score

        if best_entry is None or not self._threshold.is_met(best_score):
            return None, best_score

        return MatchResult(best_entry, best_score, MatchSource.WEIGHTED_SCAN, self._threshold), best_score

    async def _max_similarity(self, query_vector: List[float], entry: KnowledgeEntry) -> float:
        max_similarity = 0.0
        for variant in entry.question_variants:
            vector = entry.stored_embedding(variant)
            if vector is None:
                vector = await self._embeddings.embed(variant)
            max_similarity = max(max_similarity, cosine_similarity(query_vector, vector))
        return min(max_similarity, 1.0)

    async def health_check(self) -> dict:
        """Embedding provider reachability, KB size and current threshold."""
        try:
            embedding_ok = await self._embeddings.health_check()
        except Exception as e:
            logger.error("Embedding health check failed", extra={"error": str(e)})
            embedding_ok = False

        try:
            entry_count = len(await self._store.list_active())
        except Exception as e:
            logger.error("Knowledge store health check failed", extra={"error": str(e)})
            entry_count = 0

        return {
            "embedding_service": embedding_ok,
            "knowledge_base": entry_count > 0,
            "knowledge_base_entries": entry_count,
            "confidence_threshold": self._threshold.value,
            "matching_mode": self._mode.value,
        }
