"""
Matching Application DTOs
=========================

Data Transfer Objects for the matching admin API.

Pydantic models for request/response validation.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from src.matching.domain import MatchResult


# ========== Type Aliases for Literals ==========
MatchSourceStr = Literal["VECTOR", "TEXT", "WEIGHTED_SCAN", "NONE"]
KnowledgeCategoryStr = Literal["DOI", "Access", "Hosting"]


# ========== Request DTOs ==========

class ThresholdUpdateRequest(BaseModel):
    """
    Request model for a threshold update.

    Range is checked by the engine so an out-of-range value maps to 400.
    """
    confidence_threshold: float = Field(..., description="New threshold in [0.0, 1.0]")


class MatchRequest(BaseModel):
    """Request model for a dry-run match."""
    question: str = Field(..., min_length=1, max_length=1000, description="Question to match")


# ========== Response DTOs ==========

class ThresholdResponse(BaseModel):
    """Response model for the current threshold."""
    confidence_threshold: float = Field(..., ge=0.0, le=1.0)


class MatchedEntryInfo(BaseModel):
    """Matched KB entry information."""
    id: str
    primary_question: str
    answer_text: str
    category: KnowledgeCategoryStr
    confidence_weight: float


class MatchResponse(BaseModel):
    """Response model for a dry-run match."""
    matched_entry: Optional[MatchedEntryInfo]
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    is_confident: bool
    source: MatchSourceStr
    detected_category: str
    processing_time_ms: int

    @classmethod
    def from_domain(cls, result: MatchResult, detected_category: str) -> "MatchResponse":
        """Create from domain result."""
        entry = result.matched_entry
        return cls(
            matched_entry=MatchedEntryInfo(
                id=entry.id,
                primary_question=entry.primary_question,
                answer_text=entry.answer_text,
                category=entry.category.value,
                confidence_weight=entry.confidence_weight
            ) if entry else None,
            confidence_score=result.confidence_score,
            is_confident=result.is_confident,
            source=result.source.value,
            detected_category=detected_category,
            processing_time_ms=result.processing_time_ms
        )


class ReindexResponse(BaseModel):
    """Response model for a vector index rebuild."""
    status: str
    indexed: int = 0
    failed: int = 0
    failed_entry_ids: List[str] = Field(default_factory=list)


class MatchingHealthResponse(BaseModel):
    """Response model for matching health."""
    status: str
    embedding_service: bool
    knowledge_base: bool
    knowledge_base_entries: int
    confidence_threshold: float
    matching_mode: str
