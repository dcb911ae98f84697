"""
Matching Application Layer
==========================

Application layer for knowledge-base matching.

Contains:
- Services: MatchingEngine orchestration
- Interfaces: collaborator contracts the infrastructure layer implements
- DTOs: Data transfer objects for API serialization
"""

from src.matching.application.dto import (
    MatchedEntryInfo,
    MatchingHealthResponse,
    MatchRequest,
    MatchResponse,
    ReindexResponse,
    ThresholdResponse,
    ThresholdUpdateRequest,
)
from src.matching.application.services import (
    IEmbeddingProvider,
    IKnowledgeStore,
    ILexicalSearch,
    IVectorIndex,
    MatchingEngine,
)

__all__ = [
    # DTOs
    "MatchedEntryInfo",
    "MatchingHealthResponse",
    "MatchRequest",
    "MatchResponse",
    "ReindexResponse",
    "ThresholdResponse",
    "ThresholdUpdateRequest",
    # Services
    "MatchingEngine",
    # Collaborator Interfaces
    "IEmbeddingProvider",
    "IKnowledgeStore",
    "ILexicalSearch",
    "IVectorIndex",
]
