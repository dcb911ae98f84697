"""
Matching Infrastructure Layer
=============================

Infrastructure implementations for the matching module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Knowledge store and Postgres full-text search
- External: Embedding provider and vector index adapters, KB indexer
"""

from src.matching.infrastructure.models import KnowledgeEntryModel
from src.matching.infrastructure.repositories import (
    PostgresLexicalSearch,
    SQLAlchemyKnowledgeStore,
)
from src.matching.infrastructure.external import (
    EmbeddingProviderAdapter,
    KnowledgeIndexer,
    VectorIndexAdapter,
)

__all__ = [
    "KnowledgeEntryModel",
    "PostgresLexicalSearch",
    "SQLAlchemyKnowledgeStore",
    "EmbeddingProviderAdapter",
    "KnowledgeIndexer",
    "VectorIndexAdapter",
]
