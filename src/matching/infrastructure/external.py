"""
Matching External Service Adapters
==================================

Adapters for external services (embedding provider, vector index) used by
the matching module.

Implements the interfaces defined in the application layer using concrete
external service implementations.
"""

from typing import List, Optional

from src.core import EmbeddingException, ProviderException, VectorStoreException
from src.infrastructure.embeddings import IEmbeddingClient, build_embedding_client
from src.infrastructure.vectorstore import Document, IVectorStore, MilvusVectorStore
from src.matching.application import IEmbeddingProvider, IKnowledgeStore, IVectorIndex
from src.matching.domain import KnowledgeEntry, VectorHit
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EmbeddingProviderAdapter(IEmbeddingProvider):
    """
    Adapter that wraps the infrastructure embedding client.

    Implements the application layer IEmbeddingProvider interface.
    """

    def __init__(self, client: Optional[IEmbeddingClient] = None):
        self._client = client or build_embedding_client()

    async def embed(self, text: str) -> List[float]:
        """Embed text."""
        result = await self._client.generate_embedding(text)
        return result.embedding

    async def health_check(self) -> bool:
        return await self._client.health_check()

    async def close(self) -> None:
        await self._client.close()


class VectorIndexAdapter(IVectorIndex):
    """
    Adapter that wraps the infrastructure vector store.

    Implements the application layer IVectorIndex interface using
    the infrastructure layer MilvusVectorStore.
    """

    def __init__(self, store: Optional[IVectorStore] = None):
        self._store = store or MilvusVectorStore()

    @property
    def store(self) -> IVectorStore:
        return self._store

    async def initialize(self) -> None:
        """Initialize the vector store."""
        await self._store.initialize()

    async def query(self, vector: List[float], top_k: int = 1) -> List[VectorHit]:
        """
        Nearest KB question vectors.

        Raises:
            VectorStoreException: If the search fails
        """
        results = await self._store.search(vector, top_k=top_k)
        return [VectorHit(score=r.score, metadata=r.metadata) for r in results]


class KnowledgeIndexer:
    """
    Service for pushing KB questions into the vector index.

    Handles:
    - Embedding each active entry's primary question
    - Upserting it under ``q_<entry id>`` with the answer metadata
    - Counting failures instead of raising
    """

    def __init__(
        self,
        knowledge_store: IKnowledgeStore,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStore
    ):
        self._store = knowledge_store
        self._embeddings = embedding_provider
        self._vector_store = vector_store

    @staticmethod
    def point_id(entry: KnowledgeEntry) -> str:
        return f"q_{entry.id}"

    async def index_entry(self, entry: KnowledgeEntry) -> bool:
        """
        Embed and upsert one entry.

        Returns:
            True on success, False if embedding or upsert failed
        """
        try:
            vector = await self._embeddings.embed(entry.primary_question)
            await self._vector_store.upsert_documents([
                Document(
                    id=self.point_id(entry),
                    text=entry.primary_question,
                    embedding=vector,
                    metadata={
                        "db_id": entry.id,
                        "answer_text": entry.answer_text,
                        "category": entry.category.value,
                        "confidence_weight": entry.confidence_weight,
                    }
                )
            ])
        except (EmbeddingException, VectorStoreException, ProviderException) as e:
            logger.error(
                "Failed to index knowledge base entry",
                extra={"entry_id": entry.id, "error": e.message}
            )
            return False

        logger.info("Indexed knowledge base entry", extra={"entry_id": entry.id})
        return True

    async def reindex_all(self) -> dict:
        """
        Index every active entry.

        Returns:
            Indexing statistics
        """
        entries = await self._store.list_active()

        failed_ids = []
        for entry in entries:
            if not await self.index_entry(entry):
                failed_ids.append(entry.id)

        indexed = len(entries) - len(failed_ids)
        logger.info(
            "Knowledge base reindex finished",
            extra={"indexed": indexed, "failed": len(failed_ids)}
        )
        return {
            "status": "success" if not failed_ids else "partial",
            "indexed": indexed,
            "failed": len(failed_ids),
            "failed_entry_ids": failed_ids,
        }
