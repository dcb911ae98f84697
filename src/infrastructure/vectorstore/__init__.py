"""
Vector Store Infrastructure
============================

Milvus vector store holding one vector per knowledge-base question.

Each point carries the entry snapshot needed to answer without a database
round-trip (db id, question text, answer text, category, weight).
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from pymilvus import MilvusClient

from src.config import settings
from src.core import VectorStoreException
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

OUTPUT_FIELDS = ["db_id", "text", "answer_text", "category", "confidence_weight"]


@dataclass
class Document:
    """Point for vector storage."""
    id: str
    text: str
    embedding: List[float]
    metadata: dict


@dataclass
class SearchResult:
    """One nearest-neighbour hit."""
    score: float
    metadata: dict
    id: Optional[str] = None


class IVectorStore(ABC):
    """
    Vector index over knowledge-base question variants.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and create the collection if missing."""

    @abstractmethod
    async def get_document_count(self) -> int:
        """Get number of points in the collection."""

    @abstractmethod
    async def upsert_documents(self, documents: List[Document]) -> None:
        """Insert or replace points."""

    @abstractmethod
    async def search(self, query_embedding: List[float], top_k: int = 1) -> List[SearchResult]:
        """Search for similar points."""


class MilvusVectorStore(IVectorStore):
    """
    Knowledge-base question index on Zilliz Cloud.

    The collection uses the COSINE metric, so ``distance`` on a hit is a
    similarity in [-1, 1]. The client is synchronous; calls run in a worker
    thread under ``vector_search_timeout_seconds``.
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        uri: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        self._collection_name = collection_name or settings.milvus_collection_name
        self._dimension = settings.embedding_dimension
        self._uri = uri or settings.zilliz_uri
        self._api_key = api_key if api_key is not None else settings.zilliz_api_key
        self._timeout = timeout_seconds or settings.vector_search_timeout_seconds
        self._client: Optional[MilvusClient] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize Milvus client and collection."""
        if self._initialized:
            return

        if not self._uri:
            raise VectorStoreException("ZILLIZ_URI not configured")

        try:
            self._client = MilvusClient(uri=self._uri, token=self._api_key or "")

            if not self._client.has_collection(self._collection_name):
                self._client.create_collection(
                    collection_name=self._collection_name,
                    dimension=self._dimension,
                    id_type="string",
                    max_length=128,
                    metric_type="COSINE"
                )
                logger.info(
                    "Created Milvus collection",
                    extra={"collection": self._collection_name, "dimension": self._dimension}
                )

            self._initialized = True

        except Exception as e:
            raise VectorStoreException(f"Failed to initialize Milvus: {str(e)}")

    async def _call(self, fn, *args, **kwargs):
        if not self._initialized:
            await self.initialize()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs),
                timeout=self._timeout
            )
        except asyncio.TimeoutError:
            raise VectorStoreException(f"Milvus call timed out after {self._timeout}s")

    async def get_document_count(self) -> int:
        """Get number of points in the collection."""
        try:
            stats = await self._call(
                self._client.get_collection_stats,
                collection_name=self._collection_name
            )
            return int(stats.get("row_count", 0))
        except Exception as e:
            raise VectorStoreException(f"Failed to count points: {str(e)}")

    async def upsert_documents(self, documents: List[Document]) -> None:
        """
        Insert or replace points.

        Raises:
            VectorStoreException: If the upsert fails
        """
        if not documents:
            return

        data = [
            {
                "id": doc.id,
                "vector": doc.embedding,
                "text": doc.text,
                "db_id": str(doc.metadata.get("db_id", "")),
                "answer_text": doc.metadata.get("answer_text", ""),
                "category": doc.metadata.get("category", ""),
                "confidence_weight": float(doc.metadata.get("confidence_weight", 1.0)),
            }
            for doc in documents
        ]

        try:
            await self._call(self._client.upsert, collection_name=self._collection_name, data=data)
        except VectorStoreException:
            raise
        except Exception as e:
            raise VectorStoreException(f"Failed to upsert points: {str(e)}")

    async def search(
        self,
        query_embedding: List[float],
        top_k: int = 1
    ) -> List[SearchResult]:
        """
        Search for the nearest question vectors.

        Args:
            query_embedding: Query vector
            top_k: Number of results to return

        Returns:
            List of SearchResult objects, best first

        Raises:
            VectorStoreException: If search fails
        """
        try:
            results = await self._call(
                self._client.search,
                collection_name=self._collection_name,
                data=[query_embedding],
                limit=top_k,
                output_fields=OUTPUT_FIELDS,
                search_params={"metric_type": "COSINE"}
            )
        except VectorStoreException:
            raise
        except Exception as e:
            raise VectorStoreException(f"Search failed: {str(e)}")

        formatted_results = []
        if results and len(results) > 0:
            for hit in results[0]:
                entity = hit.get("entity", {})
                formatted_results.append(SearchResult(
                    score=float(hit["distance"]),
                    metadata={field: entity.get(field) for field in OUTPUT_FIELDS},
                    id=hit.get("id")
                ))

        return formatted_results
