"""
Tests for KnowledgeIndexer and VectorIndexAdapter.
"""

from typing import List

import pytest

from src.core import VectorStoreException
from src.infrastructure.vectorstore import Document, IVectorStore, SearchResult
from src.matching.infrastructure import KnowledgeIndexer, VectorIndexAdapter
from tests.conftest import FakeEmbeddingProvider, FakeKnowledgeStore, make_entry


class InMemoryVectorStore(IVectorStore):
    def __init__(self, results=None, fail_ids=()):
        self.documents = {}
        self.results = list(results or [])
        self.fail_ids = set(fail_ids)

    async def initialize(self) -> None:
        pass

    async def get_document_count(self) -> int:
        return len(self.documents)

    async def upsert_documents(self, documents: List[Document]) -> None:
        for document in documents:
            if document.id in self.fail_ids:
                raise VectorStoreException("upsert rejected")
            self.documents[document.id] = document

    async def search(self, query_embedding: List[float], top_k: int = 1) -> List[SearchResult]:
        return self.results[:top_k]


@pytest.mark.asyncio
async def test_reindex_all_upserts_each_entry():
    entries = [make_entry(entry_id="kb-1"), make_entry(entry_id="kb-2", primary_question="How do I mint a DOI?")]
    store = InMemoryVectorStore()
    indexer = KnowledgeIndexer(FakeKnowledgeStore(entries), FakeEmbeddingProvider(), store)

    stats = await indexer.reindex_all()

    assert stats == {"status": "success", "indexed": 2, "failed": 0, "failed_entry_ids": []}
    document = store.documents["q_kb-2"]
    assert document.text == "How do I mint a DOI?"
    assert document.metadata["db_id"] == "kb-2"
    assert document.metadata["category"] == "Access"


@pytest.mark.asyncio
async def test_reindex_counts_failures():
    entries = [make_entry(entry_id="kb-1"), make_entry(entry_id="kb-2", primary_question="Unembeddable")]
    provider = FakeEmbeddingProvider()
    provider.failing_texts.add("Unembeddable")
    store = InMemoryVectorStore()
    indexer = KnowledgeIndexer(FakeKnowledgeStore(entries), provider, store)

    stats = await indexer.reindex_all()

    assert stats["status"] == "partial"
    assert stats["indexed"] == 1
    assert stats["failed_entry_ids"] == ["kb-2"]


@pytest.mark.asyncio
async def test_index_entry_reports_upsert_failure():
    store = InMemoryVectorStore(fail_ids={"q_kb-1"})
    indexer = KnowledgeIndexer(FakeKnowledgeStore(), FakeEmbeddingProvider(), store)

    assert await indexer.index_entry(make_entry()) is False


@pytest.mark.asyncio
async def test_vector_index_adapter_maps_results():
    store = InMemoryVectorStore(results=[
        SearchResult(score=0.93, metadata={"db_id": "kb-1"}, id="q_kb-1"),
        SearchResult(score=0.51, metadata={"db_id": "kb-2"}, id="q_kb-2"),
    ])

    hits = await VectorIndexAdapter(store).query([1.0, 0.0], top_k=1)

    assert len(hits) == 1
    assert hits[0].score == 0.93
    assert hits[0].metadata == {"db_id": "kb-1"}
