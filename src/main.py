"""
MPS Support Assistant - Main Application
========================================

Query resolution and escalation service behind the MPS support chat widget.

Modules:
- Matching: Hybrid KB matching and confidence scoring
- Conversation: Per-session chat state machine
- Escalation: Salesforce case creation with retry and fallback

Each module is layered:
- interfaces: FastAPI routers
- application: services and pydantic DTOs
- domain: entities, enums and pure scoring rules
- infrastructure: Postgres, embeddings, Milvus, Salesforce
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from src.config import MatchingMode, settings

# Infrastructure
from src.infrastructure.database import close_database, create_tables, init_database, ping_database
from src.infrastructure.embeddings import build_embedding_client
from src.infrastructure.vectorstore import MilvusVectorStore

# Matching Module
from src.matching.application import MatchingEngine
from src.matching.domain import ConfidenceThreshold
from src.matching.infrastructure import (
    EmbeddingProviderAdapter,
    KnowledgeIndexer,
    PostgresLexicalSearch,
    SQLAlchemyKnowledgeStore,
    VectorIndexAdapter,
)

# Escalation Module
from src.escalation.application import CaseCreationService
from src.escalation.infrastructure import build_ticket_system

# Conversation Module
from src.conversation.application import ConversationService
from src.conversation.infrastructure import (
    CaseCreatorAdapter,
    InMemorySessionStore,
    SQLAlchemyChatLogRepository,
    SQLAlchemyIdentityStore,
    SQLAlchemyUnansweredQuestionRepository,
)

# Module Routers
from src.conversation.interfaces import chat_router
from src.matching.interfaces import matching_router

# Middleware
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
    validation_exception_handler,
)

# Logging
from src.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def _build_vector_index(app: FastAPI, embedding_provider, knowledge_store):
    """
    Connect the Milvus index for vector mode.

    Returns None (and leaves the indexer unset) when it is unavailable, in
    which case matching falls back to scan mode.
    """
    app.state.knowledge_indexer = None

    if settings.matching_mode != MatchingMode.VECTOR.value:
        return None

    try:
        vector_store = MilvusVectorStore()
        await vector_store.initialize()
    except Exception as e:
        logger.warning(f"Vector store not available, falling back to scan mode: {e}")
        return None

    app.state.knowledge_indexer = KnowledgeIndexer(knowledge_store, embedding_provider, vector_store)
    return VectorIndexAdapter(vector_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Build and tear down every collaborator.

    STARTUP:
    1. JSON logging
    2. Initialize database and create tables
    3. Build embedding provider, vector index and lexical search
    4. Build matching engine
    5. Build ticketing and case creation
    6. Build conversation service

    SHUTDOWN:
    1. Close embedding and ticketing clients
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment, settings.app_name)
    logger.info("Starting MPS Support Assistant", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "matching_mode": settings.matching_mode
    })

    # Initialize database
    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use migrations in production)
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    # Matching
    embedding_client = build_embedding_client(settings)
    embedding_provider = EmbeddingProviderAdapter(embedding_client)
    knowledge_store = SQLAlchemyKnowledgeStore()
    vector_index = await _build_vector_index(app, embedding_provider, knowledge_store)
    lexical_search = PostgresLexicalSearch() if settings.lexical_search_enabled else None

    matching_engine = MatchingEngine(
        embedding_provider=embedding_provider,
        knowledge_store=knowledge_store,
        vector_index=vector_index,
        lexical_search=lexical_search,
        threshold=ConfidenceThreshold(settings.confidence_threshold),
        mode=MatchingMode.VECTOR if vector_index is not None else MatchingMode.SCAN,
        lexical_floor=settings.lexical_score_floor,
        lexical_ceiling=settings.lexical_score_ceiling
    )

    # Escalation
    ticket_system = build_ticket_system(settings)
    case_service = CaseCreationService(ticket_system)

    # Conversation
    conversation_service = ConversationService(
        matching_engine=matching_engine,
        case_creator=CaseCreatorAdapter(case_service),
        session_store=InMemorySessionStore(settings.session_ttl_seconds, settings.session_max_entries),
        identity_store=SQLAlchemyIdentityStore(),
        chat_log_repository=SQLAlchemyChatLogRepository(),
        unanswered_repository=SQLAlchemyUnansweredQuestionRepository(),
        max_question_length=settings.max_question_length,
        persistence_timeout_seconds=settings.persistence_timeout_seconds
    )

    # Store services in app state for dependency injection
    app.state.settings = settings
    app.state.matching_engine = matching_engine
    app.state.case_service = case_service
    app.state.conversation_service = conversation_service

    logger.info("MPS Support Assistant started successfully", extra={
        "matching_mode": matching_engine.mode.value,
        "mock_ticketing": ticket_system.is_mock
    })

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down MPS Support Assistant")

    await embedding_provider.close()
    await ticket_system.close()
    await close_database()

    logger.info("MPS Support Assistant shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="MPS Support Assistant API",
    description="""
    ## Query Resolution & Escalation Engine

    Answers support questions from a curated knowledge base and escalates
    the rest to Salesforce. Answers are never generated.

    ---

    ### 💬 Chat

    - `POST /chat` - Ask a question (ANSWERED / ESCALATED / COLLECT_INFO / ERROR)
    - `GET /chat/initial-message` - Widget greeting
    - `GET /chat/config` - Threshold and static messages
    - `GET /chat/health` - Combined health

    ### 🎯 Matching

    - `GET /matching/threshold`, `PUT /matching/threshold` - Confidence threshold
    - `POST /matching/match` - Dry-run a question
    - `POST /matching/reindex` - Push KB questions into the vector index
    - `GET /matching/health` - Matching health

    ---

    ### 🔧 Matching pipeline

    | Step | Mode | Score |
    |------|------|-------|
    | Vector search (top 1) | vector | cosine similarity |
    | Lexical fallback | both | 0.85 + rank × 0.10 |
    | Weighted scan | scan | max similarity × weight |

    A result is an answer when its score is at or above the threshold
    (default 0.7).
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(chat_router)
app.include_router(matching_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "matching_engine": "available (vector mode)",
                        "confidence_threshold": 0.7,
                        "database": "available",
                        "ticketing": "available"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Readiness of the engine and its dependencies.

    Reports:
    - Matching engine mode
    - Current confidence threshold
    - Database and ticketing availability
    """
    engine = getattr(request.app.state, "matching_engine", None)
    case_service = getattr(request.app.state, "case_service", None)

    checks = {
        "matching_engine": f"available ({engine.mode.value} mode)" if engine else "initializing",
        "confidence_threshold": engine.confidence_threshold if engine else None,
        "database": "available" if await ping_database() else "unavailable",
        "ticketing": "initializing"
    }

    if case_service is not None:
        checks["ticketing"] = "available" if await case_service.health_check() else "unavailable"

    return {
        "status": "healthy" if engine else "starting",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"], responses={
    200: {
        "description": "API information",
        "content": {
            "application/json": {
                "example": {
                    "service": "MPS Support Assistant",
                    "version": "1.0.0",
                    "architecture": "Clean Architecture / Modular Monolith",
                    "docs": "/docs",
                    "health": "/health"
                }
            }
        }
    }
})
async def root():
    """Root endpoint with API information."""
    return {
        "service": "MPS Support Assistant",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": ["matching", "conversation", "escalation"]
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
