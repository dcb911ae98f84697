"""
Matching Controllers (API Routes)
=================================

FastAPI routes for matching administration.

Controllers delegate to application services.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.core import ValidationException
from src.matching.application import (
    MatchingEngine,
    MatchingHealthResponse,
    MatchRequest,
    MatchResponse,
    ReindexResponse,
    ThresholdResponse,
    ThresholdUpdateRequest,
)
from src.matching.infrastructure import KnowledgeIndexer
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/matching", tags=["Matching"])


# ========== Example payloads for Swagger ==========

THRESHOLD_RESPONSE_EXAMPLE = {
    "confidence_threshold": 0.7
}

MATCH_RESPONSE_EXAMPLE = {
    "matched_entry": {
        "id": "123e4567-e89b-12d3-a456-426614174000",
        "primary_question": "How do I reset my password?",
        "answer_text": "Use the 'Forgot password' link on the sign-in page.",
        "category": "Access",
        "confidence_weight": 0.95
    },
    "confidence_score": 0.855,
    "is_confident": True,
    "source": "WEIGHTED_SCAN",
    "detected_category": "Access",
    "processing_time_ms": 42
}

REINDEX_RESPONSE_EXAMPLE = {
    "status": "success",
    "indexed": 24,
    "failed": 0,
    "failed_entry_ids": []
}


# ========== Dependencies ==========

def get_matching_engine(request: Request) -> MatchingEngine:
    """Get matching engine from app state."""
    engine = getattr(request.app.state, "matching_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Matching engine not initialized"
        )
    return engine


def get_knowledge_indexer(request: Request) -> KnowledgeIndexer:
    """Get KB indexer from app state."""
    indexer = getattr(request.app.state, "knowledge_indexer", None)
    if indexer is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vector index not configured"
        )
    return indexer


# ========== Route Handlers ==========

@router.get(
    "/threshold",
    response_model=ThresholdResponse,
    summary="Get the confidence threshold",
    responses={200: {"content": {"application/json": {"example": THRESHOLD_RESPONSE_EXAMPLE}}}}
)
async def get_threshold(engine: MatchingEngine = Depends(get_matching_engine)):
    return ThresholdResponse(confidence_threshold=engine.confidence_threshold)


@router.put(
    "/threshold",
    response_model=ThresholdResponse,
    summary="Update the confidence threshold",
    description="""
    Replace the process-wide confidence threshold.

    Takes effect immediately for every session, including results already
    computed but not yet classified.

    **Range**: 0.0 to 1.0 inclusive; anything else is rejected with 400.
    """,
    responses={
        200: {"content": {"application/json": {"example": THRESHOLD_RESPONSE_EXAMPLE}}},
        400: {"description": "Threshold outside [0.0, 1.0]"}
    }
)
async def update_threshold(
    request: Request,
    payload: ThresholdUpdateRequest,
    engine: MatchingEngine = Depends(get_matching_engine)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        new_value = engine.update_confidence_threshold(payload.confidence_threshold)
    except ValidationException as e:
        logger.warning(
            "Rejected threshold update",
            extra={"correlation_id": correlation_id, "threshold": payload.confidence_threshold}
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ThresholdResponse(confidence_threshold=new_value)


@router.post(
    "/match",
    response_model=MatchResponse,
    summary="Dry-run a question against the knowledge base",
    description="""
    Run the matching pipeline for a question without touching sessions,
    chat logs or the ticketing system.

    Useful for tuning the threshold and entry weights.
    """,
    responses={200: {"content": {"application/json": {"example": MATCH_RESPONSE_EXAMPLE}}}}
)
async def match_question(
    payload: MatchRequest,
    engine: MatchingEngine = Depends(get_matching_engine)
):
    result = await engine.find_best_match(payload.question)
    return MatchResponse.from_domain(result, engine.detect_category(payload.question))


@router.post(
    "/reindex",
    response_model=ReindexResponse,
    summary="Push active KB entries into the vector index",
    description="""
    Embed the primary question of every active knowledge-base entry and
    upsert it into the vector index as `q_<entry id>`.

    Failures are counted per entry; the call itself only fails when the
    knowledge base cannot be read.
    """,
    responses={
        200: {"content": {"application/json": {"example": REINDEX_RESPONSE_EXAMPLE}}},
        503: {"description": "Vector index not configured"}
    }
)
async def reindex(
    request: Request,
    indexer: KnowledgeIndexer = Depends(get_knowledge_indexer)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info("Knowledge base reindex requested", extra={"correlation_id": correlation_id})

    result = await indexer.reindex_all()
    return ReindexResponse(**result)


@router.get(
    "/health",
    response_model=MatchingHealthResponse,
    summary="Matching engine health"
)
async def matching_health(engine: MatchingEngine = Depends(get_matching_engine)):
    health = await engine.health_check()
    healthy = health["embedding_service"] and health["knowledge_base"]
    return MatchingHealthResponse(status="healthy" if healthy else "degraded", **health)


# Export router for inclusion in main app
matching_router = router
