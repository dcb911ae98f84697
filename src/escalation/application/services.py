"""
Escalation Application Services
===============================

Case creation with one forced re-authentication retry and a guaranteed
fallback case id.
"""

import time
from abc import ABC, abstractmethod

from src.escalation.domain import (
    CaseAttempt,
    CaseCreationResult,
    CaseIdFactory,
    CasePayloadBuilder,
    CaseRequest,
    CaseSource,
)
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class ITicketSystem(ABC):
    """Interface for the external ticketing system."""

    @property
    def is_mock(self) -> bool:
        return False

    @abstractmethod
    async def create_case(self, fields: dict) -> str:
        """Create a case and return its id. Raises TicketingException on failure."""

    @abstractmethod
    def invalidate_credentials(self) -> None:
        """Drop any cached token so the next call re-authenticates."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Whether the ticketing system accepts our credentials."""


# ========== Application Services ==========

class CaseCreationService:
    """
    Opens a support case for an escalated question.

    Phase one uses the cached credentials. On any failure phase two
    invalidates them, forces re-authentication and retries exactly once.
    If both fail a fallback id is synthesized. Nothing raises past
    ``create_case``.
    """

    def __init__(self, ticket_system: ITicketSystem):
        self._ticket_system = ticket_system

    async def _attempt(self, phase: int, request: CaseRequest) -> CaseAttempt:
        start_time = time.perf_counter()
        fields = CasePayloadBuilder.build(
            request, retry=phase > 1, mock=self._ticket_system.is_mock
        )
        try:
            case_id = await self._ticket_system.create_case(fields)
        except Exception as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning(
                "Case creation attempt failed",
                extra={"phase": phase, "error": str(e), "latency_ms": latency_ms}
            )
            return CaseAttempt(phase=phase, success=False, error=str(e), latency_ms=latency_ms)

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        return CaseAttempt(phase=phase, success=True, case_id=case_id, latency_ms=latency_ms)

    async def create_case(self, request: CaseRequest) -> CaseCreationResult:
        """
        Create a case for an escalated question.

        Args:
            request: Question, category, score and identity

        Returns:
            CaseCreationResult; its case_id is always set
        """
        attempts = []

        first = await self._attempt(1, request)
        attempts.append(first)

        if not first.success:
            self._ticket_system.invalidate_credentials()
            logger.info("Retrying case creation with fresh credentials")
            second = await self._attempt(2, request)
            attempts.append(second)
        else:
            second = None

        successful = first if first.success else second
        if successful is not None and successful.success:
            source = CaseSource.MOCK if self._ticket_system.is_mock else CaseSource.TICKETING
            case_id = successful.case_id
            logger.info(
                "Case created",
                extra={"case_id": case_id, "source": source.value, "attempts": len(attempts)}
            )
        else:
            source = CaseSource.FALLBACK
            case_id = CaseIdFactory.fallback()
            logger.error(
                "Case creation failed after retry, issued fallback id for manual reconciliation",
                extra={
                    "case_id": case_id,
                    "category": request.category,
                    "confidence_score": request.confidence_score,
                    "user_email": request.email,
                    "question_preview": request.question[:100],
                    "errors": [a.error for a in attempts],
                }
            )

        return CaseCreationResult(
            case_id=case_id,
            source=source,
            category=request.category,
            confidence_score=request.confidence_score,
            email=request.email,
            attempts=attempts
        )

    async def health_check(self) -> bool:
        try:
            return await self._ticket_system.health_check()
        except Exception as e:
            logger.error("Ticketing health check failed", extra={"error": str(e)})
            return False
