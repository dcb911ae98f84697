"""
Escalation Domain Entities
==========================

Domain entities for case creation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class CaseSource(str, Enum):
    """Where a case id came from."""
    TICKETING = "TICKETING"
    MOCK = "MOCK"
    FALLBACK = "FALLBACK"


@dataclass(frozen=True)
class CaseRequest:
    """Everything needed to open a case for one escalated question."""
    question: str
    category: str
    confidence_score: float
    threshold: float
    name: str
    email: str
    organization: Optional[str] = None
    session_id: Optional[str] = None
    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class CaseAttempt:
    """Result of one case-creation phase."""
    phase: int
    success: bool
    case_id: Optional[str] = None
    error: Optional[str] = None
    latency_ms: int = 0


@dataclass(frozen=True)
class CaseCreationResult:
    """
    Outcome of case creation.

    Always carries a case id: issued by the ticketing system, by the mock,
    or synthesized as a fallback when both phases failed.
    """
    case_id: str
    source: CaseSource
    category: str
    confidence_score: float
    email: str
    attempts: List[CaseAttempt] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.source == CaseSource.FALLBACK

    @property
    def attempts_made(self) -> int:
        return len(self.attempts)
