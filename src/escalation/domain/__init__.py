"""
Escalation Domain Layer
=======================

Domain layer for case creation.

Contains:
- Entities: CaseRequest, CaseAttempt, CaseCreationResult
- Value Objects: CasePayloadBuilder, CaseIdFactory

This layer is framework-agnostic and contains pure business logic.
"""

from src.escalation.domain.entities import (
    CaseAttempt,
    CaseCreationResult,
    CaseRequest,
    CaseSource,
)
from src.escalation.domain.value_objects import CaseIdFactory, CasePayloadBuilder

__all__ = [
    "CaseAttempt",
    "CaseCreationResult",
    "CaseRequest",
    "CaseSource",
    "CaseIdFactory",
    "CasePayloadBuilder",
]
