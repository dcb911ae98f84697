"""
Escalation Application Layer
============================

Application layer for case creation.

Contains:
- Services: CaseCreationService
- Interfaces: ITicketSystem
"""

from src.escalation.application.services import CaseCreationService, ITicketSystem

__all__ = [
    "CaseCreationService",
    "ITicketSystem",
]
