"""
Conversation External Service Adapters
======================================

Adapter from the conversation module to case creation in the escalation
module.
"""

from src.conversation.application import ICaseCreator
from src.conversation.domain import SessionIdentity
from src.escalation.application import CaseCreationService
from src.escalation.domain import CaseRequest


class CaseCreatorAdapter(ICaseCreator):
    """
    Adapter that wraps the escalation CaseCreationService.

    Implements the application layer ICaseCreator interface.
    """

    def __init__(self, service: CaseCreationService):
        self._service = service

    async def create_case(
        self,
        question: str,
        category: str,
        confidence_score: float,
        threshold: float,
        identity: SessionIdentity
    ) -> str:
        result = await self._service.create_case(CaseRequest(
            question=question,
            category=category,
            confidence_score=confidence_score,
            threshold=threshold,
            name=identity.name,
            email=identity.email,
            organization=identity.organization,
            session_id=identity.session_id
        ))
        return result.case_id

    async def health_check(self) -> bool:
        return await self._service.health_check()
