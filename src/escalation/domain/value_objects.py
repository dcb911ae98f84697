"""
Escalation Value Objects
========================

Case payload construction and case id formats.
"""

import time
from datetime import datetime, timezone
from typing import Optional

from src.escalation.domain.entities import CaseRequest


class CaseIdFactory:
    """Case id formats for ids not issued by the ticketing system."""

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    @classmethod
    def fallback(cls, now_ms: Optional[int] = None) -> str:
        """SF-<epoch milliseconds>."""
        return f"SF-{now_ms if now_ms is not None else cls._now_ms()}"

    @classmethod
    def mock(cls, now_ms: Optional[int] = None) -> str:
        """SF-<last 6 digits of epoch milliseconds>."""
        value = now_ms if now_ms is not None else cls._now_ms()
        return f"SF-{str(value)[-6:]}"


class CasePayloadBuilder:
    """
    Builds the Salesforce Case sObject body.

    Stateless utility class.
    """

    ORIGIN = "Web"
    PRIORITY = "Medium"
    STATUS = "New"
    TYPE = "Question"

    @staticmethod
    def subject(category: str, retry: bool = False) -> str:
        subject = f"Chatbot Escalation - {category} Query"
        return f"{subject} (Retry)" if retry else subject

    @staticmethod
    def description(request: CaseRequest, mock: bool = False, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        lines = [
            "CHATBOT ESCALATION",
            "",
            f"User Question: {request.question}",
            "",
            f"Detected Category: {request.category}",
            f"Confidence Score: {request.confidence_score:.4f}",
            f"Escalation Reason: Score below threshold ({request.threshold})",
            "",
        ]
        if request.name:
            lines.append(f"User Name: {request.name}")
        if request.email:
            lines.append(f"User Email: {request.email}")
        if request.organization:
            lines.append(f"Organization: {request.organization}")
        lines.extend([
            "",
            f"Timestamp: {now.isoformat()}",
            "Source: MPS Support Assistant Chatbot",
        ])
        if mock:
            lines.extend(["", "[MOCK MODE - This is a test case]"])
        return "\n".join(lines)

    @classmethod
    def build(cls, request: CaseRequest, retry: bool = False, mock: bool = False) -> dict:
        return {
            "Subject": cls.subject(request.category, retry),
            "Description": cls.description(request, mock),
            "Origin": cls.ORIGIN,
            "Priority": cls.PRIORITY,
            "Status": cls.STATUS,
            "Type": cls.TYPE,
        }
