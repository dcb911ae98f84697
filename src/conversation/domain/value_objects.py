"""
Conversation Value Objects
==========================

Identity parsing and the fixed user-facing messages.
"""

import re
from typing import Optional

from src.conversation.domain.entities import SessionIdentity

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class IdentityParser:
    """
    Parses "Name, email@domain.tld[, Organization]" submissions.

    Stateless utility class.
    """

    @staticmethod
    def looks_like_submission(text: str) -> bool:
        """An identity submission contains both a comma and an @."""
        return "," in text and "@" in text

    @staticmethod
    def derive_organization(email: str) -> str:
        """Domain label of the email, capitalized: kanak@mps.com -> Mps."""
        domain = email.rsplit("@", 1)[-1]
        return domain.split(".")[0].capitalize()

    @staticmethod
    def is_valid_email(email: str) -> bool:
        return bool(_EMAIL_PATTERN.match(email))

    @classmethod
    def parse(cls, text: str, session_id: Optional[str] = None) -> Optional[SessionIdentity]:
        """
        Parse a submission.

        Returns:
            SessionIdentity, or None when there is no usable name or the
            email is malformed
        """
        tokens = [token.strip() for token in text.split(",")]
        tokens = [token for token in tokens if token]

        email_index = next((i for i, token in enumerate(tokens) if cls.is_valid_email(token)), None)
        if email_index is None:
            return None

        email = tokens[email_index]

        others = [token for i, token in enumerate(tokens) if i != email_index]
        if not others:
            return None

        name = others[0]
        organization = others[1] if len(others) > 1 else cls.derive_organization(email)
        return SessionIdentity(name=name, email=email, organization=organization, session_id=session_id)

    @classmethod
    def from_fields(
        cls,
        name: Optional[str],
        email: Optional[str],
        organization: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> Optional[SessionIdentity]:
        """Identity from explicit fields; None unless both name and email are present."""
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email:
            return None
        organization = (organization or "").strip() or cls.derive_organization(email)
        return SessionIdentity(name=name, email=email, organization=organization, session_id=session_id)


class ChatMessages:
    """Fixed user-facing texts and their templates."""

    INITIAL = (
        "Hi {name}, I'm the MPS Support Assistant. I can help with DOI, Access, "
        "Hosting-related queries and other tech queries by generating context understood "
        "technical responses. In other cases, I can help raise a salesforce support ticket. "
        "How can I help you today?"
    )
    CONFIDENCE_RESPONSE = "You are in good hands! I can help you with it"
    ESCALATION = (
        "Thanks for your question. I wasn't able to confidently answer this, but I've "
        "raised a support ticket for you. Salesforce case no: {case_id}. Our team will "
        "get back to you shortly."
    )
    ESCALATION_WITH_INFO = (
        "Thanks for your question. I wasn't able to confidently answer this, but I've "
        "raised a support ticket for you.\n"
        "\n"
        "**Support Ticket Details:**\n"
        "• **Name:** {name}\n"
        "• **Email:** {email}\n"
        "• **Organization:** {organization}\n"
        "• **Case ID:** {case_id}\n"
        "\n"
        "Our team will get back to you shortly."
    )
    COLLECT_INFO = (
        "Before we continue, I'll need some information. Please provide your name, "
        "email, and organization (e.g. \"Jane Doe, jane@example.com, Example Org\")."
    )
    VERIFIED = (
        "Thanks {name}! Your details have been verified "
        "(Email: {email}, Organization: {organization}). How can I help you today?"
    )
    ALREADY_VERIFIED = (
        "Your details are already verified, {name}. Please go ahead and ask your question."
    )
    ERROR = "Sorry, something went wrong on our end. Your request has been escalated to our support team."

    INFO_NEEDED = ("name", "email", "organization")

    @classmethod
    def initial(cls, name: Optional[str] = None) -> str:
        return cls.INITIAL.format(name=name or "there")

    @classmethod
    def answered(cls, answer_text: str) -> str:
        return f"{cls.CONFIDENCE_RESPONSE}\n\n{answer_text}"

    @classmethod
    def escalated(cls, identity: SessionIdentity, case_id: str) -> str:
        return cls.ESCALATION_WITH_INFO.format(
            name=identity.name,
            email=identity.email,
            organization=identity.organization or "N/A",
            case_id=case_id
        )

    @classmethod
    def verified(cls, identity: SessionIdentity) -> str:
        return cls.VERIFIED.format(
            name=identity.name, email=identity.email, organization=identity.organization
        )

    @classmethod
    def already_verified(cls, identity: SessionIdentity) -> str:
        return cls.ALREADY_VERIFIED.format(name=identity.name)

    @classmethod
    def static_messages(cls) -> dict:
        """Messages exposed by the chat configuration view."""
        return {
            "initial": cls.INITIAL,
            "confidence_response": cls.CONFIDENCE_RESPONSE,
            "escalation": cls.ESCALATION,
            "collect_info": cls.COLLECT_INFO,
            "error": cls.ERROR,
        }
