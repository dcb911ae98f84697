"""
Tests for identity submission parsing and chat message templates.
"""

import pytest

from src.conversation.domain import ChatMessages, IdentityParser, SessionIdentity


class TestLooksLikeSubmission:
    @pytest.mark.parametrize("text,expected", [
        ("Kanak, kanak@mps.com, MPS", True),
        ("kanak@mps.com", False),
        ("Hi, I need help", False),
        ("I need help", False),
    ])
    def test_needs_comma_and_at_sign(self, text, expected):
        assert IdentityParser.looks_like_submission(text) is expected


class TestParse:
    def test_full_submission(self):
        identity = IdentityParser.parse("Kanak, kanak@mps.com, MPS", session_id="s-1")

        assert identity == SessionIdentity("Kanak", "kanak@mps.com", "MPS", "s-1")

    def test_organization_derived_from_email_domain(self):
        identity = IdentityParser.parse("Kanak, kanak@mps.com")

        assert identity.organization == "Mps"

    def test_email_may_come_first(self):
        identity = IdentityParser.parse("jane@example.org, Jane Doe, Example Org")

        assert identity.name == "Jane Doe"
        assert identity.email == "jane@example.org"
        assert identity.organization == "Example Org"

    def test_whitespace_is_trimmed(self):
        identity = IdentityParser.parse("  Jane Doe ,   jane@example.org  ")

        assert identity.name == "Jane Doe"
        assert identity.email == "jane@example.org"

    def test_name_containing_at_sign_is_not_the_email(self):
        identity = IdentityParser.parse("Kanak @ MPS, kanak@mps.com")

        assert identity.name == "Kanak @ MPS"
        assert identity.email == "kanak@mps.com"
        assert identity.organization == "Mps"

    @pytest.mark.parametrize("text", [
        "Kanak, not-an-email, MPS",
        "Kanak, kanak@, MPS",
        ", kanak@mps.com",
        "Kanak, MPS",
    ])
    def test_unusable_submissions(self, text):
        assert IdentityParser.parse(text) is None


class TestFromFields:
    def test_requires_name_and_email(self):
        assert IdentityParser.from_fields("Jane", None) is None
        assert IdentityParser.from_fields("  ", "jane@example.org") is None

    def test_derives_missing_organization(self):
        identity = IdentityParser.from_fields("Jane", "jane@example.org", None, session_id="s-9")

        assert identity.organization == "Example"
        assert identity.session_id == "s-9"


class TestChatMessages:
    def test_answered_prepends_preamble(self):
        message = ChatMessages.answered("Use the reset link.")

        assert message == "You are in good hands! I can help you with it\n\nUse the reset link."

    def test_escalated_lists_ticket_details(self):
        identity = SessionIdentity("Kanak", "kanak@mps.com", "MPS")

        message = ChatMessages.escalated(identity, "5003000000D8cuI")

        assert "**Name:** Kanak" in message
        assert "**Email:** kanak@mps.com" in message
        assert "**Organization:** MPS" in message
        assert "**Case ID:** 5003000000D8cuI" in message

    def test_initial_greeting(self):
        assert ChatMessages.initial("Kanak").startswith("Hi Kanak,")
        assert ChatMessages.initial().startswith("Hi there,")
