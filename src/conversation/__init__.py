"""
Conversation Module
===================

Bounded Context for the per-session chat state machine.

Responsibilities:
- Validate each chat turn
- Collect and remember the user's identity for the session
- Answer confidently matched questions, escalate the rest as cases
- Record chat logs and unanswered questions
"""

__version__ = "1.0.0"
