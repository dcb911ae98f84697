"""
Conversation Interfaces Layer
=============================

Interface adapters (controllers) for the conversation module.

Contains:
- Controllers: FastAPI route handlers
"""

from src.conversation.interfaces.controllers import chat_router

__all__ = ["chat_router"]
