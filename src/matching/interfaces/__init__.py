"""
Matching Interfaces Layer
=========================

Interface adapters (controllers) for the matching module.

Contains:
- Controllers: FastAPI route handlers
"""

from src.matching.interfaces.controllers import matching_router

__all__ = ["matching_router"]
