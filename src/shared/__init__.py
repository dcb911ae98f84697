"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Matching, Conversation and Escalation).

Architecture Pattern: Modular Monolith
- Each module (matching, conversation, escalation) is a bounded context
- Shared kernel contains only generic infrastructure
- Domain models are extended within each module

DO NOT add matching, conversation or escalation business logic to the
shared kernel.
"""

__version__ = "1.0.0"
