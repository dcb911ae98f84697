"""
Escalation Module
=================

Bounded Context for turning unanswered questions into support cases.

Responsibilities:
- Create Salesforce cases for escalated questions
- Retry once with forced re-authentication
- Guarantee a case identifier, synthesizing a fallback when needed
- Mock ticketing for development credentials
"""

__version__ = "1.0.0"
