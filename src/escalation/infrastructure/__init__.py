"""
Escalation Infrastructure Layer
===============================

Infrastructure implementations for case creation.

Contains:
- External: Salesforce client, mock ticketing, factory
"""

from src.escalation.infrastructure.external import (
    MockTicketSystem,
    SalesforceClient,
    SalesforceCredentials,
    build_ticket_system,
)

__all__ = [
    "MockTicketSystem",
    "SalesforceClient",
    "SalesforceCredentials",
    "build_ticket_system",
]
