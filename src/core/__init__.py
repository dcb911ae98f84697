"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from src.core.exceptions import (
    ApplicationException,
    DomainException,
    ValidationException,
    ConfigurationException,
    InternalException,
    PersistenceException,
    ExternalServiceException,
    ProviderException,
    EmbeddingException,
    RateLimitedException,
    ProviderAuthorizationException,
    VectorStoreException,
    LexicalSearchException,
    TicketingException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "ValidationException",
    "ConfigurationException",
    "InternalException",
    "PersistenceException",
    "ExternalServiceException",
    "ProviderException",
    "EmbeddingException",
    "RateLimitedException",
    "ProviderAuthorizationException",
    "VectorStoreException",
    "LexicalSearchException",
    "TicketingException",
]
