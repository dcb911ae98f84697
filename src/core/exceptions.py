"""
Core Exceptions
================

Exception hierarchy shared by the matching, conversation and escalation modules.

Each boundary absorbs what it can recover from. The conversation service
maps anything that reaches it to the ERROR response.
"""

from typing import Optional


class ApplicationException(Exception):
    """Root of every error raised by this service."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """A domain rule was broken."""


class ValidationException(ApplicationException):
    """Bad input shape or length, or an out-of-range setting."""


class ConfigurationException(ApplicationException):
    """Invalid runtime configuration, such as an out-of-range threshold."""


class InternalException(ApplicationException):
    """Anything unanticipated."""


class PersistenceException(ApplicationException):
    """Chat log, identity or session store failures."""


class ExternalServiceException(ApplicationException):
    """A remote dependency failed; message is prefixed with its name."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class ProviderException(ExternalServiceException):
    """Embedding, vector or lexical backend unavailable or malformed."""


class EmbeddingException(ProviderException):
    """Exception for embedding provider failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Embedding Provider", message, details)


class RateLimitedException(EmbeddingException):
    """Provider asked us to slow down. Safe to retry after a delay."""


class ProviderAuthorizationException(EmbeddingException):
    """Provider rejected our credentials. Never retried."""


class VectorStoreException(ProviderException):
    """Milvus could not be reached or rejected a call."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Vector Store", message, details)


class LexicalSearchException(ProviderException):
    """Exception for full-text search failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Lexical Search", message, details)


class TicketingException(ExternalServiceException):
    """Exception for ticketing system failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Ticketing", message, details)
