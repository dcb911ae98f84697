"""
Configuration Module
====================

Runtime settings for the support assistant, read from the environment and .env.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Every tunable of the service; names map to upper-case env vars.

    Bounds are enforced by pydantic at startup.
    """

    # ========== Application ==========
    app_name: str = Field(default="mps-support-assistant", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/support_assistant",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    persistence_timeout_seconds: float = Field(
        default=5.0,
        description="Upper bound for chat log / identity writes",
        gt=0,
        le=60
    )

    # ========== Matching ==========
    confidence_threshold: float = Field(
        default=0.7,
        description="Score at or above which a KB match is returned as an answer",
        ge=0.0,
        le=1.0
    )
    matching_mode: str = Field(
        default="vector",
        description="'vector' queries the vector index, 'scan' scores every KB entry"
    )
    lexical_search_enabled: bool = Field(
        default=True,
        description="Use Postgres full-text search as a fallback"
    )
    lexical_score_floor: float = Field(default=0.85, ge=0.0, le=1.0)
    lexical_score_ceiling: float = Field(default=0.95, ge=0.0, le=1.0)
    lexical_result_limit: int = Field(default=10, ge=1, le=100)
    lexical_search_timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    max_question_length: int = Field(default=1000, ge=1)

    # ========== Embedding Provider ==========
    embedding_provider: str = Field(
        default="mock",
        description="Embedding backend: http, openai, zai or mock"
    )
    embedding_model: str = Field(
        default="embedding-2",
        description="Embedding model name"
    )
    embedding_dimension: int = Field(
        default=1024,
        description="Embedding vector dimension",
        ge=8
    )
    embedding_service_url: str = Field(
        default="http://localhost:8001",
        description="Base URL of the HTTP embedding service"
    )
    embedding_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token for the HTTP embedding service"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    zai_api_key: Optional[str] = Field(default=None, description="Z.AI API key")
    embedding_timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    embedding_max_attempts: int = Field(
        default=3,
        description="Attempts per embedding call when rate limited",
        ge=1,
        le=10
    )
    embedding_backoff_seconds: float = Field(
        default=1.0,
        description="Base delay for exponential backoff on rate limits",
        ge=0
    )

    # ========== Zilliz Cloud (Managed Milvus) Configuration ==========
    zilliz_uri: str = Field(
        default="",
        description="Zilliz Cloud / Milvus endpoint URI"
    )
    zilliz_api_key: str = Field(
        default="",
        description="Zilliz Cloud API key"
    )
    milvus_collection_name: str = Field(
        default="knowledge_base_questions",
        description="Milvus collection name"
    )
    vector_search_timeout_seconds: float = Field(default=10.0, gt=0, le=60)

    # ========== Salesforce ==========
    salesforce_instance_url: str = Field(default="", description="Salesforce instance URL")
    salesforce_client_id: str = Field(default="", description="Connected app client id")
    salesforce_client_secret: str = Field(default="", description="Connected app secret")
    salesforce_username: str = Field(default="", description="Integration user")
    salesforce_password: str = Field(default="", description="Integration user password")
    salesforce_security_token: str = Field(default="", description="Integration user security token")
    salesforce_api_version: str = Field(default="v58.0", description="REST API version")
    salesforce_timeout_seconds: float = Field(default=15.0, gt=0, le=60)
    salesforce_auth_timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    salesforce_token_ttl_seconds: int = Field(
        default=3600,
        description="How long a Salesforce access token is reused",
        ge=60
    )
    mock_ticketing: bool = Field(
        default=False,
        description="Simulate case creation (no Salesforce calls)"
    )
    mock_ticketing_min_latency_seconds: float = Field(default=0.5, ge=0)
    mock_ticketing_max_latency_seconds: float = Field(default=1.5, ge=0)

    # ========== Sessions ==========
    session_ttl_seconds: int = Field(
        default=3600,
        description="Idle time after which a session identity is forgotten",
        ge=1
    )
    session_max_entries: int = Field(
        default=10000,
        description="Max remembered sessions before oldest are evicted",
        ge=1
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Reject unknown deployment environments."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("matching_mode")
    @classmethod
    def validate_matching_mode(cls, v: str) -> str:
        """Ensure matching mode is known."""
        v = v.lower()
        if v not in {"vector", "scan"}:
            raise ValueError("matching_mode must be 'vector' or 'scan'")
        return v

    @field_validator("embedding_provider")
    @classmethod
    def validate_embedding_provider(cls, v: str) -> str:
        """Ensure embedding provider is known."""
        v = v.lower()
        allowed = {"http", "openai", "zai", "mock"}
        if v not in allowed:
            raise ValueError(f"embedding_provider must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Process-wide Settings, built once."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class KnowledgeCategory(str, Enum):
    """Categories a KB entry can belong to."""
    DOI = "DOI"
    ACCESS = "Access"
    HOSTING = "Hosting"


class EntryStatus(str, Enum):
    """KB entry lifecycle."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class MatchingMode(str, Enum):
    """How the matching engine finds semantic candidates."""
    VECTOR = "vector"
    SCAN = "scan"


class MatchSource(str, Enum):
    """Which matching step produced a result."""
    VECTOR = "VECTOR"
    TEXT = "TEXT"
    WEIGHTED_SCAN = "WEIGHTED_SCAN"
    NONE = "NONE"


class ResponseType(str, Enum):
    """Chat response kinds. The chat contract is closed over these four."""
    ANSWERED = "ANSWERED"
    ESCALATED = "ESCALATED"
    COLLECT_INFO = "COLLECT_INFO"
    ERROR = "ERROR"


UNKNOWN_CATEGORY = "Unknown"

# ========== Lists for validation ==========

KNOWLEDGE_CATEGORIES = [c.value for c in KnowledgeCategory]
DETECTED_CATEGORIES = KNOWLEDGE_CATEGORIES + [UNKNOWN_CATEGORY]
VALID_RESPONSE_TYPES = [r.value for r in ResponseType]
