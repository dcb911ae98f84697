"""
Escalation External Service Integrations
========================================

Ticketing systems for escalated questions:
- Salesforce REST API (OAuth2 password grant, Case sObject)
- Mock ticketing for development and placeholder credentials
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from src.config import Settings, settings
from src.core import TicketingException
from src.escalation.application import ITicketSystem
from src.escalation.domain import CaseIdFactory
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Values that mark credentials as placeholders rather than a real org
PLACEHOLDER_MARKERS = ("test.salesforce.com", "test_client_id", "test@example.com")


@dataclass
class SalesforceCredentials:
    """Connected-app credentials for the password grant."""
    instance_url: str
    client_id: str
    client_secret: str
    username: str
    password: str
    security_token: str = ""

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SalesforceCredentials":
        return cls(
            instance_url=config.salesforce_instance_url.rstrip("/"),
            client_id=config.salesforce_client_id,
            client_secret=config.salesforce_client_secret,
            username=config.salesforce_username,
            password=config.salesforce_password,
            security_token=config.salesforce_security_token
        )

    @property
    def is_placeholder(self) -> bool:
        if not self.instance_url or not self.client_id or not self.username:
            return True
        fields = (self.instance_url, self.client_id, self.username)
        return any(marker in value for value in fields for marker in PLACEHOLDER_MARKERS)


class SalesforceClient(ITicketSystem):
    """
    Salesforce REST client for Case creation.

    Handles:
    - OAuth2 password grant against /services/oauth2/token
    - Token caching for ``token_ttl_seconds``
    - Case creation via the sObject API
    """

    def __init__(
        self,
        credentials: SalesforceCredentials,
        api_version: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        auth_timeout_seconds: Optional[float] = None,
        token_ttl_seconds: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._credentials = credentials
        self._api_version = api_version or settings.salesforce_api_version
        self._timeout = timeout_seconds or settings.salesforce_timeout_seconds
        self._auth_timeout = auth_timeout_seconds or settings.salesforce_auth_timeout_seconds
        self._token_ttl = token_ttl_seconds or settings.salesforce_token_ttl_seconds
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None
        self._access_token: Optional[str] = None
        self._token_expiry: Optional[float] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._credentials.instance_url,
                timeout=self._timeout,
                transport=self._transport
            )
        return self._http_client

    @property
    def has_valid_token(self) -> bool:
        return (
            self._access_token is not None
            and self._token_expiry is not None
            and time.monotonic() < self._token_expiry
        )

    def invalidate_credentials(self) -> None:
        """Drop the cached token."""
        self._access_token = None
        self._token_expiry = None

    async def authenticate(self) -> str:
        """
        Get an access token, reusing the cached one while valid.

        Raises:
            TicketingException: If authentication fails
        """
        if self.has_valid_token:
            return self._access_token

        logger.info("Authenticating with Salesforce")
        creds = self._credentials
        client = await self._get_client()

        try:
            response = await client.post(
                "/services/oauth2/token",
                data={
                    "grant_type": "password",
                    "client_id": creds.client_id,
                    "client_secret": creds.client_secret,
                    "username": creds.username,
                    "password": creds.password + creds.security_token,
                },
                timeout=self._auth_timeout
            )
        except httpx.HTTPError as e:
            raise TicketingException(f"Authentication request failed: {str(e)}")

        if response.status_code != 200:
            raise TicketingException(
                f"Authentication failed: {response.status_code}",
                {"status_code": response.status_code}
            )

        access_token = response.json().get("access_token")
        if not access_token:
            raise TicketingException("Authentication response carried no access token")

        self._access_token = access_token
        self._token_expiry = time.monotonic() + self._token_ttl
        logger.info("Salesforce authentication successful")
        return access_token

    async def create_case(self, fields: dict) -> str:
        """
        Create a Case sObject.

        Returns:
            Salesforce case id

        Raises:
            TicketingException: On authentication, transport or API failure
        """
        access_token = await self.authenticate()
        client = await self._get_client()

        try:
            response = await client.post(
                f"/services/data/{self._api_version}/sobjects/Case",
                json=fields,
                headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.HTTPError as e:
            raise TicketingException(f"Case request failed: {str(e)}")

        if response.status_code not in (200, 201):
            raise TicketingException(
                f"Case creation failed: {response.status_code}",
                {"status_code": response.status_code, "body": response.text[:500]}
            )

        body = response.json()
        if not body.get("success") or not body.get("id"):
            raise TicketingException(
                f"Case creation rejected: {', '.join(str(e) for e in body.get('errors') or [])}"
            )

        logger.info("Salesforce case created", extra={"case_id": body["id"]})
        return body["id"]

    async def health_check(self) -> bool:
        try:
            await self.authenticate()
            return True
        except TicketingException as e:
            logger.error("Salesforce health check failed", extra={"error": e.message})
            return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class MockTicketSystem(ITicketSystem):
    """
    Mock ticketing for development and placeholder credentials.

    Simulates API latency and issues SF-<last 6 digits of epoch ms> ids.
    """

    def __init__(self, min_latency_seconds: float = 0.5, max_latency_seconds: float = 1.5):
        self._min_latency = min_latency_seconds
        self._max_latency = max(min_latency_seconds, max_latency_seconds)

    @property
    def is_mock(self) -> bool:
        return True

    async def create_case(self, fields: dict) -> str:
        await asyncio.sleep(random.uniform(self._min_latency, self._max_latency))
        case_id = CaseIdFactory.mock()
        logger.info(
            "Mock Salesforce case created",
            extra={"case_id": case_id, "subject": fields.get("Subject")}
        )
        return case_id

    def invalidate_credentials(self) -> None:
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass


def build_ticket_system(config: Settings = settings) -> ITicketSystem:
    """Salesforce client, or the mock for placeholder credentials or when forced."""
    credentials = SalesforceCredentials.from_settings(config)
    if config.mock_ticketing or credentials.is_placeholder:
        logger.info("Ticketing running in mock mode, no Salesforce calls will be made")
        return MockTicketSystem(
            config.mock_ticketing_min_latency_seconds,
            config.mock_ticketing_max_latency_seconds
        )
    return SalesforceClient(
        credentials,
        api_version=config.salesforce_api_version,
        timeout_seconds=config.salesforce_timeout_seconds,
        auth_timeout_seconds=config.salesforce_auth_timeout_seconds,
        token_ttl_seconds=config.salesforce_token_ttl_seconds
    )
