"""
Tests for the Salesforce REST client, using httpx.MockTransport.
"""

import json
import re
from urllib.parse import parse_qs

import httpx
import pytest

from src.config import Settings
from src.core import TicketingException
from src.escalation.application import CaseCreationService
from src.escalation.domain import CaseRequest, CaseSource
from src.escalation.infrastructure import (
    MockTicketSystem,
    SalesforceClient,
    SalesforceCredentials,
    build_ticket_system,
)

INSTANCE_URL = "https://mps.my.salesforce.com"


def credentials(**overrides) -> SalesforceCredentials:
    values = {
        "instance_url": INSTANCE_URL,
        "client_id": "3MVG9-connected-app",
        "client_secret": "secret",
        "username": "integration@mps.com",
        "password": "hunter2",
        "security_token": "TOKEN",
    }
    values.update(overrides)
    return SalesforceCredentials(**values)


class FakeSalesforce:
    """Records requests and answers them like the Salesforce REST API."""

    def __init__(self, auth_status=200, case_status=201, case_body=None):
        self.auth_status = auth_status
        self.case_status = case_status
        self.case_body = case_body or {"id": "5003000000D8cuI", "success": True, "errors": []}
        self.auth_requests = []
        self.case_requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/services/oauth2/token":
            self.auth_requests.append(parse_qs(request.content.decode()))
            if self.auth_status != 200:
                return httpx.Response(self.auth_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": f"token-{len(self.auth_requests)}"})

        if request.url.path == "/services/data/v58.0/sobjects/Case":
            self.case_requests.append((request.headers["Authorization"], json.loads(request.content)))
            return httpx.Response(self.case_status, json=self.case_body)

        return httpx.Response(404)


def client_for(fake: FakeSalesforce, **overrides) -> SalesforceClient:
    return SalesforceClient(
        credentials(**overrides),
        api_version="v58.0",
        token_ttl_seconds=3600,
        transport=httpx.MockTransport(fake),
    )


@pytest.mark.asyncio
async def test_create_case_authenticates_then_posts():
    fake = FakeSalesforce()
    client = client_for(fake)

    case_id = await client.create_case({"Subject": "Chatbot Escalation - Access Query"})

    assert case_id == "5003000000D8cuI"
    [auth] = fake.auth_requests
    assert auth["grant_type"] == ["password"]
    assert auth["password"] == ["hunter2TOKEN"]
    [(authorization, body)] = fake.case_requests
    assert authorization == "Bearer token-1"
    assert body == {"Subject": "Chatbot Escalation - Access Query"}
    await client.close()


@pytest.mark.asyncio
async def test_token_is_reused_until_invalidated():
    fake = FakeSalesforce()
    client = client_for(fake)

    await client.create_case({})
    await client.create_case({})
    assert len(fake.auth_requests) == 1

    client.invalidate_credentials()
    await client.create_case({})

    assert len(fake.auth_requests) == 2
    assert fake.case_requests[-1][0] == "Bearer token-2"
    await client.close()


@pytest.mark.asyncio
async def test_failed_authentication_raises():
    client = client_for(FakeSalesforce(auth_status=400))

    with pytest.raises(TicketingException):
        await client.create_case({})

    assert not client.has_valid_token
    await client.close()


@pytest.mark.asyncio
async def test_server_error_raises():
    client = client_for(FakeSalesforce(case_status=500, case_body={"message": "boom"}))

    with pytest.raises(TicketingException):
        await client.create_case({})
    await client.close()


@pytest.mark.asyncio
async def test_rejected_case_raises():
    fake = FakeSalesforce(case_body={"success": False, "errors": ["REQUIRED_FIELD_MISSING"]})
    client = client_for(fake)

    with pytest.raises(TicketingException, match="REQUIRED_FIELD_MISSING"):
        await client.create_case({})
    await client.close()


@pytest.mark.asyncio
async def test_transport_error_raises():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = SalesforceClient(credentials(), api_version="v58.0", transport=httpx.MockTransport(unreachable))

    with pytest.raises(TicketingException):
        await client.create_case({})
    await client.close()


class TimingOutSalesforce(FakeSalesforce):
    """Authenticates, then lets every Case request hit the read timeout."""

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/sobjects/Case"):
            self.case_requests.append(request)
            raise httpx.ReadTimeout("timed out", request=request)
        return super().__call__(request)


@pytest.mark.asyncio
async def test_case_timeout_raises():
    client = client_for(TimingOutSalesforce())

    with pytest.raises(TicketingException, match="timed out"):
        await client.create_case({})
    await client.close()


@pytest.mark.asyncio
async def test_case_timeouts_on_both_attempts_yield_fallback_id():
    fake = TimingOutSalesforce()
    client = client_for(fake)

    result = await CaseCreationService(client).create_case(CaseRequest(
        question="Why can't I login to my account?",
        category="Access",
        confidence_score=0.41,
        threshold=0.7,
        name="Kanak",
        email="kanak@mps.com",
        organization="MPS",
    ))

    assert result.source == CaseSource.FALLBACK
    assert re.fullmatch(r"SF-\d{13}", result.case_id)
    assert len(fake.case_requests) == 2
    assert len(fake.auth_requests) == 2
    await client.close()


@pytest.mark.asyncio
async def test_health_check():
    assert await client_for(FakeSalesforce()).health_check() is True
    assert await client_for(FakeSalesforce(auth_status=401)).health_check() is False


class TestPlaceholderCredentials:
    @pytest.mark.parametrize("overrides", [
        {"instance_url": ""},
        {"client_id": ""},
        {"username": ""},
        {"instance_url": "https://test.salesforce.com"},
        {"client_id": "test_client_id"},
        {"username": "test@example.com"},
    ])
    def test_placeholders_are_detected(self, overrides):
        assert credentials(**overrides).is_placeholder

    def test_real_credentials(self):
        assert not credentials().is_placeholder


class TestBuildTicketSystem:
    def test_defaults_to_mock_without_credentials(self):
        assert isinstance(build_ticket_system(Settings()), MockTicketSystem)

    def test_forced_mock(self):
        config = Settings(
            salesforce_instance_url=INSTANCE_URL,
            salesforce_client_id="3MVG9-connected-app",
            salesforce_username="integration@mps.com",
            mock_ticketing=True,
        )
        assert isinstance(build_ticket_system(config), MockTicketSystem)

    def test_real_credentials_build_client(self):
        config = Settings(
            salesforce_instance_url=INSTANCE_URL + "/",
            salesforce_client_id="3MVG9-connected-app",
            salesforce_username="integration@mps.com",
        )

        ticket_system = build_ticket_system(config)

        assert isinstance(ticket_system, SalesforceClient)
        assert not ticket_system.is_mock
