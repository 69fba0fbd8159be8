"""
Pytest configuration and fixtures for carrier gateway tests.

All HTTP goes through httpx.MockTransport; UPSApiStub plays both the OAuth
token endpoint and the rating endpoint.
"""
import asyncio
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx
import pytest

# Keep a developer's .env or shell from leaking into tests
os.environ["HOME_COUNTRY"] = "US"

from carrier_gateway.core.config import Settings, get_settings
from carrier_gateway.models.carrier import CarrierCredentials
from carrier_gateway.modules.shipping.carriers.ups import UPSCarrier

API_BASE_URL = "https://ups.test"
AUTH_PATH = "/security/v1/oauth/token"
RATE_PATH = "/api/rating/v2403/Rate"
AUTH_URL = f"{API_BASE_URL}{AUTH_PATH}"
RATE_URL = f"{API_BASE_URL}{RATE_PATH}"


class FakeClock:
    """Controllable clock for token expiry tests."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def token_response(token: str = "token", expires_in: int = 3600) -> httpx.Response:
    return httpx.Response(
        200,
        json={"access_token": token, "expires_in": expires_in, "token_type": "Bearer"},
    )


def rated_shipment(
    code: str,
    amount: str,
    currency: str = "USD",
    transit_days: str = None,
    delivery_date: str = None,
) -> Dict[str, Any]:
    shipment = {
        "Service": {"Code": code},
        "TotalCharges": {"CurrencyCode": currency, "MonetaryValue": amount},
    }
    if transit_days is not None:
        shipment["GuaranteedDelivery"] = {"BusinessDaysInTransit": transit_days}
    if delivery_date is not None:
        shipment["TimeInTransit"] = {
            "ServiceSummary": {"EstimatedArrival": {"Date": delivery_date}}
        }
    return shipment


def rate_body(*shipments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "RateResponse": {
            "Response": {"ResponseStatus": {"Code": "1", "Description": "Success"}},
            "RatedShipment": list(shipments),
        }
    }


def ground_and_second_day_body() -> Dict[str, Any]:
    return rate_body(
        rated_shipment("03", "25.50", transit_days="3", delivery_date="2026-02-15"),
        rated_shipment("02", "45.75", transit_days="2"),
    )


def trickling_response(body: Dict[str, Any], interval: float = 0.05) -> httpx.Response:
    """200 response whose JSON body arrives one byte per interval."""
    payload = json.dumps(body).encode()

    async def stream():
        for i in range(len(payload)):
            await asyncio.sleep(interval)
            yield payload[i:i + 1]

    return httpx.Response(200, content=stream())


class UPSApiStub:
    """
    Scripted UPS endpoints.

    Queue httpx.Response objects (or httpx exception classes, raised with the
    request attached) in auth_responses / rate_responses. When a queue is empty
    the auth endpoint issues "token-<n>" and the rate endpoint returns Ground
    and 2nd Day Air.
    """

    def __init__(self):
        self.auth_responses: List[Any] = []
        self.rate_responses: List[Any] = []
        self.auth_requests: List[httpx.Request] = []
        self.rate_requests: List[httpx.Request] = []
        self.auth_delay: float = 0.0
        self.rate_delay: float = 0.0

    @property
    def auth_calls(self) -> int:
        return len(self.auth_requests)

    @property
    def rate_calls(self) -> int:
        return len(self.rate_requests)

    def _resolve(self, queue: List[Any], default: httpx.Response, request: httpx.Request) -> httpx.Response:
        outcome = queue.pop(0) if queue else default
        if isinstance(outcome, type) and issubclass(outcome, Exception):
            raise outcome("stubbed failure", request=request)
        return outcome

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == AUTH_PATH:
            self.auth_requests.append(request)
            if self.auth_delay:
                await asyncio.sleep(self.auth_delay)
            return self._resolve(
                self.auth_responses, token_response(f"token-{self.auth_calls}"), request
            )

        if request.url.path == RATE_PATH:
            self.rate_requests.append(request)
            if self.rate_delay:
                await asyncio.sleep(self.rate_delay)
            return self._resolve(
                self.rate_responses, httpx.Response(200, json=ground_and_second_day_body()), request
            )

        return httpx.Response(404, json={"message": "not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ups_stub() -> UPSApiStub:
    return UPSApiStub()


@pytest.fixture
def credentials() -> CarrierCredentials:
    return CarrierCredentials(
        client_id="test-client",
        client_secret="test-secret",
        api_base_url=API_BASE_URL,
        auth_url=AUTH_URL,
    )


@pytest.fixture
def ups_carrier(ups_stub, credentials, clock) -> UPSCarrier:
    return UPSCarrier(
        credentials,
        rate_url=RATE_URL,
        http_client=ups_stub.client(),
        clock=clock,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        UPS_CLIENT_ID="test-client",
        UPS_CLIENT_SECRET="test-secret",
        UPS_API_BASE_URL=API_BASE_URL,
        ENABLED_CARRIERS="UPS",
    )


@pytest.fixture
def sample_request_data() -> dict:
    """NY -> LA, one 10 lb 12x8x6 in package."""
    return {
        "origin": {
            "street": "123 Main St",
            "city": "New York",
            "state_province": "NY",
            "postal_code": "10001",
            "country_code": "US",
        },
        "destination": {
            "street": "456 Oak Ave",
            "city": "Los Angeles",
            "state_province": "CA",
            "postal_code": "90001",
            "country_code": "US",
        },
        "packages": [
            {
                "weight": 10,
                "weight_unit": "LBS",
                "length": 12,
                "width": 8,
                "height": 6,
                "dimension_unit": "IN",
            }
        ],
    }


@pytest.fixture
def sample_request(sample_request_data):
    from carrier_gateway.schemas.shipping import RateRequest

    return RateRequest.model_validate(sample_request_data)
