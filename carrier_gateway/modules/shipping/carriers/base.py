"""
Base Carrier Interface

- Every carrier exposes the same get_rates(RateRequest) operation
- CarrierAdapter implements that operation once for OAuth-protected JSON
  rating APIs, composed from an injected token manager and mapper
- Carriers supply their own RateMapper (wire schema) and endpoint

get_rates algorithm:
    1. Validate the request locally (ValidationError, no network)
    2. Map to the carrier wire schema
    3. POST with a bearer token, bounded by a timeout
    4. 2xx -> map the body back to RateResponse entries
    5. 401 -> one forced token refresh and one retry, never more
    6. Anything else -> translated into the error taxonomy and raised
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from carrier_gateway.core.exceptions import (
    AuthenticationError,
    CarrierAPIError,
    CarrierAPIErrorType,
    CarrierGatewayError,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from carrier_gateway.models.carrier import CarrierCode
from carrier_gateway.schemas.shipping import RateRequest, RateResponse
from carrier_gateway.services.token_manager import OAuthTokenManager

logger = logging.getLogger(__name__)

DEFAULT_RATE_TIMEOUT_SECONDS = 15.0


class RateMapper(ABC):
    """
    Pure translation between RateRequest/RateResponse and one carrier's wire schema.

    Implementations perform no I/O and hold no state.
    """

    @abstractmethod
    def to_wire_request(self, request: RateRequest) -> Dict[str, Any]:
        pass

    @abstractmethod
    def from_wire_response(self, response: Dict[str, Any]) -> List[RateResponse]:
        """
        Return one RateResponse per rated option, in carrier order.

        Raises ValueError (or KeyError/TypeError) when the body is not shaped
        like a rating response.
        """
        pass


class BaseCarrier(ABC):
    """Uniform rating interface implemented by every carrier."""

    @property
    @abstractmethod
    def carrier_code(self) -> CarrierCode:
        """Return the carrier code enum value."""
        pass

    @property
    @abstractmethod
    def carrier_name(self) -> str:
        """Return the human-readable carrier name."""
        pass

    @abstractmethod
    async def get_rates(self, request: Union[RateRequest, Mapping[str, Any]]) -> List[RateResponse]:
        """
        Get shipping rates from the carrier.

        Args:
            request: RateRequest (or a mapping with the same fields)

        Returns:
            List of RateResponse objects, possibly empty

        Raises:
            CarrierGatewayError subclass describing the failure
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class _UnauthorizedResponse(Exception):
    """Internal signal: the rate call came back 401."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__("401 Unauthorized")


class CarrierAdapter(BaseCarrier):
    """
    get_rates for carriers with an OAuth-protected JSON rating endpoint.

    The adapter holds no call-scoped state; concurrent get_rates calls share
    only the token manager.
    """

    def __init__(
        self,
        code: CarrierCode,
        token_manager: OAuthTokenManager,
        mapper: RateMapper,
        rate_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_RATE_TIMEOUT_SECONDS,
        name: Optional[str] = None,
    ):
        self._code = code
        self._name = name or code.value
        self.token_manager = token_manager
        self.mapper = mapper
        self.rate_url = rate_url
        self.timeout = timeout

        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def carrier_code(self) -> CarrierCode:
        return self._code

    @property
    def carrier_name(self) -> str:
        return self._name

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
            self._owns_http_client = True
        return self._http_client

    async def close(self) -> None:
        """Close HTTP clients this adapter created."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
        await self.token_manager.close()

    def extra_headers(self) -> Dict[str, str]:
        """Carrier-specific headers added to every rate call."""
        return {}

    def validate_request(self, request: Union[RateRequest, Mapping[str, Any]]) -> RateRequest:
        """Validate locally, raising ValidationError without touching the network."""
        try:
            return RateRequest.model_validate(request)
        except PydanticValidationError as e:
            raise ValidationError(
                self.carrier_name,
                f"Invalid rate request: {e.error_count()} validation error(s)",
                e,
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e

    async def get_rates(self, request: Union[RateRequest, Mapping[str, Any]]) -> List[RateResponse]:
        validated = self.validate_request(request)
        wire_request = self.mapper.to_wire_request(validated)

        try:
            return await self._rate_call(wire_request)
        except _UnauthorizedResponse:
            await self.token_manager.force_refresh()

        try:
            return await self._rate_call(wire_request)
        except _UnauthorizedResponse as e:
            raise AuthenticationError(
                self.carrier_name,
                "Rate request unauthorized after token refresh",
                e.response,
                details={"status_code": e.response.status_code},
            ) from None

    async def _rate_call(self, wire_request: Dict[str, Any]) -> List[RateResponse]:
        token = await self.token_manager.get_token()
        client = self._get_http_client()

        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "transId": uuid.uuid4().hex,
        }
        headers.update(self.extra_headers())

        try:
            # Deadline covers the whole exchange, not each read
            response = await asyncio.wait_for(
                client.post(
                    self.rate_url,
                    headers=headers,
                    json=wire_request,
                    timeout=self.timeout,
                ),
                self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise NetworkError(
                self.carrier_name, "Request timeout", e, details={"timeout_seconds": self.timeout}
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(self.carrier_name, f"Network error: {e}", e) from e
        except httpx.RequestError as e:
            raise CarrierAPIError(self.carrier_name, f"Request failed: {e}", e) from e

        logger.debug(f"{self.carrier_name} API POST {self.rate_url} -> {response.status_code}")

        if response.status_code == 401:
            raise _UnauthorizedResponse(response)
        if not response.is_success:
            raise self.translate_error_response(response)

        try:
            return self.mapper.from_wire_response(response.json())
        except CarrierGatewayError:
            raise
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise CarrierAPIError(
                self.carrier_name,
                f"Unrecognized rate response: {e}",
                e,
                subtype=CarrierAPIErrorType.UNKNOWN_ERROR,
                details={"status_code": response.status_code},
            ) from e

    def translate_error_response(self, response: httpx.Response) -> CarrierGatewayError:
        """Map a non-2xx, non-401 response onto the error taxonomy."""
        status = response.status_code
        carrier_message = self.extract_error_message(response)
        details = {"status_code": status}
        if carrier_message:
            details["carrier_message"] = carrier_message

        if status == 400:
            return ValidationError(
                self.carrier_name,
                carrier_message or "Invalid request parameters",
                response,
                details=details,
            )

        if status == 429:
            return RateLimitError(
                self.carrier_name,
                "Rate limit exceeded",
                response,
                retry_after_seconds=_parse_retry_after(response),
                details=details,
            )

        if status >= 500:
            return CarrierAPIError(
                self.carrier_name,
                f"{self.carrier_name} service error",
                response,
                subtype=CarrierAPIErrorType.SERVER_ERROR,
                details=details,
            )

        return CarrierAPIError(
            self.carrier_name,
            carrier_message or "Unknown error occurred",
            response,
            subtype=CarrierAPIErrorType.UNKNOWN_ERROR,
            details=details,
        )

    def extract_error_message(self, response: httpx.Response) -> Optional[str]:
        """Pull the first carrier error message out of an error body, if any."""
        try:
            error_data = response.json()
        except ValueError:
            return None

        if not isinstance(error_data, dict) or not isinstance(error_data.get("response"), dict):
            return None
        errors = error_data["response"].get("errors") or []
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return errors[0].get("message")
        return None


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
