"""
OAuth Token Manager

Owns the bearer token for exactly one carrier:
- Client-credentials grant with HTTP Basic auth
- In-memory cache, expired REFRESH_MARGIN seconds before the carrier says so
- Single-flight acquisition: concurrent callers that find the cache empty or
  expired all await the same in-flight request
- Acquisition runs shielded, so a caller abandoning its wait never cancels the
  shared request or leaves the cache half-written
"""
import asyncio
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from carrier_gateway.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_AUTH_TIMEOUT_SECONDS = 10.0
DEFAULT_REFRESH_MARGIN_SECONDS = 60


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenResponse(BaseModel):
    """Body returned by the OAuth token endpoint."""
    access_token: str = Field(..., min_length=1)
    expires_in: int
    token_type: Optional[str] = None


@dataclass(frozen=True)
class CachedToken:
    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class OAuthTokenManager:
    """
    Bearer token cache for one carrier's OAuth endpoint.

    Usage:
        manager = OAuthTokenManager("UPS", client_id, client_secret, auth_url)
        token = await manager.get_token()
    """

    def __init__(
        self,
        carrier: str,
        client_id: str,
        client_secret: str,
        auth_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_AUTH_TIMEOUT_SECONDS,
        refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.carrier = carrier
        self._client_id = client_id
        self._client_secret = client_secret
        self.auth_url = auth_url
        self.timeout = timeout
        self.refresh_margin = timedelta(seconds=refresh_margin_seconds)
        self._clock = clock

        self._http_client = http_client
        self._owns_http_client = http_client is None

        self._cached: Optional[CachedToken] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def has_valid_token(self) -> bool:
        cached = self._cached
        return cached is not None and cached.is_valid(self._clock())

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_http_client = True
        return self._http_client

    async def close(self):
        """Close the HTTP client if this manager created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def get_token(self) -> str:
        """Return a currently-valid bearer token, acquiring one if needed."""
        cached = self._cached
        if cached is not None and cached.is_valid(self._clock()):
            return cached.token
        return await self._acquire()

    async def force_refresh(self) -> str:
        """Discard the cached token and acquire a new one."""
        self._cached = None
        return await self._acquire()

    def invalidate(self) -> None:
        """Drop the cached token without acquiring a new one."""
        self._cached = None

    async def _acquire(self) -> str:
        if self._inflight is None:
            task = asyncio.ensure_future(self._fetch_token())
            task.add_done_callback(self._on_fetch_done)
            self._inflight = task
        cached = await asyncio.shield(self._inflight)
        return cached.token

    def _on_fetch_done(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the exception as retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _fetch_token(self) -> CachedToken:
        # A failed acquisition must never leave an old token behind
        self._cached = None

        client = self._get_http_client()
        auth_string = f"{self._client_id}:{self._client_secret}"
        auth_header = base64.b64encode(auth_string.encode()).decode()

        try:
            response = await asyncio.wait_for(
                client.post(
                    self.auth_url,
                    headers={
                        "Authorization": f"Basic {auth_header}",
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                    data={"grant_type": "client_credentials"},
                    timeout=self.timeout,
                ),
                self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise AuthenticationError(
                self.carrier, "Token request timed out", e, details={"timeout_seconds": self.timeout}
            ) from e
        except httpx.HTTPError as e:
            raise AuthenticationError(self.carrier, f"Token request failed: {e}", e) from e

        if not response.is_success:
            raise AuthenticationError(
                self.carrier,
                "Failed to obtain access token",
                response,
                details={"status_code": response.status_code},
            )

        try:
            data = TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise AuthenticationError(
                self.carrier,
                "Token endpoint returned an unreadable body",
                e,
                details={"status_code": response.status_code},
            ) from e

        now = self._clock()
        cached = CachedToken(
            token=data.access_token,
            expires_at=now + timedelta(seconds=data.expires_in) - self.refresh_margin,
        )
        self._cached = cached

        logger.info(f"{self.carrier} OAuth token obtained, expires in {data.expires_in}s")
        return cached
