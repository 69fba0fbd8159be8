"""
UPS Carrier Implementation

- OAuth 2.0 client-credentials token from /security/v1/oauth/token
- Rating API v2403 ("Shop" when no service level is requested)
- Registered via @register_carrier decorator
"""
from datetime import datetime
from typing import Callable, Dict, Optional

import httpx

from carrier_gateway.core.config import UPS_RATING_PATH, Settings, get_settings
from carrier_gateway.core.exceptions import CarrierConfigurationError
from carrier_gateway.models.carrier import CarrierCode, CarrierCredentials
from carrier_gateway.modules.shipping.carriers import register_carrier
from carrier_gateway.modules.shipping.carriers.base import (
    DEFAULT_RATE_TIMEOUT_SECONDS,
    CarrierAdapter,
)
from carrier_gateway.modules.shipping.carriers.ups_mapper import UPSMapper
from carrier_gateway.services.token_manager import (
    DEFAULT_AUTH_TIMEOUT_SECONDS,
    DEFAULT_REFRESH_MARGIN_SECONDS,
    OAuthTokenManager,
    utcnow,
)

UPS_TRANSACTION_SOURCE = "carrier-gateway"


@register_carrier(CarrierCode.UPS)
class UPSCarrier(CarrierAdapter):
    """
    UPS rating carrier.

    Builds its own token manager and mapper from credentials unless they are
    injected. Without an explicit rate_url the rating endpoint is derived
    from credentials.api_base_url.
    """

    def __init__(
        self,
        credentials: CarrierCredentials,
        rate_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        rate_timeout: float = DEFAULT_RATE_TIMEOUT_SECONDS,
        auth_timeout: float = DEFAULT_AUTH_TIMEOUT_SECONDS,
        refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN_SECONDS,
        token_manager: Optional[OAuthTokenManager] = None,
        mapper: Optional[UPSMapper] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if token_manager is None:
            token_manager = OAuthTokenManager(
                CarrierCode.UPS.value,
                credentials.client_id,
                credentials.client_secret,
                credentials.auth_url,
                http_client=http_client,
                timeout=auth_timeout,
                refresh_margin_seconds=refresh_margin_seconds,
                clock=clock,
            )
        super().__init__(
            CarrierCode.UPS,
            token_manager=token_manager,
            mapper=mapper or UPSMapper(credentials.account_number),
            rate_url=rate_url or f"{credentials.api_base_url.rstrip('/')}{UPS_RATING_PATH}",
            http_client=http_client,
            timeout=rate_timeout,
        )
        self.credentials = credentials

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "UPSCarrier":
        """Build a UPS carrier from UPS_* settings."""
        settings = settings or get_settings()

        missing = [
            name for name in ("UPS_CLIENT_ID", "UPS_CLIENT_SECRET")
            if not getattr(settings, name)
        ]
        if missing:
            raise CarrierConfigurationError(CarrierCode.UPS.value, missing)

        credentials = CarrierCredentials(
            client_id=settings.UPS_CLIENT_ID,
            client_secret=settings.UPS_CLIENT_SECRET,
            api_base_url=settings.ups_api_base_url,
            auth_url=settings.ups_auth_url,
            account_number=settings.UPS_ACCOUNT_NUMBER or None,
        )
        return cls(
            credentials,
            rate_url=settings.ups_rate_url,
            http_client=http_client,
            rate_timeout=settings.RATE_REQUEST_TIMEOUT_SECONDS,
            auth_timeout=settings.AUTH_REQUEST_TIMEOUT_SECONDS,
            refresh_margin_seconds=settings.TOKEN_REFRESH_MARGIN_SECONDS,
        )

    def extra_headers(self) -> Dict[str, str]:
        return {"transactionSrc": UPS_TRANSACTION_SOURCE}


def create_ups_carrier(settings: Optional[Settings] = None) -> UPSCarrier:
    """Convenience constructor reading credentials from the environment."""
    return UPSCarrier.from_settings(settings)
