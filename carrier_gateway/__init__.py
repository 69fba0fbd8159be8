"""
Carrier rate gateway.

Queries shipping-carrier rating APIs and returns normalized rate quotes.

    carrier = create_ups_carrier()
    rates = await carrier.get_rates(request)
"""
from carrier_gateway.core.exceptions import (
    AuthenticationError,
    CarrierAPIError,
    CarrierAPIErrorType,
    CarrierConfigurationError,
    CarrierGatewayError,
    ErrorKind,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from carrier_gateway.models.carrier import CarrierCode, CarrierCredentials
from carrier_gateway.modules.shipping.carriers import CarrierFactory, UPSCarrier, create_ups_carrier
from carrier_gateway.modules.shipping.carriers.base import BaseCarrier, CarrierAdapter, RateMapper
from carrier_gateway.schemas.shipping import (
    Address,
    DimensionUnit,
    Package,
    RateRequest,
    RateResponse,
    WeightUnit,
)
from carrier_gateway.services.rate_gateway import GatewayRateResult, RateGateway, RetryConfig
from carrier_gateway.services.token_manager import OAuthTokenManager

__version__ = "1.0.0"

__all__ = [
    "Address",
    "AuthenticationError",
    "BaseCarrier",
    "CarrierAdapter",
    "CarrierAPIError",
    "CarrierAPIErrorType",
    "CarrierCode",
    "CarrierConfigurationError",
    "CarrierCredentials",
    "CarrierFactory",
    "CarrierGatewayError",
    "DimensionUnit",
    "ErrorKind",
    "GatewayRateResult",
    "NetworkError",
    "OAuthTokenManager",
    "Package",
    "RateGateway",
    "RateLimitError",
    "RateMapper",
    "RateRequest",
    "RateResponse",
    "RetryConfig",
    "UPSCarrier",
    "ValidationError",
    "WeightUnit",
    "create_ups_carrier",
]
