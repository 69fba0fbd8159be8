"""
Shipping Module

- BaseCarrier interface for all carrier implementations
- CarrierAdapter core shared by OAuth/JSON rating carriers
- CarrierFactory for dependency injection
"""
from carrier_gateway.modules.shipping.carriers import CarrierFactory, get_carrier
from carrier_gateway.modules.shipping.carriers.base import BaseCarrier, CarrierAdapter, RateMapper

__all__ = [
    "CarrierFactory",
    "get_carrier",
    "BaseCarrier",
    "CarrierAdapter",
    "RateMapper",
]
