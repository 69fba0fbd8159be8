from carrier_gateway.schemas.shipping import (
    Address,
    DimensionUnit,
    Package,
    RateRequest,
    RateResponse,
    WeightUnit,
)

__all__ = [
    "Address",
    "DimensionUnit",
    "Package",
    "RateRequest",
    "RateResponse",
    "WeightUnit",
]
