"""
Shipping Schemas

Carrier-agnostic rate request/response models. A RateRequest is validated
once at the adapter boundary and is immutable afterwards.
"""
import enum
from datetime import date
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from carrier_gateway.core.config import get_settings


def _home_country() -> str:
    return get_settings().HOME_COUNTRY


class WeightUnit(str, enum.Enum):
    POUNDS = "LBS"
    KILOGRAMS = "KGS"


class DimensionUnit(str, enum.Enum):
    INCHES = "IN"
    CENTIMETERS = "CM"


# ==================== Address Schemas ====================


class Address(BaseModel):
    """Origin or destination address."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    street: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    state_province: str = Field(..., min_length=2, max_length=2)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country_code: str = Field(default_factory=_home_country, min_length=2, max_length=2)

    @field_validator("state_province", "country_code")
    @classmethod
    def upper_code(cls, v):
        return v.upper()


# ==================== Package Schemas ====================


class Package(BaseModel):
    """Package weight, dimensions and optional declared value."""
    model_config = ConfigDict(frozen=True)

    weight: float = Field(..., gt=0)
    weight_unit: WeightUnit = WeightUnit.POUNDS
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    dimension_unit: DimensionUnit = DimensionUnit.INCHES
    declared_value: Optional[float] = Field(None, gt=0, description="Declared value for insurance")
    currency: str = Field("USD", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper()


# ==================== Rate Schemas ====================


class RateRequest(BaseModel):
    """
    Request shipping rates for a set of packages.

    Instances are re-validated whenever they pass through model_validate, so a
    request built with model_construct is still checked at the adapter boundary.
    """
    model_config = ConfigDict(frozen=True, revalidate_instances="always")

    origin: Address
    destination: Address
    packages: Tuple[Package, ...] = Field(..., min_length=1)
    service_level: Optional[str] = Field(None, description="Carrier-specific service code (optional)")

    @field_validator("service_level")
    @classmethod
    def blank_service_level(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v is not None else v


class RateResponse(BaseModel):
    """A single shipping rate option returned by a carrier."""
    model_config = ConfigDict(frozen=True)

    carrier: str
    service: str
    rate: float = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    delivery_date: Optional[date] = None
    transit_days: Optional[int] = Field(None, gt=0)
