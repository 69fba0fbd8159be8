"""
UPS Rating wire schema mapping.

Pure functions over plain dicts. Units are passed through as UPS codes, never
converted. Unknown service codes keep their rate under a fallback label.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from carrier_gateway.models.carrier import CarrierCode, UPS_SERVICE_CODES
from carrier_gateway.modules.shipping.carriers.base import RateMapper
from carrier_gateway.schemas.shipping import (
    Address,
    DimensionUnit,
    Package,
    RateRequest,
    RateResponse,
    WeightUnit,
)

UPS_CUSTOMER_SUPPLIED_PACKAGE = "02"
UPS_CUSTOMER_CONTEXT = "Rating"

UPS_WEIGHT_UNITS = {
    WeightUnit.POUNDS: "LBS",
    WeightUnit.KILOGRAMS: "KGS",
}

UPS_DIMENSION_UNITS = {
    DimensionUnit.INCHES: "IN",
    DimensionUnit.CENTIMETERS: "CM",
}

# UPS returns YYYYMMDD; ISO dates show up in some sandbox payloads
UPS_DATE_FORMATS = ("%Y%m%d", "%Y-%m-%d")


def format_number(value: float) -> str:
    """Stringify a number the way UPS expects ("10", "10.5", never exponent notation)."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_ups_date(value: Any) -> Optional[date]:
    if not value:
        return None
    for fmt in UPS_DATE_FORMATS:
        try:
            return datetime.strptime(str(value), fmt).date()
        except ValueError:
            continue
    return None


def parse_transit_days(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        days = int(value)
    except (TypeError, ValueError):
        return None
    return days if days > 0 else None


class UPSMapper(RateMapper):
    """RateRequest <-> UPS Rating API (v2403) JSON."""

    carrier_name = CarrierCode.UPS.value

    def __init__(self, account_number: Optional[str] = None):
        self.account_number = account_number or None

    # ==================== Request ====================

    def _address(self, address: Address) -> Dict[str, Any]:
        return {
            "Address": {
                "AddressLine": [address.street],
                "City": address.city,
                "StateProvinceCode": address.state_province,
                "PostalCode": address.postal_code,
                "CountryCode": address.country_code,
            }
        }

    def _package(self, package: Package) -> Dict[str, Any]:
        wire = {
            "PackagingType": {"Code": UPS_CUSTOMER_SUPPLIED_PACKAGE},
            "Dimensions": {
                "UnitOfMeasurement": {"Code": UPS_DIMENSION_UNITS[package.dimension_unit]},
                "Length": format_number(package.length),
                "Width": format_number(package.width),
                "Height": format_number(package.height),
            },
            "PackageWeight": {
                "UnitOfMeasurement": {"Code": UPS_WEIGHT_UNITS[package.weight_unit]},
                "Weight": format_number(package.weight),
            },
        }

        if package.declared_value is not None:
            wire["PackageServiceOptions"] = {
                "DeclaredValue": {
                    "CurrencyCode": package.currency,
                    "MonetaryValue": format_number(package.declared_value),
                }
            }

        return wire

    def to_wire_request(self, request: RateRequest) -> Dict[str, Any]:
        shipper = self._address(request.origin)
        if self.account_number:
            shipper["ShipperNumber"] = self.account_number

        shipment: Dict[str, Any] = {
            "Shipper": shipper,
            "ShipTo": self._address(request.destination),
            "ShipFrom": self._address(request.origin),
            "Package": [self._package(pkg) for pkg in request.packages],
        }

        # "Rate" prices one service, "Shop" returns every available service
        if request.service_level:
            shipment["Service"] = {"Code": request.service_level}
            request_option = "Rate"
        else:
            request_option = "Shop"

        return {
            "RateRequest": {
                "Request": {
                    "RequestOption": request_option,
                    "TransactionReference": {"CustomerContext": UPS_CUSTOMER_CONTEXT},
                },
                "Shipment": shipment,
            }
        }

    # ==================== Response ====================

    def service_name(self, code: str) -> str:
        return UPS_SERVICE_CODES.get(code) or f"{self.carrier_name} Service {code}"

    def _rated_shipment(self, rs: Dict[str, Any]) -> RateResponse:
        code = str(rs["Service"]["Code"])
        total = rs["TotalCharges"]

        estimated_arrival = _dig(rs, "TimeInTransit", "ServiceSummary", "EstimatedArrival")
        delivery_date = parse_ups_date(
            _dig(estimated_arrival, "Date") or _dig(estimated_arrival, "Arrival", "Date")
        )

        transit_days = parse_transit_days(_dig(rs, "GuaranteedDelivery", "BusinessDaysInTransit"))
        if transit_days is None:
            transit_days = parse_transit_days(_dig(estimated_arrival, "BusinessDaysInTransit"))

        return RateResponse(
            carrier=self.carrier_name,
            service=self.service_name(code),
            rate=float(total["MonetaryValue"]),
            currency=total["CurrencyCode"],
            delivery_date=delivery_date,
            transit_days=transit_days,
        )

    def from_wire_response(self, response: Dict[str, Any]) -> List[RateResponse]:
        rate_response = response.get("RateResponse") if isinstance(response, dict) else None
        if not isinstance(rate_response, dict):
            raise ValueError("body has no RateResponse object")

        rated_shipments = rate_response.get("RatedShipment") or []
        if isinstance(rated_shipments, dict):
            rated_shipments = [rated_shipments]

        return [self._rated_shipment(rs) for rs in rated_shipments]
