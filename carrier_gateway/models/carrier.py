"""
Carrier identification and credentials.

One fixed credential set per carrier per process. Credentials arrive already
checked for presence by the factory that builds the carrier.
"""
import enum
from dataclasses import dataclass, field
from typing import Optional


class CarrierCode(str, enum.Enum):
    """
    Supported shipping carriers.

    Carrier availability is controlled at runtime via ENABLED_CARRIERS.
    """
    UPS = "UPS"
    # Future carriers
    # USPS = "USPS"
    # FEDEX = "FEDEX"


@dataclass(frozen=True)
class CarrierCredentials:
    """OAuth client credentials and endpoints for one carrier."""
    client_id: str
    client_secret: str = field(repr=False)
    api_base_url: str
    auth_url: str
    account_number: Optional[str] = None


# UPS Service Codes
UPS_SERVICE_CODES = {
    # Domestic US
    "01": "UPS Next Day Air",
    "02": "UPS 2nd Day Air",
    "03": "UPS Ground",
    "12": "UPS 3 Day Select",
    "13": "UPS Next Day Air Saver",
    "14": "UPS Next Day Air Early",
    "59": "UPS 2nd Day Air A.M.",
    # International
    "07": "UPS Worldwide Express",
    "08": "UPS Worldwide Expedited",
    "11": "UPS Standard",
    "54": "UPS Worldwide Express Plus",
    "65": "UPS Saver",
}
