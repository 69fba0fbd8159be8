"""
Carrier Registry and Factory

- CarrierFactory creates carrier instances based on CarrierCode
- Only returns enabled carriers (ENABLED_CARRIERS setting)
- Carriers share the CarrierAdapter core and differ in mapper and endpoint
"""
from typing import Dict, List, Optional, Type
import logging

import httpx

from carrier_gateway.core.config import Settings, get_settings
from carrier_gateway.models.carrier import CarrierCode
from carrier_gateway.modules.shipping.carriers.base import BaseCarrier

logger = logging.getLogger(__name__)

# Registry of carrier implementations
_CARRIER_REGISTRY: Dict[CarrierCode, Type[BaseCarrier]] = {}


def register_carrier(carrier_code: CarrierCode):
    """
    Decorator to register a carrier implementation.

    The class must provide a from_settings(settings, http_client=None) classmethod.

    Usage:
        @register_carrier(CarrierCode.UPS)
        class UPSCarrier(CarrierAdapter):
            ...
    """
    def decorator(cls: Type[BaseCarrier]):
        _CARRIER_REGISTRY[carrier_code] = cls
        logger.debug(f"Registered carrier: {carrier_code.value} -> {cls.__name__}")
        return cls
    return decorator


class CarrierFactory:
    """
    Factory for creating carrier instances.

    Returns None for disabled or unregistered carriers.
    """

    @classmethod
    def is_enabled(cls, carrier_code: CarrierCode, settings: Optional[Settings] = None) -> bool:
        settings = settings or get_settings()
        return carrier_code.value in settings.ENABLED_CARRIERS

    @classmethod
    def get_carrier(
        cls,
        carrier_code: CarrierCode,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> Optional[BaseCarrier]:
        """
        Get a carrier instance if enabled.

        Args:
            carrier_code: The carrier to get
            settings: Settings to read credentials from (process settings by default)
            http_client: Optional shared HTTP client

        Returns:
            BaseCarrier instance or None if disabled/not found

        Raises:
            CarrierConfigurationError: carrier is enabled but its credentials are missing
        """
        settings = settings or get_settings()

        if not cls.is_enabled(carrier_code, settings):
            logger.debug(f"Carrier {carrier_code.value} is disabled")
            return None

        carrier_cls = _CARRIER_REGISTRY.get(carrier_code)
        if not carrier_cls:
            logger.warning(f"No implementation registered for carrier: {carrier_code.value}")
            return None

        return carrier_cls.from_settings(settings, http_client=http_client)

    @classmethod
    def get_enabled_carriers(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> List[BaseCarrier]:
        """Get all enabled carrier instances, in ENABLED_CARRIERS order."""
        settings = settings or get_settings()
        carriers = []

        for value in settings.ENABLED_CARRIERS:
            try:
                code = CarrierCode(value)
            except ValueError:
                logger.warning(f"Unknown carrier in ENABLED_CARRIERS: {value}")
                continue
            carrier = cls.get_carrier(code, settings, http_client=http_client)
            if carrier:
                carriers.append(carrier)

        return carriers

    @classmethod
    def get_registered_carriers(cls) -> List[CarrierCode]:
        """Get list of all registered carrier codes."""
        return list(_CARRIER_REGISTRY.keys())


def get_carrier(
    carrier_code: CarrierCode,
    settings: Optional[Settings] = None,
) -> Optional[BaseCarrier]:
    """
    Convenience function to get a carrier.

    Equivalent to CarrierFactory.get_carrier().
    """
    return CarrierFactory.get_carrier(carrier_code, settings)


# Import carriers to trigger registration
# These imports must be at the bottom to avoid circular imports
from carrier_gateway.modules.shipping.carriers.ups import UPSCarrier, create_ups_carrier  # noqa: E402, F401
