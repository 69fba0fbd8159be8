from carrier_gateway.models.carrier import CarrierCode, CarrierCredentials, UPS_SERVICE_CODES

__all__ = ["CarrierCode", "CarrierCredentials", "UPS_SERVICE_CODES"]
