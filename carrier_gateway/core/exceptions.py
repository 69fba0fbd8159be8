"""
Carrier Gateway Exception Taxonomy

Every failure surfaced by a carrier adapter is one of a closed set of kinds.
All kinds share one base class and carry the same fields, so callers branch
on ``kind`` (or the class) and never parse the message string.

Exception Hierarchy:
    CarrierGatewayError
    ├── ValidationError        (caller's fault, never retryable)
    ├── AuthenticationError    (credential exchange failed)
    ├── RateLimitError         (HTTP 429)
    ├── NetworkError           (timeout, connection failure, no response)
    └── CarrierAPIError        (5xx -> SERVER_ERROR, anything else -> UNKNOWN_ERROR)

CarrierConfigurationError is raised by factories when settings are incomplete.
It is not part of the per-call taxonomy.
"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds a carrier call can produce."""
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    NETWORK = "NETWORK_ERROR"
    CARRIER_API = "CARRIER_API_ERROR"


class CarrierAPIErrorType(str, enum.Enum):
    """Subtype of a CarrierAPIError."""
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class CarrierGatewayError(Exception):
    """
    Base exception for every carrier call failure.

    Attributes:
        carrier: Name of the carrier that failed (e.g. "UPS")
        message: Human-readable error description
        original_cause: The underlying exception or payload, opaque to callers
        timestamp: When the error was raised (UTC)
        details: Extra context such as the HTTP status code
    """

    kind: ErrorKind = ErrorKind.CARRIER_API
    retryable: bool = False

    def __init__(
        self,
        carrier: str,
        message: str,
        original_cause: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ):
        self.carrier = carrier
        self.message = message
        self.original_cause = original_cause
        self.details = details or {}
        self.timestamp = timestamp or datetime.now(timezone.utc)
        super().__init__(self.message)

    @property
    def code(self) -> str:
        """Machine-readable error code."""
        return self.kind.value

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status of the failed call, if one was received."""
        return self.details.get("status_code")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "code": self.code,
            "carrier": self.carrier,
            "message": self.message,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(carrier={self.carrier!r}, code={self.code!r}, message={self.message!r})"


class ValidationError(CarrierGatewayError):
    """Malformed rate request, rejected locally or by the carrier (HTTP 400)."""
    kind = ErrorKind.VALIDATION


class AuthenticationError(CarrierGatewayError):
    """Credential exchange failed, or the carrier rejected a freshly issued token."""
    kind = ErrorKind.AUTHENTICATION


class RateLimitError(CarrierGatewayError):
    """Carrier throttled the call (HTTP 429)."""
    kind = ErrorKind.RATE_LIMIT
    retryable = True

    def __init__(
        self,
        carrier: str,
        message: str,
        original_cause: Optional[Any] = None,
        retry_after_seconds: Optional[float] = None,
        **kwargs
    ):
        details = kwargs.pop("details", None) or {}
        details["retry_after_seconds"] = retry_after_seconds
        super().__init__(carrier, message, original_cause, details=details, **kwargs)

    @property
    def retry_after_seconds(self) -> Optional[float]:
        return self.details.get("retry_after_seconds")


class NetworkError(CarrierGatewayError):
    """Timeout, connection failure, or no response received."""
    kind = ErrorKind.NETWORK
    retryable = True


class CarrierAPIError(CarrierGatewayError):
    """Catch-all for carrier failures: server errors and unrecognized shapes."""
    kind = ErrorKind.CARRIER_API

    def __init__(
        self,
        carrier: str,
        message: str,
        original_cause: Optional[Any] = None,
        subtype: CarrierAPIErrorType = CarrierAPIErrorType.UNKNOWN_ERROR,
        **kwargs
    ):
        self.subtype = subtype
        super().__init__(carrier, message, original_cause, **kwargs)

    @property
    def code(self) -> str:
        return self.subtype.value

    @property
    def retryable(self) -> bool:
        return self.subtype == CarrierAPIErrorType.SERVER_ERROR

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["subtype"] = self.subtype.value
        return data


class CarrierConfigurationError(Exception):
    """Carrier cannot be built because required settings are missing."""

    def __init__(self, carrier: str, missing: list):
        self.carrier = carrier
        self.missing = list(missing)
        super().__init__(f"{carrier} carrier is missing settings: {', '.join(self.missing)}")
