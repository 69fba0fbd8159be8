"""
Gateway configuration

Settings are read from the environment (or a .env file) by the factories in
carrier_gateway.modules.shipping.carriers. The adapter core never reads
settings itself; it receives plain values at construction time.
"""
import json
from functools import lru_cache
from typing import List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# UPS API hosts
UPS_PRODUCTION_URL = "https://onlinetools.ups.com"
UPS_SANDBOX_URL = "https://wwwcie.ups.com"

# OAuth and rating endpoints
UPS_OAUTH_TOKEN_PATH = "/security/v1/oauth/token"
UPS_RATING_PATH = "/api/rating/v2403/Rate"

DEFAULT_ENABLED_CARRIERS = ["UPS"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # "production" selects the live UPS host when UPS_API_BASE_URL is unset
    ENVIRONMENT: str = "development"

    # Country applied to addresses that omit one
    HOME_COUNTRY: str = "US"

    # UPS OAuth client credentials - no defaults, checked when the carrier is built
    UPS_CLIENT_ID: str = ""
    UPS_CLIENT_SECRET: str = ""
    UPS_ACCOUNT_NUMBER: str = ""
    UPS_API_BASE_URL: str = ""  # Empty -> sandbox, or production when ENVIRONMENT=production
    UPS_AUTH_URL: str = ""  # Empty -> base URL + UPS_OAUTH_TOKEN_PATH
    UPS_RATE_PATH: str = UPS_RATING_PATH

    # Network timeouts (seconds)
    RATE_REQUEST_TIMEOUT_SECONDS: float = 15.0
    AUTH_REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Tokens are treated as expired this many seconds before the carrier says so
    TOKEN_REFRESH_MARGIN_SECONDS: int = 60

    # Carriers the factory hands out - accepts JSON array or comma-separated string
    ENABLED_CARRIERS: Union[str, List[str]] = DEFAULT_ENABLED_CARRIERS

    # Gateway-level retry for transient failures (0 = no retries)
    GATEWAY_MAX_RETRIES: int = 0
    GATEWAY_RETRY_BASE_DELAY: float = 0.5
    GATEWAY_RETRY_MAX_DELAY: float = 8.0
    GATEWAY_MAX_RETRY_AFTER: float = 60.0

    @field_validator("ENABLED_CARRIERS", mode="before")
    @classmethod
    def parse_enabled_carriers(cls, v):
        if isinstance(v, list):
            return [str(code).strip().upper() for code in v]
        if isinstance(v, str):
            if not v.strip():
                return []
            if v.startswith("["):
                try:
                    return [str(code).strip().upper() for code in json.loads(v)]
                except json.JSONDecodeError:
                    pass
            return [code.strip().upper() for code in v.split(",") if code.strip()]
        return v

    @field_validator("HOME_COUNTRY")
    @classmethod
    def validate_home_country(cls, v):
        if len(v) != 2:
            raise ValueError("HOME_COUNTRY must be a 2-letter country code")
        return v.upper()

    @field_validator("TOKEN_REFRESH_MARGIN_SECONDS")
    @classmethod
    def validate_refresh_margin(cls, v):
        if v < 0:
            raise ValueError("TOKEN_REFRESH_MARGIN_SECONDS cannot be negative")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def ups_api_base_url(self) -> str:
        """Resolved UPS API host."""
        if self.UPS_API_BASE_URL:
            return self.UPS_API_BASE_URL.rstrip("/")
        return UPS_PRODUCTION_URL if self.is_production else UPS_SANDBOX_URL

    @property
    def ups_auth_url(self) -> str:
        """Resolved OAuth token URL for UPS."""
        if self.UPS_AUTH_URL:
            return self.UPS_AUTH_URL
        return f"{self.ups_api_base_url}{UPS_OAUTH_TOKEN_PATH}"

    @property
    def ups_rate_url(self) -> str:
        """Resolved rating URL for UPS."""
        return f"{self.ups_api_base_url}{self.UPS_RATE_PATH}"


@lru_cache()
def get_settings() -> Settings:
    """Process settings, loaded once."""
    return Settings()
