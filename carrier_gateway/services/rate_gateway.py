"""
Multi-Carrier Rate Gateway

- Fans one rate request out to every configured carrier concurrently
- One carrier's failure never prevents the other carriers' rates from returning
- Optional retry with exponential backoff and jitter for transient failures
  (rate limits, network errors, carrier 5xx); carrier adapters never retry these

Usage:
    async with RateGateway.from_settings() as gateway:
        result = await gateway.get_rates(request)
        for rate in result.sorted_by_rate():
            ...
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from carrier_gateway.core.config import Settings, get_settings
from carrier_gateway.core.exceptions import (
    CarrierAPIError,
    CarrierAPIErrorType,
    CarrierGatewayError,
)
from carrier_gateway.modules.shipping.carriers import CarrierFactory
from carrier_gateway.modules.shipping.carriers.base import BaseCarrier
from carrier_gateway.schemas.shipping import RateRequest, RateResponse

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for gateway-level retry behavior."""
    max_retries: int = 0               # 0 disables retries
    base_delay: float = 0.5            # Base delay in seconds
    max_delay: float = 8.0             # Maximum delay cap
    exponential_base: float = 2.0      # Exponential backoff multiplier
    jitter_factor: float = 0.25        # Random jitter (0-1)
    max_retry_after: float = 60.0      # Longer Retry-After fails fast instead of waiting

    def calculate_backoff(self, attempt: int, error: Optional[CarrierGatewayError] = None) -> float:
        """
        Delay before retry number ``attempt + 1``.

        Formula: min(base * (exp_base ^ attempt) +/- jitter, max_delay). A
        carrier's Retry-After is a floor that max_delay does not cap.
        """
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay += delay * self.jitter_factor * (2 * random.random() - 1)
        delay = max(0.0, min(delay, self.max_delay))

        retry_after = getattr(error, "retry_after_seconds", None)
        if retry_after:
            delay = max(delay, retry_after)

        return delay

    def should_retry(self, attempt: int, error: CarrierGatewayError) -> bool:
        if not error.retryable or attempt >= self.max_retries:
            return False
        retry_after = getattr(error, "retry_after_seconds", None)
        return not (retry_after and retry_after > self.max_retry_after)


@dataclass
class GatewayRateResult:
    """Rates from every carrier that answered, plus the failure of each one that did not."""
    rates: List[RateResponse] = field(default_factory=list)
    errors: Dict[str, CarrierGatewayError] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def sorted_by_rate(self) -> List[RateResponse]:
        """Rates sorted cheapest first (stable for equal prices)."""
        return sorted(self.rates, key=lambda r: r.rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rates": [rate.model_dump(mode="json") for rate in self.rates],
            "errors": {carrier: error.to_dict() for carrier, error in self.errors.items()},
        }


class RateGateway:
    """
    Aggregates rates across carriers.

    Results keep carrier order (as passed in) and, within a carrier, the order
    the carrier returned them.
    """

    def __init__(
        self,
        carriers: Sequence[BaseCarrier],
        retry_config: Optional[RetryConfig] = None,
    ):
        self.carriers = list(carriers)
        self.retry_config = retry_config or RetryConfig()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RateGateway":
        """Gateway over every enabled carrier, with retry knobs from settings."""
        settings = settings or get_settings()
        retry_config = RetryConfig(
            max_retries=settings.GATEWAY_MAX_RETRIES,
            base_delay=settings.GATEWAY_RETRY_BASE_DELAY,
            max_delay=settings.GATEWAY_RETRY_MAX_DELAY,
            max_retry_after=settings.GATEWAY_MAX_RETRY_AFTER,
        )
        return cls(CarrierFactory.get_enabled_carriers(settings), retry_config=retry_config)

    async def close(self):
        for carrier in self.carriers:
            await carrier.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get_rates(self, request: Union[RateRequest, Mapping[str, Any]]) -> GatewayRateResult:
        """
        Get rates from all carriers.

        Never raises a carrier error: failures are collected in result.errors.
        """
        result = GatewayRateResult()

        if not self.carriers:
            logger.warning("No carriers configured for rate lookup")
            return result

        outcomes = await asyncio.gather(
            *(self._get_carrier_rates(carrier, request) for carrier in self.carriers),
            return_exceptions=True,
        )

        for carrier, outcome in zip(self.carriers, outcomes):
            if isinstance(outcome, CarrierGatewayError):
                logger.warning(f"Error getting rates from {carrier.carrier_name}: {outcome.code} - {outcome.message}")
                result.errors[carrier.carrier_name] = outcome
            elif isinstance(outcome, Exception):
                logger.exception(f"Unexpected error getting rates from {carrier.carrier_name}", exc_info=outcome)
                result.errors[carrier.carrier_name] = CarrierAPIError(
                    carrier.carrier_name,
                    f"Unexpected error: {outcome}",
                    outcome,
                    subtype=CarrierAPIErrorType.UNKNOWN_ERROR,
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                logger.info(f"Got {len(outcome)} rates from {carrier.carrier_name}")
                result.rates.extend(outcome)

        return result

    async def _get_carrier_rates(
        self,
        carrier: BaseCarrier,
        request: Union[RateRequest, Mapping[str, Any]],
    ) -> List[RateResponse]:
        attempt = 0
        while True:
            try:
                return await carrier.get_rates(request)
            except CarrierGatewayError as e:
                if not self.retry_config.should_retry(attempt, e):
                    raise
                delay = self.retry_config.calculate_backoff(attempt, e)
                attempt += 1
                logger.info(
                    f"Retrying {carrier.carrier_name} after {e.code} "
                    f"(attempt {attempt}/{self.retry_config.max_retries}, waiting {delay:.2f}s)"
                )
                await asyncio.sleep(delay)
