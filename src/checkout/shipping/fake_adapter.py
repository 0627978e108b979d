"""Fake rate collaborator: deterministic quotes for testing and development."""

import asyncio

from checkout.exceptions import CollaboratorUnavailable
from checkout.model.shipping import Address, ShippingRate, WeightedItem
from checkout.shipping.port import RateQuoteApi, RateResponse

DEFAULT_RATES = (
    ShippingRate(
        service_name="USPS Priority Mail",
        service_code="usps_priority_mail",
        carrier="USPS",
        shipment_cost=8.45,
        estimated_delivery_days=3,
    ),
    ShippingRate(
        service_name="USPS Ground Advantage",
        service_code="usps_ground_advantage",
        carrier="USPS",
        shipment_cost=5.25,
        estimated_delivery_days=5,
    ),
    ShippingRate(
        service_name="UPS Next Day Air",
        service_code="ups_next_day_air",
        carrier="UPS",
        shipment_cost=31.80,
        other_cost=2.10,
        estimated_delivery_days=1,
    ),
)


class FakeRateQuoteApi(RateQuoteApi):
    """Fake rate collaborator that always succeeds by default."""

    def __init__(self, rates: list[ShippingRate] | None = None) -> None:
        self.rates = list(rates) if rates is not None else list(DEFAULT_RATES)
        self.recommended: ShippingRate | None = None
        self.warning: str | None = None
        self.should_succeed = True
        self.failure_reason = "Shipping service unavailable"
        self.latency = 0.0
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Shipping service unavailable") -> None:
        """Configure the fake collaborator behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def request_rates(self, address: Address, items: list[WeightedItem]) -> RateResponse:
        self.calls.append({"address": address, "items": list(items)})
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.should_succeed:
            raise CollaboratorUnavailable("request_rates", self.failure_reason)
        return RateResponse(rates=list(self.rates), recommended=self.recommended, warning=self.warning)
