"""Shipping rate client.

Turns an address and the order's line items into a ``RateQuote``. Expected
failures never escape: an unreachable or empty collaborator yields exactly one
synthetic fallback rate and a warning, so checkout can always proceed.

``request_rates`` is the debounced entry point for callers that fire on every
address edit; ``get_rates`` quotes immediately.
"""

import asyncio

import structlog

from checkout.exceptions import CollaboratorUnavailable
from checkout.model.draft import OrderLineItem
from checkout.model.shipping import (
    DEFAULT_ITEM_WEIGHT_OZ,
    MINIMUM_WEIGHT_OZ,
    Address,
    RateQuote,
    ShippingRate,
    WeightedItem,
)
from checkout.shipping.port import RateQuoteApi

logger = structlog.get_logger(__name__)

FALLBACK_WARNING = "Unable to fetch shipping rates. Using estimated rates."


def fallback_rate() -> ShippingRate:
    return ShippingRate(
        service_name="Standard Shipping",
        service_code="standard",
        carrier="USPS",
        shipment_cost=9.99,
        other_cost=0,
        estimated_delivery_days=5,
    )


def weigh_items(items: list[OrderLineItem]) -> list[WeightedItem]:
    """Attach a per-unit package weight to every line item."""
    return [
        WeightedItem(
            id=item.id,
            name=item.product_name,
            quantity=item.quantity,
            price=item.price,
            weight_oz=max(item.weight_oz or DEFAULT_ITEM_WEIGHT_OZ, MINIMUM_WEIGHT_OZ),
        )
        for item in items
    ]


def order_rates(rates: list[ShippingRate], recommended: ShippingRate | None) -> tuple[list[ShippingRate], ShippingRate]:
    """Put the recommended rate first and the rest cheapest-first.

    Without a collaborator recommendation the first quoted rate is recommended.
    """
    if recommended is None:
        recommended = rates[0]
    chosen = next((r for r in rates if r.service_code == recommended.service_code), None)
    if chosen is None:
        chosen = recommended
    rest = sorted((r for r in rates if r is not chosen), key=lambda r: r.total_cost)
    return [chosen, *rest], chosen


class ShippingRateClient:
    def __init__(self, api: RateQuoteApi, debounce_seconds: float = 0.5) -> None:
        self.api = api
        self.debounce_seconds = debounce_seconds
        self.latest: RateQuote | None = None
        self._sequence = 0

    async def get_rates(self, address: Address, items: list[OrderLineItem]) -> RateQuote | None:
        if items is None:
            raise ValueError("items is required to quote shipping rates")
        if address is None or not address.is_complete:
            return None

        try:
            response = await self.api.request_rates(address, weigh_items(items))
        except CollaboratorUnavailable as exc:
            logger.warning("Shipping rate quote failed, using fallback rate", error=exc.reason)
            return self._fallback()

        if not response.rates:
            logger.warning("Shipping rate quote returned no rates, using fallback rate")
            return self._fallback()

        rates, recommended = order_rates(response.rates, response.recommended)
        return RateQuote(rates=rates, recommended=recommended, warning=response.warning)

    async def request_rates(self, address: Address, items: list[OrderLineItem]) -> RateQuote | None:
        """Debounced ``get_rates``; the latest request wins.

        A call that is superseded by a newer one, either during the debounce
        window or while its quote is in flight, returns ``None`` and leaves
        ``latest`` untouched.
        """
        self._sequence += 1
        ticket = self._sequence

        await asyncio.sleep(self.debounce_seconds)
        if ticket != self._sequence:
            return None

        quote = await self.get_rates(address, items)
        if ticket != self._sequence:
            logger.debug("Ignoring superseded rate quote", ticket=ticket, latest=self._sequence)
            return None

        self.latest = quote
        return quote

    def _fallback(self) -> RateQuote:
        rate = fallback_rate()
        return RateQuote(rates=[rate], recommended=rate, warning=FALLBACK_WARNING)
