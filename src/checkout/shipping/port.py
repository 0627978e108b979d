"""Shipping-quote port: abstract interface for the rate collaborator.

The client programs against this port; adapters are chosen in
``checkout.services``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from checkout.model.shipping import Address, ShippingRate, WeightedItem


@dataclass(frozen=True)
class RateResponse:
    """Raw collaborator answer, before fallback handling."""

    rates: list[ShippingRate] = field(default_factory=list)
    recommended: ShippingRate | None = None
    warning: str | None = None


class RateQuoteApi(ABC):
    @abstractmethod
    async def request_rates(self, address: Address, items: list[WeightedItem]) -> RateResponse:
        """Quote every available service for the destination and package.

        Raises:
            CollaboratorUnavailable: the collaborator could not be reached or
                rejected the request.
        """
        ...
