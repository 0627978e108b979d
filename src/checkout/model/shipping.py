"""Shipping address, weighted items and carrier rates."""

from pydantic import Field, model_validator

from checkout.model.base import CamelModel

DEFAULT_ITEM_WEIGHT_OZ = 8.0
MINIMUM_WEIGHT_OZ = 1.0

_OUNCES_PER_UNIT = {
    "ounces": 1.0,
    "oz": 1.0,
    "pounds": 16.0,
    "lb": 16.0,
    "grams": 1 / 28.35,
    "g": 1 / 28.35,
    "kilograms": 35.274,
    "kg": 35.274,
}


def to_ounces(value: float, units: str = "ounces") -> float:
    """Convert a catalog weight to ounces, never below the minimum package weight."""
    try:
        factor = _OUNCES_PER_UNIT[units.lower()]
    except KeyError:
        raise ValueError(f"Unknown weight unit: {units}") from None
    return max(value * factor, MINIMUM_WEIGHT_OZ)


class Address(CamelModel):
    street: str = ""
    apartment: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = "US"

    @property
    def is_complete(self) -> bool:
        return all(v.strip() for v in (self.street, self.city, self.state, self.postal_code))

    def to_rate_destination(self) -> dict:
        return {
            "street1": self.street,
            "street2": self.apartment,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country or "US",
        }


class WeightedItem(CamelModel):
    id: str | int | None = None
    name: str = ""
    quantity: int = Field(ge=1)
    price: float = Field(default=0.0, ge=0)
    weight_oz: float = Field(gt=0)


class ShippingRate(CamelModel):
    service_name: str
    service_code: str
    carrier: str = ""
    shipment_cost: float = Field(default=0.0, ge=0)
    other_cost: float = Field(default=0.0, ge=0)
    total_cost: float = 0.0
    estimated_delivery_days: int | None = None

    @model_validator(mode="after")
    def _recompute_total(self):
        # Never trust a cached or collaborator-supplied total.
        self.total_cost = self.shipment_cost + self.other_cost
        return self


class RateQuote(CamelModel):
    rates: list[ShippingRate]
    recommended: ShippingRate
    warning: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.warning is not None and len(self.rates) == 1
