"""Price engine: effective unit prices and order totals.

Pure functions: nothing here performs I/O, mutates its inputs, or rounds.
Rounding to currency precision happens only where an amount leaves the
engine (display, payment line items).
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

import structlog

from checkout.config import CheckoutSettings
from checkout.model.customization import Customization
from checkout.model.draft import OrderLineItem
from checkout.model.shipping import ShippingRate
from checkout.pricing.materials import MaterialCostFunction, embroidery_material_cost

logger = structlog.get_logger(__name__)


class PricedProduct(Protocol):
    price: float


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: float = 0.08
    free_shipping_threshold: float = 50.0
    flat_shipping_rate: float = 9.99
    currency: str = "usd"

    @classmethod
    def from_settings(cls, settings: CheckoutSettings) -> "PricingPolicy":
        return cls(
            tax_rate=settings.tax_rate,
            free_shipping_threshold=settings.free_shipping_threshold,
            flat_shipping_rate=settings.flat_shipping_rate,
            currency=settings.currency,
        )


DEFAULT_POLICY = PricingPolicy()


@dataclass(frozen=True)
class Totals:
    subtotal: float
    tax: float
    shipping: float
    total: float

    def rounded(self) -> "Totals":
        return Totals(
            subtotal=round_currency(self.subtotal),
            tax=round_currency(self.tax),
            shipping=round_currency(self.shipping),
            total=round_currency(self.total),
        )


def round_currency(amount: float) -> float:
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def to_minor_units(amount: float) -> int:
    """Cents, as payment providers expect unit amounts."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _design_material_surcharge(design, material_cost: MaterialCostFunction) -> float:
    if design is None or design.dimensions is None or not design.dimensions.is_measurable:
        return 0.0
    try:
        return material_cost(design.dimensions.width, design.dimensions.height)
    except (ArithmeticError, ValueError) as exc:
        logger.warning(
            "Material cost unavailable for design",
            design=design.name,
            width=design.dimensions.width,
            height=design.dimensions.height,
            error=str(exc),
        )
        return 0.0


def compute_line_item_unit_price(
    base_product: PricedProduct,
    customization: Customization | None = None,
    material_cost: MaterialCostFunction = embroidery_material_cost,
) -> float:
    """Base price plus material surcharges and flat add-ons."""
    price = base_product.price
    if customization is None:
        return price

    for design, styles in customization.priced_designs():
        price += _design_material_surcharge(design, material_cost)
        price += sum(add_on.price for add_on in styles.add_ons())
    return price


@dataclass(frozen=True)
class _BasePrice:
    price: float


def unit_price_for(item: OrderLineItem, material_cost: MaterialCostFunction = embroidery_material_cost) -> float:
    """Unit price of an order line.

    Lines that know their catalog base price are re-derived from it; lines
    that only carry a stored price use that price as-is.
    """
    if item.base_price is None:
        return item.price
    return compute_line_item_unit_price(_BasePrice(item.base_price), item.customization, material_cost)


def compute_subtotal(
    items: Iterable[OrderLineItem],
    material_cost: MaterialCostFunction = embroidery_material_cost,
) -> float:
    return sum(unit_price_for(item, material_cost) * item.quantity for item in items)


def compute_tax(subtotal: float, policy: PricingPolicy = DEFAULT_POLICY) -> float:
    return subtotal * policy.tax_rate


def compute_shipping(
    subtotal: float,
    selected_rate: ShippingRate | None = None,
    policy: PricingPolicy = DEFAULT_POLICY,
) -> float:
    if selected_rate is not None:
        return selected_rate.total_cost
    return 0.0 if subtotal > policy.free_shipping_threshold else policy.flat_shipping_rate


def compute_total(subtotal: float, tax: float, shipping: float) -> float:
    return subtotal + tax + shipping


def compute_totals(
    items: Iterable[OrderLineItem],
    selected_rate: ShippingRate | None = None,
    policy: PricingPolicy = DEFAULT_POLICY,
    material_cost: MaterialCostFunction = embroidery_material_cost,
) -> Totals:
    subtotal = compute_subtotal(items, material_cost)
    tax = compute_tax(subtotal, policy)
    shipping = compute_shipping(subtotal, selected_rate, policy)
    return Totals(subtotal=subtotal, tax=tax, shipping=shipping, total=compute_total(subtotal, tax, shipping))
