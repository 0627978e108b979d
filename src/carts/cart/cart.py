"""AccountCart aggregate: the server-held cart of one signed-in shopper.

Plain items share one line per product; every customized purchase gets its
own line, even when two customizations are identical. Customizations and
product snapshots are stored as JSON text.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from carts.cart.events import CartCleared, CartLineAdded, CartLineRemoved, CartLineUpdated, GuestCartSynced
from carts.domain import carts


class ReviewStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"


@carts.entity(part_of="AccountCart")
class CartLine:
    product_id = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    customization = Text()  # JSON object, null for plain items
    review_status = String(choices=ReviewStatus, default=ReviewStatus.APPROVED.value)
    product = Text()  # JSON product snapshot at the time of the last change
    added_at = DateTime()

    @property
    def is_customized(self) -> bool:
        return bool(self.customization)

    def customization_data(self):
        return json.loads(self.customization) if self.customization else None

    def product_data(self):
        return json.loads(self.product) if self.product else None


def _dump(value) -> str | None:
    return json.dumps(value) if value else None


@carts.aggregate
class AccountCart:
    user_id = Identifier(required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(user_id=user_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def find_line(self, line_id) -> CartLine:
        line = next((i for i in self.lines if str(i.id) == str(line_id)), None)
        if line is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return line

    def _merge(self, product_id, quantity, customization=None, product=None, now=None) -> CartLine:
        now = now or datetime.now(UTC)
        if not customization:
            existing = next(
                (i for i in self.lines if not i.is_customized and str(i.product_id) == str(product_id)),
                None,
            )
            if existing is not None:
                existing.quantity += quantity
                if product:
                    existing.product = _dump(product)
                return existing

        line = CartLine(
            product_id=str(product_id),
            quantity=quantity,
            customization=_dump(customization),
            review_status=(ReviewStatus.PENDING if customization else ReviewStatus.APPROVED).value,
            product=_dump(product),
            added_at=now,
        )
        self.add_lines(line)
        return line

    def add_line(self, product_id, quantity, customization=None, product=None) -> str:
        """Add a product and return the id of the line it landed on."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        line = self._merge(product_id, quantity, customization, product, now)
        self.updated_at = now

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                line_id=str(line.id),
                product_id=str(product_id),
                quantity=quantity,
            )
        )
        return str(line.id)

    def update_line(self, line_id, quantity, customization=None, product=None):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        line = self.find_line(line_id)
        previous_quantity = line.quantity
        line.quantity = quantity
        if customization:
            line.customization = _dump(customization)
            line.review_status = ReviewStatus.PENDING.value
        if product:
            line.product = _dump(product)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineUpdated(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_line(self, line_id):
        line = self.find_line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self):
        removed = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), lines_removed=removed))

    # -------------------------------------------------------------------
    # Guest sync
    # -------------------------------------------------------------------
    def sync_guest_lines(self, guest_lines):
        """Merge uploaded guest lines into this cart.

        Args:
            guest_lines: list of dicts with product_id, quantity, and optional
                customization and product snapshot.
        """
        now = datetime.now(UTC)
        for guest_line in guest_lines:
            quantity = int(guest_line.get("quantity") or 0)
            if quantity < 1:
                raise ValidationError({"items": ["Every synced item needs a quantity of at least 1"]})
            self._merge(
                guest_line["product_id"],
                quantity,
                guest_line.get("customization"),
                guest_line.get("product"),
                now,
            )
        self.updated_at = now

        self.raise_(
            GuestCartSynced(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                lines_merged=len(guest_lines),
            )
        )
