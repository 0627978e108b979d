"""Cart line items and the product snapshots the catalog returns."""

from enum import Enum

from pydantic import Field, model_validator

from checkout.model.base import CamelModel
from checkout.model.customization import Customization
from checkout.model.shipping import to_ounces

# Standalone custom-creation product: never in the catalog feed, always kept.
CUSTOM_CREATION_PRODUCT_ID = "custom-embroidery"


class ReviewStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"


class Variant(CamelModel):
    id: str | int | None = None
    name: str = ""
    stock: int = 0


class ProductSnapshot(CamelModel):
    """Product data as expanded by the catalog or the authoritative cart."""

    id: str | int
    title: str = ""
    price: float = Field(default=0.0, ge=0)
    image: str | None = None
    status: str = "active"
    weight_oz: float | None = None
    variants: list[Variant] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _weight_in_ounces(cls, data):
        # The catalog reports ``weight: {value, units}``.
        if isinstance(data, dict) and isinstance(data.get("weight"), dict) and data.get("weightOz") is None:
            weight = data["weight"]
            if weight.get("value"):
                data = {**data, "weightOz": to_ounces(float(weight["value"]), weight.get("units") or "ounces")}
        return data

    @property
    def total_stock(self) -> int:
        return sum(max(v.stock or 0, 0) for v in self.variants)


class CartLineItem(CamelModel):
    id: str | int | None = None
    local_id: str | None = None  # guest-tier key until the server assigns an id
    product_id: str
    quantity: int = Field(ge=1)
    customization: Customization | None = None
    server_snapshot: ProductSnapshot | None = Field(default=None, alias="product")
    review_status: ReviewStatus | None = None

    @model_validator(mode="after")
    def _default_review_status(self):
        if self.review_status is None:
            self.review_status = ReviewStatus.PENDING if self.customization is not None else ReviewStatus.APPROVED
        return self

    @property
    def key(self) -> str | None:
        return str(self.id) if self.id is not None else self.local_id

    @property
    def is_customized(self) -> bool:
        return self.customization is not None

    def same_slot(self, product_id: str, customization: Customization | None) -> bool:
        """Customized purchases are unique; plain items share a slot per product."""
        if self.is_customized or customization is not None:
            return False
        return str(self.product_id) == str(product_id)
