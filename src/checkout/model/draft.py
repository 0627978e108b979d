"""The checkout wizard's working draft and the form values around it."""

from enum import Enum, IntEnum

from pydantic import Field

from checkout.model.base import CamelModel
from checkout.model.customization import Customization
from checkout.model.payment import PaymentAttempt
from checkout.model.shipping import Address, ShippingRate


class CheckoutStep(IntEnum):
    SHIPPING = 1
    PAYMENT = 2
    REVIEW = 3


class PaymentMethod(Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    GOOGLE = "google"


class CustomerInfo(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class OrderLineItem(CamelModel):
    id: str | int | None = None
    product_id: str
    product_name: str = ""
    quantity: int = Field(ge=1)
    price: float = Field(default=0.0, ge=0)  # stored unit price, used when no base price is known
    base_price: float | None = Field(default=None, ge=0)
    customization: Customization | None = None
    weight_oz: float | None = None


class OrderContext(CamelModel):
    """What an existing order hands to checkout: its items and running total."""

    order_id: str
    items: list[OrderLineItem] = Field(min_length=1)
    running_total: float = Field(default=0.0, ge=0)


class CheckoutForm(CamelModel):
    """Form values snapshotted before a provider redirect."""

    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    shipping_address: Address = Field(default_factory=Address)
    notes: str = ""


class OrderDraft(CamelModel):
    order_id: str
    items: list[OrderLineItem]
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    shipping_address: Address = Field(default_factory=Address)
    selected_shipping_rate: ShippingRate | None = None
    payment_method: PaymentMethod = PaymentMethod.STRIPE
    current_step: CheckoutStep = CheckoutStep.SHIPPING
    terms_accepted: bool = False
    notes: str = ""
    running_total: float = 0.0
    attempt: PaymentAttempt | None = None

    @classmethod
    def from_context(cls, context: OrderContext, customer_info: CustomerInfo | None = None) -> "OrderDraft":
        return cls(
            order_id=context.order_id,
            items=list(context.items),
            customer_info=customer_info or CustomerInfo(),
            running_total=context.running_total,
        )

    def form(self) -> CheckoutForm:
        return CheckoutForm(
            customer_info=self.customer_info,
            shipping_address=self.shipping_address,
            notes=self.notes,
        )

    def with_form(self, form: CheckoutForm) -> "OrderDraft":
        return self.model_copy(
            update={
                "customer_info": form.customer_info,
                "shipping_address": form.shipping_address,
                "notes": form.notes,
            }
        )
