"""Checkout wizard: Shipping -> Payment -> Review -> Submitted.

The wizard owns one ``OrderDraft`` and moves it forward one step at a time.
Backward moves to Shipping or Payment are always allowed and keep every value
already entered. Each change is written to client storage so that a provider
redirect, or a plain refresh, can pick the draft up again through ``resume``.
"""

import structlog
from protean.exceptions import ValidationError

from checkout.exceptions import (
    CollaboratorUnavailable,
    MissingOrderContext,
    PaymentIntegrationError,
    StorageCapacityExceeded,
)
from checkout.model.draft import (
    CheckoutForm,
    CheckoutStep,
    CustomerInfo,
    OrderContext,
    OrderDraft,
    PaymentMethod,
)
from checkout.model.payment import PaymentOutcome
from checkout.model.shipping import RateQuote
from checkout.payments import returns
from checkout.payments.orchestrator import PaymentOrchestrator
from checkout.pricing.engine import DEFAULT_POLICY, PricingPolicy, Totals, compute_totals, round_currency
from checkout.shipping.client import ShippingRateClient
from checkout.utils.logging import bind_checkout_context, clear_checkout_context

logger = structlog.get_logger(__name__)

CAPACITY_WARNING = "Your checkout details are too large to save on this device. They may not survive a page refresh."
TERMS_REQUIRED = "Please accept the terms and conditions to place your order."

_CUSTOMER_FIELDS = ("first_name", "last_name", "email", "phone")
_ADDRESS_FIELDS = ("street", "apartment", "city", "state", "postal_code")

REQUIRED_FIELDS = {
    "first_name": "First name is required",
    "last_name": "Last name is required",
    "email": "Email is required",
    "phone": "Phone number is required",
    "street": "Street address is required",
    "city": "City is required",
    "state": "State is required",
    "postal_code": "ZIP code is required",
}


def validate_shipping_step(draft: OrderDraft) -> None:
    """Raise ``ValidationError`` naming every missing contact or address field."""
    values = {
        **{name: getattr(draft.customer_info, name) for name in _CUSTOMER_FIELDS},
        **{name: getattr(draft.shipping_address, name) for name in _ADDRESS_FIELDS},
    }
    errors = {name: [message] for name, message in REQUIRED_FIELDS.items() if not str(values[name]).strip()}
    if errors:
        raise ValidationError(errors)


class CheckoutWizard:
    def __init__(
        self,
        draft: OrderDraft,
        orchestrator: PaymentOrchestrator,
        rate_client: ShippingRateClient,
        policy: PricingPolicy = DEFAULT_POLICY,
    ) -> None:
        self.draft = draft
        self.orchestrator = orchestrator
        self.rate_client = rate_client
        self.policy = policy

        self.rate_quote: RateQuote | None = None
        self.outcome: PaymentOutcome | None = None
        self.payment_error: str | None = None
        self.warning: str | None = None
        self.is_processing = False
        self.is_loading_rates = False

    # -------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------
    @classmethod
    def enter(
        cls,
        context: OrderContext | None,
        orchestrator: PaymentOrchestrator,
        rate_client: ShippingRateClient,
        policy: PricingPolicy = DEFAULT_POLICY,
        customer_info: CustomerInfo | None = None,
    ) -> "CheckoutWizard":
        """Start checkout for an order context; there is no checkout without one."""
        if context is None or not context.items:
            raise MissingOrderContext("Checkout requires an order with at least one item")

        bind_checkout_context(order_id=context.order_id)
        wizard = cls(OrderDraft.from_context(context, customer_info), orchestrator, rate_client, policy)
        wizard._persist()
        logger.info("Checkout entered", order_id=context.order_id, item_count=len(context.items))
        return wizard

    @classmethod
    async def resume(
        cls,
        query_params,
        orchestrator: PaymentOrchestrator,
        rate_client: ShippingRateClient,
        context: OrderContext | None = None,
        policy: PricingPolicy = DEFAULT_POLICY,
    ) -> "CheckoutWizard":
        """Rebuild the wizard on page load.

        The checkpointed draft and form values are restored first; only then
        is a provider return (if the query carries one) resolved against it.
        Without a checkpoint this is the same as ``enter(context)``.
        """
        signal = returns.parse_return(query_params)
        draft, form = orchestrator.load_checkpoint()

        if draft is not None and context is not None and signal is None and draft.order_id != context.order_id:
            logger.info("Discarding checkpoint for a different order", checkpoint_order_id=draft.order_id)
            draft = None

        if draft is None:
            if signal is None or context is not None:
                wizard = cls.enter(context, orchestrator, rate_client, policy)
            else:
                raise MissingOrderContext("No checkpointed order to resume")
        else:
            if form is not None:
                draft = draft.with_form(form)
            bind_checkout_context(order_id=draft.order_id)
            wizard = cls(draft, orchestrator, rate_client, policy)
            if draft.selected_shipping_rate is not None:
                rate = draft.selected_shipping_rate
                wizard.rate_quote = RateQuote(rates=[rate], recommended=rate)

        if signal is not None:
            wizard._apply_outcome(await orchestrator.resolve_return(query_params))
        return wizard

    # -------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------
    @property
    def step(self) -> CheckoutStep:
        return self.draft.current_step

    @property
    def is_submitted(self) -> bool:
        return self.outcome is not None and self.outcome.succeeded

    @property
    def can_submit(self) -> bool:
        return self.step == CheckoutStep.REVIEW and self.draft.terms_accepted and not self.is_processing

    @property
    def submit_blocked_reason(self) -> str | None:
        if self.is_processing:
            return "Your payment is being prepared."
        if not self.draft.terms_accepted:
            return TERMS_REQUIRED
        return None

    def totals(self) -> Totals:
        rate = self.draft.selected_shipping_rate if self.step >= CheckoutStep.PAYMENT else None
        return compute_totals(self.draft.items, rate, self.policy)

    def display_total(self) -> str:
        """Order total for display; before Payment it is a floor marked with ``+``."""
        totals = self.totals()
        if self.step < CheckoutStep.PAYMENT:
            return f"${round_currency(totals.subtotal + totals.tax):.2f}+"
        return f"${round_currency(totals.total):.2f}"

    # -------------------------------------------------------------------
    # Form
    # -------------------------------------------------------------------
    def update_form(self, **fields) -> None:
        unknown = [name for name in fields if name not in (*_CUSTOMER_FIELDS, *_ADDRESS_FIELDS, "notes")]
        if unknown:
            raise ValidationError({name: ["Unknown checkout field"] for name in unknown})

        customer = {k: v for k, v in fields.items() if k in _CUSTOMER_FIELDS}
        address = {k: v for k, v in fields.items() if k in _ADDRESS_FIELDS}
        update = {}
        if customer:
            update["customer_info"] = self.draft.customer_info.model_copy(update=customer)
        if address:
            update["shipping_address"] = self.draft.shipping_address.model_copy(update=address)
            if self.draft.selected_shipping_rate is not None:
                # Quoted for the old destination.
                update["selected_shipping_rate"] = None
                self.rate_quote = None
        if "notes" in fields:
            update["notes"] = fields["notes"]
        self.draft = self.draft.model_copy(update=update)
        self._persist()

    def select_rate(self, service_code: str) -> None:
        rates = self.rate_quote.rates if self.rate_quote else []
        rate = next((r for r in rates if r.service_code == service_code), None)
        if rate is None:
            raise ValidationError({"selected_shipping_rate": [f"Shipping option {service_code} is not available"]})
        self.draft = self.draft.model_copy(update={"selected_shipping_rate": rate})
        self._persist()

    def select_payment_method(self, method: PaymentMethod | str) -> None:
        method = PaymentMethod(method) if isinstance(method, str) else method
        self.draft = self.draft.model_copy(update={"payment_method": method})
        self.payment_error = None
        self._persist()

    def accept_terms(self, accepted: bool = True) -> None:
        self.draft = self.draft.model_copy(update={"terms_accepted": accepted})
        self._persist()

    # -------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------
    async def next_step(self) -> CheckoutStep:
        if self.is_submitted:
            raise ValidationError({"current_step": ["This order has already been submitted"]})

        if self.step == CheckoutStep.SHIPPING:
            validate_shipping_step(self.draft)
            await self._quote_rates()
            self._move_to(CheckoutStep.PAYMENT)
        elif self.step == CheckoutStep.PAYMENT:
            if self.draft.selected_shipping_rate is None:
                raise ValidationError({"selected_shipping_rate": ["Please choose a shipping option"]})
            self._move_to(CheckoutStep.REVIEW)
        else:
            raise ValidationError({"current_step": ["Review is the last step; place the order to continue"]})
        return self.step

    def go_back(self, step: CheckoutStep | int | None = None) -> CheckoutStep:
        target = CheckoutStep(step) if step is not None else CheckoutStep(max(self.step - 1, CheckoutStep.SHIPPING))
        if self.is_submitted:
            raise ValidationError({"current_step": ["This order has already been submitted"]})
        if target > self.step:
            raise ValidationError({"current_step": ["Cannot skip ahead to a later step"]})
        self._move_to(target)
        return self.step

    def _move_to(self, step: CheckoutStep) -> None:
        logger.debug("Checkout step changed", order_id=self.draft.order_id, from_step=self.step.name, to_step=step.name)
        self.draft = self.draft.model_copy(update={"current_step": step})
        self._persist()

    async def _quote_rates(self) -> None:
        self.is_loading_rates = True
        try:
            quote = await self.rate_client.get_rates(self.draft.shipping_address, self.draft.items)
        finally:
            self.is_loading_rates = False
        if quote is None:
            return

        self.rate_quote = quote
        self.warning = quote.warning
        selected = self.draft.selected_shipping_rate
        if selected is None or selected.service_code not in {r.service_code for r in quote.rates}:
            self.draft = self.draft.model_copy(update={"selected_shipping_rate": quote.recommended})

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    async def place_order(self) -> str | None:
        """Start the payment attempt and return the URL to send the browser to.

        Returns ``None`` while a previous attempt is still being created, and
        when the attempt could not be started (``payment_error`` says why).
        """
        if self.step != CheckoutStep.REVIEW:
            raise ValidationError({"current_step": ["Orders can only be placed from the review step"]})
        if not self.draft.terms_accepted:
            raise ValidationError({"terms_accepted": [TERMS_REQUIRED]})
        if self.is_processing:
            return None

        self.is_processing = True
        self.payment_error = None
        try:
            url = await self.orchestrator.start_attempt(self.draft.payment_method, self.draft)
        except (PaymentIntegrationError, CollaboratorUnavailable) as exc:
            self.payment_error = exc.reason
            logger.warning("Payment attempt could not be started", order_id=self.draft.order_id, error=exc.reason)
            return None
        except StorageCapacityExceeded:
            self.warning = CAPACITY_WARNING
            self.payment_error = "We couldn't save your checkout before leaving for payment. Please try again."
            return None
        finally:
            self.is_processing = False

        checkpoint, _form = self.orchestrator.load_checkpoint()
        if checkpoint is not None:
            self.draft = self.draft.model_copy(update={"attempt": checkpoint.attempt})
        return url

    def cancel(self) -> None:
        """Abandon checkout and forget the checkpoint."""
        logger.info("Checkout canceled", order_id=self.draft.order_id)
        self.orchestrator.clear_checkpoint()
        self.outcome = None
        self.payment_error = None
        clear_checkout_context()

    def dismiss_error(self) -> None:
        self.payment_error = None

    def _apply_outcome(self, outcome: PaymentOutcome | None) -> None:
        if outcome is None:
            return
        self.outcome = outcome
        if outcome.succeeded:
            self.payment_error = None
            return

        # Declined or canceled: back to Payment with the draft intact.
        self.payment_error = outcome.message
        checkpoint, _form = self.orchestrator.load_checkpoint()
        if checkpoint is not None:
            self.draft = self.draft.model_copy(update={"attempt": checkpoint.attempt})
        self.draft = self.draft.model_copy(update={"current_step": CheckoutStep.PAYMENT})
        self._persist()

    # -------------------------------------------------------------------
    # Persistence and view
    # -------------------------------------------------------------------
    def _persist(self) -> None:
        if self.is_submitted:
            return
        try:
            self.orchestrator.save_checkpoint(self.draft, self.draft.form())
        except StorageCapacityExceeded as exc:
            logger.warning("Checkout draft not persisted", key=exc.key, size=exc.size, capacity=exc.capacity)
            self.warning = CAPACITY_WARNING

    def form(self) -> CheckoutForm:
        return self.draft.form()

    def view(self) -> dict:
        """Plain snapshot of everything a UI needs to render the current step."""
        totals = self.totals().rounded()
        return {
            "order_id": self.draft.order_id,
            "step": "submitted" if self.is_submitted else self.step.name.lower(),
            "items": [item.to_wire() for item in self.draft.items],
            "form": self.draft.form().to_wire(),
            "payment_method": self.draft.payment_method.value,
            "terms_accepted": self.draft.terms_accepted,
            "shipping_rates": [r.to_wire() for r in self.rate_quote.rates] if self.rate_quote else [],
            "selected_shipping_rate": (
                self.draft.selected_shipping_rate.to_wire() if self.draft.selected_shipping_rate else None
            ),
            "totals": {
                "subtotal": totals.subtotal,
                "tax": totals.tax,
                "shipping": totals.shipping,
                "total": totals.total,
            },
            "display_total": self.display_total(),
            "is_processing": self.is_processing,
            "is_loading_rates": self.is_loading_rates,
            "can_submit": self.can_submit,
            "submit_blocked_reason": self.submit_blocked_reason,
            "payment_error": self.payment_error,
            "warning": self.warning,
            "outcome": self.outcome.to_wire() if self.outcome else None,
        }
