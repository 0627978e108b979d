"""Payment orchestrator.

Starts provider attempts and resolves provider returns.

``start_attempt`` asks the provider for a redirect target and, before handing
it back, writes the draft (with its new attempt) and the form values to the
checkpoint. ``resolve_return`` runs on every checkout page load: it decides the
outcome from the query and the checkpoint and, for PayPal, performs the single
capture call.
"""

import asyncio
from urllib.parse import urlencode

import structlog

from checkout.cart.projection import project_customization
from checkout.config import CheckoutSettings
from checkout.exceptions import CollaboratorUnavailable, PaymentIntegrationError, StorageCapacityExceeded
from checkout.model.draft import CheckoutForm, CheckoutStep, OrderDraft, PaymentMethod
from checkout.model.payment import AttemptStatus, OutcomeKind, PaymentAttempt, PaymentOutcome, Provider, SettledPayment
from checkout.payments import returns
from checkout.payments.port import PaymentProvider
from checkout.pricing.engine import PricingPolicy, compute_totals, round_currency, to_minor_units, unit_price_for
from checkout.storage.port import DRAFT_KEY, FORM_KEY, SETTLED_KEY, ClientStorage

logger = structlog.get_logger(__name__)

CAPTURE_FAILED_MESSAGE = "Failed to complete PayPal payment. Please contact support."


def provider_for(method: PaymentMethod | Provider | str) -> Provider:
    """Map a payment-method choice to the provider integration behind it."""
    value = method.value if isinstance(method, PaymentMethod | Provider) else str(method)
    try:
        return Provider(value)
    except ValueError:
        raise PaymentIntegrationError(
            value, f"Payment method '{value}' is not supported yet. Please choose another payment method."
        ) from None


def _shipping_address(draft: OrderDraft) -> dict:
    address = draft.shipping_address
    return {
        "line1": address.street,
        "line2": address.apartment,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": "US",
    }


def _customer_info(draft: OrderDraft) -> dict:
    customer = draft.customer_info
    return {"name": customer.full_name, "email": customer.email, "phone": customer.phone}


class PaymentOrchestrator:
    def __init__(
        self,
        provider: PaymentProvider,
        storage: ClientStorage,
        settings: CheckoutSettings | None = None,
        policy: PricingPolicy | None = None,
    ) -> None:
        self.provider = provider
        self.storage = storage
        self.settings = settings or CheckoutSettings()
        self.policy = policy or PricingPolicy.from_settings(self.settings)
        self._captures: dict[str, asyncio.Task] = {}

    # -------------------------------------------------------------------
    # URLs
    # -------------------------------------------------------------------
    @property
    def clean_url(self) -> str:
        """The checkout page with every return parameter stripped."""
        return self.settings.checkout_url

    def return_url(self, **params: str) -> str:
        return f"{self.settings.checkout_url}?{urlencode(params)}"

    # -------------------------------------------------------------------
    # Checkpoint
    # -------------------------------------------------------------------
    def load_checkpoint(self) -> tuple[OrderDraft | None, CheckoutForm | None]:
        return (
            self.storage.load_model(DRAFT_KEY, OrderDraft),
            self.storage.load_model(FORM_KEY, CheckoutForm),
        )

    def save_checkpoint(self, draft: OrderDraft, form: CheckoutForm | None = None) -> None:
        """Persist the draft and its form values.

        Raises:
            StorageCapacityExceeded: the checkpoint does not fit in client storage.
        """
        self.storage.save_model(DRAFT_KEY, self._project_draft(draft))
        self.storage.save_model(FORM_KEY, form or draft.form())

    def clear_checkpoint(self) -> None:
        self.storage.remove(DRAFT_KEY)
        self.storage.remove(FORM_KEY)

    def _project_draft(self, draft: OrderDraft) -> OrderDraft:
        limit = self.settings.preview_bytes_limit
        items = [
            item.model_copy(update={"customization": project_customization(item.customization, limit)})
            if item.customization is not None
            else item
            for item in draft.items
        ]
        return draft.model_copy(update={"items": items})

    def load_settled(self) -> SettledPayment | None:
        return self.storage.load_model(SETTLED_KEY, SettledPayment)

    def _settle(self, outcome: PaymentOutcome, reference: str | None) -> bool:
        """Record a settled return; ``False`` when it could not be stored."""
        settled = SettledPayment(
            provider=outcome.provider,
            order_id=outcome.order_id,
            reference=reference,
            outcome=outcome,
        )
        try:
            self.storage.save_model(SETTLED_KEY, settled)
        except StorageCapacityExceeded as exc:
            logger.warning("Settled payment not recorded", key=exc.key, size=exc.size, capacity=exc.capacity)
            return False
        return True

    def _update_checkpoint(self, draft: OrderDraft | None, attempt: PaymentAttempt | None) -> None:
        if draft is None or attempt is None:
            return
        try:
            self.storage.save_model(DRAFT_KEY, self._project_draft(draft.model_copy(update={"attempt": attempt})))
        except StorageCapacityExceeded as exc:
            logger.warning("Checkpoint not updated", key=exc.key, size=exc.size, capacity=exc.capacity)

    # -------------------------------------------------------------------
    # Attempts
    # -------------------------------------------------------------------
    async def start_attempt(self, method: PaymentMethod | Provider, draft: OrderDraft) -> str:
        """Create a provider attempt for ``draft`` and return the redirect URL.

        The checkpoint is written before the URL is returned; if it cannot be
        written the attempt is abandoned and ``StorageCapacityExceeded`` is
        raised, since the return could not be resumed.
        """
        provider = provider_for(method)
        if draft.attempt is not None and not draft.attempt.is_resolved:
            logger.info(
                "Superseding unresolved payment attempt",
                order_id=draft.order_id,
                previous_provider=draft.attempt.provider.value,
                previous_external_id=draft.attempt.external_id,
            )

        if provider == Provider.STRIPE:
            external_id, url = await self._start_checkout_session(draft)
        else:
            external_id, url = await self._start_provider_order(draft)

        if not url:
            raise PaymentIntegrationError(provider.value, "Provider did not return a redirect URL")

        attempt = PaymentAttempt(provider=provider, external_id=external_id)
        checkpoint = draft.model_copy(update={"attempt": attempt, "current_step": CheckoutStep.PAYMENT})
        self.save_checkpoint(checkpoint)

        logger.info(
            "Payment attempt started",
            order_id=draft.order_id,
            provider=provider.value,
            external_id=external_id,
        )
        return url

    async def _start_checkout_session(self, draft: OrderDraft) -> tuple[str | None, str]:
        line_items = [
            {
                "price_data": {
                    "currency": self.policy.currency,
                    "product_data": {"name": item.product_name or str(item.product_id), "description": f"Qty {item.quantity}"},
                    "unit_amount": to_minor_units(unit_price_for(item)),
                },
                "quantity": item.quantity,
            }
            for item in draft.items
        ]
        # The session must charge exactly the draft total; tax takes up any
        # cent lost to rounding the unit amounts.
        totals = compute_totals(draft.items, draft.selected_shipping_rate, self.policy)
        items_amount = sum(li["price_data"]["unit_amount"] * li["quantity"] for li in line_items)
        shipping_cost = to_minor_units(totals.shipping)
        session = await self.provider.create_checkout_session(
            line_items=line_items,
            shipping_cost=shipping_cost,
            tax_amount=to_minor_units(totals.total) - items_amount - shipping_cost,
            success_url=self.return_url(success="true", orderId=draft.order_id),
            cancel_url=self.return_url(canceled="true", orderId=draft.order_id),
            customer_info=_customer_info(draft),
            shipping_address=_shipping_address(draft),
            metadata={
                "orderId": str(draft.order_id),
                "customerEmail": draft.customer_info.email,
                "customerName": draft.customer_info.full_name,
            },
        )
        return session.session_id, session.url

    async def _start_provider_order(self, draft: OrderDraft) -> tuple[str | None, str]:
        totals = compute_totals(draft.items, draft.selected_shipping_rate, self.policy)
        items = [
            {
                "name": item.product_name or str(item.product_id),
                "quantity": item.quantity,
                "unitAmount": round_currency(unit_price_for(item)),
                "currency": self.policy.currency,
            }
            for item in draft.items
        ]
        order = await self.provider.create_order(
            amount=round_currency(totals.total),
            currency=self.policy.currency,
            description=f"Order {draft.order_id} - {len(draft.items)} item(s)",
            return_url=self.return_url(paypal_success="true", orderId=draft.order_id),
            cancel_url=self.return_url(paypal_canceled="true", orderId=draft.order_id),
            items=items,
            customer_info=_customer_info(draft),
            shipping_address=_shipping_address(draft),
            metadata={
                "orderId": str(draft.order_id),
                "customerEmail": draft.customer_info.email,
                "customerName": draft.customer_info.full_name,
            },
        )
        return order.order_id, order.approval_url

    # -------------------------------------------------------------------
    # Returns
    # -------------------------------------------------------------------
    async def resolve_return(self, query_params) -> PaymentOutcome | None:
        """Resolve a provider return, or ``None`` for a normal page load."""
        signal = returns.parse_return(query_params)
        if signal is None:
            return None

        draft, _form = self.load_checkpoint()
        matched = returns.matches_checkpoint(signal, draft)
        resolution = returns.resolve_return(signal, draft, self.load_settled())

        if resolution.capture_token is None:
            outcome = resolution.outcome
            if outcome.succeeded and not resolution.replayed:
                self._settle(outcome, outcome.transaction_id)
            if resolution.clear_checkpoint:
                self.clear_checkpoint()
            elif matched:
                self._update_checkpoint(draft, resolution.attempt)
        else:
            if matched:
                self._update_checkpoint(draft, resolution.attempt)
            outcome = await self._capture_once(resolution, draft if matched else None)

        logger.info(
            "Payment return resolved",
            order_id=outcome.order_id,
            provider=outcome.provider.value,
            outcome=outcome.kind.value,
        )
        return outcome.model_copy(update={"clean_url": self.clean_url, "replace_history": True})

    async def _capture_once(self, resolution: returns.Resolution, draft: OrderDraft | None) -> PaymentOutcome:
        token = resolution.capture_token
        task = self._captures.get(token)
        if task is None:
            task = asyncio.ensure_future(self._capture(token, resolution, draft))
            self._captures[token] = task
        else:
            logger.info("Capture already in progress or done for this return", token=token)
        return await asyncio.shield(task)

    async def _capture(self, token: str, resolution: returns.Resolution, draft: OrderDraft | None) -> PaymentOutcome:
        outcome = await self._capture_outcome(token, resolution, draft)
        if self._settle(outcome, token):
            # From here on a return with this token replays the settled record.
            self._captures.pop(token, None)
        if outcome.succeeded and draft is not None:
            self.clear_checkpoint()
        return outcome

    async def _capture_outcome(
        self, token: str, resolution: returns.Resolution, draft: OrderDraft | None
    ) -> PaymentOutcome:
        attempt = resolution.attempt
        customer = draft.customer_info if draft else None
        metadata = {"customerEmail": customer.email, "customerName": customer.full_name} if customer else None

        try:
            result = await self.provider.capture_order(token, metadata=metadata)
        except (CollaboratorUnavailable, PaymentIntegrationError) as exc:
            logger.warning("PayPal capture failed", token=token, order_id=resolution.order_id, error=str(exc))
            if attempt is not None:
                self._update_checkpoint(draft, attempt.transition(AttemptStatus.FAILED, failure_reason=CAPTURE_FAILED_MESSAGE))
            return PaymentOutcome(
                kind=OutcomeKind.FAILED,
                provider=Provider.PAYPAL,
                order_id=resolution.order_id,
                message=CAPTURE_FAILED_MESSAGE,
            )

        if not result.completed:
            message = result.failure_reason or f"PayPal payment was not completed (status {result.status})."
            logger.warning("PayPal capture declined", token=token, status=result.status)
            if attempt is not None:
                self._update_checkpoint(draft, attempt.transition(AttemptStatus.FAILED, failure_reason=message))
            return PaymentOutcome(
                kind=OutcomeKind.FAILED,
                provider=Provider.PAYPAL,
                order_id=resolution.order_id,
                message=message,
            )

        return PaymentOutcome(
            kind=OutcomeKind.SUCCEEDED,
            provider=Provider.PAYPAL,
            order_id=resolution.order_id,
            transaction_id=result.capture_id or token,
            payer_email=result.payer_email,
            terminal=True,
        )
