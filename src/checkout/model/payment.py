"""Payment attempts and the outcomes they resolve to."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import Field

from checkout.model.base import CamelModel


class Provider(Enum):
    STRIPE = "stripe"  # hosted checkout session
    PAYPAL = "paypal"  # create order, approve, capture


class AttemptStatus(Enum):
    CREATED = "created"
    PENDING_CAPTURE = "pending_capture"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    FAILED = "failed"


_RESOLVED = {AttemptStatus.SUCCEEDED, AttemptStatus.CANCELED, AttemptStatus.FAILED}

_VALID_TRANSITIONS = {
    AttemptStatus.CREATED: {AttemptStatus.PENDING_CAPTURE, AttemptStatus.SUCCEEDED, AttemptStatus.CANCELED, AttemptStatus.FAILED},
    AttemptStatus.PENDING_CAPTURE: {AttemptStatus.SUCCEEDED, AttemptStatus.CANCELED, AttemptStatus.FAILED},
    AttemptStatus.SUCCEEDED: set(),
    # The provider session or order stays payable after a cancel return.
    AttemptStatus.CANCELED: {AttemptStatus.PENDING_CAPTURE, AttemptStatus.SUCCEEDED},
    AttemptStatus.FAILED: set(),
}


class PaymentAttempt(CamelModel):
    provider: Provider
    external_id: str | None = None
    status: AttemptStatus = AttemptStatus.CREATED
    result_payment_id: str | None = None
    failure_reason: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_resolved(self) -> bool:
        return self.status in _RESOLVED

    def transition(self, target: AttemptStatus, **changes) -> "PaymentAttempt":
        """Return a copy moved to ``target``.

        Succeeded and failed attempts never move again; a canceled one can
        still be paid.
        """
        if target not in _VALID_TRANSITIONS[self.status]:
            raise ValueError(f"Cannot transition payment attempt from {self.status.value} to {target.value}")
        return self.model_copy(update={"status": target, **changes})


class OutcomeKind(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class PaymentOutcome(CamelModel):
    kind: OutcomeKind
    provider: Provider
    order_id: str | None = None
    transaction_id: str | None = None
    payer_email: str | None = None
    message: str | None = None
    terminal: bool = False
    clean_url: str | None = None
    replace_history: bool = True

    @property
    def succeeded(self) -> bool:
        return self.kind == OutcomeKind.SUCCEEDED


class SettledPayment(CamelModel):
    """The last provider return that was settled.

    Outlives the checkpoint, so a reload that brings the same return back
    replays this outcome instead of settling the payment a second time.
    ``reference`` is the PayPal order id or the Stripe session id.
    """

    provider: Provider
    order_id: str | None = None
    reference: str | None = None
    outcome: PaymentOutcome
