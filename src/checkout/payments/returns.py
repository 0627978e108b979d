"""Provider return handling as data.

A redirect to a payment provider is a full navigation away from the app, so
the attempt in flight is written to a checkpoint beforehand and the return is
decided from the query parameters the provider sent the browser back with,
that checkpoint, and the record of the last settled payment, which outlives
the checkpoint. ``parse_return`` recognises the four return shapes;
``resolve_return`` is a pure function from those to what should happen next.
Performing the capture call is left to the orchestrator.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import structlog

from checkout.model.draft import OrderDraft
from checkout.model.payment import AttemptStatus, OutcomeKind, PaymentAttempt, PaymentOutcome, Provider, SettledPayment

logger = structlog.get_logger(__name__)

STRIPE_CANCELED_MESSAGE = "Payment was canceled. You can try again or choose a different payment method."
PAYPAL_CANCELED_MESSAGE = "PayPal payment was canceled. You can try again or choose a different payment method."
MISSING_TOKEN_MESSAGE = "PayPal did not return an approval token. Please try again."

RETURN_PARAMS = ("success", "canceled", "paypal_success", "paypal_canceled", "orderId", "token", "PayerID", "session_id")


class ReturnKind(Enum):
    STRIPE_SUCCESS = "stripe_success"
    STRIPE_CANCELED = "stripe_canceled"
    PAYPAL_SUCCESS = "paypal_success"
    PAYPAL_CANCELED = "paypal_canceled"

    @property
    def provider(self) -> Provider:
        return Provider.PAYPAL if self.value.startswith("paypal") else Provider.STRIPE

    @property
    def is_success(self) -> bool:
        return self in (ReturnKind.STRIPE_SUCCESS, ReturnKind.PAYPAL_SUCCESS)


@dataclass(frozen=True)
class ReturnSignal:
    kind: ReturnKind
    order_id: str | None = None
    token: str | None = None


@dataclass(frozen=True)
class Resolution:
    """What to do about a return.

    Either ``outcome`` is final, or ``capture_token`` names the provider order
    that has to be captured before the outcome can be decided. ``attempt`` is
    the checkpointed attempt after the transition, when there is one.
    """

    outcome: PaymentOutcome | None = None
    capture_token: str | None = None
    attempt: PaymentAttempt | None = None
    clear_checkpoint: bool = False
    order_id: str | None = None
    replayed: bool = False


def _flag(params: Mapping[str, str], name: str) -> bool:
    return str(params.get(name, "")).lower() == "true"


def parse_return(params: Mapping[str, str]) -> ReturnSignal | None:
    """Recognise a provider return; any other query is a normal page load."""
    order_id = params.get("orderId") or None
    if _flag(params, "success"):
        return ReturnSignal(ReturnKind.STRIPE_SUCCESS, order_id=order_id)
    if _flag(params, "canceled"):
        return ReturnSignal(ReturnKind.STRIPE_CANCELED, order_id=order_id)
    if _flag(params, "paypal_success"):
        return ReturnSignal(ReturnKind.PAYPAL_SUCCESS, order_id=order_id, token=params.get("token") or None)
    if _flag(params, "paypal_canceled"):
        return ReturnSignal(ReturnKind.PAYPAL_CANCELED, order_id=order_id, token=params.get("token") or None)
    return None


def _outcome_from_attempt(attempt: PaymentAttempt, order_id: str) -> PaymentOutcome:
    kind = {
        AttemptStatus.SUCCEEDED: OutcomeKind.SUCCEEDED,
        AttemptStatus.CANCELED: OutcomeKind.CANCELED,
    }.get(attempt.status, OutcomeKind.FAILED)
    return PaymentOutcome(
        kind=kind,
        provider=attempt.provider,
        order_id=order_id,
        transaction_id=attempt.result_payment_id,
        message=attempt.failure_reason,
        terminal=kind == OutcomeKind.SUCCEEDED,
    )


def _canceled_message(provider: Provider) -> str:
    return PAYPAL_CANCELED_MESSAGE if provider == Provider.PAYPAL else STRIPE_CANCELED_MESSAGE


def matches_checkpoint(signal: ReturnSignal, checkpoint: OrderDraft | None) -> bool:
    if checkpoint is None:
        return False
    return not signal.order_id or signal.order_id == checkpoint.order_id


def settles(signal: ReturnSignal, settled: SettledPayment | None, attempt: PaymentAttempt | None = None) -> bool:
    """Whether ``settled`` already answers this return.

    Returns are matched on the provider reference when both sides have one,
    else on the order id. A settled success answers every return for that
    payment; a settled failure only answers success returns.
    """
    if settled is None or settled.provider != signal.kind.provider:
        return False
    reference = signal.token or (attempt.external_id if attempt else None)
    if reference and settled.reference:
        same_payment = reference == settled.reference
    else:
        same_payment = bool(signal.order_id) and signal.order_id == settled.order_id
    return same_payment and (settled.outcome.succeeded or signal.kind.is_success)


def resolve_return(
    signal: ReturnSignal,
    checkpoint: OrderDraft | None,
    settled: SettledPayment | None = None,
) -> Resolution:
    provider = signal.kind.provider

    if checkpoint is not None and not matches_checkpoint(signal, checkpoint):
        logger.warning(
            "Return does not match the checkpointed order",
            return_order_id=signal.order_id,
            checkpoint_order_id=checkpoint.order_id,
        )
        checkpoint = None

    order_id = signal.order_id or (checkpoint.order_id if checkpoint else None)
    attempt = checkpoint.attempt if checkpoint else None
    if attempt is not None and attempt.provider != provider:
        attempt = None

    if settles(signal, settled, attempt):
        logger.info("Replaying settled payment", order_id=settled.order_id, reference=settled.reference)
        return Resolution(
            outcome=settled.outcome,
            clear_checkpoint=checkpoint is not None and settled.outcome.succeeded,
            order_id=settled.order_id or order_id,
            replayed=True,
        )

    # A canceled attempt is reopened by a success return: the shopper went
    # back to the provider page and paid after all.
    reopened = attempt is not None and attempt.status == AttemptStatus.CANCELED and signal.kind.is_success
    if attempt is not None and attempt.is_resolved and not reopened:
        # Already decided on an earlier load; never act on it twice.
        return Resolution(
            outcome=_outcome_from_attempt(attempt, order_id),
            attempt=attempt,
            clear_checkpoint=attempt.status == AttemptStatus.SUCCEEDED,
            order_id=order_id,
        )

    if signal.kind in (ReturnKind.STRIPE_CANCELED, ReturnKind.PAYPAL_CANCELED):
        message = _canceled_message(provider)
        return Resolution(
            outcome=PaymentOutcome(kind=OutcomeKind.CANCELED, provider=provider, order_id=order_id, message=message),
            attempt=attempt.transition(AttemptStatus.CANCELED, failure_reason=message) if attempt else None,
            order_id=order_id,
        )

    if signal.kind == ReturnKind.STRIPE_SUCCESS:
        transaction_id = attempt.external_id if attempt else None
        return Resolution(
            outcome=PaymentOutcome(
                kind=OutcomeKind.SUCCEEDED,
                provider=provider,
                order_id=order_id,
                transaction_id=transaction_id,
                terminal=True,
            ),
            attempt=attempt.transition(AttemptStatus.SUCCEEDED, result_payment_id=transaction_id) if attempt else None,
            clear_checkpoint=checkpoint is not None,
            order_id=order_id,
        )

    token = signal.token or (attempt.external_id if attempt else None)
    if not token:
        return Resolution(
            outcome=PaymentOutcome(
                kind=OutcomeKind.FAILED, provider=provider, order_id=order_id, message=MISSING_TOKEN_MESSAGE
            ),
            attempt=attempt.transition(AttemptStatus.FAILED, failure_reason=MISSING_TOKEN_MESSAGE) if attempt else None,
            order_id=order_id,
        )

    pending = attempt
    if attempt is not None and attempt.status in (AttemptStatus.CREATED, AttemptStatus.CANCELED):
        pending = attempt.transition(AttemptStatus.PENDING_CAPTURE)
    return Resolution(capture_token=token, attempt=pending, order_id=order_id)
