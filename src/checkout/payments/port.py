"""Payment provider port (abstract interface).

Both provider integration models go through one collaborator: the hosted
checkout session (Stripe) and the create-then-capture order (PayPal). The
orchestrator programs against this port; ``FakePaymentProvider`` and
``HttpPaymentProvider`` are swapped in ``checkout.services``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutSession:
    """A hosted checkout session to redirect the browser to."""

    session_id: str | None
    url: str


@dataclass(frozen=True)
class ProviderOrder:
    """A provider order awaiting buyer approval."""

    order_id: str
    approval_url: str


@dataclass(frozen=True)
class CaptureResult:
    capture_id: str | None
    status: str
    payer_email: str | None = None
    failure_reason: str | None = None

    @property
    def completed(self) -> bool:
        return self.status == "COMPLETED"


class PaymentProvider(ABC):
    """Abstract payment provider interface.

    Transport failures raise ``CollaboratorUnavailable``; responses that
    cannot be used (no URL, wrong shape) raise ``PaymentIntegrationError``.
    """

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        shipping_cost: int = 0,
        tax_amount: int = 0,
        customer_info: dict | None = None,
        shipping_address: dict | None = None,
        metadata: dict | None = None,
    ) -> CheckoutSession:
        """Open a hosted session. ``shipping_cost`` and ``tax_amount`` are in minor units."""
        ...

    @abstractmethod
    async def create_order(
        self,
        amount: float,
        currency: str,
        description: str,
        return_url: str,
        cancel_url: str,
        items: list[dict] | None = None,
        customer_info: dict | None = None,
        shipping_address: dict | None = None,
        metadata: dict | None = None,
    ) -> ProviderOrder: ...

    @abstractmethod
    async def capture_order(self, order_id: str, metadata: dict | None = None) -> CaptureResult:
        """Capture an approved order. Call at most once per approval."""
        ...
