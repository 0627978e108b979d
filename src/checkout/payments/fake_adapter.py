"""Fake payment provider: deterministic sessions and orders for testing and development.

Records every call so exactly-once capture can be asserted, and can be
configured to fail, decline, or return no redirect URL.
"""

import asyncio
from uuid import uuid4

from checkout.exceptions import CollaboratorUnavailable, PaymentIntegrationError
from checkout.payments.port import CaptureResult, CheckoutSession, PaymentProvider, ProviderOrder


class FakePaymentProvider(PaymentProvider):
    """Fake provider that always succeeds by default."""

    def __init__(self, base_url: str = "https://payments.example.com") -> None:
        self.base_url = base_url
        self.should_succeed = True
        self.failure_reason = "Payment provider unavailable"
        self.capture_status = "COMPLETED"
        self.omit_redirect_url = False
        self.payer_email = "buyer@example.com"
        self.latency = 0.0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Payment provider unavailable",
        capture_status: str = "COMPLETED",
        omit_redirect_url: bool = False,
    ) -> None:
        """Configure the fake provider behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.capture_status = capture_status
        self.omit_redirect_url = omit_redirect_url

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    async def _call(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.should_succeed:
            raise CollaboratorUnavailable(method, self.failure_reason)

    async def create_checkout_session(
        self,
        line_items,
        success_url,
        cancel_url,
        shipping_cost=0,
        tax_amount=0,
        customer_info=None,
        shipping_address=None,
        metadata=None,
    ) -> CheckoutSession:
        await self._call(
            "create_checkout_session",
            line_items=line_items,
            shipping_cost=shipping_cost,
            tax_amount=tax_amount,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        if self.omit_redirect_url:
            raise PaymentIntegrationError("stripe", "Checkout session response did not include a URL")
        session_id = f"cs_test_{uuid4().hex[:16]}"
        return CheckoutSession(session_id=session_id, url=f"{self.base_url}/checkout/{session_id}")

    async def create_order(
        self,
        amount,
        currency,
        description,
        return_url,
        cancel_url,
        items=None,
        customer_info=None,
        shipping_address=None,
        metadata=None,
    ) -> ProviderOrder:
        await self._call(
            "create_order",
            amount=amount,
            currency=currency,
            description=description,
            return_url=return_url,
            cancel_url=cancel_url,
            items=items,
            metadata=metadata,
        )
        if self.omit_redirect_url:
            raise PaymentIntegrationError("paypal", "PayPal order response did not include an approval URL")
        order_id = f"PAYPAL-{uuid4().hex[:12].upper()}"
        return ProviderOrder(order_id=order_id, approval_url=f"{self.base_url}/approve?token={order_id}")

    async def capture_order(self, order_id, metadata=None) -> CaptureResult:
        await self._call("capture_order", order_id=order_id, metadata=metadata)
        if self.capture_status != "COMPLETED":
            return CaptureResult(
                capture_id=None,
                status=self.capture_status,
                failure_reason="The payment was declined by PayPal.",
            )
        return CaptureResult(capture_id=f"CAPTURE-{uuid4().hex[:10].upper()}", status="COMPLETED", payer_email=self.payer_email)
