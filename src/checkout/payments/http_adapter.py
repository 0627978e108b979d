"""HTTP adapter for the storefront backend's payment endpoints."""

from checkout.exceptions import PaymentIntegrationError
from checkout.http import EnvelopeClient
from checkout.payments.port import CaptureResult, CheckoutSession, PaymentProvider, ProviderOrder


def _drop_none(payload: dict) -> dict:
    return {key: value for key, value in payload.items() if value is not None}


class HttpPaymentProvider(PaymentProvider):
    def __init__(self, client: EnvelopeClient) -> None:
        self.client = client

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
        data = await self.client.request(
            "POST",
            "/payments/stripe/checkout-session",
            operation="create_checkout_session",
            json=_drop_none(
                {
                    "lineItems": line_items,
                    "shippingCost": shipping_cost,
                    "taxAmount": tax_amount,
                    "successUrl": success_url,
                    "cancelUrl": cancel_url,
                    "customerInfo": customer_info,
                    "shippingAddress": shipping_address,
                    "metadata": metadata,
                }
            ),
        )
        if not isinstance(data, dict) or not data.get("url"):
            raise PaymentIntegrationError("stripe", "Checkout session response did not include a URL")
        return CheckoutSession(session_id=data.get("sessionId") or data.get("id"), url=data["url"])

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
        data = await self.client.request(
            "POST",
            "/payments/paypal/orders",
            operation="create_order",
            json=_drop_none(
                {
                    "amount": amount,
                    "currency": currency,
                    "description": description,
                    "items": items,
                    "customerInfo": customer_info,
                    "shippingAddress": shipping_address,
                    "metadata": metadata,
                    "returnUrl": return_url,
                    "cancelUrl": cancel_url,
                }
            ),
        )
        if not isinstance(data, dict) or not data.get("approvalUrl"):
            raise PaymentIntegrationError("paypal", "PayPal order response did not include an approval URL")
        order_id = data.get("orderId") or data.get("id")
        if not order_id:
            raise PaymentIntegrationError("paypal", "PayPal order response did not include an order id")
        return ProviderOrder(order_id=str(order_id), approval_url=data["approvalUrl"])

    async def capture_order(self, order_id, metadata=None) -> CaptureResult:
        data = await self.client.request(
            "POST",
            f"/payments/paypal/orders/{order_id}/capture",
            operation="capture_order",
            json=_drop_none({"orderId": order_id, "metadata": metadata}),
        )
        if not isinstance(data, dict) or "status" not in data:
            raise PaymentIntegrationError("paypal", "Capture response did not include a status")
        payer = data.get("payer") or {}
        return CaptureResult(
            capture_id=data.get("id"),
            status=str(data["status"]),
            payer_email=payer.get("email_address") or payer.get("email"),
            failure_reason=None if data["status"] == "COMPLETED" else data.get("message"),
        )
