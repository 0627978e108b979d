"""HTTP adapter for ``POST /shipping/rates``."""

from pydantic import ValidationError

from checkout.exceptions import CollaboratorUnavailable
from checkout.http import EnvelopeClient
from checkout.model.shipping import Address, ShippingRate, WeightedItem
from checkout.shipping.port import RateQuoteApi, RateResponse


class HttpRateQuoteApi(RateQuoteApi):
    def __init__(self, client: EnvelopeClient) -> None:
        self.client = client

    async def request_rates(self, address: Address, items: list[WeightedItem]) -> RateResponse:
        data = await self.client.request(
            "POST",
            "/shipping/rates",
            operation="request_rates",
            json={
                "address": address.to_rate_destination(),
                "items": [
                    {
                        "name": item.name,
                        "quantity": item.quantity,
                        "price": item.price,
                        "weight": {"value": item.weight_oz, "units": "ounces"},
                    }
                    for item in items
                ],
            },
        )
        if not isinstance(data, dict):
            raise CollaboratorUnavailable("request_rates", "Malformed rate response")

        try:
            rates = [ShippingRate.model_validate(rate) for rate in data.get("rates") or []]
            recommended = data.get("recommendedRate")
            return RateResponse(
                rates=rates,
                recommended=ShippingRate.model_validate(recommended) if recommended else None,
                warning=data.get("warning"),
            )
        except ValidationError as exc:
            raise CollaboratorUnavailable("request_rates", f"Malformed rate response: {exc.error_count()} errors") from exc
