"""Tests for the checkout records."""

import pytest
from checkout.model.cart import CartLineItem, ProductSnapshot, ReviewStatus, Variant
from checkout.model.customization import Customization
from checkout.model.draft import CheckoutForm, CheckoutStep, CustomerInfo, OrderContext, OrderDraft
from checkout.model.payment import AttemptStatus, PaymentAttempt, Provider
from checkout.model.shipping import Address, ShippingRate, to_ounces
from pydantic import ValidationError


class TestCartLineItem:
    def test_plain_item_is_approved(self):
        item = CartLineItem(product_id="p1", quantity=1)
        assert item.review_status == ReviewStatus.APPROVED

    def test_customized_item_awaits_review(self):
        item = CartLineItem(product_id="p1", quantity=1, customization=Customization())
        assert item.review_status == ReviewStatus.PENDING

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            CartLineItem(product_id="p1", quantity=0)

    def test_plain_items_share_a_slot_per_product(self):
        item = CartLineItem(product_id="p1", quantity=1)
        assert item.same_slot("p1", None)
        assert not item.same_slot("p2", None)

    def test_customized_items_never_share_a_slot(self):
        customized = CartLineItem(product_id="p1", quantity=1, customization=Customization())
        plain = CartLineItem(product_id="p1", quantity=1)
        assert not customized.same_slot("p1", None)
        assert not plain.same_slot("p1", Customization())

    def test_key_prefers_server_id(self):
        assert CartLineItem(id=7, local_id="abc", product_id="p1", quantity=1).key == "7"
        assert CartLineItem(local_id="abc", product_id="p1", quantity=1).key == "abc"

    def test_reads_server_payload(self):
        item = CartLineItem.model_validate(
            {
                "id": 12,
                "productId": "p1",
                "quantity": 2,
                "reviewStatus": "approved",
                "product": {"id": "p1", "title": "Tote", "price": 20, "variants": [{"stock": 3}, {"stock": 4}]},
            }
        )
        assert item.server_snapshot.title == "Tote"
        assert item.server_snapshot.total_stock == 7


class TestProductSnapshot:
    def test_total_stock_ignores_negative_counts(self):
        product = ProductSnapshot(id="p1", variants=[Variant(stock=5), Variant(stock=-2)])
        assert product.total_stock == 5

    def test_weight_is_converted_to_ounces(self):
        product = ProductSnapshot.model_validate({"id": "p1", "weight": {"value": 2, "units": "pounds"}})
        assert product.weight_oz == 32


class TestWeights:
    @pytest.mark.parametrize(
        "value,units,expected",
        [(10, "ounces", 10), (1, "pounds", 16), (283.5, "grams", 10), (1, "kilograms", 35.274)],
    )
    def test_to_ounces(self, value, units, expected):
        assert to_ounces(value, units) == pytest.approx(expected)

    def test_minimum_weight_is_one_ounce(self):
        assert to_ounces(5, "grams") == 1.0

    def test_unknown_units_are_rejected(self):
        with pytest.raises(ValueError):
            to_ounces(1, "stone")


class TestAddress:
    def test_complete_address(self, address):
        assert address.is_complete

    def test_apartment_is_optional(self):
        assert Address(street="1 Main", city="X", state="IL", postal_code="1").is_complete

    def test_blank_field_is_incomplete(self):
        assert not Address(street="1 Main", city="  ", state="IL", postal_code="1").is_complete

    def test_rate_destination_shape(self, address):
        assert address.to_rate_destination() == {
            "street1": "1 Main St",
            "street2": "Apt 2",
            "city": "Springfield",
            "state": "IL",
            "postalCode": "62701",
            "country": "US",
        }


class TestShippingRate:
    def test_total_is_recomputed(self):
        rate = ShippingRate.model_validate(
            {"serviceName": "Ground", "serviceCode": "ground", "shipmentCost": 5.0, "otherCost": 1.25, "totalCost": 99}
        )
        assert rate.total_cost == pytest.approx(6.25)


class TestPaymentAttempt:
    def test_created_attempt_is_unresolved(self):
        assert not PaymentAttempt(provider=Provider.PAYPAL).is_resolved

    def test_transition_returns_a_copy(self):
        attempt = PaymentAttempt(provider=Provider.PAYPAL, external_id="PAY-1")
        pending = attempt.transition(AttemptStatus.PENDING_CAPTURE)
        assert attempt.status == AttemptStatus.CREATED
        assert pending.status == AttemptStatus.PENDING_CAPTURE
        assert pending.external_id == "PAY-1"

    def test_resolved_attempt_cannot_move(self):
        succeeded = PaymentAttempt(provider=Provider.STRIPE).transition(AttemptStatus.SUCCEEDED)
        assert succeeded.is_resolved
        with pytest.raises(ValueError):
            succeeded.transition(AttemptStatus.FAILED)

    def test_canceled_attempt_can_still_be_paid(self):
        canceled = PaymentAttempt(provider=Provider.STRIPE).transition(AttemptStatus.CANCELED)
        assert canceled.transition(AttemptStatus.SUCCEEDED).status == AttemptStatus.SUCCEEDED
        with pytest.raises(ValueError):
            canceled.transition(AttemptStatus.FAILED)


class TestOrderDraft:
    def test_order_context_needs_items(self):
        with pytest.raises(ValidationError):
            OrderContext(order_id="ord-1", items=[])

    def test_draft_starts_on_shipping(self, order_context):
        draft = OrderDraft.from_context(order_context)
        assert draft.current_step == CheckoutStep.SHIPPING
        assert draft.running_total == 60.0
        assert not draft.terms_accepted

    def test_form_round_trip(self, order_context, address, customer):
        draft = OrderDraft.from_context(order_context)
        restored = draft.with_form(CheckoutForm(customer_info=customer, shipping_address=address, notes="Leave at door"))
        assert restored.form() == CheckoutForm(customer_info=customer, shipping_address=address, notes="Leave at door")

    def test_full_name(self):
        assert CustomerInfo(first_name="Ada", last_name="Lovelace").full_name == "Ada Lovelace"
