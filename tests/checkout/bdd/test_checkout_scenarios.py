"""BDD tests for end-to-end checkout scenarios."""

import asyncio

import pytest
from checkout.model.draft import CheckoutStep, OrderLineItem, PaymentMethod
from checkout.model.payment import OutcomeKind
from checkout.pricing.engine import compute_totals
from checkout.storage.port import cart_key
from checkout.wizard.machine import CheckoutWizard
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/checkout_scenarios.feature")


@pytest.fixture()
def lines():
    return []


@pytest.fixture()
def loads():
    return {}


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an order with {quantity:d} "{name}" at {price:f}'))
def order_with_plain_line(lines, quantity, name, price):
    lines.append(OrderLineItem(product_id=name.lower(), product_name=name, quantity=quantity, base_price=price))


@given(parsers.cfparse('an order line "{name}" at base {price:f} with a {upgrade:f} upgrade'))
def order_with_upgraded_line(lines, make_upgrade, name, price, upgrade):
    lines.append(
        OrderLineItem(
            product_id=name.lower(),
            product_name=name,
            quantity=1,
            base_price=price,
            customization=make_upgrade(upgrade),
        )
    )


@when("the order is priced", target_fixture="totals")
def price_order(lines):
    return compute_totals(lines).rounded()


@then(parsers.cfparse("the subtotal is {amount:f}"))
def subtotal_is(totals, amount):
    assert totals.subtotal == amount


@then(parsers.cfparse("the tax is {amount:f}"))
def tax_is(totals, amount):
    assert totals.tax == amount


@then("shipping is free")
def shipping_is_free(totals):
    assert totals.shipping == 0


@then(parsers.cfparse("the total is {amount:f}"))
def total_is(totals, amount):
    assert totals.total == amount


# ---------------------------------------------------------------------------
# Payment returns
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a checkout at review paying with "{method}"'), target_fixture="wizard")
def checkout_at_review(order_context, orchestrator, rate_client, customer, address, method):
    wizard = CheckoutWizard.enter(order_context, orchestrator, rate_client, customer_info=customer)
    wizard.update_form(**address.model_dump(exclude={"country"}))
    asyncio.run(wizard.next_step())
    asyncio.run(wizard.next_step())
    wizard.select_payment_method(PaymentMethod(method))
    wizard.accept_terms()
    return wizard


@when("the shopper places the order")
def place_order(wizard):
    assert asyncio.run(wizard.place_order()) is not None


@when("the provider sends the shopper back approved twice at the same time")
def approved_twice(wizard, orchestrator, provider, loads):
    params = {"paypal_success": "true", "orderId": wizard.draft.order_id, "token": wizard.draft.attempt.external_id}
    provider.latency = 0.01

    async def two_loads():
        return await asyncio.gather(orchestrator.resolve_return(params), orchestrator.resolve_return(params))

    loads["outcomes"] = asyncio.run(two_loads())


@when("the provider sends the shopper back canceled", target_fixture="wizard")
def sent_back_canceled(wizard, orchestrator, rate_client):
    params = {"canceled": "true", "orderId": wizard.draft.order_id}
    return asyncio.run(CheckoutWizard.resume(params, orchestrator, rate_client))


@then("the order is captured exactly once")
def captured_once(provider):
    assert len(provider.calls_to("capture_order")) == 1


@then("both loads show the order as paid")
def both_paid(loads):
    first, second = loads["outcomes"]
    assert first.kind == second.kind == OutcomeKind.SUCCEEDED
    assert first.transaction_id == second.transaction_id


@then("the checkout checkpoint is cleared")
def checkpoint_cleared(orchestrator):
    assert orchestrator.load_checkpoint() == (None, None)


@then("the wizard is on the payment step")
def on_payment_step(wizard):
    assert wizard.step == CheckoutStep.PAYMENT


@then(parsers.cfparse('the payment error reads "{message}"'))
def payment_error_reads(wizard, message):
    assert wizard.payment_error == message


@then("the shipping address is still filled in")
def address_kept(wizard, address):
    assert wizard.draft.shipping_address == address


# ---------------------------------------------------------------------------
# Cart sync
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a guest cart with {quantity:d} "{product_id}"'))
def guest_cart(store, quantity, product_id):
    assert asyncio.run(store.add(product_id, quantity)).ok


@given(parsers.cfparse('the account already holds {quantity:d} "{product_id}"'))
def account_cart(cart_api, quantity, product_id):
    asyncio.run(cart_api.add_item("user-1", product_id, quantity))


@when("the shopper signs in twice in a row")
def sign_in_twice(store):
    async def sign_in():
        await store.set_identity("user-1")
        await store.set_identity("user-1")

    asyncio.run(sign_in())


@then("the cart is synced exactly once")
def synced_once(cart_api):
    assert len(cart_api.calls_to("sync_cart")) == 1


@then(parsers.cfparse('the cart holds {quantity:d} "{product_id}"'))
def cart_holds(store, quantity, product_id):
    assert [(i.product_id, i.quantity) for i in store.snapshot()] == [(product_id, quantity)]


@then("the guest cart is no longer stored on the device")
def guest_cart_removed(storage):
    assert cart_key("tab-1") not in storage.keys()
