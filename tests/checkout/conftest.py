import pytest
from checkout.cart.fake_adapter import FakeCartApi, FakeCatalog
from checkout.cart.store import CartStore
from checkout.config import CheckoutSettings
from checkout.model.customization import AddOn, Customization, Design, SelectedStyles
from checkout.model.draft import CustomerInfo, OrderContext, OrderLineItem
from checkout.model.shipping import Address
from checkout.payments.fake_adapter import FakePaymentProvider
from checkout.payments.orchestrator import PaymentOrchestrator
from checkout.shipping.client import ShippingRateClient
from checkout.shipping.fake_adapter import FakeRateQuoteApi
from checkout.storage.memory_adapter import MemoryStorage


def upgrade_customization(price=5.0):
    """A customization with one undimensioned design and one flat upgrade."""
    return Customization(
        designs=[
            Design(
                name="Logo",
                selected_styles=SelectedStyles(upgrades=[AddOn(id="metallic", name="Metallic thread", price=price)]),
            )
        ]
    )


@pytest.fixture()
def make_upgrade():
    return upgrade_customization


@pytest.fixture()
def settings():
    return CheckoutSettings(origin="https://shop.example.com", rate_debounce_seconds=0.0)


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest.fixture()
def catalog():
    catalog = FakeCatalog()
    catalog.put("prod-001", price=20.0, stock=10, title="Canvas Tote")
    catalog.put("prod-002", price=15.0, stock=5, title="Cotton Cap")
    catalog.put("prod-empty", price=12.0, stock=0, title="Sold Out Tee")
    return catalog


@pytest.fixture()
def cart_api(catalog):
    return FakeCartApi(catalog)


@pytest.fixture()
def store(cart_api, catalog, storage):
    return CartStore(cart_api, catalog, storage, browsing_context="tab-1")


@pytest.fixture()
def rate_api():
    return FakeRateQuoteApi()


@pytest.fixture()
def rate_client(rate_api):
    return ShippingRateClient(rate_api, debounce_seconds=0.0)


@pytest.fixture()
def provider():
    return FakePaymentProvider()


@pytest.fixture()
def orchestrator(provider, storage, settings):
    return PaymentOrchestrator(provider, storage, settings)


@pytest.fixture()
def address():
    return Address(street="1 Main St", apartment="Apt 2", city="Springfield", state="IL", postal_code="62701")


@pytest.fixture()
def customer():
    return CustomerInfo(first_name="Ada", last_name="Lovelace", email="ada@example.com", phone="555-0100")


@pytest.fixture()
def order_items():
    return [
        OrderLineItem(id=1, product_id="prod-001", product_name="Canvas Tote", quantity=2, price=20.0, base_price=20.0),
        OrderLineItem(
            id=2,
            product_id="prod-002",
            product_name="Cotton Cap",
            quantity=1,
            price=20.0,
            base_price=15.0,
            customization=upgrade_customization(),
        ),
    ]


@pytest.fixture()
def order_context(order_items):
    return OrderContext(order_id="ord-1001", items=order_items, running_total=60.0)
