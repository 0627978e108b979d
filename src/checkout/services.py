"""Service wiring.

Each collaborator is constructed once here and handed to the components that
need it. ``CHECKOUT_ADAPTERS=fake`` (the default) wires in-memory fakes;
``http`` talks to the storefront backend at ``STOREFRONT_API_URL``.
"""

from dataclasses import dataclass

import structlog

from checkout.cart.fake_adapter import FakeCartApi, FakeCatalog
from checkout.cart.http_adapter import HttpCartApi, HttpCatalogApi
from checkout.cart.port import CartApi, CatalogApi
from checkout.cart.store import CartStore
from checkout.config import CheckoutSettings
from checkout.http import EnvelopeClient
from checkout.model.draft import CustomerInfo, OrderContext
from checkout.payments.fake_adapter import FakePaymentProvider
from checkout.payments.http_adapter import HttpPaymentProvider
from checkout.payments.orchestrator import PaymentOrchestrator
from checkout.payments.port import PaymentProvider
from checkout.pricing.engine import PricingPolicy
from checkout.shipping.client import ShippingRateClient
from checkout.shipping.fake_adapter import FakeRateQuoteApi
from checkout.shipping.http_adapter import HttpRateQuoteApi
from checkout.storage.file_adapter import JsonFileStorage
from checkout.storage.memory_adapter import MemoryStorage
from checkout.storage.port import ClientStorage
from checkout.wizard.machine import CheckoutWizard

logger = structlog.get_logger(__name__)


@dataclass
class CheckoutServices:
    settings: CheckoutSettings
    policy: PricingPolicy
    storage: ClientStorage
    cart_api: CartApi
    catalog: CatalogApi
    rate_client: ShippingRateClient
    payment_provider: PaymentProvider
    orchestrator: PaymentOrchestrator
    http_client: EnvelopeClient | None = None

    def cart_store(self, browsing_context: str = "default") -> CartStore:
        return CartStore(
            self.cart_api,
            self.catalog,
            self.storage,
            browsing_context=browsing_context,
            preview_limit=self.settings.preview_bytes_limit,
        )

    def enter_checkout(self, context: OrderContext | None, customer_info: CustomerInfo | None = None) -> CheckoutWizard:
        return CheckoutWizard.enter(context, self.orchestrator, self.rate_client, self.policy, customer_info)

    async def resume_checkout(self, query_params, context: OrderContext | None = None) -> CheckoutWizard:
        return await CheckoutWizard.resume(query_params, self.orchestrator, self.rate_client, context, self.policy)

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


def build_storage(settings: CheckoutSettings) -> ClientStorage:
    if settings.storage_path:
        return JsonFileStorage(settings.storage_path, settings.storage_capacity_bytes)
    return MemoryStorage(settings.storage_capacity_bytes)


def build_services(settings: CheckoutSettings | None = None, storage: ClientStorage | None = None) -> CheckoutServices:
    settings = settings or CheckoutSettings.from_env()
    storage = storage or build_storage(settings)
    policy = PricingPolicy.from_settings(settings)

    http_client = None
    if settings.adapters == "fake":
        catalog = FakeCatalog()
        cart_api = FakeCartApi(catalog)
        rate_api = FakeRateQuoteApi()
        payment_provider = FakePaymentProvider()
    elif settings.adapters == "http":
        http_client = EnvelopeClient.create(settings.api_url, timeout=settings.http_timeout_seconds)
        catalog = HttpCatalogApi(http_client)
        cart_api = HttpCartApi(http_client)
        rate_api = HttpRateQuoteApi(http_client)
        payment_provider = HttpPaymentProvider(http_client)
    else:
        raise ValueError(f"Unknown checkout adapters: {settings.adapters}")

    logger.info("Checkout services configured", adapters=settings.adapters, api_url=settings.api_url)
    return CheckoutServices(
        settings=settings,
        policy=policy,
        storage=storage,
        cart_api=cart_api,
        catalog=catalog,
        rate_client=ShippingRateClient(rate_api, debounce_seconds=settings.rate_debounce_seconds),
        payment_provider=payment_provider,
        orchestrator=PaymentOrchestrator(payment_provider, storage, settings, policy),
        http_client=http_client,
    )
