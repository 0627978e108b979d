"""Checkout settings, read from the environment.

Every knob has a default so the checkout runs unconfigured in development
and tests. Values are read once, when ``CheckoutSettings.from_env()`` is
called at service-construction time.
"""

import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class CheckoutSettings:
    api_url: str = "http://localhost:3001/api/v1"
    origin: str = "http://localhost:5173"
    checkout_path: str = "/order-checkout"
    tax_rate: float = 0.08
    free_shipping_threshold: float = 50.0
    flat_shipping_rate: float = 9.99
    currency: str = "usd"
    rate_debounce_seconds: float = 0.5
    storage_capacity_bytes: int = 5 * 1024 * 1024
    preview_bytes_limit: int = 100 * 1024
    http_timeout_seconds: float = 10.0
    adapters: str = "fake"
    storage_path: str | None = None

    @property
    def checkout_url(self) -> str:
        return f"{self.origin.rstrip('/')}{self.checkout_path}"

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        return cls(
            api_url=os.environ.get("STOREFRONT_API_URL", cls.api_url),
            origin=os.environ.get("STOREFRONT_ORIGIN", cls.origin),
            checkout_path=os.environ.get("CHECKOUT_PATH", cls.checkout_path),
            tax_rate=_float_env("CHECKOUT_TAX_RATE", cls.tax_rate),
            free_shipping_threshold=_float_env("CHECKOUT_FREE_SHIPPING_THRESHOLD", cls.free_shipping_threshold),
            flat_shipping_rate=_float_env("CHECKOUT_FLAT_SHIPPING_RATE", cls.flat_shipping_rate),
            currency=os.environ.get("CHECKOUT_CURRENCY", cls.currency),
            rate_debounce_seconds=_float_env("CHECKOUT_RATE_DEBOUNCE_SECONDS", cls.rate_debounce_seconds),
            storage_capacity_bytes=_int_env("CHECKOUT_STORAGE_CAPACITY_BYTES", cls.storage_capacity_bytes),
            preview_bytes_limit=_int_env("CHECKOUT_PREVIEW_BYTES_LIMIT", cls.preview_bytes_limit),
            http_timeout_seconds=_float_env("CHECKOUT_HTTP_TIMEOUT_SECONDS", cls.http_timeout_seconds),
            adapters=os.environ.get("CHECKOUT_ADAPTERS", cls.adapters),
            storage_path=os.environ.get("CHECKOUT_STORAGE_PATH") or None,
        )
