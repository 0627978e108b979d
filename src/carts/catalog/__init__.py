"""Product catalog abstraction for cart snapshots."""

import os

_catalog_instance = None


def get_catalog():
    """Return the configured product catalog (singleton).

    Uses InMemoryCatalog by default; select with the CART_CATALOG_ADAPTER
    environment variable.
    """
    global _catalog_instance
    if _catalog_instance is None:
        adapter = os.environ.get("CART_CATALOG_ADAPTER", "memory")
        if adapter == "memory":
            from carts.catalog.memory_adapter import InMemoryCatalog

            _catalog_instance = InMemoryCatalog()
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _catalog_instance


def reset_catalog():
    """Reset the catalog singleton (useful for testing)."""
    global _catalog_instance
    _catalog_instance = None
