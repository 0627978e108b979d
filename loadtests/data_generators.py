"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the cart API's request schemas:
camelCase field names, quantities of at least 1, and customizations in the
storefront's designs/selectedStyles shape.
"""

import random
import uuid

from faker import Faker

fake = Faker()

PRODUCT_IDS = [f"prod-{n:03d}" for n in range(1, 21)]


def shopper_id() -> str:
    """Generate unique shopper ids like 'user-lt-a1b2c3d4'."""
    return f"user-lt-{uuid.uuid4().hex[:8]}"


def customization_data() -> dict:
    """A one-design customization with a thread colour and an optional upgrade."""
    upgrades = []
    if random.random() < 0.5:
        upgrades.append({"id": "metallic", "name": "Metallic thread", "price": 5.0})
    return {
        "designs": [
            {
                "name": fake.word().title(),
                "dimensions": {"width": random.choice([2, 3, 4]), "height": random.choice([2, 3])},
                "selectedStyles": {
                    "threads": [{"id": fake.color_name().lower(), "name": fake.color_name(), "price": 0}],
                    "upgrades": upgrades,
                },
            }
        ],
        "placement": random.choice(["front", "back", "sleeve"]),
        "notes": fake.sentence(nb_words=6),
    }


def cart_item_data(customized: bool = False) -> dict:
    """Payload for POST /cart."""
    return {
        "productId": random.choice(PRODUCT_IDS),
        "quantity": random.randint(1, 3),
        "customization": customization_data() if customized else None,
    }


def guest_cart_data(max_items: int = 5) -> dict:
    """Payload for POST /cart/sync: what a guest built up before signing in."""
    return {
        "items": [
            cart_item_data(customized=random.random() < 0.3) for _ in range(random.randint(1, max_items))
        ]
    }
