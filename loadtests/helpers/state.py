"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared between users.
State tracks the line ids returned by the cart API so follow-up operations
can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CartState:
    """Tracks state for one shopper's account cart."""

    user_id: str
    line_ids: list[str] = field(default_factory=list)
    item_count: int = 0
