"""Durable client storage port.

A string key-value store that survives a full page unload, shared by the
cart store and the checkout wizard. Stores enforce a hard capacity ceiling
over the sum of all stored values: a write that would cross it raises
``StorageCapacityExceeded`` and leaves the previous value untouched.
"""

from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from checkout.exceptions import StorageCapacityExceeded

M = TypeVar("M", bound=BaseModel)

CART_KEY_PREFIX = "cart:"
DRAFT_KEY = "checkout:draft"
FORM_KEY = "checkout:form"
SETTLED_KEY = "checkout:settled"


def cart_key(browsing_context: str) -> str:
    return f"{CART_KEY_PREFIX}{browsing_context}"


def encoded_size(value: str) -> int:
    return len(value.encode("utf-8"))


class ClientStorage(ABC):
    """Abstract durable client storage."""

    def __init__(self, capacity_bytes: int) -> None:
        self.capacity_bytes = capacity_bytes

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def _write(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove(self, key: str) -> None: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    def used_bytes(self, excluding: str | None = None) -> int:
        return sum(encoded_size(k) + encoded_size(self.get(k) or "") for k in self.keys() if k != excluding)

    def set(self, key: str, value: str) -> None:
        size = encoded_size(key) + encoded_size(value)
        if self.used_bytes(excluding=key) + size > self.capacity_bytes:
            raise StorageCapacityExceeded(key, size, self.capacity_bytes)
        self._write(key, value)

    def save_model(self, key: str, model: BaseModel) -> None:
        self.set(key, model.model_dump_json(by_alias=True, exclude_none=True))

    def load_model(self, key: str, model_cls: type[M]) -> M | None:
        """Load a stored record; unreadable entries are treated as absent."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return model_cls.model_validate_json(raw)
        except ValidationError:
            return None
