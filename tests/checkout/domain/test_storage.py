"""Tests for client storage and the guest-tier projection."""

import pytest
from checkout.cart.projection import GuestCart, project_guest_cart, project_line_item
from checkout.exceptions import StorageCapacityExceeded
from checkout.model.cart import CartLineItem, ProductSnapshot
from checkout.model.customization import Customization, Design
from checkout.storage.file_adapter import JsonFileStorage
from checkout.storage.memory_adapter import MemoryStorage
from checkout.storage.port import cart_key


class TestCapacity:
    def test_write_within_capacity(self):
        storage = MemoryStorage(capacity_bytes=64)
        storage.set("k", "v" * 10)
        assert storage.get("k") == "v" * 10
        assert storage.used_bytes() == 11

    def test_write_over_capacity_keeps_previous_value(self):
        storage = MemoryStorage(capacity_bytes=16)
        storage.set("k", "small")

        with pytest.raises(StorageCapacityExceeded) as exc:
            storage.set("k", "x" * 32)

        assert storage.get("k") == "small"
        assert exc.value.key == "k"
        assert exc.value.capacity == 16

    def test_overwrite_does_not_count_old_value(self):
        storage = MemoryStorage(capacity_bytes=12)
        storage.set("k", "x" * 10)
        storage.set("k", "y" * 10)
        assert storage.get("k") == "y" * 10

    def test_capacity_spans_all_keys(self):
        storage = MemoryStorage(capacity_bytes=20)
        storage.set("a", "x" * 10)
        with pytest.raises(StorageCapacityExceeded):
            storage.set("b", "x" * 10)

    def test_size_counts_utf8_bytes(self):
        storage = MemoryStorage(capacity_bytes=4)
        with pytest.raises(StorageCapacityExceeded):
            storage.set("k", "éé")


class TestModels:
    def test_save_and_load(self):
        storage = MemoryStorage()
        cart = GuestCart(items=[CartLineItem(local_id="a", product_id="p1", quantity=2)])

        storage.save_model(cart_key("tab-1"), cart)

        assert storage.load_model(cart_key("tab-1"), GuestCart) == cart

    def test_missing_key_loads_none(self):
        assert MemoryStorage().load_model("nope", GuestCart) is None

    def test_unreadable_entry_loads_none(self):
        storage = MemoryStorage()
        storage.set(cart_key("tab-1"), '{"items": [{"quantity": 0}]}')
        assert storage.load_model(cart_key("tab-1"), GuestCart) is None

    def test_cart_keys_are_per_browsing_context(self):
        assert cart_key("tab-1") != cart_key("tab-2")


class TestJsonFileStorage:
    def test_survives_a_new_instance(self, tmp_path):
        path = tmp_path / "storage.json"
        JsonFileStorage(path).set("k", "v")
        assert JsonFileStorage(path).get("k") == "v"

    def test_remove(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "storage.json")
        storage.set("a", "1")
        storage.set("b", "2")
        storage.remove("a")
        assert storage.keys() == ["b"]

    def test_corrupt_document_reads_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileStorage(path).get("k") is None

    def test_enforces_capacity(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "storage.json", capacity_bytes=8)
        with pytest.raises(StorageCapacityExceeded):
            storage.set("k", "x" * 16)
        assert storage.keys() == []


class TestGuestProjection:
    def _item(self, preview):
        return CartLineItem(
            local_id="a",
            product_id="p1",
            quantity=1,
            customization=Customization(designs=[Design(name="Logo", preview=preview)], notes="Centered"),
            server_snapshot=ProductSnapshot(id="p1", title="Tote", price=20),
        )

    def test_drops_server_snapshot(self):
        item = CartLineItem(id=1, product_id="p1", quantity=1, server_snapshot=ProductSnapshot(id="p1"))
        assert project_line_item(item, 100).server_snapshot is None

    def test_small_preview_is_kept(self):
        projected = project_line_item(self._item("data:image/png;base64,AAAA"), 100)
        design = projected.customization.designs[0]
        assert design.preview == "data:image/png;base64,AAAA"
        assert not design.preview_truncated

    def test_large_preview_is_dropped_and_flagged(self):
        projected = project_line_item(self._item("A" * 200), 100)
        design = projected.customization.designs[0]
        assert design.preview is None
        assert design.preview_truncated
        assert design.name == "Logo"
        assert projected.customization.notes == "Centered"

    def test_legacy_design_is_projected(self):
        item = CartLineItem(
            product_id="p1", quantity=1, customization=Customization(design=Design(preview="B" * 200))
        )
        projected = project_line_item(item, 100)
        assert projected.customization.design.preview_truncated

    def test_identity_and_quantity_are_kept(self):
        cart = project_guest_cart([self._item("A" * 200)], 100)
        assert cart.items[0].local_id == "a"
        assert cart.items[0].quantity == 1
