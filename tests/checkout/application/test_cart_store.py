"""Tests for the two-tier cart store."""

import asyncio

import pytest
from checkout.cart.projection import GuestCart
from checkout.cart.store import BUSY_MESSAGE, CAPACITY_WARNING, CART_UNAVAILABLE_MESSAGE, SYNC_FAILED_WARNING, CartStore
from checkout.model.cart import CUSTOM_CREATION_PRODUCT_ID, ReviewStatus
from checkout.model.customization import Customization, Design
from checkout.storage.memory_adapter import MemoryStorage
from checkout.storage.port import cart_key


def _guest_cart(storage):
    return storage.load_model(cart_key("tab-1"), GuestCart)


class TestGuestAdd:
    def test_add_plain_item(self, store, storage):
        result = asyncio.run(store.add("prod-001", 2))

        assert result.ok
        assert [(i.product_id, i.quantity) for i in result.items] == [("prod-001", 2)]
        assert result.items[0].local_id
        assert _guest_cart(storage).items[0].quantity == 2

    def test_plain_items_merge(self, store):
        async def scenario():
            await store.add("prod-001", 1)
            return await store.add("prod-001", 2)

        result = asyncio.run(scenario())

        assert len(result.items) == 1
        assert result.items[0].quantity == 3

    def test_customized_items_never_merge(self, store, make_upgrade):
        async def scenario():
            await store.add("prod-001", 1, make_upgrade())
            return await store.add("prod-001", 1, make_upgrade())

        result = asyncio.run(scenario())

        assert len(result.items) == 2
        assert all(i.review_status == ReviewStatus.PENDING for i in result.items)

    def test_quantity_must_be_positive(self, store):
        result = asyncio.run(store.add("prod-001", 0))
        assert not result.ok
        assert result.items == []


class TestStock:
    def test_out_of_stock(self, store):
        result = asyncio.run(store.add("prod-empty"))
        assert not result.ok
        assert result.message == "This product is out of stock"

    def test_more_than_available(self, store):
        result = asyncio.run(store.add("prod-002", 6))
        assert result.message == "Only 5 items available in stock"

    def test_merged_quantity_is_checked(self, store):
        async def scenario():
            await store.add("prod-002", 4)
            return await store.add("prod-002", 2)

        result = asyncio.run(scenario())

        assert not result.ok
        assert result.message == "Only 5 items available in stock"
        assert result.items[0].quantity == 4

    def test_unknown_product(self, store):
        result = asyncio.run(store.add("prod-gone"))
        assert result.message == "This product is no longer available"

    def test_lookup_failure_rejects(self, store, catalog):
        catalog.configure(should_succeed=False)

        result = asyncio.run(store.add("prod-001"))

        assert not result.ok
        assert result.message == "Unable to verify stock availability"

    def test_customized_items_skip_the_check(self, store, catalog, make_upgrade):
        catalog.configure(should_succeed=False)

        result = asyncio.run(store.add("prod-empty", 3, make_upgrade()))

        assert result.ok
        assert catalog.calls == []

    def test_update_is_checked(self, store):
        async def scenario():
            added = await store.add("prod-002", 1)
            return await store.update(added.items[0].key, 9)

        result = asyncio.run(scenario())

        assert result.message == "Only 5 items available in stock"


class TestGuestChanges:
    def test_update_quantity(self, store, storage):
        async def scenario():
            added = await store.add("prod-001", 1)
            return await store.update(added.items[0].key, 4)

        result = asyncio.run(scenario())

        assert result.items[0].quantity == 4
        assert _guest_cart(storage).items[0].quantity == 4

    def test_update_to_zero_removes(self, store):
        async def scenario():
            added = await store.add("prod-001", 1)
            return await store.update(added.items[0].key, 0)

        assert asyncio.run(scenario()).items == []

    def test_negative_quantity_is_rejected(self, store):
        async def scenario():
            added = await store.add("prod-001", 1)
            return await store.update(added.items[0].key, -1)

        result = asyncio.run(scenario())

        assert not result.ok
        assert result.items[0].quantity == 1

    def test_unknown_item(self, store):
        result = asyncio.run(store.update("nope", 2))
        assert result.message == "Item not found in cart"

    def test_clear_removes_guest_tier(self, store, storage):
        async def scenario():
            await store.add("prod-001", 1)
            return await store.clear()

        assert asyncio.run(scenario()).items == []
        assert _guest_cart(storage) is None

    def test_guest_cart_survives_reload(self, store, cart_api, catalog, storage):
        asyncio.run(store.add("prod-001", 2))

        reloaded = CartStore(cart_api, catalog, storage, browsing_context="tab-1")

        assert [(i.product_id, i.quantity) for i in reloaded.snapshot()] == [("prod-001", 2)]

    def test_browsing_contexts_are_isolated(self, store, cart_api, catalog, storage):
        asyncio.run(store.add("prod-001", 2))

        other = CartStore(cart_api, catalog, storage, browsing_context="tab-2")

        assert other.snapshot() == []

    def test_capacity_overflow_keeps_memory_and_warns(self, cart_api, catalog):
        store = CartStore(cart_api, catalog, MemoryStorage(capacity_bytes=32), browsing_context="tab-1")

        result = asyncio.run(store.add("prod-001", 1))

        assert result.ok
        assert result.warning == CAPACITY_WARNING
        assert store.last_warning == CAPACITY_WARNING
        assert len(result.items) == 1

    def test_large_previews_are_not_persisted(self, cart_api, catalog, storage):
        store = CartStore(cart_api, catalog, storage, browsing_context="tab-1", preview_limit=16)
        customization = Customization(designs=[Design(name="Logo", preview="A" * 64)])

        asyncio.run(store.add("prod-001", 1, customization))

        assert store.snapshot()[0].customization.designs[0].preview == "A" * 64
        stored = _guest_cart(storage).items[0].customization.designs[0]
        assert stored.preview is None
        assert stored.preview_truncated


class TestCleanup:
    def test_removes_items_missing_from_feed(self, store):
        async def scenario():
            await store.add("prod-001", 1)
            await store.add("prod-002", 1)
            return await store.cleanup_invalid_items(["prod-001"])

        result = asyncio.run(scenario())

        assert [i.product_id for i in result.items] == ["prod-001"]

    def test_custom_creations_are_kept(self, store, make_upgrade):
        async def scenario():
            await store.add(CUSTOM_CREATION_PRODUCT_ID, 1, make_upgrade())
            return await store.cleanup_invalid_items(["prod-001"])

        result = asyncio.run(scenario())

        assert [i.product_id for i in result.items] == [CUSTOM_CREATION_PRODUCT_ID]

    def test_reads_feed_from_catalog(self, store, catalog):
        async def scenario():
            await store.add("prod-001", 1)
            del catalog.products["prod-001"]
            return await store.cleanup_invalid_items()

        assert asyncio.run(scenario()).items == []


class TestIdentity:
    def test_sign_in_syncs_once(self, store, cart_api):
        async def scenario():
            await store.add("prod-001", 1)
            await store.set_identity("user-1")
            await store.set_identity("user-1")
            return await store.items()

        items = asyncio.run(scenario())

        assert len(cart_api.calls_to("sync_cart")) == 1
        assert [(i.product_id, i.quantity) for i in items] == [("prod-001", 1)]
        assert items[0].id is not None

    def test_second_sign_in_while_sync_is_pending_is_a_no_op(self, store, cart_api):
        async def scenario():
            await store.add("prod-001", 1)
            cart_api.latency = 0.01
            first, second = await asyncio.gather(store.set_identity("user-1"), store.set_identity("user-1"))
            return first, second, await store.items()

        first, second, items = asyncio.run(scenario())

        assert len(cart_api.calls_to("sync_cart")) == 1
        assert first.ok and second.ok
        assert [(i.product_id, i.quantity) for i in items] == [("prod-001", 1)]
        assert items[0].id is not None

    def test_sign_in_merges_with_server_cart(self, store, cart_api, storage, make_upgrade):
        async def scenario():
            await cart_api.add_item("user-1", "prod-001", 2)
            await store.add("prod-001", 1)
            await store.add("prod-002", 1, make_upgrade())
            return await store.set_identity("user-1")

        result = asyncio.run(scenario())

        assert result.ok
        quantities = {i.product_id: i.quantity for i in result.items}
        assert quantities == {"prod-001": 3, "prod-002": 1}
        assert _guest_cart(storage) is None

    def test_authenticated_cart_is_never_written_locally(self, store, storage):
        async def scenario():
            await store.set_identity("user-1")
            await store.add("prod-001", 1)

        asyncio.run(scenario())

        assert cart_key("tab-1") not in storage.keys()

    def test_sync_failure_keeps_guest_items(self, store, cart_api, storage):
        async def scenario():
            await store.add("prod-001", 2)
            cart_api.configure(should_succeed=False)
            return await store.set_identity("user-1")

        result = asyncio.run(scenario())

        assert not result.ok
        assert result.warning == SYNC_FAILED_WARNING
        assert [(i.product_id, i.quantity) for i in result.items] == [("prod-001", 2)]
        assert _guest_cart(storage) is not None

    def test_sign_out_clears(self, store, storage):
        async def scenario():
            await store.add("prod-001", 1)
            await store.set_identity("user-1")
            return await store.set_identity(None)

        result = asyncio.run(scenario())

        assert result.items == []
        assert not store.is_authenticated
        assert _guest_cart(storage) is None

    def test_switching_accounts_does_not_leak(self, store, cart_api):
        async def scenario():
            await store.set_identity("user-1")
            await store.add("prod-001", 1)
            await store.set_identity("user-2")
            return await store.items()

        assert asyncio.run(scenario()) == []
        assert cart_api.carts["user-1"][0].product_id == "prod-001"

    def test_reads_wait_for_sync(self, store, cart_api):
        cart_api.latency = 0.01

        async def scenario():
            await store.add("prod-001", 1)
            sync = asyncio.ensure_future(store.set_identity("user-1"))
            await asyncio.sleep(0)
            assert store.is_syncing
            items = await store.items()
            await sync
            return items

        items = asyncio.run(scenario())

        assert items[0].id is not None


class TestAuthenticatedChanges:
    def test_add_goes_to_server(self, store, cart_api):
        async def scenario():
            await store.set_identity("user-1")
            return await store.add("prod-001", 2)

        result = asyncio.run(scenario())

        assert result.ok
        assert cart_api.calls_to("add_item")[0]["quantity"] == 2
        assert result.items[0].server_snapshot.title == "Canvas Tote"

    def test_server_failure_is_reported(self, store, cart_api):
        async def scenario():
            await store.set_identity("user-1")
            cart_api.configure(should_succeed=False)
            return await store.add("prod-001", 1)

        result = asyncio.run(scenario())

        assert not result.ok
        assert result.message == CART_UNAVAILABLE_MESSAGE

    def test_order_items_carry_catalog_prices(self, store):
        async def scenario():
            await store.set_identity("user-1")
            await store.add("prod-001", 2)

        asyncio.run(scenario())
        order_items = store.to_order_items()

        assert order_items[0].base_price == 20.0
        assert order_items[0].product_name == "Canvas Tote"


class TestOverlappingMutations:
    def test_second_add_is_suppressed(self, store, cart_api):
        cart_api.latency = 0.01

        async def scenario():
            await store.set_identity("user-1")
            return await asyncio.gather(store.add("prod-001", 1), store.add("prod-001", 1))

        first, second = asyncio.run(scenario())

        assert first.ok
        assert not second.ok
        assert second.message == BUSY_MESSAGE
        assert len(cart_api.calls_to("add_item")) == 1

    def test_different_kinds_do_not_block(self, store, cart_api):
        cart_api.latency = 0.01

        async def scenario():
            await store.set_identity("user-1")
            await store.add("prod-001", 1)
            added = await store.add("prod-002", 1)
            keep, drop = added.items
            return await asyncio.gather(store.update(keep.key, 2), store.remove(drop.key))

        updated, removed = asyncio.run(scenario())

        assert updated.ok
        assert removed.ok
