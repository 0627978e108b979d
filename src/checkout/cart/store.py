"""Cart store: the single source of truth for what is in the cart right now.

Two persistence tiers are reconciled here:

* the guest tier, a projection of the items kept in durable client storage
  while nobody is signed in;
* the authoritative tier, the cart service, reachable only with an identity.

Identity transitions follow one protocol. Signing in fires exactly one
``sync`` that uploads the guest items and adopts the merged server list as
ground truth (falling back to the guest snapshot if the call fails). Signing
out clears memory and the guest tier; an authenticated cart is never written
to the guest tier.

Mutations of the same kind do not overlap: one started while another is in
flight is suppressed and reported as busy, not queued. Every read and
mutation waits for a pending identity sync first.
"""

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import uuid4

import structlog

from checkout.cart.port import CartApi, CatalogApi
from checkout.cart.projection import GuestCart, project_guest_cart
from checkout.exceptions import CollaboratorUnavailable, StockUnavailable, StorageCapacityExceeded
from checkout.model.cart import CUSTOM_CREATION_PRODUCT_ID, CartLineItem
from checkout.model.customization import Customization
from checkout.model.draft import OrderLineItem
from checkout.storage.port import ClientStorage, cart_key

logger = structlog.get_logger(__name__)

BUSY_MESSAGE = "Another cart update is still in progress. Please try again."
CART_UNAVAILABLE_MESSAGE = "We couldn't update your cart right now. Please try again."
CAPACITY_WARNING = "Your cart is too large to save on this device. Changes may not survive a page refresh."
SYNC_FAILED_WARNING = "We couldn't load your saved cart. Showing the items from this device."


@dataclass(frozen=True)
class CartResult:
    ok: bool
    items: list[CartLineItem] = field(default_factory=list)
    message: str | None = None
    warning: str | None = None


class CartStore:
    def __init__(
        self,
        cart_api: CartApi,
        catalog: CatalogApi,
        storage: ClientStorage,
        browsing_context: str = "default",
        preview_limit: int = 100 * 1024,
    ) -> None:
        self.cart_api = cart_api
        self.catalog = catalog
        self.storage = storage
        self.storage_key = cart_key(browsing_context)
        self.preview_limit = preview_limit

        self._user_id: str | None = None
        self._sync_task: asyncio.Task | None = None
        self._in_flight: set[str] = set()
        self._items: list[CartLineItem] = self._load_guest_snapshot()
        self.last_warning: str | None = None

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    @property
    def is_syncing(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    def snapshot(self) -> list[CartLineItem]:
        """Items as currently held in memory; not authoritative while a sync is pending."""
        return list(self._items)

    async def items(self) -> list[CartLineItem]:
        await self._wait_for_sync()
        return list(self._items)

    def find(self, item_key: str) -> CartLineItem | None:
        return next((item for item in self._items if item.key == str(item_key)), None)

    async def refresh(self) -> CartResult:
        """Re-read the authoritative cart (no-op for guests)."""
        await self._wait_for_sync()
        if not self.is_authenticated:
            return self._result(True)
        try:
            self._items = await self.cart_api.get_cart(self._user_id)
        except CollaboratorUnavailable:
            return self._result(False, message=CART_UNAVAILABLE_MESSAGE)
        return self._result(True)

    def to_order_items(self) -> list[OrderLineItem]:
        """Project cart lines into order lines, carrying catalog base prices."""
        order_items = []
        for item in self._items:
            snapshot = item.server_snapshot
            order_items.append(
                OrderLineItem(
                    id=item.id,
                    product_id=item.product_id,
                    product_name=snapshot.title if snapshot else "",
                    quantity=item.quantity,
                    price=snapshot.price if snapshot else 0.0,
                    base_price=snapshot.price if snapshot else None,
                    customization=item.customization,
                    weight_oz=snapshot.weight_oz if snapshot else None,
                )
            )
        return order_items

    # -------------------------------------------------------------------
    # Identity transitions
    # -------------------------------------------------------------------
    async def set_identity(self, user_id: str | None) -> CartResult:
        """Apply a change of signed-in identity.

        Re-announcing the current identity (re-renders, retries) does nothing,
        which is what keeps the sync to one call per transition.
        """
        user_id = str(user_id) if user_id is not None else None
        if user_id == self._user_id:
            return self._result(True)

        if user_id is None:
            self._sign_out()
            return self._result(True)

        if self._user_id is not None:
            # Switching accounts: the previous account's cart must not leak.
            self._sign_out()

        self._user_id = user_id
        if self.is_syncing:
            return self._result(True)

        self._sync_task = asyncio.ensure_future(self._sync(user_id))
        return await asyncio.shield(self._sync_task)

    def _sign_out(self) -> None:
        logger.info("Clearing cart on sign-out", user_id=self._user_id)
        self._user_id = None
        self._sync_task = None
        self._items = []
        self.storage.remove(self.storage_key)

    async def _sync(self, user_id: str) -> CartResult:
        guest_items = list(self._items)
        logger.info("Syncing guest cart", user_id=user_id, item_count=len(guest_items))
        try:
            merged = await self.cart_api.sync_cart(user_id, guest_items)
        except CollaboratorUnavailable as exc:
            logger.warning("Cart sync failed, keeping guest snapshot", user_id=user_id, error=str(exc))
            if self._user_id == user_id:
                self._items = self._load_guest_snapshot() or guest_items
            return self._result(False, warning=SYNC_FAILED_WARNING)

        if self._user_id != user_id:
            # Signed out (or switched) while the sync was in flight.
            return self._result(True)

        self._items = list(merged)
        self.storage.remove(self.storage_key)
        logger.info("Guest cart synced", user_id=user_id, item_count=len(merged))
        return self._result(True)

    async def _wait_for_sync(self) -> None:
        if self._sync_task is not None and not self._sync_task.done():
            await asyncio.shield(self._sync_task)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    @contextmanager
    def _exclusive(self, kind: str):
        if kind in self._in_flight:
            logger.debug("Suppressing overlapping cart mutation", kind=kind)
            yield False
            return
        self._in_flight.add(kind)
        try:
            yield True
        finally:
            self._in_flight.discard(kind)

    async def add(self, product_id: str, quantity: int = 1, customization: Customization | None = None) -> CartResult:
        """Add a product; customized items always take a new slot."""
        if quantity < 1:
            return self._result(False, message="Quantity must be at least 1")

        with self._exclusive("add") as allowed:
            if not allowed:
                return self._result(False, message=BUSY_MESSAGE)
            await self._wait_for_sync()

            existing = next((i for i in self._items if i.same_slot(product_id, customization)), None)
            if customization is None:
                wanted = quantity + (existing.quantity if existing else 0)
                rejection = await self._check_stock(product_id, wanted)
                if rejection is not None:
                    return self._result(False, message=rejection.message)

            if self.is_authenticated:
                try:
                    line = await self.cart_api.add_item(self._user_id, product_id, quantity, customization)
                except CollaboratorUnavailable:
                    return self._result(False, message=CART_UNAVAILABLE_MESSAGE)
                self._upsert(line)
                return self._result(True)

            if existing is not None:
                self._replace(existing, existing.model_copy(update={"quantity": existing.quantity + quantity}))
            else:
                self._items.append(
                    CartLineItem(
                        local_id=uuid4().hex,
                        product_id=str(product_id),
                        quantity=quantity,
                        customization=customization,
                    )
                )
            return self._persisted()

    async def update(self, item_key: str, quantity: int, customization: Customization | None = None) -> CartResult:
        """Set a line's quantity; zero removes the line."""
        if quantity < 0:
            return self._result(False, message="Quantity cannot be negative")
        if quantity == 0:
            return await self.remove(item_key)

        with self._exclusive("update") as allowed:
            if not allowed:
                return self._result(False, message=BUSY_MESSAGE)
            await self._wait_for_sync()

            item = self.find(item_key)
            if item is None:
                return self._result(False, message="Item not found in cart")

            effective_customization = customization or item.customization
            if effective_customization is None:
                rejection = await self._check_stock(item.product_id, quantity)
                if rejection is not None:
                    return self._result(False, message=rejection.message)

            if self.is_authenticated and item.id is not None:
                try:
                    line = await self.cart_api.update_item(self._user_id, str(item.id), quantity, customization)
                except CollaboratorUnavailable:
                    return self._result(False, message=CART_UNAVAILABLE_MESSAGE)
                self._upsert(line)
                return self._result(True)

            update = {"quantity": quantity}
            if customization is not None:
                update["customization"] = customization
            self._replace(item, item.model_copy(update=update))
            return self._persisted()

    async def remove(self, item_key: str) -> CartResult:
        with self._exclusive("remove") as allowed:
            if not allowed:
                return self._result(False, message=BUSY_MESSAGE)
            await self._wait_for_sync()

            item = self.find(item_key)
            if item is None:
                return self._result(False, message="Item not found in cart")

            if self.is_authenticated and item.id is not None:
                try:
                    await self.cart_api.remove_item(self._user_id, str(item.id))
                except CollaboratorUnavailable:
                    return self._result(False, message=CART_UNAVAILABLE_MESSAGE)

            self._items = [i for i in self._items if i is not item]
            return self._persisted()

    async def clear(self) -> CartResult:
        with self._exclusive("clear") as allowed:
            if not allowed:
                return self._result(False, message=BUSY_MESSAGE)
            await self._wait_for_sync()

            if self.is_authenticated:
                try:
                    await self.cart_api.clear_cart(self._user_id)
                except CollaboratorUnavailable:
                    return self._result(False, message=CART_UNAVAILABLE_MESSAGE)

            self._items = []
            if not self.is_authenticated:
                self.storage.remove(self.storage_key)
            return self._result(True)

    async def cleanup_invalid_items(self, catalog_feed: list[str] | None = None) -> CartResult:
        """Drop lines whose product left the catalog; custom creations always stay."""
        with self._exclusive("cleanup") as allowed:
            if not allowed:
                return self._result(False, message=BUSY_MESSAGE)
            await self._wait_for_sync()

            if catalog_feed is None:
                try:
                    catalog_feed = [str(p.id) for p in await self.catalog.list_products()]
                except CollaboratorUnavailable as exc:
                    logger.warning("Catalog feed unavailable, skipping cart cleanup", error=str(exc))
                    return self._result(False, warning="We couldn't check your cart against the catalog.")

            known = {str(pid) for pid in catalog_feed}
            invalid = [
                item
                for item in self._items
                if item.product_id != CUSTOM_CREATION_PRODUCT_ID and str(item.product_id) not in known
            ]
            if not invalid:
                return self._result(True)

            if self.is_authenticated:
                for item in invalid:
                    if item.id is None:
                        continue
                    try:
                        await self.cart_api.remove_item(self._user_id, str(item.id))
                    except CollaboratorUnavailable as exc:
                        logger.warning("Could not remove stale cart item", item_id=item.id, error=str(exc))

            logger.info("Removed items no longer in the catalog", product_ids=[i.product_id for i in invalid])
            self._items = [item for item in self._items if item not in invalid]
            return self._persisted()

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    async def _check_stock(self, product_id: str, quantity: int) -> StockUnavailable | None:
        """Return the rejection for a plain item, or ``None`` when stock allows it.

        A failed stock lookup rejects the request.
        """
        try:
            product = await self.catalog.get_product(str(product_id))
        except CollaboratorUnavailable as exc:
            logger.warning("Stock check failed", product_id=product_id, error=str(exc))
            return StockUnavailable(str(product_id), quantity, 0, "Unable to verify stock availability")

        if product is None:
            return StockUnavailable(str(product_id), quantity, 0, "This product is no longer available")

        available = product.total_stock
        if available == 0:
            rejection = StockUnavailable(str(product_id), quantity, 0, "This product is out of stock")
        elif quantity > available:
            rejection = StockUnavailable(
                str(product_id), quantity, available, f"Only {available} items available in stock"
            )
        else:
            return None

        logger.info("Cart change rejected by stock", product_id=product_id, requested=quantity, available=available)
        return rejection

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _replace(self, old: CartLineItem, new: CartLineItem) -> None:
        self._items = [new if item is old else item for item in self._items]

    def _upsert(self, line: CartLineItem) -> None:
        for index, item in enumerate(self._items):
            if item.id is not None and str(item.id) == str(line.id):
                self._items[index] = line
                return
        self._items.append(line)

    def _load_guest_snapshot(self) -> list[CartLineItem]:
        guest = self.storage.load_model(self.storage_key, GuestCart)
        return list(guest.items) if guest else []

    def _persisted(self) -> CartResult:
        """Write the guest tier (guests only) and report the outcome."""
        if self.is_authenticated:
            return self._result(True)
        try:
            self.storage.save_model(self.storage_key, project_guest_cart(self._items, self.preview_limit))
        except StorageCapacityExceeded as exc:
            logger.warning("Guest cart not persisted", key=exc.key, size=exc.size, capacity=exc.capacity)
            return self._result(True, warning=CAPACITY_WARNING)
        return self._result(True)

    def _result(self, ok: bool, message: str | None = None, warning: str | None = None) -> CartResult:
        if warning is not None:
            self.last_warning = warning
        return CartResult(ok=ok, items=list(self._items), message=message, warning=warning)
