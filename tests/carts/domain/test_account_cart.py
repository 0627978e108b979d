"""Domain tests for the AccountCart aggregate."""

import pytest
from carts.cart.cart import AccountCart, CartLine, ReviewStatus
from carts.cart.events import CartCleared, CartLineAdded, CartLineRemoved, CartLineUpdated, GuestCartSynced
from protean.exceptions import ValidationError

UPGRADE = {"designs": [{"name": "Logo", "selectedStyles": {"upgrades": [{"id": "metallic", "price": 5}]}}]}


def _cart():
    cart = AccountCart.create(user_id="user-1")
    cart._events.clear()
    return cart


class TestCreate:
    def test_new_cart_is_empty(self):
        cart = AccountCart.create(user_id="user-1")
        assert cart.user_id == "user-1"
        assert len(cart.lines) == 0
        assert cart.created_at is not None


class TestAddLine:
    def test_adds_plain_line(self):
        cart = _cart()
        line_id = cart.add_line("prod-001", 2, product={"id": "prod-001", "title": "Tote", "price": 20})

        line = cart.find_line(line_id)
        assert line.quantity == 2
        assert line.review_status == ReviewStatus.APPROVED.value
        assert line.product_data()["title"] == "Tote"

    def test_plain_lines_merge(self):
        cart = _cart()
        first = cart.add_line("prod-001", 1)
        second = cart.add_line("prod-001", 2)

        assert first == second
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3

    def test_customized_lines_never_merge(self):
        cart = _cart()
        cart.add_line("prod-001", 1, customization=UPGRADE)
        cart.add_line("prod-001", 1, customization=UPGRADE)
        cart.add_line("prod-001", 1)

        assert len(cart.lines) == 3
        customized = [line for line in cart.lines if line.is_customized]
        assert len(customized) == 2
        assert all(line.review_status == ReviewStatus.PENDING.value for line in customized)
        assert customized[0].customization_data() == UPGRADE

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError) as exc:
            _cart().add_line("prod-001", 0)
        assert "quantity" in exc.value.messages

    def test_raises_event(self):
        cart = _cart()
        line_id = cart.add_line("prod-001", 2)

        events = [e for e in cart._events if isinstance(e, CartLineAdded)]
        assert len(events) == 1
        assert events[0].line_id == line_id
        assert events[0].quantity == 2


class TestChangeLines:
    def test_update_quantity(self):
        cart = _cart()
        line_id = cart.add_line("prod-001", 1)
        cart.update_line(line_id, 4)

        assert cart.find_line(line_id).quantity == 4
        event = next(e for e in cart._events if isinstance(e, CartLineUpdated))
        assert event.previous_quantity == 1
        assert event.new_quantity == 4

    def test_update_customization_needs_review_again(self):
        cart = _cart()
        line_id = cart.add_line("prod-001", 1)
        cart.update_line(line_id, 1, customization=UPGRADE)
        assert cart.find_line(line_id).review_status == ReviewStatus.PENDING.value

    def test_unknown_line(self):
        with pytest.raises(ValidationError) as exc:
            _cart().update_line("missing", 1)
        assert "item_id" in exc.value.messages

    def test_remove_line(self):
        cart = _cart()
        line_id = cart.add_line("prod-001", 1)
        cart.remove_line(line_id)

        assert len(cart.lines) == 0
        assert any(isinstance(e, CartLineRemoved) for e in cart._events)

    def test_clear(self):
        cart = _cart()
        cart.add_line("prod-001", 1)
        cart.add_line("prod-002", 1)
        cart.clear()

        assert len(cart.lines) == 0
        event = next(e for e in cart._events if isinstance(e, CartCleared))
        assert event.lines_removed == 2


class TestSyncGuestLines:
    def test_merges_into_existing_lines(self):
        cart = _cart()
        cart.add_line("prod-001", 2)

        cart.sync_guest_lines(
            [
                {"product_id": "prod-001", "quantity": 1},
                {"product_id": "prod-002", "quantity": 1, "customization": UPGRADE},
            ]
        )

        quantities = {(line.product_id, line.is_customized): line.quantity for line in cart.lines}
        assert quantities == {("prod-001", False): 3, ("prod-002", True): 1}
        event = next(e for e in cart._events if isinstance(e, GuestCartSynced))
        assert event.lines_merged == 2

    def test_rejects_empty_quantity(self):
        with pytest.raises(ValidationError):
            _cart().sync_guest_lines([{"product_id": "prod-001", "quantity": 0}])

    def test_empty_upload_changes_nothing(self):
        cart = _cart()
        cart.add_line("prod-001", 1)
        cart.sync_guest_lines([])
        assert len(cart.lines) == 1


class TestCartLine:
    def test_plain_line_has_no_customization(self):
        line = CartLine(product_id="prod-001", quantity=1)
        assert not line.is_customized
        assert line.customization_data() is None
        assert line.product_data() is None
