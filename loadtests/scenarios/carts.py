"""Cart load test scenarios.

Two journeys against the account cart: a shopper editing a saved cart, and
the burst of guest-cart uploads that follows sign-in.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import cart_item_data, guest_cart_data, shopper_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CartState


class AccountCartJourney(SequentialTaskSet):
    """Add Items -> Add Customized Item -> Update Quantity -> Remove Item -> Clear.

    Models a signed-in shopper who fills a cart, changes their mind,
    and starts over.
    """

    def on_start(self):
        self.state = CartState(user_id=shopper_id())

    @property
    def headers(self):
        return {"X-User-Id": self.state.user_id}

    def _add(self, customized: bool, name: str):
        with self.client.post(
            "/cart",
            json=cart_item_data(customized=customized),
            headers=self.headers,
            catch_response=True,
            name=name,
        ) as resp:
            if resp.status_code == 201:
                line_id = resp.json()["data"]["id"]
                if line_id not in self.state.line_ids:
                    self.state.line_ids.append(line_id)
                self.state.item_count += 1
            else:
                resp.failure(f"Add item failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def add_item_1(self):
        self._add(False, "POST /cart")

    @task
    def add_item_2(self):
        self._add(False, "POST /cart")

    @task
    def add_customized_item(self):
        self._add(True, "POST /cart (customized)")

    @task
    def view_cart(self):
        with self.client.get("/cart", headers=self.headers, catch_response=True, name="GET /cart") as resp:
            if resp.status_code != 200:
                resp.failure(f"Get cart failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def update_quantity(self):
        with self.client.put(
            f"/cart/{self.state.line_ids[0]}",
            json={"quantity": 4},
            headers=self.headers,
            catch_response=True,
            name="PUT /cart/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Update failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def remove_item(self):
        line_id = self.state.line_ids.pop()
        with self.client.delete(
            f"/cart/{line_id}",
            headers=self.headers,
            catch_response=True,
            name="DELETE /cart/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Remove failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def clear_cart(self):
        with self.client.delete("/cart", headers=self.headers, catch_response=True, name="DELETE /cart") as resp:
            if resp.status_code != 200:
                resp.failure(f"Clear failed: {resp.status_code}: {extract_error_detail(resp)}")
        self.state.line_ids.clear()
        self.interrupt()


class GuestSyncJourney(SequentialTaskSet):
    """Sign In (sync guest cart) -> View Cart.

    Every new shopper uploads the guest cart once; the merged list comes back.
    """

    def on_start(self):
        self.state = CartState(user_id=shopper_id())

    @task
    def sync_guest_cart(self):
        payload = guest_cart_data()
        with self.client.post(
            "/cart/sync",
            json=payload,
            headers={"X-User-Id": self.state.user_id},
            catch_response=True,
            name="POST /cart/sync",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Sync failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
            elif not resp.json()["data"]:
                resp.failure("Sync returned an empty cart")

    @task
    def view_cart(self):
        with self.client.get(
            "/cart", headers={"X-User-Id": self.state.user_id}, catch_response=True, name="GET /cart"
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get cart failed: {resp.status_code}: {extract_error_detail(resp)}")
        self.interrupt()


class AccountCartUser(HttpUser):
    """Signed-in shoppers editing their saved carts."""

    tasks = [AccountCartJourney]
    wait_time = between(1, 3)


class GuestSyncUser(HttpUser):
    """Shoppers signing in with a guest cart in hand."""

    tasks = [GuestSyncJourney]
    wait_time = between(0.5, 2)
