import httpx
import pytest

from storefront.api import ApiError, StoreAPI
from storefront.cart import OFFLINE_MESSAGE, CartStore
from storefront.checkout import Checkout
from storefront.favorites import FavoritesStore
from storefront.session import CART, FAVORITES, Session, on_merge_started
from storefront.storage import LocalStorage
from storefront.sync import StoreError, SyncedStore

DRESS = {"_id": "64b7f0c2a1b2c3d4e5f60718", "name": "Summer Dress", "price": 2549, "images": ["https://img.test/dress.jpg"]}
TEE = {"_id": "64b7f0c2a1b2c3d4e5f60719", "name": "Casual T-Shirt", "price": 599, "images": ["https://img.test/tee.jpg"]}
USER = {"_id": "650000000000000000000042", "name": "Asha", "email": "asha@example.com"}


class FakeServer:
    """Routes requests to canned answers: (status, json), an exception, or a callable."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def __call__(self, request: httpx.Request):
        key = (request.method, request.url.path)
        self.calls.append(key)
        if key == ("POST", "/api/users/login"):
            return httpx.Response(200, json={"token": "token-1", "user": USER})
        answer = self.routes.get(key, (200, {"items": []}))
        if callable(answer):
            answer = answer(request)
        if isinstance(answer, Exception):
            raise answer
        status, body = answer
        return httpx.Response(status, json=body)

    def count(self, method, path):
        return self.calls.count((method, path))


def _session(tmp_path, server):
    client = httpx.Client(transport=httpx.MockTransport(server), base_url="http://store.test")
    return Session(StoreAPI(client=client), LocalStorage(str(tmp_path / "storefront.json")))


def _server_line(product, line_id, quantity=1):
    return {"_id": line_id, "productId": product, "quantity": quantity, "size": None, "color": None}


def _connect_error(request):
    return httpx.ConnectError("connection refused", request=request)


# --- Anonymous ---
def test_anonymous_cart_is_local_only(tmp_path):
    server = FakeServer()
    session = _session(tmp_path, server)
    cart = CartStore(session)

    cart.add(DRESS, 1, "M")
    cart.add(DRESS, 2, "M")
    cart.add(TEE, 1)

    assert server.calls == []
    assert [i.quantity for i in cart.items] == [3, 1]
    assert cart.cart.total_items == 4
    assert cart.cart.total_price == 2549 * 3 + 599
    assert session.storage.get(CART)["totalItems"] == 4

    reloaded = CartStore(_session(tmp_path, server))
    assert reloaded.refresh() == cart.items


def test_data_errors_fail_before_any_call(tmp_path):
    server = FakeServer()
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    cart = CartStore(session)

    with pytest.raises(ValueError):
        cart.add({"_id": "abc", "name": "Broken"})
    with pytest.raises(ValueError):
        cart.add(DRESS, 0)
    with pytest.raises(ValueError):
        cart.update_quantity("not-an-id", 2)
    with pytest.raises(ValueError):
        FavoritesStore(session).add({"name": "No id"})

    assert server.calls == [("POST", "/api/users/login")]


# --- Fallback policy ---
@pytest.mark.parametrize("answer", [(503, {"detail": "down"}), (502, {}), (504, {}), _connect_error])
def test_unavailable_server_applies_change_locally(tmp_path, answer):
    server = FakeServer({("POST", "/api/cart"): answer})
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    cart = CartStore(session)

    cart.add(DRESS, 2)

    assert [(i.product_id, i.quantity) for i in cart.items] == [(DRESS["_id"], 2)]
    assert session.storage.get(CART)["items"][0]["quantity"] == 2
    assert OFFLINE_MESSAGE in session.notifier.errors()


def test_not_found_applies_change_locally_without_warning(tmp_path):
    server = FakeServer({("PUT", f"/api/cart/{DRESS['_id']}"): (404, {"detail": "Cart not found"})})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    session.login("asha@example.com", "secret123")

    cart.update_quantity(DRESS["_id"], 5)

    assert cart.items[0].quantity == 5
    assert session.notifier.errors() == []


def test_other_errors_are_not_applied(tmp_path):
    server = FakeServer({("POST", "/api/cart"): (400, {"detail": "Invalid product ID"})})
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    cart = CartStore(session)

    with pytest.raises(StoreError) as excinfo:
        cart.add(DRESS, 1)

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Invalid product ID"
    assert cart.items == []
    assert session.storage.get(CART) is None


def test_server_answer_is_adopted(tmp_path):
    line = _server_line(DRESS, "650000000000000000000001", 2)
    server = FakeServer({("POST", "/api/cart"): (200, {"items": [line]})})
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    cart = CartStore(session)

    cart.add(DRESS, 2)

    assert cart.items[0].id == "650000000000000000000001"
    assert cart.cart.total_price == 2549 * 2


# --- Refresh and merge ---
def test_merge_failures_keep_local_items(tmp_path):
    server = FakeServer({("POST", "/api/cart"): (500, {"detail": "Server error"})})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    session.login("asha@example.com", "secret123")

    cart.refresh()

    assert server.count("POST", "/api/cart") == 1
    assert server.count("GET", "/api/cart") == 2
    assert [i.product_id for i in cart.items] == [DRESS["_id"]]
    # An empty server copy never overwrites what is stored locally
    assert len(session.storage.get(CART)["items"]) == 1
    assert session.state(CART).merge_done


def test_merge_refetch_failure_keeps_local_snapshot(tmp_path):
    gets = []

    def get_cart(request):
        gets.append(request)
        return (200, {"items": []}) if len(gets) == 1 else (503, {})

    server = FakeServer({("GET", "/api/cart"): get_cart, ("POST", "/api/cart"): (200, {"items": []})})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    cart.add(TEE, 3)
    session.login("asha@example.com", "secret123")

    cart.refresh()

    assert server.count("POST", "/api/cart") == 2
    assert [i.product_id for i in cart.items] == [DRESS["_id"], TEE["_id"]]
    assert "Server unavailable. Using local cart data." in session.notifier.errors()


def test_refresh_failure_shows_local_items(tmp_path):
    server = FakeServer({("GET", "/api/cart"): _connect_error})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(TEE, 1)
    session.login("asha@example.com", "secret123")
    session.transition(CART, on_merge_started)

    cart.refresh()

    assert [i.product_id for i in cart.items] == [TEE["_id"]]
    assert "Server unavailable. Showing locally saved cart." in session.notifier.errors()


def test_merge_on_login_against_the_api(client, products, register, tmp_path):
    register()
    api = StoreAPI(client=client)
    session = Session(api, LocalStorage(str(tmp_path / "storefront.json")))
    cart = CartStore(session)
    shirt = client.get(f"/api/products/{products['Classic White Shirt']}").json()
    jeans = client.get(f"/api/products/{products['Slim Fit Jeans']}").json()

    cart.add(shirt, 1, "M", "White")
    cart.add(jeans, 2, "32", "Blue")
    token = client.post("/api/users/login", json={"email": "asha@example.com", "password": "secret123"}).json()["token"]
    client.post(
        "/api/cart",
        json={"productId": jeans["_id"], "quantity": 1, "size": "32", "color": "Blue"},
        headers={"Authorization": f"Bearer {token}"},
    )

    pushed = []
    add_to_cart = api.add_to_cart
    api.add_to_cart = lambda *args, **kwargs: pushed.append(args) or add_to_cart(*args, **kwargs)

    session.login("asha@example.com", "secret123")
    cart.refresh()

    assert pushed == [(shirt["_id"], 1, "M", "White")]
    server_items = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"}).json()["items"]
    assert sorted(i["productId"]["name"] for i in server_items) == ["Classic White Shirt", "Slim Fit Jeans"]
    assert {i.product_id: i.quantity for i in cart.items} == {shirt["_id"]: 1, jeans["_id"]: 1}

    # Later refreshes in the same session do not merge again
    cart.refresh()
    cart.refresh()
    assert len(pushed) == 1

    # A new login episode merges what was added while logged out
    session.logout()
    tee = client.get(f"/api/products/{products['Casual T-Shirt']}").json()
    cart.add(tee, 1)
    session.login("asha@example.com", "secret123")
    cart.refresh()

    assert pushed[-1] == (tee["_id"], 1, None, None)
    assert len(pushed) == 2
    assert len(cart.items) == 3


def test_merge_keeps_every_size_of_a_product(client, products, register, tmp_path):
    register()
    session = Session(StoreAPI(client=client), LocalStorage(str(tmp_path / "storefront.json")))
    cart = CartStore(session)
    shirt = client.get(f"/api/products/{products['Classic White Shirt']}").json()
    cart.add(shirt, 1, "M", "White")
    cart.add(shirt, 1, "L", "White")

    session.login("asha@example.com", "secret123")
    cart.refresh()

    assert sorted((i.size, i.quantity) for i in cart.items) == [("L", 1), ("M", 1)]
    assert all(i.product_id == shirt["_id"] for i in cart.items)
    stored = session.storage.get(CART)["items"]
    assert sorted(line["size"] for line in stored) == ["L", "M"]


def test_store_missing_a_hook_cannot_be_created(tmp_path):
    class Incomplete(SyncedStore):
        collection = "wishlist"

        def _decode(self, raw):
            return raw

    with pytest.raises(TypeError):
        Incomplete(_session(tmp_path, FakeServer()))


def test_logout_keeps_local_data(tmp_path):
    server = FakeServer({("POST", "/api/cart"): (503, {})})
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    cart = CartStore(session)
    cart.add(DRESS, 1)

    session.logout()

    assert session.token is None
    assert session.storage.get("token") is None
    assert len(session.storage.get(CART)["items"]) == 1
    assert session.state(CART).reset_on_login


def test_restore_drops_rejected_token(tmp_path):
    server = FakeServer({("GET", "/api/users/profile"): (401, {"detail": "Authentication failed"})})
    session = _session(tmp_path, server)
    session.storage.set("token", "expired")

    assert not session.restore()
    assert session.storage.get("token") is None
    assert not session.authenticated


def test_restore_resumes_session(tmp_path):
    server = FakeServer({("GET", "/api/users/profile"): (200, USER)})
    session = _session(tmp_path, server)
    session.storage.set("token", "token-1")

    assert session.restore()
    assert session.user["name"] == "Asha"
    assert session.state(CART).needs_merge


# --- Clearing ---
def test_clear_removes_stored_cart(tmp_path):
    session = _session(tmp_path, FakeServer())
    cart = CartStore(session)
    cart.add(DRESS, 1)

    cart.clear()

    assert cart.items == []
    assert session.storage.get(CART) is None
    assert not session.state(CART).clear_requested


def test_clear_while_offline(tmp_path):
    server = FakeServer({("DELETE", "/api/cart"): _connect_error})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    session.login("asha@example.com", "secret123")

    cart.clear()

    assert session.storage.get(CART) is None
    assert any("cleared locally" in message for message in session.notifier.errors())


def test_removing_last_item_on_server_clears_storage(tmp_path):
    server = FakeServer({("DELETE", f"/api/cart/{DRESS['_id']}"): (200, {"items": []})})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    session.login("asha@example.com", "secret123")

    cart.remove(DRESS["_id"])

    assert cart.items == []
    assert session.storage.get(CART) is None


# --- Favorites ---
def test_favorite_already_on_server_adopts_server_list(tmp_path):
    favorite = {"_id": "650000000000000000000009", "productId": DRESS["_id"], "name": "Summer Dress", "price": 2549}
    server = FakeServer({
        ("POST", "/api/favorites"): (400, {"detail": "Product already in favorites"}),
        ("GET", "/api/favorites"): (200, [favorite]),
    })
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    favorites = FavoritesStore(session)

    favorites.add(DRESS)

    assert [(f.id, f.product_id) for f in favorites.items] == [(favorite["_id"], DRESS["_id"])]
    assert session.notifier.errors() == []


def test_local_favorite_is_removed_without_a_call(tmp_path):
    server = FakeServer()
    session = _session(tmp_path, server)
    favorites = FavoritesStore(session)
    favorites.add(DRESS)
    favorites.add(TEE)
    session.login("asha@example.com", "secret123")

    favorites.remove(DRESS["_id"])

    assert [f.product_id for f in favorites.items] == [TEE["_id"]]
    assert server.calls == [("POST", "/api/users/login")]
    assert session.storage.get(FAVORITES)[0]["product_id"] == TEE["_id"]


def test_favorite_removed_on_server_by_record_id(tmp_path):
    favorite = {"_id": "650000000000000000000009", "productId": DRESS["_id"], "name": "Summer Dress"}
    server = FakeServer({
        ("GET", "/api/favorites"): (200, [favorite]),
        ("DELETE", f"/api/favorites/{favorite['_id']}"): (200, []),
    })
    session = _session(tmp_path, server)
    session.login("asha@example.com", "secret123")
    favorites = FavoritesStore(session)
    favorites.refresh()

    favorites.remove(DRESS["_id"])

    assert favorites.items == []
    assert server.count("DELETE", f"/api/favorites/{favorite['_id']}") == 1
    assert session.storage.get(FAVORITES) is None


def test_favorites_merge_skips_known_products(tmp_path):
    existing = {"_id": "650000000000000000000009", "productId": DRESS["_id"], "name": "Summer Dress"}
    added = {"_id": "650000000000000000000010", "productId": TEE["_id"], "name": "Casual T-Shirt"}
    gets = []

    def get_favorites(request):
        gets.append(request)
        return (200, [existing]) if len(gets) == 1 else (200, [existing, added])

    server = FakeServer({("GET", "/api/favorites"): get_favorites, ("POST", "/api/favorites"): (201, [existing, added])})
    session = _session(tmp_path, server)
    favorites = FavoritesStore(session)
    favorites.add(DRESS)
    favorites.add(TEE)
    session.login("asha@example.com", "secret123")

    favorites.refresh()

    assert server.count("POST", "/api/favorites") == 1
    assert [f.id for f in favorites.items] == [existing["_id"], added["_id"]]


# --- Checkout ---
def test_checkout_clears_cart_after_order(tmp_path):
    placed = {"orderId": "650000000000000000000077", "amount": 2676.45, "order": {"orderNumber": "ORD-1-1"}}
    server = FakeServer({("POST", "/api/orders"): (201, placed), ("DELETE", "/api/cart"): (200, {"message": "ok"})})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    session.login("asha@example.com", "secret123")
    checkout = Checkout(cart)

    assert checkout.preview()["total"] == 2676.45
    assert checkout.preview("SUMMER25")["discount"] == 637.25

    assert checkout.place_order({"fullName": "Asha Rao"}, payment_method="cod") == placed
    assert cart.items == []
    assert server.count("DELETE", "/api/cart") == 1


def test_buy_now_leaves_cart_alone(tmp_path):
    placed = {"orderId": "order_Live42", "amount": 628.95, "order": {"orderNumber": "ORD-1-2"}}
    server = FakeServer({("POST", "/api/orders"): (201, placed)})
    session = _session(tmp_path, server)
    cart = CartStore(session)
    cart.add(DRESS, 1)
    session.login("asha@example.com", "secret123")
    buy_now = cart.items[0].model_copy(update={"product": None, "price": 599})

    Checkout(cart).place_order({"fullName": "Asha Rao"}, payment_method="cod", buy_now=buy_now)

    assert len(cart.items) == 1
    assert server.count("DELETE", "/api/cart") == 0


def test_checkout_requires_login(tmp_path):
    cart = CartStore(_session(tmp_path, FakeServer()))
    cart.add(DRESS, 1)
    with pytest.raises(StoreError):
        Checkout(cart).place_order({"fullName": "Asha Rao"})


def test_api_error_classification():
    assert ApiError(None, "offline").is_transient
    assert ApiError(503, "down").is_transient
    assert not ApiError(500, "boom").is_transient
    assert ApiError(404, "missing").is_not_found
