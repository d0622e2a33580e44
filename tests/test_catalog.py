# tests/test_catalog.py
from conftest import BUYER, SELLER, make_client
from fakes import CountingDatabase, FailingDatabase, product_data


def test_seller_list_returns_only_own_products(client, db):
    mine = db.create_product(product_data(seller="user_alice", name="Mine")).id
    db.create_product(product_data(seller="user_carol", name="Theirs"))
    r = client.get("/product/seller-list", headers=SELLER)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert [p["id"] for p in body["data"]] == [mine]


def test_seller_list_denied_for_non_seller_without_store_access(db, media, identity):
    counting = CountingDatabase(db)
    client = make_client(counting, media, identity)
    r = client.get("/product/seller-list", headers=BUYER)
    assert r.status_code == 403
    assert r.json()["success"] is False
    assert counting.calls == []


def test_seller_list_requires_authentication(client):
    r = client.get("/product/seller-list")
    assert r.status_code == 401


def test_product_list_is_public(client, db):
    db.create_product(product_data(name="Watch", category="Watch", price=200, offer_price=150))
    r = client.get("/product/list")
    assert r.status_code == 200
    [product] = r.json()["data"]
    assert product["name"] == "Watch"
    assert product["offerPrice"] == 150
    assert product["images"] == [{"url": "https://media.test/a.png", "publicId": "pid-a"}]
    assert set(product) == {"id", "seller", "name", "description", "category", "price",
                            "offerPrice", "images", "date"}


def test_user_data_projection(client, db):
    db.set_cart_item("user_alice", "p1", 2)
    r = client.get("/user/data", headers=SELLER)
    assert r.status_code == 200
    assert r.json()["data"] == {
        "id": "user_alice",
        "email": "alice@example.com",
        "name": "Alice Seller",
        "imageUrl": None,
        "cartItems": {"p1": 2},
        "isSeller": True,
    }


def test_user_data_for_buyer_is_not_seller(client):
    r = client.get("/user/data", headers=BUYER)
    assert r.json()["data"]["isSeller"] is False


def test_user_data_unknown_user(client):
    r = client.get("/user/data", headers={"Authorization": "Bearer ghost-token"})
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "User not found"}


def test_store_failure_is_reported_as_envelope(media, identity):
    client = make_client(FailingDatabase(fail={"list_products"}), media, identity)
    r = client.get("/product/list")
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "connection refused"}


def test_unknown_route_uses_envelope(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json()["success"] is False
