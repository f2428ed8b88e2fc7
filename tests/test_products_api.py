# tests/test_products_api.py

import uuid

API = "/api/v1"


def test_create_scalar_product(client, auth, admin):
    response = client.post(
        f"{API}/products",
        json={"title": "Basic Cap", "price": 299, "stock": 12},
        headers=auth(admin),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["slug"] == "basic-cap"
    assert data["stock"] == 12
    assert data["track_inventory_by_size"] is False
    assert data["sizes"] == []


def test_create_sized_product(client, auth, admin):
    response = client.post(
        f"{API}/products",
        json={"title": "Oversized Tee", "price": 799, "stock": 99, "sizes": [{"code": "M", "qty": 4}, {"code": "L", "qty": 2}]},
        headers=auth(admin),
    )

    data = response.json()["data"]
    assert data["track_inventory_by_size"] is True
    assert data["stock"] == 0
    assert {s["code"]: s["qty"] for s in data["sizes"]} == {"M": 4, "L": 2}


def test_slugs_stay_unique(client, auth, admin):
    body = {"title": "Basic Tee", "price": 499}
    first = client.post(f"{API}/products", json=body, headers=auth(admin)).json()["data"]
    second = client.post(f"{API}/products", json=body, headers=auth(admin)).json()["data"]

    assert first["slug"] == "basic-tee"
    assert second["slug"] == "basic-tee-2"


def test_catalogue_writes_are_admin_only(client, auth, customer):
    response = client.post(
        f"{API}/products", json={"title": "Cap", "price": 1}, headers=auth(customer)
    )
    assert response.status_code == 403


def test_public_listing_hides_inactive(client, auth, admin, make_product):
    visible = make_product(title="Cap")
    hidden = make_product(title="Old Cap")
    client.patch(f"{API}/products/{hidden.id}", json={"is_active": False}, headers=auth(admin))

    listed = client.get(f"{API}/products").json()["data"]

    assert [p["id"] for p in listed] == [str(visible.id)]
    assert client.get(f"{API}/products/{hidden.id}").json()["data"]["is_active"] is False
    assert client.get(f"{API}/products/{uuid.uuid4()}").status_code == 404


def test_set_inventory_matches_mode(client, auth, admin, make_product, stock_of):
    scalar = make_product(stock=1)
    sized = make_product(sizes={"M": 0})

    ok_scalar = client.put(
        f"{API}/products/{scalar.id}/inventory", json={"stock": 10}, headers=auth(admin)
    )
    ok_sized = client.put(
        f"{API}/products/{sized.id}/inventory",
        json={"sizes": [{"code": "M", "qty": 5}, {"code": "XL", "qty": 1}]},
        headers=auth(admin),
    )
    wrong = client.put(
        f"{API}/products/{sized.id}/inventory", json={"stock": 3}, headers=auth(admin)
    )

    assert ok_scalar.json()["message"] == "Inventory updated"
    assert stock_of(scalar.id) == 10
    assert stock_of(sized.id, "M") == 5
    assert stock_of(sized.id, "XL") == 1
    assert ok_sized.status_code == 200
    assert wrong.status_code == 400


def test_negative_stock_is_rejected(client, auth, admin, make_product):
    product = make_product(stock=1)
    response = client.put(
        f"{API}/products/{product.id}/inventory", json={"stock": -1}, headers=auth(admin)
    )
    assert response.status_code == 400
