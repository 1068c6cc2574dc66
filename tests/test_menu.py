from decimal import Decimal

from conftest import auth_headers, make_menu_item, make_user
from pizzeria.models import Category, MenuItem, Order, OrderItem, OrderType, UserRole


def test_public_menu_groups_available_items(client, db_session):
    make_menu_item(db_session, "Pepperoni", "14.00")
    make_menu_item(db_session, "Margherita", "12.50")
    hidden = make_menu_item(db_session, "Seasonal", "16.00")
    hidden.is_available = False
    make_menu_item(db_session, "Garlic Knots", "6.00", category_name="Sides")
    db_session.query(Category).filter(Category.name == "Sides").update({Category.order: 2})
    db_session.commit()

    response = client.get("/api/menu")

    assert response.status_code == 200
    menu = response.json()
    assert [category["name"] for category in menu] == ["Pizzas", "Sides"]
    assert [item["name"] for item in menu[0]["items"]] == ["Margherita", "Pepperoni"]
    assert menu[0]["items"][0]["base_price"] == "12.50"


def test_menu_reads_are_cached_until_admin_changes_them(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    item = make_menu_item(db_session, "Margherita", "12.50")

    first = client.get("/api/menu/items")
    assert [entry["name"] for entry in first.json()] == ["Margherita"]

    db_session.add(MenuItem(category_id=item.category_id, name="Sneaky", base_price=item.base_price))
    db_session.commit()
    cached = client.get("/api/menu/items")
    assert [entry["name"] for entry in cached.json()] == ["Margherita"]

    created = client.post(
        "/api/menu/items",
        json={"category_id": item.category_id, "name": "Hawaiian", "base_price": "13.75"},
        headers=auth_headers(admin),
    )
    assert created.status_code == 201

    refreshed = client.get("/api/menu/items")
    assert [entry["name"] for entry in refreshed.json()] == ["Hawaiian", "Margherita", "Sneaky"]


def test_menu_changes_require_admin(client, db_session):
    customer = make_user(db_session)
    staff = make_user(db_session, "cook", role=UserRole.KITCHEN)

    for user in (customer, staff):
        response = client.post("/api/menu/categories", json={"name": "Desserts"}, headers=auth_headers(user))
        assert response.status_code == 403
    assert client.post("/api/menu/categories", json={"name": "Desserts"}).status_code == 401


def test_category_lifecycle(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    headers = auth_headers(admin)

    created = client.post("/api/menu/categories", json={"name": "Desserts", "order": 5}, headers=headers)
    assert created.status_code == 201
    category_id = created.json()["id"]

    duplicate = client.post("/api/menu/categories", json={"name": "desserts"}, headers=headers)
    assert duplicate.status_code == 409

    renamed = client.put(f"/api/menu/categories/{category_id}", json={"name": "Sweets"}, headers=headers)
    assert renamed.json()["name"] == "Sweets"
    assert [c["name"] for c in client.get("/api/menu/categories").json()] == ["Sweets"]

    assert client.delete(f"/api/menu/categories/{category_id}", headers=headers).status_code == 204
    assert client.get("/api/menu/categories").json() == []


def test_deleting_category_with_items_conflicts(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    item = make_menu_item(db_session)

    response = client.delete(f"/api/menu/categories/{item.category_id}", headers=auth_headers(admin))

    assert response.status_code == 409


def test_deleting_ordered_item_conflicts(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    item = make_menu_item(db_session)
    order = Order(
        order_type=OrderType.PICKUP,
        subtotal=item.base_price,
        tax=Decimal("0.00"),
        total=item.base_price,
        phone="5550100",
        items=[OrderItem(menu_item_id=item.id, quantity=1, price=item.base_price)],
    )
    db_session.add(order)
    db_session.commit()

    response = client.delete(f"/api/menu/items/{item.id}", headers=auth_headers(admin))

    assert response.status_code == 409
    assert db_session.query(MenuItem).count() == 1
