from decimal import Decimal

from conftest import auth_headers, make_reward, make_user
from pizzeria.models import Reward, User, UserPoints, UserRole
from pizzeria.services import VoucherService


def test_admin_endpoints_require_admin(client, db_session):
    manager = make_user(db_session, "manager", role=UserRole.MANAGER)

    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/users", headers=auth_headers(manager)).status_code == 403
    assert client.get("/api/admin/points/audit", headers=auth_headers(manager)).status_code == 403


def test_list_and_search_users(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    make_user(db_session, "alice")
    make_user(db_session, "bob")

    response = client.get("/api/admin/users", params={"search": "ali"}, headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 1
    assert body["items"][0]["username"] == "alice"


def test_role_changes(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    owner = make_user(db_session, "owner", role=UserRole.SUPER_ADMIN)
    customer = make_user(db_session, "alice")

    promoted = client.patch(
        f"/api/admin/users/{customer.id}", json={"role": "kitchen"}, headers=auth_headers(admin)
    )
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "kitchen"

    escalated = client.patch(
        f"/api/admin/users/{customer.id}", json={"role": "admin"}, headers=auth_headers(admin)
    )
    assert escalated.status_code == 403

    granted = client.patch(
        f"/api/admin/users/{customer.id}", json={"role": "admin"}, headers=auth_headers(owner)
    )
    assert granted.status_code == 200

    self_edit = client.patch(f"/api/admin/users/{admin.id}", json={"is_active": False}, headers=auth_headers(admin))
    assert self_edit.status_code == 400

    missing = client.patch("/api/admin/users/9999", json={"is_active": False}, headers=auth_headers(admin))
    assert missing.status_code == 404


def test_only_super_admin_can_change_admin_accounts(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    other_admin = make_user(db_session, "deputy", role=UserRole.ADMIN)
    owner = make_user(db_session, "owner", role=UserRole.SUPER_ADMIN)

    demoted = client.patch(f"/api/admin/users/{owner.id}", json={"role": "customer"}, headers=auth_headers(admin))
    disabled = client.patch(f"/api/admin/users/{owner.id}", json={"is_active": False}, headers=auth_headers(admin))
    peer = client.patch(f"/api/admin/users/{other_admin.id}", json={"role": "kitchen"}, headers=auth_headers(admin))

    assert demoted.status_code == 403
    assert disabled.status_code == 403
    assert peer.status_code == 403
    db_session.expire_all()
    assert db_session.get(User, owner.id).role == UserRole.SUPER_ADMIN
    assert db_session.get(User, owner.id).is_active is True
    assert db_session.get(User, other_admin.id).role == UserRole.ADMIN

    by_owner = client.patch(
        f"/api/admin/users/{other_admin.id}", json={"role": "manager"}, headers=auth_headers(owner)
    )
    assert by_owner.status_code == 200
    assert by_owner.json()["role"] == "manager"


def test_adjust_points_records_reason_and_actor(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    customer = make_user(db_session, "alice", points=10)

    credit = client.post(
        "/api/admin/points/adjust",
        json={"user_id": customer.id, "points": 25, "reason": "Late delivery"},
        headers=auth_headers(admin),
    )
    assert credit.status_code == 201
    assert credit.json()["type"] == "adjustment"
    assert credit.json()["description"] == "Late delivery (by boss)"

    debit = client.post(
        "/api/admin/points/adjust",
        json={"user_id": customer.id, "points": -5, "reason": "Duplicate credit"},
        headers=auth_headers(admin),
    )
    assert debit.status_code == 201
    assert debit.json()["type"] == "adjustment"

    overdraw = client.post(
        "/api/admin/points/adjust",
        json={"user_id": customer.id, "points": -500, "reason": "Oops"},
        headers=auth_headers(admin),
    )
    assert overdraw.status_code == 409
    assert overdraw.json()["details"] == {"available": 30, "requested": -500}

    history = client.get(f"/api/admin/points/{customer.id}", headers=auth_headers(admin))
    assert history.status_code == 200
    assert history.json()["balance"]["points"] == 30
    assert len(history.json()["transactions"]) == 3


def test_adjust_points_for_unknown_user_is_404(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)

    response = client.post(
        "/api/admin/points/adjust",
        json={"user_id": 4242, "points": 5, "reason": "Goodwill"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 404


def test_audit_reports_drifted_balances(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    customer = make_user(db_session, "alice", points=40)
    db_session.query(UserPoints).filter(UserPoints.user_id == customer.id).update({UserPoints.points: 100})
    db_session.commit()

    response = client.get("/api/admin/points/audit", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["accounts_with_drift"] == 1
    drift = body["items"][0]
    assert drift["user_id"] == customer.id
    assert drift["recorded_points"] == 100
    assert drift["expected_points"] == 40
    assert drift["difference"] == -60


def test_reward_crud(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    headers = auth_headers(admin)

    created = client.post(
        "/api/admin/rewards",
        json={"name": "Free delivery", "points_required": 30, "discount_type": "delivery_fee", "discount_amount": "3.99"},
        headers=headers,
    )
    assert created.status_code == 201
    reward_id = created.json()["id"]

    updated = client.put(f"/api/admin/rewards/{reward_id}", json={"points_required": 25}, headers=headers)
    assert updated.json()["points_required"] == 25
    assert [r["id"] for r in client.get("/api/rewards").json()] == [reward_id]

    assert client.delete(f"/api/admin/rewards/{reward_id}", headers=headers).status_code == 204
    assert client.get("/api/admin/rewards", headers=headers).json() == []


def test_deleting_redeemed_reward_deactivates_it(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    customer = make_user(db_session, "alice", points=100)
    reward = make_reward(db_session)
    VoucherService(db_session).issue(user_id=customer.id, reward_id=reward.id)

    response = client.delete(f"/api/admin/rewards/{reward.id}", headers=auth_headers(admin))

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.get(Reward, reward.id).active is False
    assert client.get("/api/rewards").json() == []
    assert len(client.get("/api/admin/rewards", headers=auth_headers(admin)).json()) == 1


def test_percentage_rewards_are_capped_at_100(client, db_session):
    admin = make_user(db_session, "boss", role=UserRole.ADMIN)
    headers = auth_headers(admin)

    rejected = client.post(
        "/api/admin/rewards",
        json={"name": "Too generous", "discount_type": "percentage", "discount_amount": "150"},
        headers=headers,
    )
    assert rejected.status_code == 422

    created = client.post(
        "/api/admin/rewards",
        json={"name": "Half off", "discount_type": "percentage", "discount_amount": "50"},
        headers=headers,
    )
    assert created.status_code == 201

    raised = client.put(f"/api/admin/rewards/{created.json()['id']}", json={"discount_amount": "120"}, headers=headers)
    assert raised.status_code == 400
    db_session.expire_all()
    assert db_session.get(Reward, created.json()["id"]).discount_amount == Decimal("50.00")
