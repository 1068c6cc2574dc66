import re
from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import auth_headers, make_reward, make_user
from pizzeria.models import DiscountType, PointsTransaction, PointsTransactionType, UserVoucher, VoucherStatus
from pizzeria.models.base import utcnow
from pizzeria.services import PointsLedger, VoucherService
from pizzeria.services import exceptions


def test_issue_debits_points_and_creates_active_voucher(db_session):
    user = make_user(db_session, points=120)
    reward = make_reward(db_session, points_required=50, discount_amount=Decimal("5.00"))

    voucher = VoucherService(db_session).issue(user_id=user.id, reward_id=reward.id)

    assert re.fullmatch(r"SAVE5-[A-Z0-9]{6}", voucher.voucher_code)
    assert voucher.status == VoucherStatus.ACTIVE
    assert voucher.points_used == 50
    remaining = voucher.expires_at.replace(tzinfo=None) - utcnow().replace(tzinfo=None)
    assert timedelta(days=29, hours=23) < remaining <= timedelta(days=30)
    assert PointsLedger(db_session).get_balance(user.id).points == 70
    redeemed = (
        db_session.query(PointsTransaction)
        .filter(PointsTransaction.user_id == user.id, PointsTransaction.type == PointsTransactionType.REDEEMED)
        .one()
    )
    assert redeemed.points == -50


def test_issue_uses_reward_validity_and_prefix(db_session):
    user = make_user(db_session, points=200)
    reward = make_reward(
        db_session,
        name="10% off",
        discount_type=DiscountType.PERCENTAGE,
        discount_amount=Decimal("10"),
        voucher_validity_days=7,
    )

    voucher = VoucherService(db_session).issue(user_id=user.id, reward_id=reward.id)

    assert voucher.voucher_code.startswith("PCT10-")
    assert voucher.description == "Save 10% on your order"
    remaining = voucher.expires_at.replace(tzinfo=None) - utcnow().replace(tzinfo=None)
    assert remaining <= timedelta(days=7)


def test_issue_rejects_insufficient_points_without_side_effects(db_session):
    user = make_user(db_session, points=10)
    reward = make_reward(db_session, points_required=50)

    with pytest.raises(exceptions.InsufficientPointsError):
        VoucherService(db_session).issue(user_id=user.id, reward_id=reward.id)
    db_session.rollback()

    assert db_session.query(UserVoucher).count() == 0
    assert PointsLedger(db_session).get_balance(user.id).points == 10


def test_issue_enforces_max_uses_per_user(db_session):
    user = make_user(db_session, points=500)
    reward = make_reward(db_session, points_required=50, max_uses_per_user=1)
    service = VoucherService(db_session)
    service.issue(user_id=user.id, reward_id=reward.id)

    with pytest.raises(exceptions.ConflictError):
        service.issue(user_id=user.id, reward_id=reward.id)
    db_session.rollback()

    assert PointsLedger(db_session).get_balance(user.id).points == 450


def test_issue_rejects_inactive_reward(db_session):
    user = make_user(db_session, points=500)
    reward = make_reward(db_session, active=False)

    with pytest.raises(exceptions.NotFoundError):
        VoucherService(db_session).issue(user_id=user.id, reward_id=reward.id)


def test_apply_marks_voucher_used_and_rejects_reuse(db_session):
    user = make_user(db_session, points=100)
    reward = make_reward(db_session)
    service = VoucherService(db_session)
    voucher = service.issue(user_id=user.id, reward_id=reward.id)

    applied = service.apply(code=voucher.voucher_code.lower(), order_id=77, user_id=user.id)
    assert applied.status == VoucherStatus.USED
    assert applied.applied_to_order_id == 77
    assert applied.used_at is not None

    with pytest.raises(exceptions.VoucherUnavailableError):
        service.apply(code=voucher.voucher_code, order_id=78, user_id=user.id)


def test_apply_rejects_expired_voucher_and_marks_it(db_session):
    user = make_user(db_session, points=100)
    reward = make_reward(db_session)
    service = VoucherService(db_session)
    voucher = service.issue(user_id=user.id, reward_id=reward.id)

    with pytest.raises(exceptions.VoucherUnavailableError):
        service.apply(code=voucher.voucher_code, order_id=1, now=utcnow() + timedelta(days=31))

    db_session.expire_all()
    stored = db_session.query(UserVoucher).filter(UserVoucher.id == voucher.id).one()
    assert stored.status == VoucherStatus.EXPIRED
    assert stored.applied_to_order_id is None


def test_apply_rejects_other_users_voucher(db_session):
    owner = make_user(db_session, points=100)
    stranger = make_user(db_session, "stranger")
    voucher = VoucherService(db_session).issue(user_id=owner.id, reward_id=make_reward(db_session).id)

    with pytest.raises(exceptions.NotFoundError):
        VoucherService(db_session).apply(code=voucher.voucher_code, order_id=1, user_id=stranger.id)


@pytest.mark.parametrize(
    "discount_type, amount, subtotal, delivery_fee, expected",
    [
        (DiscountType.FIXED, "5.00", "20.00", "0", "5.00"),
        (DiscountType.FIXED, "15.00", "9.50", "0", "9.50"),
        (DiscountType.PERCENTAGE, "15", "33.33", "0", "5.00"),
        (DiscountType.PERCENTAGE, "150", "20.00", "0", "20.00"),
        (DiscountType.DELIVERY_FEE, "5.00", "20.00", "3.99", "3.99"),
        (DiscountType.DELIVERY_FEE, "2.00", "20.00", "3.99", "2.00"),
    ],
)
def test_calculate_discount(discount_type, amount, subtotal, delivery_fee, expected):
    voucher = UserVoucher(
        discount_type=discount_type,
        discount_amount=Decimal(amount),
        min_order_amount=Decimal("0.00"),
    )

    discount = VoucherService.calculate_discount(
        voucher, subtotal=Decimal(subtotal), delivery_fee=Decimal(delivery_fee)
    )

    assert discount == Decimal(expected)


def test_calculate_discount_enforces_minimum_order():
    voucher = UserVoucher(
        discount_type=DiscountType.FIXED,
        discount_amount=Decimal("5.00"),
        min_order_amount=Decimal("25.00"),
    )

    with pytest.raises(exceptions.ValidationError):
        VoucherService.calculate_discount(voucher, subtotal=Decimal("24.99"), delivery_fee=Decimal("0"))


def test_expire_stale_marks_only_past_due(db_session):
    user = make_user(db_session, points=500)
    service = VoucherService(db_session)
    fresh = service.issue(user_id=user.id, reward_id=make_reward(db_session, name="A").id)
    stale = service.issue(user_id=user.id, reward_id=make_reward(db_session, name="B").id)
    stale.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    assert service.expire_stale() == 1

    db_session.expire_all()
    statuses = {v.id: v.status for v in db_session.query(UserVoucher).all()}
    assert statuses == {fresh.id: VoucherStatus.ACTIVE, stale.id: VoucherStatus.EXPIRED}


def test_redeem_and_list_vouchers_over_api(client, db_session):
    user = make_user(db_session, points=75)
    reward = make_reward(db_session, points_required=50)

    response = client.post(f"/api/rewards/{reward.id}/redeem", headers=auth_headers(user))
    assert response.status_code == 201
    body = response.json()
    assert body["points_remaining"] == 25
    code = body["voucher"]["voucher_code"]

    listing = client.get("/api/vouchers", headers=auth_headers(user))
    assert listing.status_code == 200
    assert [v["voucher_code"] for v in listing.json()] == [code]

    preview = client.post(
        "/api/vouchers/validate",
        json={"code": code, "subtotal": "30.00"},
        headers=auth_headers(user),
    )
    assert preview.status_code == 200
    assert Decimal(preview.json()["discount"]) == Decimal("5.00")

    again = client.post(f"/api/rewards/{reward.id}/redeem", headers=auth_headers(user))
    assert again.status_code == 409
    assert "error" in again.json()


def test_redeem_requires_authentication(client, db_session):
    reward = make_reward(db_session)

    response = client.post(f"/api/rewards/{reward.id}/redeem")

    assert response.status_code == 401
