from decimal import Decimal

import pytest
from sqlalchemy import func

from conftest import make_user
from pizzeria.models import Order, OrderStatus, OrderType, PointsTransaction, PointsTransactionType, UserPoints
from pizzeria.services import PointsLedger
from pizzeria.services import exceptions


def _order(session, user, total="25.00"):
    order = Order(
        user_id=user.id,
        status=OrderStatus.COMPLETED,
        order_type=OrderType.PICKUP,
        subtotal=Decimal(total),
        tax=Decimal("0.00"),
        total=Decimal(total),
        phone="5551234567",
    )
    session.add(order)
    session.commit()
    return order


def _transaction_sum(session, user_id):
    return (
        session.query(func.coalesce(func.sum(PointsTransaction.points), 0))
        .filter(PointsTransaction.user_id == user_id)
        .scalar()
    )


def test_points_for_amount_floors_order_total(db_session):
    ledger = PointsLedger(db_session)

    assert ledger.points_for_amount(Decimal("24.99")) == 24
    assert ledger.points_for_amount(Decimal("0.99")) == 0
    assert ledger.points_for_amount(Decimal("-5")) == 0
    assert ledger.points_for_amount(None) == 0


def test_earn_is_idempotent_per_order(db_session):
    user = make_user(db_session)
    order = _order(db_session, user, total="31.70")
    ledger = PointsLedger(db_session)

    first = ledger.earn(user_id=user.id, order_id=order.id, amount=order.total)
    second = ledger.earn(user_id=user.id, order_id=order.id, amount=order.total)

    assert first.id == second.id
    rows = (
        db_session.query(PointsTransaction)
        .filter(PointsTransaction.user_id == user.id, PointsTransaction.order_id == order.id)
        .all()
    )
    assert len(rows) == 1
    assert rows[0].points == 31
    assert rows[0].type == PointsTransactionType.EARNED
    assert ledger.get_balance(user.id).points == 31


def test_balance_matches_transaction_sum_after_earn_and_redeem(db_session):
    user = make_user(db_session)
    ledger = PointsLedger(db_session)
    for total in ("40.00", "12.49", "100.10"):
        order = _order(db_session, user, total=total)
        ledger.earn(user_id=user.id, order_id=order.id, amount=order.total)
    ledger.redeem(user_id=user.id, points=50, description="Reward")
    ledger.redeem(user_id=user.id, points=2, description="Reward")

    balance = db_session.query(UserPoints).filter(UserPoints.user_id == user.id).one()
    assert balance.points == 40 + 12 + 100 - 52
    assert balance.points == _transaction_sum(db_session, user.id)
    assert balance.total_earned == 152
    assert balance.total_redeemed == 52
    assert balance.points == balance.total_earned - balance.total_redeemed


def test_redeem_rejects_insufficient_balance(db_session):
    user = make_user(db_session, points=10)
    ledger = PointsLedger(db_session)

    with pytest.raises(exceptions.InsufficientPointsError) as exc_info:
        ledger.redeem(user_id=user.id, points=11, description="Too much")

    assert exc_info.value.details == {"available": 10, "required": 11}
    db_session.rollback()
    assert ledger.get_balance(user.id).points == 10
    assert _transaction_sum(db_session, user.id) == 10


def test_earn_creates_missing_balance_row(db_session):
    user = make_user(db_session)
    db_session.query(UserPoints).filter(UserPoints.user_id == user.id).delete()
    db_session.commit()
    db_session.expunge_all()
    order = _order(db_session, user, total="9.00")

    PointsLedger(db_session).earn(user_id=user.id, order_id=order.id, amount=order.total)

    balance = db_session.query(UserPoints).filter(UserPoints.user_id == user.id).one()
    assert balance.points == 9


def test_earn_rejects_amount_without_points(db_session):
    user = make_user(db_session)
    order = _order(db_session, user, total="0.50")

    with pytest.raises(exceptions.ValidationError):
        PointsLedger(db_session).earn(user_id=user.id, order_id=order.id, amount=order.total)


def test_signup_bonus_granted_once(db_session):
    user = make_user(db_session)
    ledger = PointsLedger(db_session)

    ledger.award_bonus(user_id=user.id, points=25, description="Welcome", kind=PointsTransactionType.SIGNUP)
    ledger.award_bonus(user_id=user.id, points=25, description="Welcome", kind=PointsTransactionType.SIGNUP)

    assert ledger.get_balance(user.id).points == 25
    with pytest.raises(exceptions.ValidationError):
        ledger.award_bonus(user_id=user.id, points=5, description="x", kind=PointsTransactionType.EARNED)


def test_adjust_records_signed_transaction_and_refuses_overdraw(db_session):
    user = make_user(db_session, points=20)
    ledger = PointsLedger(db_session)

    removal = ledger.adjust(user_id=user.id, delta=-15, description="Duplicate award")
    assert removal.type == PointsTransactionType.ADJUSTMENT
    assert removal.points == -15

    with pytest.raises(exceptions.InsufficientPointsError):
        ledger.adjust(user_id=user.id, delta=-6, description="Overdraw")
    db_session.rollback()

    grant = ledger.adjust(user_id=user.id, delta=7, description="Goodwill")
    assert grant.type == PointsTransactionType.ADJUSTMENT
    assert ledger.get_balance(user.id).points == 12
    assert _transaction_sum(db_session, user.id) == 12


def test_reconcile_reports_and_repairs_drift(db_session):
    user = make_user(db_session, points=30)
    other = make_user(db_session, "other", points=5)
    balance = db_session.query(UserPoints).filter(UserPoints.user_id == user.id).one()
    balance.points = 99
    balance.total_earned = 99
    db_session.commit()

    ledger = PointsLedger(db_session)
    drifts = ledger.audit()
    assert [drift.user_id for drift in drifts] == [user.id]
    assert drifts[0].difference == 30 - 99

    report = ledger.reconcile(user.id)
    assert report.has_drift
    db_session.refresh(balance)
    assert balance.points == 99

    ledger.reconcile(user.id, apply=True)
    db_session.refresh(balance)
    assert balance.points == 30
    assert balance.total_earned == 30
    assert ledger.audit() == []
    assert ledger.get_balance(other.id).points == 5
