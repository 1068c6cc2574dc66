import importlib.util
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import make_reward, make_user
from pizzeria.core.config import get_settings
from pizzeria.models import User, UserPoints, UserVoucher, VoucherStatus
from pizzeria.models.base import utcnow
from pizzeria.services import PointsLedger, VoucherService

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "ledger_maintenance.py"


@pytest.fixture(scope="module")
def maintenance():
    spec = importlib.util.spec_from_file_location("ledger_maintenance", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run(maintenance, *args):
    return maintenance.main(["--database-url", get_settings().DATABASE_URL, *args])


def _corrupt_balance(session, user_id, points):
    session.query(UserPoints).filter(UserPoints.user_id == user_id).update({UserPoints.points: points})
    session.commit()


def test_audit_exit_code_reflects_drift(maintenance, db_session, capsys):
    user = make_user(db_session, points=15)

    assert _run(maintenance, "audit") == 0
    assert "0 account(s) with drift" in capsys.readouterr().out

    _corrupt_balance(db_session, user.id, 99)
    assert _run(maintenance, "audit") == 1
    output = capsys.readouterr().out
    assert f"user {user.id}: points 99 -> 15" in output


def test_reconcile_is_dry_run_unless_applied(maintenance, db_session, capsys):
    user = make_user(db_session, points=15)
    _corrupt_balance(db_session, user.id, 99)

    assert _run(maintenance, "reconcile") == 0
    assert "1 account(s) found" in capsys.readouterr().out
    db_session.expire_all()
    assert PointsLedger(db_session).get_balance(user.id).points == 99

    assert _run(maintenance, "reconcile", "--user-id", str(user.id), "--apply") == 0
    assert "1 account(s) corrected" in capsys.readouterr().out
    db_session.expire_all()
    assert PointsLedger(db_session).get_balance(user.id).points == 15


def test_merge_command(maintenance, db_session, capsys):
    target = make_user(db_session, "jane", points=10)
    source = make_user(db_session, "jane2", points=5)

    assert _run(maintenance, "merge", "--source", str(source.id), "--target", str(target.id)) == 0
    assert f"merged user {source.id} into {target.id}" in capsys.readouterr().out

    db_session.expire_all()
    assert PointsLedger(db_session).get_balance(target.id).points == 15
    assert db_session.get(User, source.id).is_active is False


def test_merge_unknown_account_fails_cleanly(maintenance, db_session, capsys):
    target = make_user(db_session)

    assert _run(maintenance, "merge", "--source", "9999", "--target", str(target.id)) == 2
    assert "User not found" in capsys.readouterr().err


def test_expire_vouchers_command(maintenance, db_session, capsys):
    user = make_user(db_session, points=100)
    voucher = VoucherService(db_session).issue(user_id=user.id, reward_id=make_reward(db_session).id)
    voucher.expires_at = utcnow() - timedelta(days=1)
    db_session.commit()

    assert _run(maintenance, "expire-vouchers") == 0
    assert "1 voucher(s) expired" in capsys.readouterr().out
    db_session.expire_all()
    assert db_session.get(UserVoucher, voucher.id).status == VoucherStatus.EXPIRED
