"""Offline maintenance for the points ledger.

Usage:
    python scripts/ledger_maintenance.py audit
    python scripts/ledger_maintenance.py reconcile [--user-id N] [--apply]
    python scripts/ledger_maintenance.py merge --source N --target M
    python scripts/ledger_maintenance.py expire-vouchers

Every change is logged; ``reconcile`` only reports unless ``--apply`` is given.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pizzeria.core.config import get_settings
from pizzeria.core.db import Database
from pizzeria.core.logging import configure_logging
from pizzeria.core.observability import correlation_context, new_correlation_id
from pizzeria.services import AccountService, PointsLedger, VoucherService
from pizzeria.services.exceptions import ServiceError

logger = logging.getLogger("pizzeria.ledger_maintenance")


def _format_drift(drift) -> str:
    return (
        f"user {drift.user_id}: points {drift.recorded_points} -> {drift.expected_points} "
        f"(earned {drift.recorded_total_earned} -> {drift.expected_total_earned}, "
        f"redeemed {drift.recorded_total_redeemed} -> {drift.expected_total_redeemed})"
    )


def cmd_audit(database: Database, args: argparse.Namespace) -> int:
    with database.session_scope() as db:
        drifts = PointsLedger(db).audit()
    for drift in drifts:
        print(_format_drift(drift))
    print(f"{len(drifts)} account(s) with drift")
    return 1 if drifts else 0


def cmd_reconcile(database: Database, args: argparse.Namespace) -> int:
    with database.session_scope() as db:
        ledger = PointsLedger(db)
        if args.user_id is not None:
            user_ids = [args.user_id]
        else:
            user_ids = [drift.user_id for drift in ledger.audit()]
        fixed = 0
        for user_id in user_ids:
            drift = ledger.reconcile(user_id, apply=args.apply)
            if drift.has_drift:
                fixed += 1
                print(("fixed " if args.apply else "drift ") + _format_drift(drift))
    action = "corrected" if args.apply else "found"
    print(f"{fixed} account(s) {action}")
    return 0


def cmd_merge(database: Database, args: argparse.Namespace) -> int:
    with database.session_scope() as db:
        report = AccountService(db).merge_accounts(source_id=args.source, target_id=args.target)
    print(
        f"merged user {report.source_id} into {report.target_id}: "
        f"{report.transactions_moved} transactions moved, "
        f"{report.duplicate_transactions_dropped} duplicates dropped, "
        f"{report.orders_moved} orders, {report.vouchers_moved} vouchers"
    )
    if report.drift.has_drift:
        print("balance " + _format_drift(report.drift))
    return 0


def cmd_expire_vouchers(database: Database, args: argparse.Namespace) -> int:
    with database.session_scope() as db:
        expired = VoucherService(db).expire_stale()
    print(f"{expired} voucher(s) expired")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Points ledger maintenance")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    audit = subparsers.add_parser("audit", help="Report accounts whose balance disagrees with history")
    audit.set_defaults(handler=cmd_audit)

    reconcile = subparsers.add_parser("reconcile", help="Recompute balances from transaction history")
    reconcile.add_argument("--user-id", type=int)
    reconcile.add_argument("--apply", action="store_true", help="Write the corrected balances")
    reconcile.set_defaults(handler=cmd_reconcile)

    merge = subparsers.add_parser("merge", help="Fold a duplicate account into another")
    merge.add_argument("--source", type=int, required=True)
    merge.add_argument("--target", type=int, required=True)
    merge.set_defaults(handler=cmd_merge)

    expire = subparsers.add_parser("expire-vouchers", help="Mark past-due vouchers as expired")
    expire.set_defaults(handler=cmd_expire_vouchers)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    database = Database(args.database_url or get_settings().DATABASE_URL)
    try:
        with correlation_context(new_correlation_id("cli")):
            logger.info("Running %s", args.command)
            return args.handler(database, args)
    except ServiceError as exc:
        logger.error("%s failed: %s", args.command, exc.message)
        print(f"error: {exc.message}", file=sys.stderr)
        return 2
    finally:
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
