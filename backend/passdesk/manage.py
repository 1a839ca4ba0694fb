"""
Operator commands.

    python -m passdesk.manage seed-admin --email a@example.com --password ... --role super_admin
    python -m passdesk.manage reconcile
    python -m passdesk.manage sync-events
"""

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from passdesk.core.config import get_settings
from passdesk.core.context import build_context
from passdesk.core.logging import setup_logging, get_logger
from passdesk.core.security import Role
from passdesk.services.auth_service import upsert_staff
from passdesk.services.results import Ok
from passdesk.services.slot_service import reconcile_registrations

logger = get_logger(__name__)


async def seed_admin(args: argparse.Namespace) -> int:
    ctx = await build_context(get_settings())
    try:
        async with ctx.session_factory() as db:
            admin = await upsert_staff(
                db, args.email, args.password, Role(args.role), department_id=args.department_id
            )
        print(f"staff account ready: {admin.email} ({admin.role})")
        return 0
    finally:
        await ctx.aclose()


async def reconcile(args: argparse.Namespace) -> int:
    ctx = await build_context(get_settings())
    try:
        async with ctx.session_factory() as db:
            result = await reconcile_registrations(db)
        if not isinstance(result, Ok):
            print(f"reconcile failed: {result.reason}", file=sys.stderr)
            return 1
        for c in result.value:
            print(f"event {c.event_id}: {c.previous} -> {c.actual}")
        print(f"{len(result.value)} event(s) corrected")
        return 0
    finally:
        await ctx.aclose()


async def sync_events(args: argparse.Namespace) -> int:
    ctx = await build_context(get_settings())
    try:
        report = await ctx.event_sync.run()
        print(json.dumps(report.as_dict(), default=str, indent=2))
        return 0 if report.status == "success" else 1
    finally:
        await ctx.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="passdesk.manage", description="Pass Desk operator commands")
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed-admin", help="create or update a staff account")
    seed.add_argument("--email", required=True)
    seed.add_argument("--password", required=True)
    seed.add_argument("--role", required=True, choices=[r.value for r in Role])
    seed.add_argument("--department-id", type=int, default=None)
    seed.set_defaults(handler=seed_admin)

    commands.add_parser("reconcile", help="recompute events.registrations from slots").set_defaults(
        handler=reconcile
    )
    commands.add_parser("sync-events", help="run one event catalog sync").set_defaults(handler=sync_events)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    sys.exit(main())
