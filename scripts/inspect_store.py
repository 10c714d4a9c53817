#!/usr/bin/env python3
"""
Print the access requests in a store and the feed a given actor would see.

Usage:
    python scripts/inspect_store.py --role student --actor-id ENR-2024001
"""
from __future__ import annotations

import argparse
import os
import sys

from credaccess.app.domain.models import Role
from credaccess.app.infra.db import create_db_engine
from credaccess.app.infra.store import open_store
from credaccess.app.services.audit import newest_first
from credaccess.app.services.roles import RoleContext


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect stored access requests.")
    parser.add_argument("--backend", choices=("sql", "json"), default=os.getenv("REQUEST_STORE_BACKEND", "sql"))
    parser.add_argument(
        "--database-url",
        default=os.getenv("DATABASE_URL", "sqlite:///./credaccess.db"),
        help="Database URL (SQLAlchemy compatible)",
    )
    parser.add_argument("--path", default=os.getenv("REQUEST_STORE_PATH", "./access_requests.json"))
    parser.add_argument("--role", choices=[r.value for r in Role])
    parser.add_argument("--actor-id", help="subject id for --role")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if args.role and not args.actor_id:
        print("--actor-id is required with --role", file=sys.stderr)
        return 2

    db_engine = create_db_engine(args.database_url)
    with open_store(args.backend, engine=db_engine, path=args.path) as store:
        requests = store.get_all()
    db_engine.dispose()

    if not requests:
        print("No access requests found.")
        return 0
    for req in newest_first(requests):
        released = ", ".join(req.approved_fields) or "-"
        print(
            f"{req.request_date} {req.id} {req.employer_name} -> {req.student_enrollment_id} "
            f"[{req.status.value}] released: {released}"
        )

    if args.role:
        ctx = RoleContext.of(args.role, args.actor_id)
        feed = ctx.notifications(requests)
        print(f"\n{len(feed)} notification(s) for {ctx.role.value} {ctx.subject_id}:")
        for note in feed:
            print(f"  {note.created_at:%Y-%m-%d %H:%M} {note.message}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
