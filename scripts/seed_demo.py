#!/usr/bin/env python3
"""Seed a request store with demo access requests in every state."""
from __future__ import annotations

import argparse
import os

from credaccess.app.infra.db import create_db_engine, init_db
from credaccess.app.infra.store import open_store
from credaccess.app.services.lifecycle import RequestLifecycle

EMPLOYERS = [
    ("emp-acme", "Acme Analytics", "hr@acme.example"),
    ("emp-globex", "Globex Corp", "talent@globex.example"),
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo access requests")
    parser.add_argument("--students", type=int, default=3)
    parser.add_argument("--backend", choices=("sql", "json"), default=os.getenv("REQUEST_STORE_BACKEND", "sql"))
    parser.add_argument(
        "--database-url",
        default=os.getenv("DATABASE_URL", "sqlite:///./credaccess.db"),
    )
    parser.add_argument("--path", default=os.getenv("REQUEST_STORE_PATH", "./access_requests.json"))
    return parser.parse_args()


def seed(engine: RequestLifecycle, students: int) -> int:
    created = 0
    for idx in range(1, students + 1):
        enrollment = f"ENR-{2024000 + idx}"
        student_name = f"Demo Student {idx}"
        for employer_id, employer_name, email in EMPLOYERS:
            request = engine.send_request(
                employer_id=employer_id,
                employer_name=employer_name,
                employer_email=email,
                student_enrollment_id=enrollment,
                student_name=student_name,
            )
            created += 1
            # Leave the Globex requests pending; resolve Acme's alternately.
            if employer_id != "emp-acme":
                continue
            if idx % 2:
                engine.approve(request.id, ["Academic Summary & Division", "Contact Information"])
            else:
                engine.reject(request.id)
    return created


def main() -> int:
    args = parse_args()
    db_engine = create_db_engine(args.database_url)
    if args.backend == "sql":
        init_db(db_engine)
    with open_store(args.backend, engine=db_engine, path=args.path) as store:
        created = seed(RequestLifecycle(store), args.students)
    db_engine.dispose()
    print(f"Seeded {created} access requests for {args.students} students.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
