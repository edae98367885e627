# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from app.cli.seed_demo import seed_demo
from app.db import init_db, upgrade_schema


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed-demo", help="create tables and load a demo dataset")
    seed.add_argument("--super-admin-id", default="demo-super-admin")
    seed.add_argument("--agency", action="append", dest="agencies", default=None)
    seed.add_argument("--no-listings", action="store_true")

    sub.add_parser("init-db", help="create tables only")

    migrate = sub.add_parser("migrate", help="apply alembic migrations")
    migrate.add_argument("--revision", default="head")

    args = p.parse_args()

    if args.command == "init-db":
        init_db()
        print({"ok": True, "command": "init-db"})
        return

    if args.command == "migrate":
        upgrade_schema(revision=args.revision)
        print({"ok": True, "command": "migrate", "revision": args.revision})
        return

    out = seed_demo(
        super_admin_auth_id=args.super_admin_id,
        agency_names=tuple(args.agencies or ("Agencia Norte", "Agencia Sur")),
        create_listings=(not args.no_listings),
    )
    print(
        {
            "ok": True,
            "super_admin_auth_id": out.super_admin_auth_id,
            "agencies": out.agencies,
            "property_ids": out.property_ids,
            "project_id": out.project_id,
        }
    )


if __name__ == "__main__":
    main()
