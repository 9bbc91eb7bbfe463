#!/usr/bin/env python3
"""
Create the inventory schema, install the ledger triggers, and bootstrap the
first super admin.

Usage:
    python scripts/init_db.py [--config settings.yaml] [--admin-username admin]
                              [--admin-email admin@example.com] [--no-triggers]

The admin password is read from INVENTORY_ADMIN_PASSWORD, or prompted for.
Running the script again is safe: tables, triggers and the admin user are
all created only if missing.
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys

from inventory_config import get_active_config
from inventory_kernel.db.engine import create_tables, init_engine_from_config, session_scope
from inventory_kernel.db.triggers import get_missing_triggers
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import configure_logging
from inventory_kernel.services.user_service import UserService

PASSWORD_ENV_VAR = "INVENTORY_ADMIN_PASSWORD"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--config", help="settings YAML (default: INVENTORY_CONFIG or sets/default.yaml)")
    parser.add_argument("--admin-username", default="admin")
    parser.add_argument("--admin-email", default=None)
    parser.add_argument("--no-triggers", action="store_true", help="skip the append-only ledger triggers")
    args = parser.parse_args(argv)

    settings = get_active_config(args.config)
    configure_logging(level=settings.log_level)
    engine = init_engine_from_config(settings)

    print(f"Database: {engine.url.render_as_string(hide_password=True)}")
    create_tables(install_triggers=not args.no_triggers)
    if not args.no_triggers:
        missing = get_missing_triggers(engine)
        if missing:
            print(f"ERROR: triggers missing after install: {', '.join(missing)}")
            return 1
        print("Ledger triggers installed.")

    password = os.environ.get(PASSWORD_ENV_VAR) or getpass.getpass("Admin password: ")
    try:
        with session_scope() as session:
            admin = UserService(session).bootstrap_super_admin(
                args.admin_username, password, args.admin_email
            )
    except ValidationError as exc:
        print(f"ERROR: {exc}")
        return 1

    print(f"Super admin: {admin.username} ({admin.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
