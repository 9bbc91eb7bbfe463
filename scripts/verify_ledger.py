#!/usr/bin/env python3
"""
Reconcile every product's balance against its stock ledger.

For each product, replays opening_stock + signed movements and checks the
previous_stock / new_stock chain.  Exits 1 if any product is inconsistent.

Usage:
    python scripts/verify_ledger.py --actor-username admin [--config settings.yaml]
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy import select

from inventory_config import get_active_config
from inventory_kernel.db.engine import init_engine_from_config, session_scope
from inventory_kernel.models.product import Product
from inventory_kernel.models.user import User
from inventory_kernel.selectors.transaction_selector import TransactionSelector
from inventory_kernel.services.user_service import UserService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile product balances with the stock ledger")
    parser.add_argument("--config", help="settings YAML")
    parser.add_argument("--actor-username", required=True, help="user with view_transactions")
    args = parser.parse_args(argv)

    init_engine_from_config(get_active_config(args.config))

    inconsistent = 0
    with session_scope() as session:
        user_id = session.execute(
            select(User.id).where(User.username == args.actor_username)
        ).scalar_one_or_none()
        if user_id is None:
            print(f"ERROR: no user named {args.actor_username!r}")
            return 1
        actor = UserService(session).actor_context(user_id)
        selector = TransactionSelector(session)

        products = session.execute(select(Product.id, Product.name).order_by(Product.name)).all()
        for product_id, name in products:
            check = selector.verify_product_balance(actor, product_id)
            status = "OK" if check.is_consistent else "MISMATCH"
            print(
                f"{status:<9} {name:<40} stored={check.current_stock:>14} "
                f"expected={check.expected_stock:>14} entries={check.entry_count}"
            )
            if not check.is_consistent:
                inconsistent += 1
                if check.chain_breaks:
                    print(f"          chain breaks at entries: {list(check.chain_breaks)}")

    print(f"\n{len(products)} product(s) checked, {inconsistent} inconsistent.")
    return 1 if inconsistent else 0


if __name__ == "__main__":
    sys.exit(main())
