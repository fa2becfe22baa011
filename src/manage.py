"""Delivery management CLI.

Creates and drops the database schema, and reports what the dispatch
board would hold after a restart.

Usage:
    python src/manage.py setup-db        # Create all tables
    python src/manage.py drop-db         # Drop all tables
    python src/manage.py rebuild-board   # List the open orders the board is rebuilt from
"""

import argparse
import sys


def _init_domain():
    from delivery.domain import delivery

    print("Initializing delivery domain...")
    delivery.init()
    return delivery


def setup_database():
    """Create the delivery database schema."""
    from delivery.utils.db import setup_db

    delivery = _init_domain()
    print("Creating delivery database schema...")
    setup_db(delivery)
    print("Done.")


def drop_database():
    """Drop the delivery database schema."""
    from delivery.utils.db import drop_db

    delivery = _init_domain()
    print("Dropping delivery database schema...")
    drop_db(delivery)
    print("Done.")


def rebuild_board():
    """Rebuild a dispatch board from the store and print each courier's backlog."""
    from delivery.services.container import build_services, rebuild_board

    delivery = _init_domain()
    with delivery.domain_context():
        services = build_services()
        count = rebuild_board(services)
        open_orders = services.store.open_orders()

        print(f"{len(open_orders)} open order(s), {count} on the dispatch board.")
        for order in open_orders:
            if order.order_id in services.board:
                where = f"courier {order.courier_id}"
            elif order.is_deferred:
                where = "awaiting approval"
            else:
                where = "no courier for zone"
            print(f"  #{order.order_id:<6} {order.status:<17} {order.zone or '-':<12} {where}")


def main():
    parser = argparse.ArgumentParser(description="Delivery service management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("rebuild-board", help="Show the open orders the dispatch board is rebuilt from")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "rebuild-board":
        rebuild_board()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
