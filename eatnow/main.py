"""Entry point for the EatNow Textual client."""

from __future__ import annotations

import argparse
import logging

from eatnow.api import ApiClient
from eatnow.cart import CartStore
from eatnow.config import API_BASE_URL, DB_PATH
from eatnow.eatnow_app import EatNowApp
from eatnow.logs import setup_logging
from eatnow.models import SessionIdentity
from eatnow.persistence import ClientStorage
from eatnow.session import SessionStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eatnow", description="EatNow ordering client")
    role = parser.add_mutually_exclusive_group()
    role.add_argument("--customer", metavar="BRANCH", help="order from a branch as a customer")
    role.add_argument("--staff", metavar="BRANCH", help="open the order board of a branch")
    role.add_argument("--logout", action="store_true", help="forget the stored session and cart")
    parser.add_argument("--table", type=int, default=None, help="table number to prefill at checkout")
    parser.add_argument("--name", default="", help="display name for the session")
    parser.add_argument("--token", default=None, help="API bearer token")
    parser.add_argument("--api", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--db", default=DB_PATH, help="local storage database path")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the Textual application."""
    args = build_parser().parse_args(argv)
    setup_logging()

    storage = ClientStorage(args.db)
    storage.bootstrap_schema()
    cart = CartStore(storage)
    cart.load()
    session = SessionStore(storage, cart)
    session.load()

    if args.logout:
        session.logout()
        print("Session cleared.")
        return
    if args.customer or args.staff:
        session.login(
            SessionIdentity(
                user_id=session.identity.user_id or "local",
                name=args.name or session.identity.name,
                role="staff" if args.staff else "customer",
                branch_id=args.staff or args.customer,
                token=args.token or session.identity.token,
            )
        )

    logger.info("startup role=%s branch=%s cart_items=%d", session.identity.role, session.identity.branch_id, cart.item_count)
    EatNowApp(storage, ApiClient(args.api), session, cart, table_number=args.table).run()


if __name__ == "__main__":
    main()
