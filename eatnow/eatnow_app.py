"""Main Textual app class."""

from __future__ import annotations

import logging

from textual.app import App

from eatnow.api import ApiClient
from eatnow.cart import CartStore
from eatnow.constant import STAFF_ROLES
from eatnow.menu_screen import MenuScreen
from eatnow.persistence import ClientStorage
from eatnow.session import SessionStore
from eatnow.staff_screen import StaffDashboardScreen

logger = logging.getLogger(__name__)


class EatNowApp(App):
    """Customer ordering or staff order board, depending on the session role."""

    TITLE = "EatNow"
    SUB_TITLE = "Orders"

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        storage: ClientStorage,
        api: ApiClient,
        session: SessionStore,
        cart: CartStore,
        table_number: int | None = None,
    ) -> None:
        super().__init__()
        self.storage = storage
        self.api = api
        self.session = session
        self.cart = cart
        self.table_number = table_number

    def on_mount(self) -> None:
        identity = self.session.identity
        self.api.set_token(identity.token)
        logger.info("app_mount role=%s branch=%s", identity.role, identity.branch_id)

        if not identity.branch_id:
            self.notify("No branch selected. Start with --customer BRANCH or --staff BRANCH.", severity="error")
            return

        if identity.role in STAFF_ROLES:
            self.push_screen(StaffDashboardScreen(self.api, identity.branch_id))
        else:
            self.push_screen(
                MenuScreen(self.api, self.cart, identity.branch_id, receipts=self.storage, table_number=self.table_number)
            )

    async def on_unmount(self) -> None:
        await self.api.aclose()
