"""Session identity persisted across client restarts."""

from __future__ import annotations

import logging
import sqlite3

from eatnow.cart import CartStore
from eatnow.config import AUTH_STORAGE_KEY
from eatnow.constant import USER_ROLES
from eatnow.models import SessionIdentity
from eatnow.persistence import ClientStorage

logger = logging.getLogger(__name__)

GUEST = SessionIdentity()


class SessionStore:
    """Holds the active identity; rehydrated on start, cleared on logout."""

    def __init__(self, storage: ClientStorage, cart: CartStore | None = None, key: str = AUTH_STORAGE_KEY) -> None:
        self._storage = storage
        self._cart = cart
        self._key = key
        self.identity: SessionIdentity = GUEST

    def load(self) -> SessionIdentity:
        try:
            raw = self._storage.load_json(self._key)
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.warning("session_load_failed error=%r", exc)
            raw = None

        self.identity = _identity_from_dict(raw) if isinstance(raw, dict) else GUEST
        return self.identity

    def login(self, identity: SessionIdentity) -> None:
        if identity.role not in USER_ROLES:
            raise ValueError(f"unknown role {identity.role!r}")
        self.identity = identity
        try:
            self._storage.save_json(self._key, _identity_to_dict(identity))
        except (sqlite3.Error, OSError) as exc:
            logger.warning("session_save_failed error=%r", exc)

    def logout(self) -> None:
        self.identity = GUEST
        try:
            self._storage.delete(self._key)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("session_clear_failed error=%r", exc)
        if self._cart is not None:
            self._cart.clear_cart()


def _identity_to_dict(identity: SessionIdentity) -> dict[str, object]:
    return {
        "user_id": identity.user_id,
        "name": identity.name,
        "role": identity.role,
        "branch_id": identity.branch_id,
        "token": identity.token,
    }


def _identity_from_dict(raw: dict) -> SessionIdentity:
    role = raw.get("role") or "guest"
    if role not in USER_ROLES:
        return GUEST
    user_id = raw.get("user_id")
    branch_id = raw.get("branch_id")
    return SessionIdentity(
        user_id=str(user_id) if user_id is not None else None,
        name=str(raw.get("name") or ""),
        role=role,
        branch_id=str(branch_id) if branch_id is not None else None,
        token=raw.get("token"),
    )
