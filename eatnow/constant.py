"""Editable static catalogs for order statuses and payment methods."""

from __future__ import annotations

STATUS_CONFIRMED = "CONFIRMED"
STATUS_PREPARING = "PREPARING"
STATUS_READY = "READY"
STATUS_PAID = "PAID"

# Staff-visible buckets, in board order.
BOARD_STATUSES: tuple[str, ...] = (STATUS_CONFIRMED, STATUS_PREPARING, STATUS_READY)

# A customer stops watching an order once it reaches one of these.
TRACKING_FINAL_STATUSES: frozenset[str] = frozenset({STATUS_READY, STATUS_PAID})

# Forward-only lifecycle. READY is terminal for staff.
NEXT_STATUS: dict[str, str] = {
    STATUS_CONFIRMED: STATUS_PREPARING,
    STATUS_PREPARING: STATUS_READY,
}

STATUS_LABELS: dict[str, str] = {
    STATUS_CONFIRMED: "Confirmed",
    STATUS_PREPARING: "Preparing",
    STATUS_READY: "Ready",
    STATUS_PAID: "Paid",
}

# Label for the button that moves an order out of the given status.
ADVANCE_LABELS: dict[str, str] = {
    STATUS_CONFIRMED: "Start preparing",
    STATUS_PREPARING: "Mark ready",
}

PAYMENT_METHODS: dict[str, str] = {
    "momo": "MoMo wallet",
    "card": "Credit / debit card",
    "cash": "Cash",
}

DEFAULT_PAYMENT_METHOD = "momo"

USER_ROLES: tuple[str, ...] = ("guest", "customer", "staff", "admin", "superadmin")
STAFF_ROLES: frozenset[str] = frozenset({"staff", "admin", "superadmin"})
