"""Domain models for the ordering client."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime

from eatnow.constant import BOARD_STATUSES, STATUS_CONFIRMED, STATUS_PREPARING, STATUS_READY


@dataclass(frozen=True)
class Dish:
    """A branch-scoped sellable dish with display metadata."""

    dish_id: str
    name: str
    price: int
    description: str = ""
    image_url: str = ""
    category: str = ""
    available: bool = True
    best_seller: bool = False
    is_new: bool = False


@dataclass
class CartEntry:
    """One cart row; unique by dish id within a cart."""

    dish_id: str
    name: str
    price: int
    quantity: int = 1
    category: str = ""
    image_url: str = ""

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> CartEntry:
        quantity = int(raw["quantity"])  # type: ignore[arg-type]
        if quantity < 1:
            raise ValueError(f"invalid stored quantity {quantity!r}")
        return cls(
            dish_id=str(raw["dish_id"]),
            name=str(raw.get("name", "")),
            price=int(raw["price"]),  # type: ignore[arg-type]
            quantity=quantity,
            category=str(raw.get("category", "")),
            image_url=str(raw.get("image_url", "")),
        )


@dataclass(frozen=True)
class OrderLine:
    """A dish reference with quantity and the unit price charged."""

    dish_id: str
    quantity: int
    unit_price: int

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PlacedOrder:
    """Read-only client projection of a server-owned order."""

    order_id: str
    branch_id: str
    status: str
    total: int
    created_at: datetime
    lines: tuple[OrderLine, ...] = ()
    table_number: int | None = None
    notes: str = ""
    payment_method: str | None = None

    def dish_ids(self) -> list[str]:
        return [line.dish_id for line in self.lines]


@dataclass(frozen=True)
class OrderRequest:
    """Order creation payload built from a cart snapshot."""

    branch_id: str
    payment_method: str
    lines: tuple[OrderLine, ...]
    total_price: int
    notes: str = ""
    table_number: int | None = None


@dataclass(frozen=True)
class SessionIdentity:
    """Who is using the client and which branch they act for."""

    user_id: str | None = None
    name: str = ""
    role: str = "guest"
    branch_id: str | None = None
    token: str | None = None

    @property
    def is_logged_in(self) -> bool:
        return self.user_id is not None


@dataclass
class StaffOrderView:
    """Open orders of one branch split into the three board buckets."""

    confirmed: list[PlacedOrder] = field(default_factory=list)
    preparing: list[PlacedOrder] = field(default_factory=list)
    ready: list[PlacedOrder] = field(default_factory=list)

    def bucket(self, status: str) -> list[PlacedOrder]:
        return {
            STATUS_CONFIRMED: self.confirmed,
            STATUS_PREPARING: self.preparing,
            STATUS_READY: self.ready,
        }[status]

    def counts(self) -> dict[str, int]:
        return {status: len(self.bucket(status)) for status in BOARD_STATUSES}
