"""Cart requests, line entries and snapshots with scaled-integer pricing."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional, Tuple, Union

from basket.services.money import from_minor_units, multiply_minor


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubItemRequest:
    """One component of a bundle request."""
    item_id: str
    variant_id: Optional[str] = None
    count: int = 1

    def __post_init__(self):
        if not self.item_id or not isinstance(self.item_id, str):
            raise ValueError("item_id must be a non-empty string")
        if not isinstance(self.count, int) or self.count < 1:
            raise ValueError("sub-item count must be a positive integer")

    def to_dict(self) -> dict:
        return {"item_id": self.item_id, "variant_id": self.variant_id, "count": self.count}


@dataclass(frozen=True)
class ItemRequest:
    """Request for a simple item, optionally narrowed to a variant."""
    item_id: str
    variant_id: Optional[str] = None

    def __post_init__(self):
        if not self.item_id or not isinstance(self.item_id, str):
            raise ValueError("item_id must be a non-empty string")

    @property
    def key(self) -> tuple:
        return ("item", self.item_id, self.variant_id)


@dataclass(frozen=True)
class BundleRequest:
    """Request for a composite item made of an ordered list of sub-items."""
    item_id: str
    sub_items: Tuple[SubItemRequest, ...] = ()

    def __post_init__(self):
        if not self.item_id or not isinstance(self.item_id, str):
            raise ValueError("item_id must be a non-empty string")
        # Freeze whatever sequence the caller passed so the key stays hashable
        object.__setattr__(self, "sub_items", tuple(self.sub_items))

    @property
    def key(self) -> tuple:
        return ("bundle", self.item_id, self.sub_items)


CartRequest = Union[ItemRequest, BundleRequest]


class BasketRequest:
    """Factories for every kind of cart request."""

    @staticmethod
    def item(item_id: str, variant_id: Optional[str] = None) -> ItemRequest:
        return ItemRequest(item_id, variant_id)

    @staticmethod
    def bundle(item_id: str, sub_items: Iterable[SubItemRequest]) -> BundleRequest:
        return BundleRequest(item_id, tuple(sub_items))


# ---------------------------------------------------------------------------
# Line entries
# ---------------------------------------------------------------------------

def _check_amounts(unit_minor: int, line_total_minor: int, quantity: int) -> None:
    if not isinstance(quantity, int) or quantity < 1:
        raise ValueError("quantity must be a positive integer")
    if line_total_minor != multiply_minor(unit_minor, quantity):
        raise ValueError("line total must equal unit price times quantity")


class _EntryMixin:
    """Identity-key equality and Decimal views shared by both entry kinds.

    Two entries are the same cart line iff their keys match; price and
    quantity do not take part in equality or hashing.
    """

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, (SimpleEntry, BundleEntry)):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    @property
    def unit_price(self) -> Decimal:
        """Price of a single unit."""
        return from_minor_units(self.unit_minor, self.scale)

    @property
    def line_total(self) -> Decimal:
        """Price for all units on this line."""
        return from_minor_units(self.line_total_minor, self.scale)

    def with_quantity(self, quantity: int):
        """Copy of this line holding ``quantity`` units at the same unit price."""
        return replace(
            self,
            quantity=quantity,
            line_total_minor=multiply_minor(self.unit_minor, quantity),
        )


@dataclass(frozen=True, eq=False)
class SimpleEntry(_EntryMixin):
    """Cart line for a simple item."""
    item_id: str
    variant_id: Optional[str]
    unit_minor: int
    line_total_minor: int
    quantity: int
    scale: int = field(default=100, repr=False)

    def __post_init__(self):
        _check_amounts(self.unit_minor, self.line_total_minor, self.quantity)

    @property
    def key(self) -> tuple:
        return ("item", self.item_id, self.variant_id)

    def to_dict(self) -> dict:
        return {
            "kind": "item",
            "item_id": self.item_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True, eq=False)
class BundleEntry(_EntryMixin):
    """Cart line for a bundle; sub-items are compared structurally and in order."""
    item_id: str
    sub_items: Tuple[SubItemRequest, ...]
    unit_minor: int
    line_total_minor: int
    quantity: int
    scale: int = field(default=100, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "sub_items", tuple(self.sub_items))
        _check_amounts(self.unit_minor, self.line_total_minor, self.quantity)

    @property
    def key(self) -> tuple:
        return ("bundle", self.item_id, self.sub_items)

    def to_dict(self) -> dict:
        return {
            "kind": "bundle",
            "item_id": self.item_id,
            "sub_items": [sub.to_dict() for sub in self.sub_items],
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


Entry = Union[SimpleEntry, BundleEntry]


def new_entry(request: CartRequest, unit_minor: int, quantity: int, scale: int) -> Entry:
    """Build the line entry matching ``request`` for ``quantity`` units."""
    line_total_minor = multiply_minor(unit_minor, quantity)
    if isinstance(request, ItemRequest):
        return SimpleEntry(
            item_id=request.item_id,
            variant_id=request.variant_id,
            unit_minor=unit_minor,
            line_total_minor=line_total_minor,
            quantity=quantity,
            scale=scale,
        )
    if isinstance(request, BundleRequest):
        return BundleEntry(
            item_id=request.item_id,
            sub_items=request.sub_items,
            unit_minor=unit_minor,
            line_total_minor=line_total_minor,
            quantity=quantity,
            scale=scale,
        )
    raise TypeError(f"Unsupported cart request: {type(request).__name__}")


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Snapshot:
    """Immutable view of the whole cart at one point in time.

    ``total_minor`` is always the integer sum of the entries' line totals;
    use ``Snapshot.of`` / ``Snapshot.empty`` rather than the constructor.
    """
    entries: Tuple[Entry, ...] = ()
    total_minor: int = 0
    scale: int = 100

    @classmethod
    def empty(cls, scale: int = 100) -> "Snapshot":
        return cls(entries=(), total_minor=0, scale=scale)

    @classmethod
    def of(cls, entries: Iterable[Entry], scale: int = 100) -> "Snapshot":
        frozen = tuple(entries)
        keys = {entry.key for entry in frozen}
        if len(keys) != len(frozen):
            raise ValueError("snapshot entries must be unique by identity key")
        return cls(
            entries=frozen,
            total_minor=sum(entry.line_total_minor for entry in frozen),
            scale=scale,
        )

    @property
    def price(self) -> Decimal:
        """Total cart price."""
        return from_minor_units(self.total_minor, self.scale)

    @property
    def total_items(self) -> int:
        """Total number of units in the cart."""
        return sum(entry.quantity for entry in self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def find(self, key: tuple) -> Optional[Entry]:
        return next((entry for entry in self.entries if entry.key == key), None)

    def count_for(self, key: tuple) -> int:
        entry = self.find(key)
        return entry.quantity if entry is not None else 0

    def to_dict(self) -> dict:
        """Display form for hosts and logs."""
        return {
            "total_price": str(self.price),
            "total_items": self.total_items,
            "entries": [entry.to_dict() for entry in self.entries],
        }
