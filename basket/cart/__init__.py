"""Cart package: models, merge algebra, snapshot stream and engine."""
from .merge import merge_add, merge_subtract
from .models import (
    BasketRequest,
    BundleEntry,
    BundleRequest,
    CartRequest,
    Entry,
    ItemRequest,
    SimpleEntry,
    Snapshot,
    SubItemRequest,
    new_entry,
)
from .service import CartEngine
from .stream import SnapshotStream, Subscription

__all__ = [
    "BasketRequest",
    "BundleEntry",
    "BundleRequest",
    "CartEngine",
    "CartRequest",
    "Entry",
    "ItemRequest",
    "SimpleEntry",
    "Snapshot",
    "SnapshotStream",
    "SubItemRequest",
    "Subscription",
    "merge_add",
    "merge_subtract",
    "new_entry",
]
