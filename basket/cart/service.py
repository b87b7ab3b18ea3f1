"""Cart engine: owns the current snapshot and applies add/remove requests."""
import asyncio
import threading
from decimal import Decimal
from functools import partial
from typing import Iterable, Optional

from basket.config import CartConfig, get_config
from basket.errors import CartServiceError, InvalidQuantity, ProductNotFound
from basket.logging import get_logger, sanitize_id_for_logging
from basket.services.money import to_minor_units
from basket.services.price_source import PriceQuote, PriceSource
from .merge import merge_add, merge_subtract
from .models import BundleRequest, CartRequest, Entry, ItemRequest, Snapshot, new_entry
from .stream import SnapshotStream, Subscription

logger = get_logger(__name__)


def _describe(request: CartRequest) -> str:
    if isinstance(request, BundleRequest):
        return f"bundle {sanitize_id_for_logging(request.item_id)} ({len(request.sub_items)} sub-items)"
    variant = f"/{sanitize_id_for_logging(request.variant_id)}" if request.variant_id else ""
    return f"item {sanitize_id_for_logging(request.item_id)}{variant}"


class CartEngine:
    """
    In-process shopping cart.

    Features:
    - Simple and bundle lines, merged by identity key (never duplicated)
    - Exact totals: prices are kept as scaled integers
    - Every committed state is published as an immutable Snapshot
    - Safe under concurrent add/remove, including for the same new item

    Lines already in the cart are updated without asking the price source.
    Only a new line triggers a lookup; the lookup runs outside the commit lock
    and concurrent identical lookups share one call. The commit itself
    (read snapshot, compute next, publish) holds a lock and re-reads the
    snapshot, so a line created meanwhile is merged instead of appended.

    Args:
        source: Price source consulted for lines not yet in the cart
        config: Price scale and default count; the process-wide
            config from the environment when omitted
        initial_entries: Entries to start with (duplicate keys are merged)
    """

    def __init__(
        self,
        source: PriceSource,
        config: Optional[CartConfig] = None,
        initial_entries: Iterable[Entry] = (),
    ):
        if source is None:
            raise ValueError("source must be a price source")
        self._source = source
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._lookups: dict[tuple, asyncio.Task] = {}

        entries = merge_add((), initial_entries)
        for entry in entries:
            if entry.scale != self._config.price_scale:
                raise ValueError(
                    f"entry {entry.item_id} uses scale {entry.scale}, "
                    f"cart uses {self._config.price_scale}"
                )
        self._stream = SnapshotStream(Snapshot.of(entries, self._config.price_scale))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def config(self) -> CartConfig:
        return self._config

    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot."""
        return self._stream.latest

    def current_price(self) -> Decimal:
        """Total price of the cart as Decimal."""
        return self.snapshot.price

    def current_entries(self) -> tuple:
        return self.snapshot.entries

    def count_for(self, request: CartRequest) -> int:
        """Quantity of the line matching ``request``, 0 if absent."""
        return self.snapshot.count_for(request.key)

    def observe(self) -> Subscription:
        """Subscribe to snapshots: the current one, then every commit.

        Close the returned subscription (or use it as ``async with``) once
        done reading; an open one queues every later commit.
        """
        return self._stream.subscribe()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, request: CartRequest, count: Optional[int] = None) -> Snapshot:
        """
        Add ``count`` units of ``request`` to the cart.

        Raises:
            InvalidQuantity: count is less than 1
            ProductNotFound: simple item is new and the source has no price
        """
        self._check_request(request)
        count = self._resolve_count(count, "add")

        snapshot = self._commit_add(request, count, unit_minor=None)
        if snapshot is not None:
            return snapshot

        unit_minor = await self._lookup(request)
        return self._commit_add(request, count, unit_minor)

    async def remove(self, request: CartRequest, count: Optional[int] = None) -> Snapshot:
        """
        Remove ``count`` units of ``request``.

        Removing a line that is not in the cart does nothing; removing at
        least as many units as present drops the line.

        Raises:
            InvalidQuantity: count is less than 1
        """
        self._check_request(request)
        count = self._resolve_count(count, "remove")

        with self._lock:
            base = self._stream.latest
            existing = base.find(request.key)
            if existing is None:
                logger.debug(f"Nothing to remove for {_describe(request)}")
                return base
            entries = merge_subtract(base.entries, (existing.with_quantity(count),))
            snapshot = Snapshot.of(entries, self._config.price_scale)
            self._stream.publish(snapshot)

        logger.debug(f"Removed {count} x {_describe(request)}, total now {snapshot.price}")
        return snapshot

    def clear(self) -> Snapshot:
        """Reset to the empty cart."""
        with self._lock:
            snapshot = Snapshot.empty(self._config.price_scale)
            self._stream.publish(snapshot)
        logger.debug("Cart cleared")
        return snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_request(request) -> None:
        if not isinstance(request, (ItemRequest, BundleRequest)):
            raise TypeError(f"Unsupported cart request: {type(request).__name__}")

    def _resolve_count(self, count: Optional[int], action: str) -> int:
        if count is None:
            return self._config.default_count
        if not isinstance(count, int) or isinstance(count, bool) or count < 1:
            raise InvalidQuantity(count, action)
        return count

    def _commit_add(self, request: CartRequest, count: int, unit_minor: Optional[int]) -> Optional[Snapshot]:
        """Merge ``count`` units into the current snapshot and publish.

        Without ``unit_minor`` only an existing line can be merged; returns
        None when the line is missing so the caller can look up a price.
        """
        with self._lock:
            base = self._stream.latest
            existing = base.find(request.key)
            if existing is not None:
                incoming = existing.with_quantity(count)
            elif unit_minor is None:
                return None
            else:
                incoming = new_entry(request, unit_minor, count, self._config.price_scale)
            snapshot = Snapshot.of(merge_add(base.entries, (incoming,)), self._config.price_scale)
            self._stream.publish(snapshot)

        if existing is not None:
            logger.debug(f"Cart hit for {_describe(request)}: +{count}, total now {snapshot.price}")
        else:
            logger.debug(f"New line {_describe(request)} x{count}, total now {snapshot.price}")
        return snapshot

    async def _lookup(self, request: CartRequest) -> int:
        """Unit price in minor units, sharing in-flight lookups per key."""
        loop = asyncio.get_running_loop()
        with self._lock:
            task = self._lookups.get(request.key)
            if task is None or task.get_loop() is not loop:
                task = loop.create_task(self._fetch_unit_minor(request))
                self._lookups[request.key] = task
                task.add_done_callback(partial(self._lookup_done, request.key))
        # Shared with concurrent callers; cancelling one leaves the lookup running
        return await asyncio.shield(task)

    def _lookup_done(self, key: tuple, task: asyncio.Task) -> None:
        with self._lock:
            if self._lookups.get(key) is task:
                del self._lookups[key]
        if not task.cancelled():
            # Waiters receive the exception themselves; mark it retrieved
            task.exception()

    async def _fetch_unit_minor(self, request: CartRequest) -> int:
        scale = self._config.price_scale
        logger.info(f"Resolving price for {_describe(request)}")
        try:
            if isinstance(request, ItemRequest):
                quote = await self._source.resolve_simple(request)
                if quote is None:
                    raise ProductNotFound(request)
                return to_minor_units(_as_quote(quote).price, scale)

            quotes = await self._source.resolve_bundle(request)
            # Convert each component before summing so the total stays exact
            return sum(to_minor_units(_as_quote(quote).price, scale) for quote in quotes or ())
        except CartServiceError:
            logger.warning(f"No price for {_describe(request)}")
            raise
        except Exception as e:
            logger.warning(f"Price lookup failed for {_describe(request)}: {e}")
            raise


def _as_quote(value) -> PriceQuote:
    if isinstance(value, PriceQuote):
        return value
    return PriceQuote.model_validate(value)
