"""Tests for concurrent use of CartEngine"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from basket import BasketRequest, CartConfig, CartEngine, PriceQuote, ProductNotFound, SubItemRequest

# Matches the delay of the slow_price_source fixture
LOOKUP_DELAY = 0.05


@pytest.mark.asyncio
async def test_concurrent_adds_of_new_item_make_one_line(slow_engine, slow_price_source):
    """Two adds racing on a key that is not in the cart yet."""
    request = BasketRequest.item("item100")

    await asyncio.gather(slow_engine.add(request, 2), slow_engine.add(request, 3))

    entries = slow_engine.current_entries()
    assert len(entries) == 1
    assert entries[0].quantity == 5
    assert slow_engine.current_price() == Decimal("500")
    assert slow_price_source.resolve_simple.await_count == 1


@pytest.mark.asyncio
async def test_many_concurrent_adds(slow_engine, slow_price_source):
    requests = [BasketRequest.item(i) for i in ("item100", "item250", "item500")] * 10

    await asyncio.gather(*(slow_engine.add(r) for r in requests))

    assert {e.item_id: e.quantity for e in slow_engine.current_entries()} == {
        "item100": 10,
        "item250": 10,
        "item500": 10,
    }
    assert slow_engine.current_price() == Decimal("8500")
    assert slow_price_source.resolve_simple.await_count == 3


@pytest.mark.asyncio
async def test_concurrent_bundle_adds(slow_engine, slow_price_source):
    request = BasketRequest.bundle("combo", [SubItemRequest("sub1"), SubItemRequest("sub250")])

    await asyncio.gather(*(slow_engine.add(request) for _ in range(4)))

    assert slow_engine.count_for(request) == 4
    assert slow_engine.current_price() == Decimal("3000")
    assert slow_price_source.resolve_bundle.await_count == 1


@pytest.mark.asyncio
async def test_add_and_remove_interleaved(slow_engine):
    request = BasketRequest.item("item250")
    await slow_engine.add(request, 5)

    await asyncio.gather(
        slow_engine.add(BasketRequest.item("item100")),
        slow_engine.remove(request, 2),
        slow_engine.add(request),
    )

    assert slow_engine.count_for(request) == 4
    assert slow_engine.current_price() == Decimal("1100")


@pytest.mark.asyncio
async def test_cancelled_add_leaves_cart_unchanged(slow_engine):
    before = slow_engine.snapshot
    task = asyncio.create_task(slow_engine.add(BasketRequest.item("item100")))
    await asyncio.sleep(LOOKUP_DELAY / 5)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    # Let the shared lookup finish; nobody commits its result
    await asyncio.sleep(LOOKUP_DELAY * 2)

    assert slow_engine.snapshot is before


@pytest.mark.asyncio
async def test_cancelling_one_waiter_keeps_the_other(slow_engine, slow_price_source):
    request = BasketRequest.item("item100")
    cancelled = asyncio.create_task(slow_engine.add(request, 2))
    kept = asyncio.create_task(slow_engine.add(request, 3))
    await asyncio.sleep(LOOKUP_DELAY / 5)

    cancelled.cancel()
    await kept

    assert cancelled.cancelled()
    assert slow_engine.count_for(request) == 3
    assert slow_price_source.resolve_simple.await_count == 1


@pytest.mark.asyncio
async def test_source_failure_propagates(price_source, config):
    price_source.resolve_simple = AsyncMock(side_effect=ConnectionError("catalog down"))
    engine = CartEngine(price_source, config)
    before = engine.snapshot

    with pytest.raises(ConnectionError):
        await engine.add(BasketRequest.item("item100"))

    assert engine.snapshot is before


@pytest.mark.asyncio
async def test_failed_lookup_is_not_cached(price_source, config):
    quote = PriceQuote(id="item100", price="100")
    price_source.resolve_simple = AsyncMock(side_effect=[TimeoutError("slow"), quote])
    engine = CartEngine(price_source, config)
    request = BasketRequest.item("item100")

    with pytest.raises(TimeoutError):
        await engine.add(request)
    await engine.add(request)

    assert engine.count_for(request) == 1
    assert price_source.resolve_simple.await_count == 2


@pytest.mark.asyncio
async def test_concurrent_misses_share_not_found(slow_engine, slow_price_source):
    results = await asyncio.gather(
        slow_engine.add(BasketRequest.item("missing")),
        slow_engine.add(BasketRequest.item("missing")),
        return_exceptions=True,
    )

    assert all(isinstance(r, ProductNotFound) for r in results)
    assert slow_engine.current_entries() == ()
    assert slow_price_source.resolve_simple.await_count == 1


@pytest.mark.asyncio
async def test_adds_from_other_threads(price_source):
    """Each thread runs its own event loop against the same engine."""
    engine = CartEngine(price_source, CartConfig())
    request = BasketRequest.item("item100")
    await engine.add(request)

    def add_in_thread():
        for _ in range(50):
            asyncio.run(engine.add(request))

    await asyncio.gather(*(asyncio.to_thread(add_in_thread) for _ in range(4)))

    assert engine.count_for(request) == 201
    assert engine.current_price() == Decimal("20100")
    assert price_source.resolve_simple.await_count == 1
