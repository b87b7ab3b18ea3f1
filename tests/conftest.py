"""Pytest configuration and fixtures"""
import asyncio
import os
from unittest.mock import AsyncMock, Mock

import pytest

# Keep cart logs quiet during tests
os.environ.setdefault("LOG_LEVEL", "WARNING")

from basket import CartConfig, CartEngine, StaticPriceSource  # noqa: E402

# Catalog used across tests: ids ending in 100/250 have their own prices,
# variants v50/v75 of item100 cost 150/175, anything listed as 500 is the rest.
CATALOG = {
    "item100": "100",
    ("item100", "v50"): "150",
    ("item100", "v75"): "175",
    "item250": "250",
    "item500": "500",
    "sub100": "100",
    ("sub100", "v50"): "150",
    ("sub100", "v75"): "175",
    "sub250": "250",
    "sub1": "500",
    "sub2": "500",
    "sub3": "500",
    "sub4": "500",
    "cent10": 0.1,
    "cent20": 0.2,
}

LOOKUP_DELAY = 0.05


@pytest.fixture
def catalog():
    """Static price source over CATALOG"""
    return StaticPriceSource(CATALOG)


@pytest.fixture
def price_source(catalog):
    """Call-counting price source backed by the static catalog"""
    source = Mock()
    source.resolve_simple = AsyncMock(side_effect=catalog.resolve_simple)
    source.resolve_bundle = AsyncMock(side_effect=catalog.resolve_bundle)
    return source


@pytest.fixture
def slow_price_source(catalog):
    """Call-counting price source that takes LOOKUP_DELAY seconds per lookup"""
    async def slow_simple(request):
        await asyncio.sleep(LOOKUP_DELAY)
        return await catalog.resolve_simple(request)

    async def slow_bundle(request):
        await asyncio.sleep(LOOKUP_DELAY)
        return await catalog.resolve_bundle(request)

    source = Mock()
    source.resolve_simple = AsyncMock(side_effect=slow_simple)
    source.resolve_bundle = AsyncMock(side_effect=slow_bundle)
    return source


@pytest.fixture
def config():
    """Default cart configuration (two fractional digits)"""
    return CartConfig()


@pytest.fixture
def engine(price_source, config):
    """Cart engine over the call-counting source"""
    return CartEngine(price_source, config)


@pytest.fixture
def slow_engine(slow_price_source, config):
    """Cart engine whose lookups suspend for a while"""
    return CartEngine(slow_price_source, config)
