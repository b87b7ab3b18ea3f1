"""
basket - in-process shopping cart state engine

Subpackages:
- cart: requests, line entries, snapshots, merge algebra and the CartEngine
- services: money helpers and price sources (static, HTTP)

Top-level modules carry configuration, errors and logging.
"""
from basket.cart import (
    BasketRequest,
    BundleEntry,
    BundleRequest,
    CartEngine,
    ItemRequest,
    SimpleEntry,
    Snapshot,
    SubItemRequest,
    Subscription,
)
from basket.config import CartConfig
from basket.errors import CartServiceError, ErrorKind, InvalidQuantity, ProductNotFound
from basket.services.price_source import HttpPriceSource, PriceQuote, PriceSource, StaticPriceSource

__version__ = "0.1.0"

__all__ = [
    "BasketRequest",
    "BundleEntry",
    "BundleRequest",
    "CartConfig",
    "CartEngine",
    "CartServiceError",
    "ErrorKind",
    "HttpPriceSource",
    "InvalidQuantity",
    "ItemRequest",
    "PriceQuote",
    "PriceSource",
    "ProductNotFound",
    "SimpleEntry",
    "Snapshot",
    "StaticPriceSource",
    "SubItemRequest",
    "Subscription",
]
