"""
Price sources - where the cart learns what a new line costs.

The engine only depends on the ``PriceSource`` protocol. Two implementations
ship with the package:
- StaticPriceSource: in-memory catalog, for hosts with local prices and tests
- HttpPriceSource: asks a catalog service over HTTP (httpx)
"""
from decimal import Decimal
from typing import TYPE_CHECKING, Mapping, Optional, Protocol, Tuple, runtime_checkable

import httpx
from pydantic import BaseModel, field_validator

from basket.logging import get_logger, sanitize_id_for_logging
from basket.services.money import to_decimal

if TYPE_CHECKING:
    from basket.cart.models import BundleRequest, ItemRequest

logger = get_logger(__name__)


class PriceQuote(BaseModel):
    """Price the source reports for one item or one bundle component."""
    id: str
    price: Decimal

    class Config:
        extra = "ignore"  # Catalog payloads carry more than we need

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        """Missing or non-numeric prices fail validation."""
        return to_decimal(v)


@runtime_checkable
class PriceSource(Protocol):
    """Resolves cart requests to prices. Calls may be slow (network-bound)."""

    async def resolve_simple(self, request: "ItemRequest") -> Optional[PriceQuote]:
        """Price for a simple item, or None when the item is unknown."""
        ...

    async def resolve_bundle(self, request: "BundleRequest") -> list[PriceQuote]:
        """Prices for the bundle's sub-items; unpriced sub-items are omitted."""
        ...


class StaticPriceSource:
    """
    Price source backed by a mapping.

    Keys are ``(item_id, variant_id)`` tuples or bare ``item_id`` strings for
    items without variants. Bundle sub-items are priced from the same table,
    multiplied by their count.
    """

    def __init__(self, prices: Mapping):
        self._prices: dict[Tuple[str, Optional[str]], Decimal] = {}
        for key, price in prices.items():
            item_id, variant_id = (key, None) if isinstance(key, str) else key
            self._prices[(item_id, variant_id)] = to_decimal(price)

    def price_for(self, item_id: str, variant_id: Optional[str] = None) -> Optional[Decimal]:
        return self._prices.get((item_id, variant_id))

    async def resolve_simple(self, request: "ItemRequest") -> Optional[PriceQuote]:
        price = self.price_for(request.item_id, request.variant_id)
        if price is None:
            return None
        return PriceQuote(id=request.item_id, price=price)

    async def resolve_bundle(self, request: "BundleRequest") -> list[PriceQuote]:
        quotes = []
        for sub in request.sub_items:
            price = self.price_for(sub.item_id, sub.variant_id)
            if price is None:
                continue
            quotes.append(PriceQuote(id=sub.item_id, price=price * sub.count))
        return quotes


class HttpPriceSource:
    """
    Price source that queries a catalog service.

    Endpoints (relative to base_url):
        GET  /items/{item_id}?variant=...   -> {"id": ..., "price": ...}, 404 if unknown
        POST /bundles/{item_id}/quote       -> [{"id": ..., "price": ...}, ...]

    HTTP and transport errors are raised as-is; retry policy belongs to the host.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        if not base_url:
            raise ValueError("base_url must be set")
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpPriceSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def resolve_simple(self, request: "ItemRequest") -> Optional[PriceQuote]:
        params = {"variant": request.variant_id} if request.variant_id is not None else None
        response = await self.client.get(f"{self.base_url}/items/{request.item_id}", params=params)
        if response.status_code == 404:
            logger.debug(f"Catalog has no price for item {sanitize_id_for_logging(request.item_id)}")
            return None
        response.raise_for_status()
        return PriceQuote.model_validate(response.json())

    async def resolve_bundle(self, request: "BundleRequest") -> list[PriceQuote]:
        payload = {"sub_items": [sub.to_dict() for sub in request.sub_items]}
        response = await self.client.post(
            f"{self.base_url}/bundles/{request.item_id}/quote",
            json=payload,
        )
        response.raise_for_status()
        return [PriceQuote.model_validate(row) for row in response.json()]


__all__ = ["PriceQuote", "PriceSource", "StaticPriceSource", "HttpPriceSource"]
