"""
Cart configuration.

Values are read from the environment. Pass a ``CartConfig`` to ``CartEngine``
explicitly, or let it fall back to the process-wide ``get_config()``.

Environment variables:
    BASKET_PRICE_SCALE    minor units per major unit (default 100, i.e. cents)
    BASKET_DEFAULT_COUNT  count used when add/remove get no count (default 1)
"""
import os
from dataclasses import dataclass
from functools import cache
from typing import Mapping

DEFAULT_PRICE_SCALE = 100
DEFAULT_COUNT = 1


def _read_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class CartConfig:
    """Explicit configuration for a cart engine instance."""
    price_scale: int = DEFAULT_PRICE_SCALE
    default_count: int = DEFAULT_COUNT

    def __post_init__(self):
        if not isinstance(self.price_scale, int) or self.price_scale < 1:
            raise ValueError("price_scale must be a positive integer")
        if not isinstance(self.default_count, int) or self.default_count < 1:
            raise ValueError("default_count must be a positive integer")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CartConfig":
        """Build config from environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            price_scale=_read_int(env, "BASKET_PRICE_SCALE", DEFAULT_PRICE_SCALE),
            default_count=_read_int(env, "BASKET_DEFAULT_COUNT", DEFAULT_COUNT),
        )


@cache
def get_config() -> CartConfig:
    """Get CartConfig singleton built from the process environment."""
    return CartConfig.from_env()


__all__ = ["CartConfig", "get_config", "DEFAULT_PRICE_SCALE", "DEFAULT_COUNT"]
