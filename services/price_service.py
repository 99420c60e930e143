# services/price_service.py
"""
Reference prices for valuation and (optionally) trade price checks.

Real price sourcing lives outside this service. ``MockPriceOracle`` reproduces
the simulated venue's feed: fixed base prices with up to +/-2% jitter on
everything except stablecoins.
"""
from __future__ import annotations

import random
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Protocol

from utils.common_helpers import normalize_symbol, quantize, to_decimal

BASE_PRICES: Dict[str, Decimal] = {
    "BTC": Decimal("45000.00"),
    "ETH": Decimal("2500.00"),
    "SOL": Decimal("100.00"),
    "USDC": Decimal("1.00"),
    "USDT": Decimal("1.00"),
    "BTC-PERP": Decimal("45000.00"),
    "ETH-PERP": Decimal("2500.00"),
    "SOL-PERP": Decimal("100.00"),
}

STABLECOINS = frozenset({"USDC", "USDT"})


class PriceOracle(Protocol):
    def get_price(self, symbol: str) -> Optional[Decimal]:
        ...

    def get_prices(self, symbols: Iterable[str]) -> Dict[str, Optional[Decimal]]:
        ...


class _OracleBase:
    def get_price(self, symbol: str) -> Optional[Decimal]:
        raise NotImplementedError

    def get_prices(self, symbols: Iterable[str]) -> Dict[str, Optional[Decimal]]:
        return {normalize_symbol(s): self.get_price(s) for s in symbols}


class StaticPriceOracle(_OracleBase):
    """Fixed price table; symbols not in the table have no quote."""

    def __init__(self, prices: Mapping[str, object]):
        self._prices: Dict[str, Decimal] = {}
        for symbol, price in prices.items():
            value = to_decimal(price)
            if value is not None:
                self._prices[normalize_symbol(symbol)] = value

    def get_price(self, symbol: str) -> Optional[Decimal]:
        return self._prices.get(normalize_symbol(symbol))

    def set_price(self, symbol: str, price: object) -> None:
        value = to_decimal(price)
        if value is None:
            raise ValueError(f"invalid price for {symbol}: {price!r}")
        self._prices[normalize_symbol(symbol)] = value


class MockPriceOracle(_OracleBase):
    def __init__(
        self,
        base_prices: Mapping[str, Decimal] = BASE_PRICES,
        max_variation: Decimal = Decimal("0.02"),
        rng: Optional[random.Random] = None,
    ):
        self._base = dict(base_prices)
        self._max_variation = max_variation
        self._rng = rng or random.Random()

    def get_price(self, symbol: str) -> Optional[Decimal]:
        key = normalize_symbol(symbol)
        base = self._base.get(key)
        if base is None:
            return None
        if key in STABLECOINS:
            return base
        jitter = Decimal(str(self._rng.uniform(-1.0, 1.0))) * self._max_variation
        return quantize(base * (Decimal("1") + jitter))


_default_oracle: PriceOracle = MockPriceOracle()


def get_price_oracle() -> PriceOracle:
    return _default_oracle
