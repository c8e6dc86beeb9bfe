"""Share sizing helpers. Quantities truncate toward zero so exposure never exceeds the target."""

from __future__ import annotations
import math


def round_shares(qty: float, lot_size: int = 1) -> int:
    """Truncate toward zero to a whole number of lots."""
    if not math.isfinite(qty) or lot_size <= 0:
        return 0
    return int(math.trunc(qty / lot_size)) * lot_size


def target_shares(target_weight: float, nav: float, price: float, lot_size: int = 1) -> int:
    """Shares for `target_weight` of `nav` at `price`: |shares * price| <= |weight * nav|."""
    if price <= 0 or not math.isfinite(price):
        raise ValueError(f"price must be positive and finite, got {price}")
    return round_shares(target_weight * nav / price, lot_size)
