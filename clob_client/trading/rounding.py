"""
Decimal rounding policy per tick size.

All arithmetic is exact Decimal; floats are converted through str() before
they reach any of these helpers.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, ROUND_UP
from typing import Union

from ..exceptions import UnsupportedTickSizeError

Number = Union[Decimal, int, str, float]

# Collateral and conditional tokens both use 6 decimals
BASE_UNIT_DECIMALS = 6
_BASE_UNIT_SCALE = Decimal(10) ** BASE_UNIT_DECIMALS


@dataclass(frozen=True)
class TickPolicy:
    """Decimal places allowed for each order field at a given tick size."""
    price_decimals: int
    size_decimals: int
    amount_decimals: int


TICK_POLICIES: dict[str, TickPolicy] = {
    "0.1": TickPolicy(price_decimals=1, size_decimals=2, amount_decimals=3),
    "0.01": TickPolicy(price_decimals=2, size_decimals=2, amount_decimals=4),
    "0.001": TickPolicy(price_decimals=3, size_decimals=2, amount_decimals=5),
    "0.0001": TickPolicy(price_decimals=4, size_decimals=2, amount_decimals=6),
}


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal via str() so floats keep their printed value."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def policy_for(tick_size: Union[str, Decimal]) -> TickPolicy:
    """
    Look up the rounding policy for a tick size.

    Args:
        tick_size: One of "0.1", "0.01", "0.001", "0.0001"

    Returns:
        Matching TickPolicy

    Raises:
        UnsupportedTickSizeError: For any other value
    """
    policy = TICK_POLICIES.get(str(tick_size))
    if policy is None:
        raise UnsupportedTickSizeError(tick_size)
    return policy


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def truncate_down(value: Number, places: int) -> Decimal:
    """Truncate toward zero at `places` fractional digits."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_DOWN)


def round_nearest(value: Number, places: int) -> Decimal:
    """Round half away from zero at `places` fractional digits."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_HALF_UP)


def round_up(value: Number, places: int) -> Decimal:
    """Round away from zero at `places` fractional digits (positive inputs)."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_UP)


def decimal_places(value: Number) -> int:
    """Count fractional digits in the canonical form (Decimal("100.0") -> 1)."""
    exponent = to_decimal(value).as_tuple().exponent
    if not isinstance(exponent, int) or exponent >= 0:
        return 0
    return -exponent


def to_base_units(value: Number) -> str:
    """
    Scale by 10^6 and truncate to an integer string.

    >>> to_base_units("0.0005")
    '500'
    """
    scaled = (to_decimal(value) * _BASE_UNIT_SCALE).quantize(Decimal(1), rounding=ROUND_DOWN)
    return str(int(scaled))
