"""Order amount rounding and signing."""

from .order_builder import OrderBuilder
from .rounding import TickPolicy, policy_for

__all__ = ["OrderBuilder", "TickPolicy", "policy_for"]
