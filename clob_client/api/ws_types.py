"""
Streaming message types.

Subscription envelopes, typed market/user events and the bounded queue each
subscriber reads from.
"""

import queue
from enum import Enum
from typing import Any, Optional, Iterator

from pydantic import BaseModel, ConfigDict, Field


# Event types, carried in the "event_type" field
EVENT_BOOK = "book"
EVENT_PRICE_CHANGE = "price_change"
EVENT_TICK_SIZE_CHANGE = "tick_size_change"
EVENT_LAST_TRADE_PRICE = "last_trade_price"
EVENT_TRADE = "trade"
EVENT_ORDER = "order"

CHANNEL_MARKET = "market"
CHANNEL_USER = "user"

OP_SUBSCRIBE = "subscribe"
OP_UNSUBSCRIBE = "unsubscribe"

PING = "PING"
PONG = "PONG"

EVENT_QUEUE_SIZE = 256


class ConnectionState(str, Enum):
    """Streaming connection lifecycle."""
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class AuthPayload(BaseModel):
    """User channel credentials embedded in the subscription."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    api_key: str = Field(..., alias="apiKey")
    secret: str = Field(..., repr=False)
    passphrase: str = Field(..., repr=False)


class SubscriptionRequest(BaseModel):
    """Subscribe/unsubscribe envelope."""
    model_config = ConfigDict(frozen=True)

    type: str
    operation: str = OP_SUBSCRIBE
    assets_ids: list[str] = Field(default_factory=list)
    markets: list[str] = Field(default_factory=list)
    initial_dump: Optional[bool] = None
    auth: Optional[AuthPayload] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Market channel events
class BookLevel(BaseModel):
    price: str
    size: str


class BookUpdate(BaseModel):
    """Order book snapshot ("book")."""
    model_config = ConfigDict(extra="ignore")

    event_type: str = EVENT_BOOK
    asset_id: str = ""
    market: str = ""
    timestamp: str = ""
    bids: list[BookLevel] = Field(default_factory=list)
    asks: list[BookLevel] = Field(default_factory=list)
    hash: str = ""


class PriceChangeEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    asset_id: str = ""
    price: str = ""
    size: str = ""
    side: str = ""
    hash: str = ""
    best_bid: str = ""
    best_ask: str = ""


class PriceChange(BaseModel):
    """Level changes for one or more assets of a market ("price_change")."""
    model_config = ConfigDict(extra="ignore")

    event_type: str = EVENT_PRICE_CHANGE
    market: str = ""
    timestamp: str = ""
    price_changes: list[PriceChangeEntry] = Field(default_factory=list)


class TickSizeChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_type: str = EVENT_TICK_SIZE_CHANGE
    asset_id: str = ""
    market: str = ""
    old_tick_size: str = ""
    new_tick_size: str = ""
    timestamp: str = ""


class LastTradePrice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_type: str = EVENT_LAST_TRADE_PRICE
    asset_id: str = ""
    market: str = ""
    price: str = ""
    side: str = ""
    size: str = ""
    fee_rate_bps: str = ""
    timestamp: str = ""


# User channel events
class OrderUpdate(BaseModel):
    """Order placement/update/cancellation ("order")."""
    model_config = ConfigDict(extra="ignore")

    event_type: str = EVENT_ORDER
    id: str = ""
    market: str = ""
    asset_id: str = ""
    side: str = ""
    price: str = ""
    type: str = ""
    outcome: str = ""
    owner: str = ""
    original_size: str = ""
    size_matched: str = ""
    timestamp: str = ""
    associate_trades: Optional[list[str]] = None
    status: str = ""


class MakerFill(BaseModel):
    model_config = ConfigDict(extra="ignore")

    asset_id: str = ""
    matched_amount: str = ""
    order_id: str = ""
    outcome: str = ""
    owner: str = ""
    price: str = ""


class TradeUpdate(BaseModel):
    """Fill lifecycle for the user's orders ("trade")."""
    model_config = ConfigDict(extra="ignore")

    event_type: str = EVENT_TRADE
    id: str = ""
    market: str = ""
    asset_id: str = ""
    side: str = ""
    size: str = ""
    price: str = ""
    status: str = ""
    type: str = ""
    last_update: str = ""
    match_time: str = ""
    timestamp: str = ""
    outcome: str = ""
    owner: str = ""
    taker_order_id: str = ""
    maker_orders: list[MakerFill] = Field(default_factory=list)
    fee_rate_bps: str = ""
    transaction_hash: str = ""
    trader_side: str = ""


_CLOSED = object()


class EventQueue(queue.Queue):
    """
    Bounded per-subscriber event queue.

    The dispatcher offers without blocking and drops on a full queue. close()
    appends an end marker past the bound, so iteration yields everything
    already queued and then stops.

    Example:
        >>> events = streaming.subscribe_order_book(["123"])
        >>> for book in events:
        ...     handle(book)
    """

    def __init__(self, maxsize: int = EVENT_QUEUE_SIZE):
        super().__init__(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        with self.mutex:
            return self._closed

    def offer(self, item: Any) -> bool:
        """Enqueue without blocking; False if full or closed."""
        with self.not_full:
            if self._closed:
                return False
            if 0 < self.maxsize <= self._qsize():
                return False
            self._put(item)
            self.unfinished_tasks += 1
            self.not_empty.notify()
            return True

    def close(self) -> bool:
        """Mark the end of the stream; False if already closed."""
        with self.mutex:
            if self._closed:
                return False
            self._closed = True
            self.queue.append(_CLOSED)
            self.unfinished_tasks += 1
            self.not_empty.notify_all()
            return True

    def next_event(self, timeout: Optional[float] = None) -> Optional[Any]:
        """
        Next event, or None once the queue is closed and drained.

        Raises:
            queue.Empty: Nothing arrived within timeout
        """
        item = self.get(timeout=timeout)
        if item is _CLOSED:
            self._keep_end_marker()
            return None
        return item

    def _keep_end_marker(self) -> None:
        # Leave the marker in place for later readers
        with self.mutex:
            self.queue.appendleft(_CLOSED)
            self.unfinished_tasks += 1
            self.not_empty.notify_all()

    def __iter__(self) -> Iterator[Any]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event
