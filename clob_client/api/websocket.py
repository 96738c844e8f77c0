"""
Streaming client for the CLOB market and user channels.

One supervised connection per channel:
- Reconnects with exponential backoff and jitter
- Replays tracked subscriptions after every connect
- Text PING heartbeat; a silent server gets its socket closed
- Fans events out to bounded per-subscriber queues, filtered by event_type

Streaming failures are logged, never raised to subscribers.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional
import logging

import orjson
import websocket
from pydantic import ValidationError as PydanticValidationError
from websocket import WebSocketException

from ..auth.credentials import ApiCredentials
from ..exceptions import WebSocketError
from ..metrics import Metrics
from ..utils.retry import reconnect_delay
from .ws_types import (
    CHANNEL_MARKET,
    CHANNEL_USER,
    EVENT_BOOK,
    EVENT_LAST_TRADE_PRICE,
    EVENT_ORDER,
    EVENT_PRICE_CHANGE,
    EVENT_TICK_SIZE_CHANGE,
    EVENT_TRADE,
    OP_UNSUBSCRIBE,
    PING,
    PONG,
    AuthPayload,
    BookUpdate,
    ConnectionState,
    EventQueue,
    LastTradePrice,
    OrderUpdate,
    PriceChange,
    SubscriptionRequest,
    TickSizeChange,
    TradeUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "wss://ws-subscriptions-clob.polymarket.com"
PING_INTERVAL = 5.0
PONG_TIMEOUT = 15.0
CONNECT_TIMEOUT = 10.0
# Poll period for cancellation watchers
WATCH_INTERVAL = 0.1

Decoder = Callable[[dict[str, Any]], Any]
ConnectFn = Callable[..., Any]


@dataclass
class Listener:
    id: int
    event_type: str  # empty matches every event
    queue: EventQueue
    decoder: Optional[Decoder] = None
    request: Optional[SubscriptionRequest] = None


class Connection:
    """
    Auto-reconnecting socket for one channel.

    Lock layout: _sock_lock guards the socket pointer, _subs_lock the tracked
    subscriptions, _listener_lock the listener registry and closed flag,
    _write_lock serializes frames on the wire, _pong_lock the last PONG time.
    """

    def __init__(
        self,
        url: str,
        channel: str,
        metrics: Optional[Metrics] = None,
        connect_fn: Optional[ConnectFn] = None,
        ping_interval: float = PING_INTERVAL,
        pong_timeout: float = PONG_TIMEOUT,
        connect_timeout: float = CONNECT_TIMEOUT
    ):
        self.url = url
        self.channel = channel
        self.metrics = metrics
        self.ping_interval = ping_interval
        self.pong_timeout = pong_timeout
        self.connect_timeout = connect_timeout
        self._connect_fn = connect_fn or websocket.create_connection

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = ConnectionState.DISCONNECTED

        self._sock = None
        self._sock_lock = threading.Lock()
        self._write_lock = threading.Lock()

        self._subscriptions: list[SubscriptionRequest] = []
        self._subs_lock = threading.Lock()

        self._listeners: list[Listener] = []
        self._listener_lock = threading.Lock()
        self._next_id = 0
        self._closed = False

        self._last_pong: Optional[float] = None
        self._pong_lock = threading.Lock()

        self._reconnects = 0
        self._dropped = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        with self._sock_lock:
            return self._sock is not None

    def start(self) -> None:
        """Start the supervised lifecycle thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name=f"clob-ws-{self.channel}", daemon=True
        )
        self._thread.start()

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        if self.metrics is not None:
            self.metrics.set_connected(self.channel, state == ConnectionState.CONNECTED)

    def _run(self) -> None:
        attempt = 0
        while not self._stop.is_set():
            self._set_state(ConnectionState.CONNECTING)
            try:
                sock = self._connect_fn(self.url, timeout=self.connect_timeout)
            except (WebSocketException, OSError) as e:
                attempt += 1
                logger.warning(f"[{self.channel}] Connect failed: {type(e).__name__}: {e}")
                if self._backoff(attempt):
                    break
                continue

            with self._sock_lock:
                if self._stop.is_set():
                    self._close_quietly(sock)
                    break
                sock.settimeout(None)
                self._sock = sock

            attempt = 0
            with self._pong_lock:
                self._last_pong = None
            self._set_state(ConnectionState.CONNECTED)
            logger.info(f"[{self.channel}] Connected to {self.url}")

            self._replay()

            heartbeat_stop = threading.Event()
            heartbeat = threading.Thread(
                target=self._heartbeat, args=(sock, heartbeat_stop, time.monotonic()),
                name=f"clob-ws-{self.channel}-heartbeat", daemon=True
            )
            heartbeat.start()
            try:
                self._read_loop(sock)
            finally:
                heartbeat_stop.set()
                with self._sock_lock:
                    self._sock = None
                self._close_quietly(sock)

            self._set_state(ConnectionState.DISCONNECTED)
            if self._stop.is_set():
                break

            attempt += 1
            self._reconnects += 1
            if self.metrics is not None:
                self.metrics.track_reconnect(self.channel)
            logger.warning(f"[{self.channel}] Connection lost, reconnecting (attempt {attempt})")
            if self._backoff(attempt):
                break

        self._set_state(ConnectionState.CLOSED)
        logger.info(f"[{self.channel}] Stopped")

    def _backoff(self, attempt: int) -> bool:
        """Wait before reconnecting; True if stopped meanwhile."""
        delay = reconnect_delay(attempt)
        logger.debug(f"[{self.channel}] Reconnect in {delay:.2f}s")
        return self._stop.wait(delay)

    def _read_loop(self, sock) -> None:
        while not self._stop.is_set():
            try:
                frame = sock.recv()
            except (WebSocketException, OSError) as e:
                logger.info(f"[{self.channel}] Read ended: {type(e).__name__}")
                return
            if isinstance(frame, bytes):
                frame = frame.decode("utf-8", errors="replace")
            if not frame:
                continue
            self.handle_frame(frame)

    def handle_frame(self, frame: str) -> None:
        """Route one text frame: PONG replies or JSON events."""
        if frame == PONG:
            with self._pong_lock:
                self._last_pong = time.monotonic()
            return
        self.dispatch(frame)

    def dispatch(self, frame: str) -> None:
        data = frame.strip()
        try:
            payload = orjson.loads(data)
        except orjson.JSONDecodeError:
            logger.debug(f"[{self.channel}] Ignoring non-JSON frame")
            return

        if data.startswith("["):
            if not isinstance(payload, list):
                return
            for message in payload:
                if isinstance(message, dict):
                    self._dispatch_single(message)
            return
        if isinstance(payload, dict):
            self._dispatch_single(payload)

    def _dispatch_single(self, message: dict[str, Any]) -> None:
        event_type = message.get("event_type") or ""
        if self.metrics is not None:
            self.metrics.track_event(self.channel, event_type)

        with self._listener_lock:
            if self._closed:
                return
            for listener in self._listeners:
                if listener.event_type and listener.event_type != event_type:
                    continue
                event: Any = message
                if listener.decoder is not None:
                    try:
                        event = listener.decoder(message)
                    except (PydanticValidationError, ValueError, TypeError) as e:
                        logger.debug(f"[{self.channel}] Undecodable {event_type} event: {e}")
                        continue
                if not listener.queue.offer(event):
                    self._dropped += 1
                    if self.metrics is not None:
                        self.metrics.track_dropped(self.channel)

    def _heartbeat(self, sock, stop: threading.Event, connected_at: float) -> None:
        while not stop.wait(self.ping_interval):
            with self._pong_lock:
                last_pong = self._last_pong
            # Before the first PONG the connect time stands in
            last_reply = last_pong if last_pong is not None else connected_at
            if time.monotonic() - last_reply > self.pong_timeout:
                logger.warning(f"[{self.channel}] No PONG for {self.pong_timeout}s, forcing reconnect")
                self._abort(sock)
                return
            try:
                self._write(sock, PING)
            except (WebSocketException, OSError):
                return

    def _write(self, sock, text: str) -> None:
        with self._write_lock:
            sock.send(text)

    def send_json(self, payload: Any) -> None:
        """
        Send one JSON frame.

        Raises:
            WebSocketError: Not connected or the write failed
        """
        with self._sock_lock:
            sock = self._sock
        if sock is None:
            raise WebSocketError(f"{self.channel} channel not connected")
        try:
            self._write(sock, orjson.dumps(payload).decode("utf-8"))
        except (WebSocketException, OSError) as e:
            raise WebSocketError(f"{self.channel} send failed: {type(e).__name__}") from e

    def _replay(self) -> None:
        with self._subs_lock:
            subscriptions = list(self._subscriptions)
        for request in subscriptions:
            try:
                self.send_json(request.to_wire())
            except WebSocketError as e:
                logger.warning(f"[{self.channel}] Replay interrupted: {e}")
                return
        if subscriptions:
            logger.info(f"[{self.channel}] Replayed {len(subscriptions)} subscriptions")

    def subscribe(
        self,
        request: SubscriptionRequest,
        event_type: str = "",
        decoder: Optional[Decoder] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> EventQueue:
        """
        Register a listener and track the request for replay.

        The request is sent now if connected, otherwise on the next connect.
        When cancel_event fires the listener is removed and its queue closed.

        Raises:
            WebSocketError: Connection already closed
        """
        events = EventQueue()
        with self._listener_lock:
            if self._closed:
                raise WebSocketError(f"{self.channel} connection closed")
            self._next_id += 1
            listener = Listener(self._next_id, event_type, events, decoder, request)
            self._listeners.append(listener)

        with self._subs_lock:
            self._subscriptions.append(request)

        try:
            self.send_json(request.to_wire())
        except WebSocketError as e:
            logger.debug(f"[{self.channel}] Subscription deferred to next connect: {e}")

        if cancel_event is not None:
            threading.Thread(
                target=self._watch_cancel, args=(cancel_event, listener.id), daemon=True
            ).start()
        return events

    def _watch_cancel(self, cancel_event: threading.Event, listener_id: int) -> None:
        while not cancel_event.wait(WATCH_INTERVAL):
            if self._stop.is_set():
                return
        self.remove_listener(listener_id)

    def remove_listener(self, listener_id: int) -> None:
        """Drop a listener, close its queue and untrack the request it made."""
        removed: Optional[Listener] = None
        with self._listener_lock:
            if self._closed:
                return
            for index, listener in enumerate(self._listeners):
                if listener.id == listener_id:
                    removed = self._listeners.pop(index)
                    removed.queue.close()
                    break
        if removed is None or removed.request is None:
            return

        # Identity match: an equal request from another listener stays tracked
        with self._subs_lock:
            self._subscriptions = [
                request for request in self._subscriptions
                if request is not removed.request
            ]

    def remove_tracked(self, field: str, values: list[str]) -> int:
        """Drop tracked requests naming any of values in field; returns the count."""
        remove = set(values)
        with self._subs_lock:
            kept = [
                request for request in self._subscriptions
                if not remove.intersection(getattr(request, field))
            ]
            removed = len(self._subscriptions) - len(kept)
            self._subscriptions = kept
        return removed

    def tracked(self) -> list[SubscriptionRequest]:
        with self._subs_lock:
            return list(self._subscriptions)

    def _abort(self, sock) -> None:
        try:
            sock.abort()
        except (WebSocketException, OSError) as e:
            logger.debug(f"[{self.channel}] Abort failed: {e}")

    def _close_quietly(self, sock) -> None:
        try:
            sock.close()
        except (WebSocketException, OSError) as e:
            logger.debug(f"[{self.channel}] Close failed: {e}")

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop reconnecting, drop the socket and end every listener queue once."""
        self._state = ConnectionState.CLOSING
        self._stop.set()
        with self._sock_lock:
            sock = self._sock
        if sock is not None:
            self._abort(sock)

        with self._listener_lock:
            if self._closed:
                return
            self._closed = True
            listeners, self._listeners = self._listeners, []
            for listener in listeners:
                listener.queue.close()

        if timeout is not None and self._thread is not None:
            self._thread.join(timeout)
        logger.info(f"[{self.channel}] Closed ({len(listeners)} listeners)")

    def stats(self) -> dict[str, Any]:
        with self._pong_lock:
            last_pong = self._last_pong
        with self._listener_lock:
            listeners = len(self._listeners)
        return {
            "state": self._state.value,
            "subscriptions": len(self.tracked()),
            "listeners": listeners,
            "reconnects": self._reconnects,
            "dropped_events": self._dropped,
            "last_pong_seconds_ago": (
                round(time.monotonic() - last_pong, 1) if last_pong is not None else None
            ),
        }


class StreamingClient:
    """
    Market and user channel subscriptions over lazily opened connections.

    Example:
        >>> streaming = StreamingClient()
        >>> for book in streaming.subscribe_order_book(["7132..."]):
        ...     print(book.bids[:1])
        >>> streaming.close()
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        parent_cancel: Optional[threading.Event] = None,
        metrics: Optional[Metrics] = None,
        connect_fn: Optional[ConnectFn] = None
    ):
        """
        Initialize streaming client.

        Args:
            endpoint: Base URL; /ws/market and /ws/user are appended
            parent_cancel: Closes the client when set
            metrics: Optional metrics collector
            connect_fn: Socket factory (tests)
        """
        self.endpoint = (endpoint or DEFAULT_ENDPOINT).rstrip("/")
        self.metrics = metrics
        self._connect_fn = connect_fn
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}
        self._closed = False

        if parent_cancel is not None:
            threading.Thread(
                target=self._watch_parent, args=(parent_cancel,),
                name="clob-ws-parent", daemon=True
            ).start()

    def _watch_parent(self, parent_cancel: threading.Event) -> None:
        while not parent_cancel.wait(WATCH_INTERVAL):
            if self._closed:
                return
        self.close()

    def _connection(self, channel: str) -> Connection:
        with self._lock:
            if self._closed:
                raise WebSocketError("Streaming client is closed")
            conn = self._connections.get(channel)
            if conn is None:
                conn = Connection(
                    f"{self.endpoint}/ws/{channel}",
                    channel,
                    metrics=self.metrics,
                    connect_fn=self._connect_fn,
                )
                self._connections[channel] = conn
                conn.start()
            return conn

    def _existing(self, channel: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(channel)

    def subscribe(
        self,
        request: SubscriptionRequest,
        event_type: str = "",
        decoder: Optional[Decoder] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> EventQueue:
        """Raw subscription on the request's channel; events are dicts unless decoded."""
        return self._connection(request.type).subscribe(
            request, event_type, decoder, cancel_event
        )

    def _subscribe_market(self, asset_ids: list[str], event_type: str, model,
                          cancel_event: Optional[threading.Event]) -> EventQueue:
        request = SubscriptionRequest(
            type=CHANNEL_MARKET, assets_ids=list(asset_ids), initial_dump=True
        )
        return self.subscribe(request, event_type, model.model_validate, cancel_event)

    def _subscribe_user(self, credentials: ApiCredentials, markets: list[str],
                        event_type: str, model,
                        cancel_event: Optional[threading.Event]) -> EventQueue:
        request = SubscriptionRequest(
            type=CHANNEL_USER,
            markets=list(markets),
            initial_dump=True,
            auth=AuthPayload(
                api_key=credentials.api_key,
                secret=credentials.api_secret,
                passphrase=credentials.api_passphrase,
            ),
        )
        return self.subscribe(request, event_type, model.model_validate, cancel_event)

    def subscribe_order_book(self, asset_ids: list[str],
                             cancel_event: Optional[threading.Event] = None) -> EventQueue:
        """BookUpdate events for the given assets."""
        return self._subscribe_market(asset_ids, EVENT_BOOK, BookUpdate, cancel_event)

    def subscribe_prices(self, asset_ids: list[str],
                         cancel_event: Optional[threading.Event] = None) -> EventQueue:
        """PriceChange events for the given assets."""
        return self._subscribe_market(asset_ids, EVENT_PRICE_CHANGE, PriceChange, cancel_event)

    def subscribe_last_trade_price(self, asset_ids: list[str],
                                   cancel_event: Optional[threading.Event] = None) -> EventQueue:
        return self._subscribe_market(
            asset_ids, EVENT_LAST_TRADE_PRICE, LastTradePrice, cancel_event
        )

    def subscribe_tick_size_change(self, asset_ids: list[str],
                                   cancel_event: Optional[threading.Event] = None) -> EventQueue:
        return self._subscribe_market(
            asset_ids, EVENT_TICK_SIZE_CHANGE, TickSizeChange, cancel_event
        )

    def subscribe_orders(self, credentials: ApiCredentials, markets: list[str],
                         cancel_event: Optional[threading.Event] = None) -> EventQueue:
        """OrderUpdate events for the authenticated account."""
        return self._subscribe_user(credentials, markets, EVENT_ORDER, OrderUpdate, cancel_event)

    def subscribe_trades(self, credentials: ApiCredentials, markets: list[str],
                         cancel_event: Optional[threading.Event] = None) -> EventQueue:
        """TradeUpdate events for the authenticated account."""
        return self._subscribe_user(credentials, markets, EVENT_TRADE, TradeUpdate, cancel_event)

    def unsubscribe_market(self, asset_ids: list[str]) -> None:
        """Stop tracking and unsubscribe the given assets."""
        self._unsubscribe(
            CHANNEL_MARKET, "assets_ids",
            SubscriptionRequest(type=CHANNEL_MARKET, operation=OP_UNSUBSCRIBE,
                                assets_ids=list(asset_ids))
        )

    def unsubscribe_user(self, markets: list[str]) -> None:
        """Stop tracking and unsubscribe the given markets."""
        self._unsubscribe(
            CHANNEL_USER, "markets",
            SubscriptionRequest(type=CHANNEL_USER, operation=OP_UNSUBSCRIBE,
                                markets=list(markets))
        )

    def _unsubscribe(self, channel: str, field: str, request: SubscriptionRequest) -> None:
        conn = self._existing(channel)
        if conn is None:
            return
        removed = conn.remove_tracked(field, getattr(request, field))
        logger.debug(f"[{channel}] Untracked {removed} subscriptions")
        try:
            conn.send_json(request.to_wire())
        except WebSocketError as e:
            logger.info(f"[{channel}] Unsubscribe not sent: {e}")

    def close(self) -> None:
        """Close both channels; every subscriber queue ends."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            conn.close()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            connections = dict(self._connections)
        return {
            "closed": self._closed,
            "channels": {channel: conn.stats() for channel, conn in connections.items()},
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
