"""
Main CLOB client.

Composes the transport, auth header builders, order builder, metadata cache
and (lazily) the streaming client into the exchange's REST surface.
Thread-safe: signer and credentials are read-only after construction, the
metadata cache is lock-guarded.
"""

import hashlib
import threading
from decimal import Decimal
from typing import Any, Callable, Optional, Union
import logging

import orjson
import requests

from . import endpoints
from .api.pagination import CursorPaginator, split_page
from .api.transport import HTTPTransport, decode_json, parse_response, serialize_body
from .api.websocket import StreamingClient
from .auth.authenticator import build_l0_headers, build_l1_headers, build_l2_headers
from .auth.credentials import ApiCredentials, Signer
from .config import ClobSettings, get_settings
from .exceptions import (
    APIError,
    AuthError,
    TransportError,
    ValidationError,
)
from .logging_config import setup_logging
from .metrics import Metrics, get_metrics
from .models import (
    ApiCreds,
    ApiKeyInfo,
    BookParams,
    Market,
    MarketOrderArgs,
    MarketPrice,
    Notification,
    OpenOrderParams,
    Order,
    OrderArgs,
    OrderBookSummary,
    OrderResponse,
    OrderType,
    PostOrderArgs,
    PriceHistoryParams,
    Side,
    SignatureType,
    SignedOrder,
    SimplifiedMarket,
    SpreadResponse,
    Trade,
    TradeEvent,
    TradeParams,
    TradesPage,
)
from .trading.order_builder import OrderBuilder
from .trading.rounding import to_decimal
from .utils.cache import MetadataCache
from .utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

AUTH_L0 = 0
AUTH_L1 = 1
AUTH_L2 = 2

POST_ONLY_ORDER_TYPES = (OrderType.GTC, OrderType.GTD)


def _number_text(value: Any) -> str:
    """Render a JSON number or string the way the server wrote it."""
    if isinstance(value, float):
        return format(Decimal(repr(value)).normalize(), "f")
    return str(value)


class ClobClient:
    """
    Client for the Polymarket CLOB.

    Access levels:
    - L0: public market data
    - L1: wallet-signed API key management (needs a private key)
    - L2: trading and account data (needs API credentials)

    Usage:
        client = ClobClient(private_key=key)
        client.set_api_creds(client.create_or_derive_api_key())
        order = client.create_order(OrderArgs(token_id=tid, price="0.5", size=10, side="BUY"))
        client.post_order(order, OrderType.GTC)
    """

    def __init__(
        self,
        settings: Optional[ClobSettings] = None,
        private_key: Optional[str] = None,
        credentials: Optional[ApiCredentials] = None,
        session: Optional[requests.Session] = None,
        metrics: Optional[Metrics] = None
    ):
        """
        Initialize CLOB client.

        Args:
            settings: Optional settings (loads from env if not provided)
            private_key: Signer key, overrides settings.private_key
            credentials: L2 credentials, override the settings values
            session: Pre-built HTTP session (tests)
            metrics: Metrics collector (default from settings.enable_metrics)
        """
        self.settings = settings or get_settings()
        if self.settings.configure_logging:
            setup_logging(self.settings.log_level, self.settings.log_file, self.settings.log_json)
        self.chain_id = self.settings.chain_id

        if metrics is None and self.settings.enable_metrics:
            metrics = get_metrics(enabled=True, port=self.settings.metrics_port)
        self.metrics = metrics

        self.transport = HTTPTransport(
            self.settings.clob_url,
            policy=RetryPolicy(
                max_retries=self.settings.max_retries,
                base_delay=self.settings.retry_base_delay,
                max_delay=self.settings.retry_max_delay,
            ),
            timeout=self.settings.request_timeout,
            session=session,
            metrics=self.metrics,
        )

        if private_key is None and self.settings.private_key is not None:
            private_key = self.settings.private_key.get_secret_value()
        self.signer: Optional[Signer] = Signer(private_key) if private_key else None

        self.address: Optional[str] = self.settings.address or (
            self.signer.address if self.signer else None
        )

        self.order_builder: Optional[OrderBuilder] = None
        if self.signer is not None:
            self.order_builder = OrderBuilder(
                self.signer,
                chain_id=self.chain_id,
                signature_type=SignatureType(self.settings.signature_type),
                funder=self.settings.funder,
            )

        self.credentials: Optional[ApiCredentials] = None
        if credentials is None:
            credentials = self._credentials_from_settings()
        if credentials is not None:
            self._bind_credentials(credentials)

        self.metadata = MetadataCache(tick_size_ttl=self.settings.tick_size_ttl)

        self._streaming: Optional[StreamingClient] = None
        self._streaming_lock = threading.Lock()

        logger.info(
            f"CLOB client initialized: {self.settings.clob_url} chain={self.chain_id} "
            f"level={self.auth_level}"
        )

    def _credentials_from_settings(self) -> Optional[ApiCredentials]:
        s = self.settings
        if not (s.api_key and s.api_secret and s.api_passphrase):
            return None
        return ApiCredentials(
            api_key=s.api_key,
            api_secret=s.api_secret.get_secret_value(),
            api_passphrase=s.api_passphrase.get_secret_value(),
        )

    def _bind_credentials(self, credentials: ApiCredentials) -> None:
        if credentials.address is None and self.address:
            credentials = credentials.with_address(self.address)
        self.credentials = credentials

    def set_api_creds(self, creds: Union[ApiCreds, ApiCredentials]) -> None:
        """Install L2 credentials (e.g. from create_or_derive_api_key)."""
        if isinstance(creds, ApiCreds):
            creds = ApiCredentials(creds.api_key, creds.api_secret, creds.api_passphrase)
        self._bind_credentials(creds)
        logger.info("API credentials set")

    @property
    def auth_level(self) -> int:
        if self.signer is not None and self.credentials is not None:
            return AUTH_L2
        if self.signer is not None:
            return AUTH_L1
        return AUTH_L0

    # ========== Request plumbing ==========

    def _headers(self, auth: int, method: str, path: str, body: str, nonce: int) -> dict[str, str]:
        if auth == AUTH_L1:
            if self.signer is None:
                raise AuthError("Private key required for L1 endpoints")
            return build_l1_headers(self.signer, self.chain_id, nonce=nonce, address=self.address)
        if auth == AUTH_L2:
            if self.credentials is None:
                raise AuthError("API credentials required for L2 endpoints")
            return build_l2_headers(self.credentials, method, path, body)
        return build_l0_headers()

    def _request_raw(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        payload: Any = None,
        auth: int = AUTH_L0,
        nonce: int = 0,
        cancel_event: Optional[threading.Event] = None
    ) -> bytes:
        # The L2 signature covers exactly the bytes that go on the wire
        body = serialize_body(payload) if payload is not None else None
        body_text = body.decode("utf-8") if body is not None else ""
        headers = self._headers(auth, method, path, body_text, nonce)
        response = self.transport.request(
            method, path, headers=headers, params=params, body=body, cancel_event=cancel_event
        )
        return parse_response(response, method, path)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        raw = self._request_raw(method, path, **kwargs)
        if not raw.strip():
            return None
        return decode_json(raw)

    def _paginate(
        self,
        path: str,
        decode: Callable[[Any], Any],
        params: Optional[dict[str, Any]] = None,
        auth: int = AUTH_L0
    ) -> CursorPaginator:
        def fetch_page(cursor: str):
            query = dict(params or {})
            if cursor:
                query["next_cursor"] = cursor
            return split_page(self._request("GET", path, params=query, auth=auth), decode)

        return CursorPaginator(fetch_page)

    # ========== Health & Markets (L0) ==========

    def get_ok(self) -> str:
        """Health check; the server answers "OK"."""
        raw = self._request_raw("GET", endpoints.OK)
        try:
            value = orjson.loads(raw)
        except orjson.JSONDecodeError:
            return raw.decode("utf-8", errors="replace").strip()
        return value if isinstance(value, str) else raw.decode("utf-8")

    def get_server_time(self) -> int:
        """Server unix timestamp (seconds)."""
        value = self._request("GET", endpoints.TIME)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise TransportError(f"Unexpected server time payload: {value!r}")

    def get_markets(self) -> CursorPaginator:
        """All markets, fetched page by page."""
        return self._paginate(endpoints.MARKETS, Market.model_validate)

    def get_sampling_markets(self) -> CursorPaginator:
        return self._paginate(endpoints.SAMPLING_MARKETS, Market.model_validate)

    def get_simplified_markets(self) -> CursorPaginator:
        return self._paginate(endpoints.SIMPLIFIED_MARKETS, SimplifiedMarket.model_validate)

    def get_sampling_simplified_markets(self) -> CursorPaginator:
        return self._paginate(
            endpoints.SAMPLING_SIMPLIFIED_MARKETS, SimplifiedMarket.model_validate
        )

    def get_market(self, condition_id: str) -> Market:
        return Market.model_validate(self._request("GET", endpoints.MARKET + condition_id))

    # ========== Order Books & Pricing (L0) ==========

    def get_order_book(self, token_id: str) -> OrderBookSummary:
        """
        Order book for one token.

        The book's tick size refreshes the tick size cache.
        """
        data = self._request("GET", endpoints.ORDER_BOOK, params={"token_id": token_id})
        book = OrderBookSummary.model_validate(data)
        self._update_tick_size_from_book(book)
        return book

    def get_order_books(self, params: list[BookParams]) -> list[OrderBookSummary]:
        data = self._request(
            "POST", endpoints.ORDER_BOOKS, payload=[p.to_wire() for p in params]
        )
        books = [OrderBookSummary.model_validate(item) for item in data or []]
        for book in books:
            self._update_tick_size_from_book(book)
        return books

    def _update_tick_size_from_book(self, book: OrderBookSummary) -> None:
        if book.asset_id and book.tick_size:
            self.metadata.set_tick_size(book.asset_id, book.tick_size)

    def get_midpoint(self, token_id: str) -> Decimal:
        data = self._request("GET", endpoints.MIDPOINT, params={"token_id": token_id})
        return to_decimal(data["mid"])

    def get_price(self, token_id: str, side: Union[Side, str]) -> Decimal:
        """Best price on the given side."""
        data = self._request(
            "GET", endpoints.PRICE, params={"token_id": token_id, "side": Side(side).value}
        )
        return to_decimal(data["price"])

    def get_spread(self, token_id: str) -> SpreadResponse:
        data = self._request("GET", endpoints.SPREAD, params={"token_id": token_id})
        return SpreadResponse.model_validate(data)

    def get_last_trade_price(self, token_id: str) -> Decimal:
        data = self._request("GET", endpoints.LAST_TRADE_PRICE, params={"token_id": token_id})
        return to_decimal(data["price"])

    def _batch(self, path: str, token_ids: list[str], side: Optional[Side] = None) -> Any:
        payload = [BookParams(token_id=t, side=side).to_wire() for t in token_ids]
        return self._request("POST", path, payload=payload) or {}

    def get_midpoints(self, token_ids: list[str]) -> dict[str, str]:
        return self._batch(endpoints.MIDPOINTS, token_ids)

    def get_prices(self, token_ids: list[str], side: Union[Side, str]) -> dict[str, Any]:
        return self._batch(endpoints.PRICES, token_ids, Side(side))

    def get_spreads(self, token_ids: list[str]) -> dict[str, SpreadResponse]:
        data = self._batch(endpoints.SPREADS, token_ids)
        return {
            token_id: SpreadResponse.model_validate(
                value if isinstance(value, dict) else {"spread": value}
            )
            for token_id, value in data.items()
        }

    def get_last_trades_prices(self, token_ids: list[str]) -> Any:
        return self._batch(endpoints.LAST_TRADES_PRICES, token_ids)

    def get_prices_history(self, params: PriceHistoryParams) -> list[MarketPrice]:
        """Historical price points for a market token."""
        data = self._request("GET", endpoints.PRICES_HISTORY, params=params.to_query())
        if isinstance(data, dict):
            data = data.get("history")
        return [MarketPrice.model_validate(item) for item in data or []]

    def get_market_trades_events(self, condition_id: str) -> list[TradeEvent]:
        data = self._request("GET", endpoints.MARKET_TRADES_EVENTS + condition_id)
        return [TradeEvent.model_validate(item) for item in data or []]

    def get_order_book_hash(self, book: OrderBookSummary) -> str:
        """
        SHA-1 of the book as the server hashes it; also stored on book.hash.

        The payload field order and the empty hash field are fixed.
        """
        payload = {
            "market": book.market,
            "asset_id": book.asset_id,
            "timestamp": book.timestamp,
            "hash": "",
            "bids": [{"price": level.price, "size": level.size} for level in book.bids],
            "asks": [{"price": level.price, "size": level.size} for level in book.asks],
            "min_order_size": book.min_order_size,
            "tick_size": book.tick_size,
            "neg_risk": book.neg_risk,
            "last_trade_price": book.last_trade_price,
        }
        digest = hashlib.sha1(orjson.dumps(payload)).hexdigest()
        book.hash = digest
        return digest

    # ========== Market Metadata (cached) ==========

    def get_tick_size(self, token_id: str) -> str:
        """Minimum tick size, cached per token (TTL from settings)."""
        cached = self.metadata.get_tick_size(token_id)
        if cached is not None:
            logger.debug(f"Using cached tick size {cached} for {token_id}")
            return cached

        data = self._request("GET", endpoints.TICK_SIZE, params={"token_id": token_id})
        tick_size = _number_text(data["minimum_tick_size"])
        self.metadata.set_tick_size(token_id, tick_size)
        logger.debug(f"Fetched tick size {tick_size} for {token_id}")
        return tick_size

    def get_neg_risk(self, token_id: str) -> bool:
        cached = self.metadata.get_neg_risk(token_id)
        if cached is not None:
            return cached

        data = self._request("GET", endpoints.NEG_RISK, params={"token_id": token_id})
        neg_risk = bool(data.get("neg_risk", False))
        self.metadata.set_neg_risk(token_id, neg_risk)
        return neg_risk

    def get_fee_rate_bps(self, token_id: str) -> int:
        """Market base fee in basis points."""
        cached = self.metadata.get_fee_rate(token_id)
        if cached is not None:
            return cached

        data = self._request("GET", endpoints.FEE_RATE, params={"token_id": token_id})
        fee_rate = int(to_decimal(data.get("base_fee") or 0))
        self.metadata.set_fee_rate(token_id, fee_rate)
        return fee_rate

    def clear_tick_size_cache(self, *token_ids: str) -> None:
        """Forget tick sizes for the given tokens, or all tokens."""
        self.metadata.clear_tick_size(*token_ids)

    def invalidate_metadata(self, token_id: Optional[str] = None) -> None:
        """Forget all cached metadata for one token, or for every token."""
        self.metadata.invalidate(token_id)

    def resolve_fee_rate(self, token_id: str, user_fee_rate: int) -> int:
        """
        Fee rate to sign into an order.

        Raises:
            ValidationError: Caller and market both set a rate and they differ
        """
        market_rate = self.get_fee_rate_bps(token_id)
        if market_rate > 0 and user_fee_rate > 0 and user_fee_rate != market_rate:
            raise ValidationError(
                f"Invalid user provided fee rate ({user_fee_rate}), "
                f"fee rate for the market must be {market_rate}",
                field="fee_rate_bps"
            )
        return market_rate if market_rate > 0 else user_fee_rate

    def calculate_market_price(
        self,
        token_id: str,
        side: Union[Side, str],
        amount: Union[Decimal, str, int, float],
        order_type: OrderType = OrderType.FOK
    ) -> Decimal:
        """
        Price that fills `amount` against the current book.

        Levels are walked from the end of the list. BUY accumulates
        size x price over asks (amount is collateral); SELL accumulates size
        over bids (amount is shares).

        Raises:
            ValidationError: FOK order the book cannot fill, or an empty side
        """
        side = Side(side)
        target = to_decimal(amount)
        book = self.get_order_book(token_id)
        levels = book.asks if side == Side.BUY else book.bids
        if not levels:
            raise ValidationError("No match: order book side is empty", field="amount")

        total = Decimal(0)
        for level in reversed(levels):
            price = to_decimal(level.price)
            size = to_decimal(level.size)
            total += size * price if side == Side.BUY else size
            if total >= target:
                return price

        if OrderType(order_type) == OrderType.FOK:
            raise ValidationError(
                f"No match: book cannot fill {target} for FOK order", field="amount"
            )
        return to_decimal(levels[0].price)

    # ========== API Keys (L1/L2) ==========

    def create_api_key(self, nonce: int = 0) -> ApiCreds:
        """Create a new API key (L1)."""
        data = self._request("POST", endpoints.CREATE_API_KEY, auth=AUTH_L1, nonce=nonce)
        logger.info("API key created")
        return ApiCreds.model_validate(data)

    def derive_api_key(self, nonce: int = 0) -> ApiCreds:
        """Derive the existing API key for this wallet and nonce (L1)."""
        data = self._request("GET", endpoints.DERIVE_API_KEY, auth=AUTH_L1, nonce=nonce)
        return ApiCreds.model_validate(data)

    def create_or_derive_api_key(self, nonce: int = 0) -> ApiCreds:
        """Create a key, falling back to deriving it when creation is refused."""
        try:
            return self.create_api_key(nonce)
        except (APIError, TransportError) as e:
            logger.info(f"API key creation failed ({type(e).__name__}), deriving instead")
            return self.derive_api_key(nonce)

    def get_api_keys(self) -> list[ApiKeyInfo]:
        data = self._request("GET", endpoints.GET_API_KEYS, auth=AUTH_L2)
        if isinstance(data, dict) and "apiKeys" in data:
            data = data["apiKeys"]
        if isinstance(data, dict):
            data = [data]
        return [
            ApiKeyInfo(api_key=item) if isinstance(item, str) else ApiKeyInfo.model_validate(item)
            for item in data or []
        ]

    def delete_api_key(self) -> Any:
        return self._request("DELETE", endpoints.DELETE_API_KEY, auth=AUTH_L2)

    # ========== Orders (L2) ==========

    def _require_builder(self) -> OrderBuilder:
        if self.order_builder is None:
            raise AuthError("Private key required for creating orders")
        return self.order_builder

    def create_order(self, args: OrderArgs) -> SignedOrder:
        """
        Build and sign a limit order using the market's tick size, neg-risk
        flag and fee rate.

        Raises:
            AuthError: No signer configured
            PriceOutOfRangeError: Price outside [tick, 1 - tick]
            ValidationError: Fee rate conflicts with the market's
        """
        builder = self._require_builder()
        tick_size = self.get_tick_size(args.token_id)
        neg_risk = self.get_neg_risk(args.token_id)
        fee_rate = self.resolve_fee_rate(args.token_id, args.fee_rate_bps)
        return builder.build_limit_order(args, tick_size, neg_risk, fee_rate)

    def create_market_order(self, args: MarketOrderArgs) -> SignedOrder:
        """
        Build and sign a market order. A price <= 0 is derived from the book.
        """
        builder = self._require_builder()
        tick_size = self.get_tick_size(args.token_id)
        if args.price <= 0:
            price = self.calculate_market_price(
                args.token_id, args.side, args.amount, args.order_type
            )
            args = args.model_copy(update={"price": price})
        neg_risk = self.get_neg_risk(args.token_id)
        fee_rate = self.resolve_fee_rate(args.token_id, args.fee_rate_bps)
        return builder.build_market_order(args, tick_size, neg_risk, fee_rate)

    @staticmethod
    def _check_post_only(order_type: OrderType, post_only: bool) -> None:
        if post_only and OrderType(order_type) not in POST_ONLY_ORDER_TYPES:
            raise ValidationError(
                "postOnly is only supported for GTC and GTD orders", field="post_only"
            )

    def _owner(self) -> str:
        return self.credentials.api_key if self.credentials is not None else ""

    def post_order(
        self,
        order: SignedOrder,
        order_type: OrderType = OrderType.GTC,
        post_only: bool = False
    ) -> OrderResponse:
        """
        Submit one signed order.

        Raises:
            ValidationError: post_only with an order type other than GTC/GTD
        """
        order_type = OrderType(order_type)
        self._check_post_only(order_type, post_only)
        payload = {
            "order": order.to_wire(),
            "owner": self._owner(),
            "orderType": order_type.value,
            "postOnly": bool(post_only),
        }
        data = self._request("POST", endpoints.POST_ORDER, payload=payload, auth=AUTH_L2)
        response = OrderResponse.model_validate(data or {})
        logger.info(
            f"Order posted: {order_type.value} token={order.token_id} "
            f"id={response.order_id} status={response.status}"
        )
        return response

    def post_orders(
        self,
        args: list[PostOrderArgs],
        defer_exec: bool = False,
        default_post_only: bool = False
    ) -> list[OrderResponse]:
        """Submit a batch; each entry's post_only falls back to default_post_only."""
        owner = self._owner()
        payload = []
        for arg in args:
            post_only = default_post_only if arg.post_only is None else arg.post_only
            self._check_post_only(arg.order_type, post_only)
            payload.append({
                "order": arg.order.to_wire(),
                "owner": owner,
                "orderType": OrderType(arg.order_type).value,
                "postOnly": bool(post_only),
                "deferExec": bool(defer_exec),
            })

        data = self._request("POST", endpoints.POST_ORDERS, payload=payload, auth=AUTH_L2)
        if isinstance(data, list):
            return [OrderResponse.model_validate(item) for item in data]
        return [OrderResponse.model_validate(data or {})]

    def create_and_post_order(
        self,
        args: OrderArgs,
        order_type: OrderType = OrderType.GTC,
        post_only: bool = False
    ) -> OrderResponse:
        self._check_post_only(order_type, post_only)
        return self.post_order(self.create_order(args), order_type, post_only)

    def create_and_post_market_order(
        self,
        args: MarketOrderArgs,
        post_only: bool = False
    ) -> OrderResponse:
        self._check_post_only(args.order_type, post_only)
        return self.post_order(self.create_market_order(args), args.order_type, post_only)

    def cancel_order(self, order_id: str) -> Any:
        return self._request(
            "DELETE", endpoints.CANCEL_ORDER, payload={"orderID": order_id}, auth=AUTH_L2
        )

    def cancel_orders(self, order_ids: list[str]) -> Any:
        return self._request(
            "DELETE", endpoints.CANCEL_ORDERS, payload=list(order_ids), auth=AUTH_L2
        )

    def cancel_market_orders(self, market: str = "", asset_id: str = "") -> Any:
        """Cancel every order in a market and/or for an asset."""
        return self._request(
            "DELETE", endpoints.CANCEL_MARKET_ORDERS,
            payload={"market": market, "asset_id": asset_id}, auth=AUTH_L2
        )

    def cancel_all(self) -> Any:
        result = self._request("DELETE", endpoints.CANCEL_ALL, auth=AUTH_L2)
        logger.info("Cancel-all sent")
        return result

    def get_order(self, order_id: str) -> Order:
        return Order.model_validate(
            self._request("GET", endpoints.ORDER + order_id, auth=AUTH_L2)
        )

    def get_open_orders(self, params: Optional[OpenOrderParams] = None) -> CursorPaginator:
        """Open orders, fetched page by page."""
        query = params.model_dump(exclude_none=True) if params else {}
        return self._paginate(endpoints.ORDERS, Order.model_validate, query, auth=AUTH_L2)

    def get_trades(self, params: Optional[TradeParams] = None) -> CursorPaginator:
        """Trade history, fetched page by page."""
        query = params.model_dump(exclude_none=True) if params else {}
        return self._paginate(endpoints.TRADES, Trade.model_validate, query, auth=AUTH_L2)

    def get_trades_paginated(
        self,
        params: Optional[TradeParams] = None,
        cursor: str = ""
    ) -> TradesPage:
        """Single page of trade history; pass next_cursor back to continue."""
        query = params.model_dump(exclude_none=True) if params else {}
        if cursor:
            query["next_cursor"] = cursor
        data = self._request("GET", endpoints.TRADES, params=query, auth=AUTH_L2)
        trades, next_cursor = split_page(data, Trade.model_validate)
        return TradesPage(data=trades, next_cursor=next_cursor)

    def is_order_scoring(self, order_id: str) -> bool:
        """Whether the order currently scores for liquidity rewards."""
        data = self._request(
            "GET", endpoints.ORDER_SCORING, params={"order_id": order_id}, auth=AUTH_L2
        )
        return bool((data or {}).get("scoring", False))

    def are_orders_scoring(self, order_ids: list[str]) -> dict[str, bool]:
        """Scoring status per order id (batch)."""
        if not order_ids:
            return {}
        data = self._request(
            "POST", endpoints.ORDERS_SCORING, payload=list(order_ids), auth=AUTH_L2
        )
        if isinstance(data, list):
            data = {item.get("order_id"): item.get("scoring") for item in data if item.get("order_id")}
        results = {order_id: bool(scoring) for order_id, scoring in (data or {}).items()}
        logger.debug(f"{sum(results.values())}/{len(order_ids)} orders scoring")
        return results

    # ========== Account (L2) ==========

    def get_notifications(self) -> list[Notification]:
        data = self._request(
            "GET", endpoints.NOTIFICATIONS,
            params={"signature_type": self.settings.signature_type}, auth=AUTH_L2
        )
        return [Notification.model_validate(item) for item in data or []]

    def drop_notifications(self, ids: list[str]) -> Any:
        """Mark notifications as read; ids travel in the query string."""
        return self._request(
            "DELETE", endpoints.NOTIFICATIONS,
            params={"ids": ",".join(str(i) for i in ids)}, auth=AUTH_L2
        )

    def post_heartbeat(self, heartbeat_id: Optional[str] = None) -> Any:
        """
        Keep the order-safety heartbeat alive.

        The first call passes no id and starts a chain; later calls pass the
        id the server returned. When heartbeats stop, the server cancels the
        account's open orders.
        """
        return self._request(
            "POST", endpoints.HEARTBEAT,
            payload={"heartbeat_id": heartbeat_id or None}, auth=AUTH_L2
        )

    # ========== Streaming ==========

    def streaming(self) -> StreamingClient:
        """Shared streaming client, created on first use."""
        with self._streaming_lock:
            if self._streaming is None:
                self._streaming = StreamingClient(
                    endpoint=self.settings.ws_url, metrics=self.metrics
                )
            return self._streaming

    def close(self) -> None:
        """Close HTTP connections and the streaming client."""
        with self._streaming_lock:
            streaming, self._streaming = self._streaming, None
        if streaming is not None:
            streaming.close()
        self.transport.close()
        logger.info("CLOB client closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
