"""
Polymarket CLOB client.

Thread-safe client for the Polymarket central limit order book: exact order
amount rounding, EIP-712 order signing, L1/L2 request authentication, a
retrying HTTP transport and an auto-reconnecting streaming client.
"""

from .client import ClobClient
from .config import ClobSettings, get_settings
from .models import (
    Side,
    OrderType,
    SignatureType,
    OrderArgs,
    MarketOrderArgs,
    SignedOrder,
    PostOrderArgs,
    BookParams,
    OpenOrderParams,
    TradeParams,
    PriceHistoryParams,
    ApiCreds,
    OrderBookSummary,
    OrderResponse,
    Order,
    Trade,
    Market,
)
from .exceptions import (
    ClobError,
    ValidationError,
    InvalidSideError,
    PriceOutOfRangeError,
    UnsupportedTickSizeError,
    UnsupportedChainError,
    AuthError,
    InvalidSecretEncodingError,
    APIError,
    TransportError,
    RetryExhaustedError,
    RequestCancelledError,
    WebSocketError,
)
from .auth.credentials import ApiCredentials, Signer
from .api.websocket import StreamingClient
from .logging_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    "ClobClient",
    "ClobSettings",
    "get_settings",
    "Side",
    "OrderType",
    "SignatureType",
    "OrderArgs",
    "MarketOrderArgs",
    "SignedOrder",
    "PostOrderArgs",
    "BookParams",
    "OpenOrderParams",
    "TradeParams",
    "PriceHistoryParams",
    "ApiCreds",
    "OrderBookSummary",
    "OrderResponse",
    "Order",
    "Trade",
    "Market",
    "ClobError",
    "ValidationError",
    "InvalidSideError",
    "PriceOutOfRangeError",
    "UnsupportedTickSizeError",
    "UnsupportedChainError",
    "AuthError",
    "InvalidSecretEncodingError",
    "APIError",
    "TransportError",
    "RetryExhaustedError",
    "RequestCancelledError",
    "WebSocketError",
    "ApiCredentials",
    "Signer",
    "StreamingClient",
    "setup_logging",
]
