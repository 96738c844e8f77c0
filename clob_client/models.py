"""
Type definitions for the CLOB client.

Uses Pydantic for runtime validation. Prices, sizes and amounts are Decimal;
floats are converted through str() so 0.1 stays 0.1.
"""

from enum import Enum
from typing import Optional, Any
from decimal import Decimal, InvalidOperation
from pydantic import BaseModel, Field, field_validator, ConfigDict


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Side(str, Enum):
    """Order side."""
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order type."""
    GTC = "GTC"  # Good-til-cancelled
    GTD = "GTD"  # Good-til-date
    FOK = "FOK"  # Fill-or-kill
    FAK = "FAK"  # Fill-and-kill


class SignatureType(int, Enum):
    """Order signature scheme."""
    EOA = 0
    POLY_PROXY = 1
    POLY_GNOSIS_SAFE = 2


def coerce_decimal(v: Any) -> Decimal:
    """Convert str/int/float input to Decimal without float drift."""
    if isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError("Cannot convert bool to Decimal")
    if isinstance(v, (str, int, float)):
        try:
            return Decimal(str(v))
        except InvalidOperation:
            raise ValueError(f"Not a decimal number: {v!r}")
    raise ValueError(f"Cannot convert {type(v)} to Decimal")


# Request Models
class OrderArgs(BaseModel):
    """Limit order parameters."""

    token_id: str = Field(..., min_length=1, description="ERC1155 token ID")
    price: Decimal = Field(..., description="Limit price")
    size: Decimal = Field(..., gt=0, description="Size in shares")
    side: Side = Field(..., description="BUY or SELL")
    fee_rate_bps: int = Field(default=0, ge=0, description="Fee rate in basis points")
    nonce: int = Field(default=0, ge=0, description="Exchange nonce")
    expiration: int = Field(default=0, ge=0, description="Unix expiration, 0 for none")
    taker: str = Field(default=ZERO_ADDRESS, description="Taker address")

    @field_validator("price", "size", mode="before")
    @classmethod
    def validate_decimal(cls, v: Any) -> Decimal:
        return coerce_decimal(v)


class MarketOrderArgs(BaseModel):
    """
    Market order parameters.

    BUY amount is collateral to spend, SELL amount is shares to sell. A price
    of zero prices the order from the current book.
    """

    token_id: str = Field(..., min_length=1, description="ERC1155 token ID")
    amount: Decimal = Field(..., gt=0, description="Collateral (BUY) or shares (SELL)")
    side: Side = Field(..., description="BUY or SELL")
    price: Decimal = Field(default=Decimal("0"), description="Worst price, 0 to derive from book")
    fee_rate_bps: int = Field(default=0, ge=0, description="Fee rate in basis points")
    nonce: int = Field(default=0, ge=0, description="Exchange nonce")
    taker: str = Field(default=ZERO_ADDRESS, description="Taker address")
    order_type: OrderType = Field(default=OrderType.FOK, description="FOK or FAK")

    @field_validator("amount", "price", mode="before")
    @classmethod
    def validate_decimal(cls, v: Any) -> Decimal:
        return coerce_decimal(v)


class SignedOrder(BaseModel):
    """EIP-712 signed order as sent to the exchange."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    salt: str
    maker: str
    signer: str
    taker: str
    token_id: str = Field(..., alias="tokenId")
    maker_amount: str = Field(..., alias="makerAmount")
    taker_amount: str = Field(..., alias="takerAmount")
    expiration: str
    nonce: str
    fee_rate_bps: str = Field(..., alias="feeRateBps")
    side: Side
    signature_type: SignatureType = Field(..., alias="signatureType")
    signature: str

    def to_wire(self) -> dict[str, Any]:
        """Wire dict with camelCase keys; side as "BUY"/"SELL"."""
        return self.model_dump(by_alias=True, mode="json")


class PostOrderArgs(BaseModel):
    """One entry of a batch submission."""
    order: SignedOrder
    order_type: OrderType = OrderType.GTC
    post_only: Optional[bool] = None


class BookParams(BaseModel):
    """Token selector for batch book/price requests."""
    token_id: str
    side: Optional[Side] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class OpenOrderParams(BaseModel):
    """Filters for open order queries."""
    id: Optional[str] = None
    market: Optional[str] = None
    asset_id: Optional[str] = None


class TradeParams(BaseModel):
    """Filters for trade history queries."""
    id: Optional[str] = None
    market: Optional[str] = None
    asset_id: Optional[str] = None
    maker_address: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None


class PriceHistoryParams(BaseModel):
    """Filters for price history; unset fields are left out of the query."""
    market: Optional[str] = None
    start_ts: Optional[int] = Field(None, serialization_alias="startTs")
    end_ts: Optional[int] = Field(None, serialization_alias="endTs")
    fidelity: Optional[int] = None
    interval: Optional[str] = None  # 1m, 1h, 6h, 1d, 1w, max

    def to_query(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# Response Models
class ApiCreds(BaseModel):
    """API credentials as returned by the key endpoints."""
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(..., alias="apiKey")
    api_secret: str = Field(..., alias="secret", repr=False)
    api_passphrase: str = Field(..., alias="passphrase", repr=False)


class PriceLevel(BaseModel):
    """Single book level."""
    price: str
    size: str


class OrderBookSummary(BaseModel):
    """Order book snapshot for one asset."""
    model_config = ConfigDict(extra="ignore")

    market: str = ""
    asset_id: str = ""
    timestamp: str = ""
    bids: list[PriceLevel] = Field(default_factory=list)
    asks: list[PriceLevel] = Field(default_factory=list)
    min_order_size: str = ""
    neg_risk: bool = False
    tick_size: str = ""
    last_trade_price: str = ""
    hash: str = ""


class OrderResponse(BaseModel):
    """Order placement response."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    success: Optional[bool] = None
    order_id: Optional[str] = Field(None, alias="orderID")
    status: Optional[str] = None
    error_msg: Optional[str] = Field(None, alias="errorMsg")
    order_hashes: Optional[list[str]] = Field(None, alias="orderHashes")


class Order(BaseModel):
    """Order record from the data endpoints."""
    model_config = ConfigDict(extra="allow")

    id: str
    status: str = ""
    owner: str = ""
    maker_address: str = ""
    market: str = ""
    asset_id: str = ""
    side: str = ""
    original_size: str = ""
    size_matched: str = ""
    price: str = ""
    associate_trades: list[str] = Field(default_factory=list)
    outcome: str = ""
    created_at: Optional[int] = None
    expiration: str = ""
    order_type: str = ""


class MakerOrder(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_id: str = ""
    owner: str = ""
    maker_address: str = ""
    matched_amount: str = ""
    price: str = ""
    fee_rate_bps: str = ""
    asset_id: str = ""
    outcome: str = ""
    side: str = ""


class Trade(BaseModel):
    """Trade record from the data endpoints."""
    model_config = ConfigDict(extra="allow")

    id: str
    taker_order_id: str = ""
    market: str = ""
    asset_id: str = ""
    side: str = ""
    size: str = ""
    fee_rate_bps: str = ""
    price: str = ""
    status: str = ""
    match_time: str = ""
    last_update: str = ""
    outcome: str = ""
    owner: str = ""
    maker_address: str = ""
    maker_orders: list[MakerOrder] = Field(default_factory=list)
    transaction_hash: str = ""
    trader_side: str = ""


class Token(BaseModel):
    model_config = ConfigDict(extra="allow")

    token_id: str
    outcome: str = ""
    price: Optional[Decimal] = None
    winner: bool = False


class Market(BaseModel):
    """CLOB market record."""
    model_config = ConfigDict(extra="allow")

    condition_id: str
    question: str = ""
    market_slug: str = ""
    active: bool = False
    closed: bool = False
    accepting_orders: bool = False
    enable_order_book: bool = False
    minimum_order_size: Optional[Decimal] = None
    minimum_tick_size: Optional[Decimal] = None
    neg_risk: bool = False
    tokens: list[Token] = Field(default_factory=list)


class SimplifiedMarket(BaseModel):
    model_config = ConfigDict(extra="allow")

    condition_id: str
    tokens: list[Token] = Field(default_factory=list)


class SpreadResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    spread: Decimal


class ApiKeyInfo(BaseModel):
    """Entry of the API key listing."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_key: str = Field(..., alias="apiKey")
    created_at: Optional[str] = Field(None, alias="createdAt")


class MarketPrice(BaseModel):
    """Point of a price history series."""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: int = Field(..., alias="t")
    price: Decimal = Field(..., alias="p")

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v: Any) -> Decimal:
        return coerce_decimal(v)


class TradeEvent(BaseModel):
    """Live activity entry of a market."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    condition_id: str = Field("", alias="conditionId")


class Notification(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    type: int = 0
    message: str = ""


class TradesPage(BaseModel):
    """One page of trades with the cursor of the next one."""
    data: list[Trade] = Field(default_factory=list)
    next_cursor: str = ""
