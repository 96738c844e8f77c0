"""
Order builder with EIP-712 signing.

Turns human-denominated price/size into exchange-exact base-unit amounts and
signs the resulting CTF exchange order.
"""

import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union
import logging

from eth_utils import to_checksum_address
from poly_eip712_structs import EIP712Struct, make_domain

from ..auth.credentials import Signer
from ..auth.eip712_models import Order
from ..auth.signing import sign_typed_struct, typed_data_digest
from ..exceptions import InvalidSideError, PriceOutOfRangeError, UnsupportedChainError
from ..models import (
    MarketOrderArgs,
    OrderArgs,
    Side,
    SignatureType,
    SignedOrder,
    ZERO_ADDRESS,
)
from .rounding import (
    Number,
    policy_for,
    round_nearest,
    to_base_units,
    to_decimal,
    truncate_down,
)

logger = logging.getLogger(__name__)


EXCHANGE_DOMAIN_NAME = "Polymarket CTF Exchange"
EXCHANGE_DOMAIN_VERSION = "1"

# (chain_id, neg_risk) -> verifying contract
EXCHANGE_ADDRESSES = {
    (137, False): "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
    (137, True): "0xC5d563A36AE78145C45a50134d48A1215220f80a",
    (80002, False): "0xdFE02Eb6733538f8Ea35D585af8DE5958AD99E40",
    (80002, True): "0xC5d563A36AE78145C45a50134d48A1215220f80a",
}

# Largest integer a JavaScript number holds exactly
MAX_SAFE_INTEGER = (1 << 53) - 1

SIDE_BUY = 0
SIDE_SELL = 1


def _side_value(side: Union[Side, str]) -> str:
    value = side.value if isinstance(side, Side) else side
    if value not in (Side.BUY.value, Side.SELL.value):
        raise InvalidSideError(side)
    return value


def side_to_int(side: Union[Side, str]) -> int:
    """BUY -> 0, SELL -> 1."""
    return SIDE_BUY if _side_value(side) == Side.BUY.value else SIDE_SELL


def exchange_address(chain_id: int, neg_risk: bool = False) -> str:
    """
    Select the exchange contract for a chain.

    Raises:
        UnsupportedChainError: For chains other than 137 and 80002
    """
    address = EXCHANGE_ADDRESSES.get((chain_id, bool(neg_risk)))
    if address is None:
        raise UnsupportedChainError(chain_id)
    return address


def generate_salt() -> str:
    """Random salt in [0, 2^53 - 1) as a decimal string."""
    return str(secrets.randbelow(MAX_SAFE_INTEGER))


def validate_price(price: Number, tick_size: str) -> None:
    """
    Require tick <= price <= 1 - tick.

    Raises:
        PriceOutOfRangeError: If price is outside the band
    """
    tick = to_decimal(tick_size)
    value = to_decimal(price)
    if value < tick or value > Decimal(1) - tick:
        raise PriceOutOfRangeError(
            f"Price {value} invalid for tick size {tick}. "
            f"Must be between {tick} and {Decimal(1) - tick}",
            price=value,
            tick_size=tick
        )


def compute_limit_amounts(
    side: Union[Side, str],
    price: Number,
    size: Number,
    tick_size: str
) -> tuple[str, str]:
    """
    Maker/taker base-unit amounts for a limit order.

    BUY pays collateral (size x price) for `size` shares; SELL is the mirror.

    >>> compute_limit_amounts("BUY", "0.56", "21.04", "0.01")
    ('11782400', '21040000')
    """
    policy = policy_for(tick_size)
    side_value = _side_value(side)

    raw_price = round_nearest(price, policy.price_decimals)
    raw_size = truncate_down(size, policy.size_decimals)
    scale = policy.price_decimals + policy.size_decimals
    notional = truncate_down(raw_size * raw_price, scale)

    if side_value == Side.BUY.value:
        return to_base_units(notional), to_base_units(raw_size)
    return to_base_units(raw_size), to_base_units(notional)


def compute_market_amounts(
    side: Union[Side, str],
    amount: Number,
    price: Number,
    tick_size: str
) -> tuple[str, str]:
    """
    Maker/taker base-unit amounts for a market order.

    BUY: `amount` is collateral to spend, taker gets amount / price shares.
    SELL: `amount` is shares to sell, taker pays amount x price collateral.
    """
    policy = policy_for(tick_size)
    side_value = _side_value(side)

    raw_price = round_nearest(price, policy.price_decimals)
    scale = policy.price_decimals + policy.size_decimals
    raw_maker = truncate_down(amount, policy.size_decimals)

    if side_value == Side.BUY.value:
        raw_taker = truncate_down(raw_maker / raw_price, scale)
    else:
        raw_taker = truncate_down(raw_maker * raw_price, scale)

    return to_base_units(raw_maker), to_base_units(raw_taker)


@dataclass(frozen=True)
class OrderFields:
    """Unsigned order values in signing order."""
    salt: str
    maker: str
    signer: str
    taker: str
    token_id: str
    maker_amount: str
    taker_amount: str
    expiration: str
    nonce: str
    fee_rate_bps: str
    side: int
    signature_type: int

    def to_struct(self) -> Order:
        return Order(
            salt=int(self.salt),
            maker=to_checksum_address(self.maker),
            signer=to_checksum_address(self.signer),
            taker=to_checksum_address(self.taker),
            tokenId=int(self.token_id),
            makerAmount=int(self.maker_amount),
            takerAmount=int(self.taker_amount),
            expiration=int(self.expiration),
            nonce=int(self.nonce),
            feeRateBps=int(self.fee_rate_bps),
            side=int(self.side),
            signatureType=int(self.signature_type),
        )


def exchange_domain(chain_id: int, neg_risk: bool = False) -> EIP712Struct:
    return make_domain(
        name=EXCHANGE_DOMAIN_NAME,
        version=EXCHANGE_DOMAIN_VERSION,
        chainId=chain_id,
        verifyingContract=exchange_address(chain_id, neg_risk)
    )


def sign_order(fields: OrderFields, chain_id: int, neg_risk: bool, private_key: str) -> str:
    """
    Sign an order for the exchange selected by (chain_id, neg_risk).

    Returns:
        0x-prefixed 65-byte signature with v in {27, 28}

    Raises:
        UnsupportedChainError: For unknown chains
    """
    domain = exchange_domain(chain_id, neg_risk)
    return sign_typed_struct(fields.to_struct(), domain, private_key)


def order_hash(fields: OrderFields, chain_id: int, neg_risk: bool = False) -> str:
    """EIP-712 digest of the order; the exchange uses it as the order ID."""
    digest = typed_data_digest(fields.to_struct(), exchange_domain(chain_id, neg_risk))
    return "0x" + digest.hex()


class OrderBuilder:
    """
    Builds and signs orders for one signer.

    Handles:
    - Price band validation
    - Amount rounding per tick size
    - Maker/funder and taker defaults
    - EIP-712 signing
    """

    def __init__(
        self,
        signer: Signer,
        chain_id: int = 137,
        signature_type: SignatureType = SignatureType.EOA,
        funder: Optional[str] = None
    ):
        """
        Initialize order builder.

        Args:
            signer: Key used to sign orders
            chain_id: 137 (Polygon) or 80002 (Amoy)
            signature_type: Signature scheme stamped on every order
            funder: Maker address override (proxy/safe wallets)
        """
        exchange_address(chain_id)  # fail fast on unknown chains
        self.signer = signer
        self.chain_id = chain_id
        self.signature_type = SignatureType(signature_type)
        self.maker = to_checksum_address(funder) if funder else signer.address

    def build_limit_order(
        self,
        args: OrderArgs,
        tick_size: str,
        neg_risk: bool = False,
        fee_rate_bps: Optional[int] = None
    ) -> SignedOrder:
        """
        Build and sign a limit order.

        Args:
            args: Order parameters
            tick_size: Market tick size string
            neg_risk: Route to the neg-risk exchange
            fee_rate_bps: Resolved fee rate (defaults to args.fee_rate_bps)

        Returns:
            Signed order ready for submission

        Raises:
            PriceOutOfRangeError: Price outside [tick, 1 - tick]
            UnsupportedTickSizeError: Unknown tick size
        """
        validate_price(args.price, tick_size)
        maker_amount, taker_amount = compute_limit_amounts(
            args.side, args.price, args.size, tick_size
        )
        return self._sign(
            args.side, args.token_id, maker_amount, taker_amount,
            expiration=args.expiration,
            nonce=args.nonce,
            fee_rate_bps=args.fee_rate_bps if fee_rate_bps is None else fee_rate_bps,
            taker=args.taker,
            neg_risk=neg_risk,
        )

    def build_market_order(
        self,
        args: MarketOrderArgs,
        tick_size: str,
        neg_risk: bool = False,
        fee_rate_bps: Optional[int] = None
    ) -> SignedOrder:
        """
        Build and sign a market order (expiration 0).

        args.price must already be set; the client derives it from the book
        when the caller leaves it at zero.
        """
        validate_price(args.price, tick_size)
        maker_amount, taker_amount = compute_market_amounts(
            args.side, args.amount, args.price, tick_size
        )
        return self._sign(
            args.side, args.token_id, maker_amount, taker_amount,
            expiration=0,
            nonce=args.nonce,
            fee_rate_bps=args.fee_rate_bps if fee_rate_bps is None else fee_rate_bps,
            taker=args.taker,
            neg_risk=neg_risk,
        )

    def _sign(
        self,
        side: Side,
        token_id: str,
        maker_amount: str,
        taker_amount: str,
        expiration: int,
        nonce: int,
        fee_rate_bps: int,
        taker: Optional[str],
        neg_risk: bool
    ) -> SignedOrder:
        fields = OrderFields(
            salt=generate_salt(),
            maker=self.maker,
            signer=self.signer.address,
            taker=to_checksum_address(taker or ZERO_ADDRESS),
            token_id=token_id,
            maker_amount=maker_amount,
            taker_amount=taker_amount,
            expiration=str(expiration),
            nonce=str(nonce),
            fee_rate_bps=str(fee_rate_bps),
            side=side_to_int(side),
            signature_type=int(self.signature_type),
        )
        signature = sign_order(fields, self.chain_id, neg_risk, self.signer.private_key)

        logger.info(
            f"Built order: {Side(side).value} token={token_id} "
            f"maker={maker_amount} taker={taker_amount} neg_risk={neg_risk}"
        )

        return SignedOrder(
            salt=fields.salt,
            maker=fields.maker,
            signer=fields.signer,
            taker=fields.taker,
            token_id=fields.token_id,
            maker_amount=fields.maker_amount,
            taker_amount=fields.taker_amount,
            expiration=fields.expiration,
            nonce=fields.nonce,
            fee_rate_bps=fields.fee_rate_bps,
            side=Side(side),
            signature_type=self.signature_type,
            signature=signature,
        )
