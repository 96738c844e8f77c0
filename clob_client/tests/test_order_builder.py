"""
Tests for order construction and EIP-712 order signing.
"""

from decimal import Decimal

import pytest
from eth_account import Account
from eth_account.messages import SignableMessage

from clob_client.auth.credentials import Signer
from clob_client.exceptions import PriceOutOfRangeError, UnsupportedChainError
from clob_client.models import MarketOrderArgs, OrderArgs, Side, SignatureType, ZERO_ADDRESS
from clob_client.trading.order_builder import (
    OrderBuilder,
    OrderFields,
    exchange_address,
    exchange_domain,
    order_hash,
    side_to_int,
)
from clob_client.auth.signing import encode_signature

# Well-known development key (hardhat account 0)
TEST_KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
FUNDER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
TOKEN_ID = "71321045679252212594626385532706912750332728571942532289631379312455583992563"


def recover_order_signer(order, chain_id: int, neg_risk: bool = False) -> str:
    fields = OrderFields(
        salt=order.salt,
        maker=order.maker,
        signer=order.signer,
        taker=order.taker,
        token_id=order.token_id,
        maker_amount=order.maker_amount,
        taker_amount=order.taker_amount,
        expiration=order.expiration,
        nonce=order.nonce,
        fee_rate_bps=order.fee_rate_bps,
        side=side_to_int(order.side),
        signature_type=int(order.signature_type),
    )
    signable = SignableMessage(
        version=b"\x01",
        header=exchange_domain(chain_id, neg_risk).hash_struct(),
        body=fields.to_struct().hash_struct(),
    )
    return Account.recover_message(signable, signature=bytes.fromhex(order.signature[2:]))


@pytest.fixture
def signer():
    return Signer(TEST_KEY)


@pytest.fixture
def builder(signer):
    return OrderBuilder(signer, chain_id=137)


class TestExchangeAddress:
    """Exchange contract selection."""

    def test_polygon(self):
        assert exchange_address(137) == "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
        assert exchange_address(137, neg_risk=True) == "0xC5d563A36AE78145C45a50134d48A1215220f80a"

    def test_amoy(self):
        assert exchange_address(80002) == "0xdFE02Eb6733538f8Ea35D585af8DE5958AD99E40"
        assert exchange_address(80002, neg_risk=True) == "0xC5d563A36AE78145C45a50134d48A1215220f80a"

    def test_unknown_chain(self):
        with pytest.raises(UnsupportedChainError):
            exchange_address(1)

    def test_builder_rejects_unknown_chain(self, signer):
        with pytest.raises(UnsupportedChainError):
            OrderBuilder(signer, chain_id=1)


class TestSignatureEncoding:
    """r || s || v encoding."""

    def test_recovery_id_normalized(self):
        sig = encode_signature(1, 2, 0)
        assert sig.startswith("0x")
        assert len(sig) == 132
        assert sig.endswith("1b")

    def test_v_already_normalized(self):
        assert encode_signature(1, 2, 28).endswith("1c")


class TestLimitOrders:
    """build_limit_order."""

    def test_buy_order_fields(self, builder):
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price="0.56", size="21.04", side="BUY"),
            tick_size="0.01",
        )
        assert order.maker == TEST_ADDRESS
        assert order.signer == TEST_ADDRESS
        assert order.taker == ZERO_ADDRESS
        assert order.maker_amount == "11782400"
        assert order.taker_amount == "21040000"
        assert order.side == Side.BUY
        assert order.expiration == "0"
        assert order.fee_rate_bps == "0"
        assert order.signature_type == SignatureType.EOA

    def test_signature_recovers_to_signer(self, builder):
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="SELL", nonce=3),
            tick_size="0.1",
        )
        assert order.signature.startswith("0x")
        assert len(order.signature) == 132
        assert recover_order_signer(order, 137) == TEST_ADDRESS

    def test_neg_risk_uses_other_exchange(self, builder):
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="BUY"),
            tick_size="0.1",
            neg_risk=True,
        )
        assert recover_order_signer(order, 137, neg_risk=True) == TEST_ADDRESS
        assert recover_order_signer(order, 137, neg_risk=False) != TEST_ADDRESS

    def test_chain_changes_signature(self, signer):
        args = OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="BUY")
        polygon = OrderBuilder(signer, chain_id=137).build_limit_order(args, "0.1")
        amoy = OrderBuilder(signer, chain_id=80002).build_limit_order(args, "0.1")
        assert polygon.signature != amoy.signature
        assert recover_order_signer(amoy, 80002) == TEST_ADDRESS

    def test_price_outside_band(self, builder):
        with pytest.raises(PriceOutOfRangeError):
            builder.build_limit_order(
                OrderArgs(token_id=TOKEN_ID, price="0.995", size="10", side="BUY"),
                tick_size="0.01",
            )

    def test_funder_becomes_maker(self, signer):
        builder = OrderBuilder(
            signer, chain_id=137, signature_type=SignatureType.POLY_GNOSIS_SAFE, funder=FUNDER
        )
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="BUY"), "0.1"
        )
        assert order.maker == FUNDER
        assert order.signer == TEST_ADDRESS
        assert order.signature_type == SignatureType.POLY_GNOSIS_SAFE

    def test_explicit_fee_rate_wins(self, builder):
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="BUY", fee_rate_bps=5),
            "0.1",
            fee_rate_bps=100,
        )
        assert order.fee_rate_bps == "100"

    def test_salts_differ(self, builder):
        args = OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="BUY")
        first = builder.build_limit_order(args, "0.1")
        second = builder.build_limit_order(args, "0.1")
        assert first.salt != second.salt


class TestMarketOrders:
    """build_market_order."""

    def test_market_buy(self, builder):
        order = builder.build_market_order(
            MarketOrderArgs(token_id=TOKEN_ID, amount="100", side="BUY", price="0.5"),
            tick_size="0.01",
        )
        assert order.maker_amount == "100000000"
        assert order.taker_amount == "200000000"
        assert order.expiration == "0"
        assert recover_order_signer(order, 137) == TEST_ADDRESS

    def test_market_sell(self, builder):
        order = builder.build_market_order(
            MarketOrderArgs(token_id=TOKEN_ID, amount="100", side="SELL", price="0.5"),
            tick_size="0.01",
        )
        assert order.maker_amount == "100000000"
        assert order.taker_amount == "50000000"


class TestWireFormat:
    """SignedOrder.to_wire and order_hash."""

    def test_camel_case_keys(self, builder):
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price="0.5", size="10", side="BUY"), "0.1"
        )
        wire = order.to_wire()
        assert wire["tokenId"] == TOKEN_ID
        assert wire["makerAmount"] == "5000000"
        assert wire["takerAmount"] == "10000000"
        assert wire["feeRateBps"] == "0"
        assert wire["side"] == "BUY"
        assert wire["signatureType"] == 0
        assert "token_id" not in wire

    def test_order_hash_is_deterministic(self):
        fields = OrderFields(
            salt="1", maker=TEST_ADDRESS, signer=TEST_ADDRESS, taker=ZERO_ADDRESS,
            token_id="1", maker_amount="1", taker_amount="1", expiration="0",
            nonce="0", fee_rate_bps="0", side=0, signature_type=0,
        )
        first = order_hash(fields, 137)
        assert first == order_hash(fields, 137)
        assert first != order_hash(fields, 80002)
        assert len(first) == 66

    def test_decimal_inputs_accepted(self, builder):
        order = builder.build_limit_order(
            OrderArgs(token_id=TOKEN_ID, price=Decimal("0.34"), size=Decimal("100"), side="BUY"),
            "0.01",
        )
        assert order.maker_amount == "34000000"
