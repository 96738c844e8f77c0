"""
Tests for tick-size rounding and base-unit amount calculation.

Amount vectors match the exchange's reference clients, so an order built here
carries the same maker/taker amounts as one built by any other client.
"""

from decimal import Decimal

import pytest

from clob_client.exceptions import (
    InvalidSideError,
    PriceOutOfRangeError,
    UnsupportedTickSizeError,
)
from clob_client.trading.order_builder import (
    MAX_SAFE_INTEGER,
    compute_limit_amounts,
    compute_market_amounts,
    generate_salt,
    validate_price,
)
from clob_client.trading.rounding import (
    decimal_places,
    policy_for,
    round_nearest,
    round_up,
    to_base_units,
    truncate_down,
)


class TestTickPolicy:
    """Decimal places per tick size."""

    @pytest.mark.parametrize("tick,price,size,amount", [
        ("0.1", 1, 2, 3),
        ("0.01", 2, 2, 4),
        ("0.001", 3, 2, 5),
        ("0.0001", 4, 2, 6),
    ])
    def test_known_ticks(self, tick, price, size, amount):
        policy = policy_for(tick)
        assert policy.price_decimals == price
        assert policy.size_decimals == size
        assert policy.amount_decimals == amount

    def test_unknown_tick_rejected(self):
        with pytest.raises(UnsupportedTickSizeError):
            policy_for("0.5")


class TestLimitAmounts:
    """Maker/taker amounts for limit orders."""

    @pytest.mark.parametrize("tick,side,price,size,maker,taker", [
        ("0.1", "BUY", "0.5", "100", "50000000", "100000000"),
        ("0.1", "SELL", "0.5", "100", "100000000", "50000000"),
        ("0.01", "BUY", "0.05", "100", "5000000", "100000000"),
        ("0.001", "BUY", "0.005", "100", "500000", "100000000"),
        ("0.0001", "BUY", "0.0005", "100", "50000", "100000000"),
        ("0.01", "BUY", "0.34", "100", "34000000", "100000000"),
        ("0.001", "BUY", "0.512", "100", "51200000", "100000000"),
    ])
    def test_basic_amounts(self, tick, side, price, size, maker, taker):
        assert compute_limit_amounts(side, price, size, tick) == (maker, taker)

    @pytest.mark.parametrize("tick,side,price,size,maker,taker", [
        ("0.1", "BUY", "0.5", "21.04", "10520000", "21040000"),
        ("0.1", "BUY", "0.7", "170", "119000000", "170000000"),
        ("0.1", "BUY", "0.8", "101", "80800000", "101000000"),
        ("0.01", "BUY", "0.56", "21.04", "11782400", "21040000"),
        ("0.01", "BUY", "0.82", "101", "82820000", "101000000"),
        ("0.01", "BUY", "0.78", "12.8205", "9999600", "12820000"),
        ("0.001", "BUY", "0.056", "21.04", "1178240", "21040000"),
        ("0.001", "BUY", "0.082", "101", "8282000", "101000000"),
        ("0.001", "BUY", "0.078", "12.8205", "999960", "12820000"),
        ("0.0001", "BUY", "0.0056", "21.04", "117824", "21040000"),
        ("0.0001", "BUY", "0.0082", "101", "828200", "101000000"),
        ("0.0001", "BUY", "0.0078", "12.8205", "99996", "12820000"),
        ("0.1", "SELL", "0.5", "21.04", "21040000", "10520000"),
        ("0.1", "SELL", "0.7", "170", "170000000", "119000000"),
        ("0.1", "SELL", "0.8", "101", "101000000", "80800000"),
    ])
    def test_cross_client_vectors(self, tick, side, price, size, maker, taker):
        assert compute_limit_amounts(side, price, size, tick) == (maker, taker)

    def test_float_inputs_do_not_drift(self):
        """0.56 * 21.04 as floats is 11.782399999...; Decimal keeps it exact."""
        assert compute_limit_amounts("BUY", 0.56, 21.04, "0.01") == ("11782400", "21040000")

    def test_size_truncated_not_rounded(self):
        maker, taker = compute_limit_amounts("BUY", "0.5", "10.999", "0.1")
        assert taker == "10990000"
        assert maker == "5495000"

    def test_invalid_side(self):
        with pytest.raises(InvalidSideError):
            compute_limit_amounts("HOLD", "0.5", "100", "0.1")

    def test_invalid_tick(self):
        with pytest.raises(UnsupportedTickSizeError):
            compute_limit_amounts("BUY", "0.5", "100", "0.5")


class TestMarketAmounts:
    """Maker/taker amounts for market orders."""

    def test_buy_spends_collateral(self):
        # 100 USDC at 0.5 buys 200 shares
        assert compute_market_amounts("BUY", "100", "0.5", "0.01") == ("100000000", "200000000")

    def test_sell_receives_collateral(self):
        # 100 shares at 0.5 pays 50 USDC
        assert compute_market_amounts("SELL", "100", "0.5", "0.01") == ("100000000", "50000000")

    def test_buy_taker_truncated(self):
        maker, taker = compute_market_amounts("BUY", "10", "0.3", "0.1")
        assert maker == "10000000"
        # 10 / 0.3 = 33.333... truncated at 3 places
        assert taker == "33333000"


class TestRoundingHelpers:
    """truncate_down / round_nearest / round_up / to_base_units."""

    def test_truncate_down(self):
        assert truncate_down("123.456", 2) == Decimal("123.45")

    def test_truncate_down_negative_goes_toward_zero(self):
        assert truncate_down("-1.999", 2) == Decimal("-1.99")

    def test_round_nearest_half_up(self):
        assert round_nearest("1.235", 2) == Decimal("1.24")
        assert round_nearest("1.234", 2) == Decimal("1.23")

    def test_round_up(self):
        assert round_up("1.231", 2) == Decimal("1.24")

    @pytest.mark.parametrize("value,expected", [
        ("100", "100000000"),
        ("34", "34000000"),
        ("0.5", "500000"),
        ("0.05", "50000"),
        ("0.005", "5000"),
        ("0.0005", "500"),
    ])
    def test_to_base_units(self, value, expected):
        assert to_base_units(value) == expected

    def test_to_base_units_truncates_sub_unit(self):
        assert to_base_units("0.0000019") == "1"

    @pytest.mark.parametrize("value,expected", [
        ("1.23", 2),
        ("5", 0),
        ("0.001", 3),
        ("100.0", 1),
        ("0.0001", 4),
    ])
    def test_decimal_places(self, value, expected):
        assert decimal_places(value) == expected


class TestPriceBand:
    """tick <= price <= 1 - tick."""

    def test_valid_price(self):
        validate_price("0.5", "0.1")

    def test_boundaries_inclusive(self):
        validate_price("0.1", "0.1")
        validate_price("0.9", "0.1")

    def test_below_tick(self):
        with pytest.raises(PriceOutOfRangeError):
            validate_price("0.05", "0.1")

    def test_above_upper_bound(self):
        with pytest.raises(PriceOutOfRangeError) as exc_info:
            validate_price("0.95", "0.1")
        assert exc_info.value.field == "price"


class TestSalt:
    """Order salts."""

    def test_salt_is_decimal_string_in_range(self):
        for _ in range(50):
            salt = generate_salt()
            assert salt.isdigit()
            assert 0 <= int(salt) < MAX_SAFE_INTEGER
