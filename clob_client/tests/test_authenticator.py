"""
Tests for L0/L1/L2 authentication headers.
"""

import pytest

from clob_client.auth.authenticator import (
    POLY_ADDRESS,
    POLY_API_KEY,
    POLY_NONCE,
    POLY_PASSPHRASE,
    POLY_SIGNATURE,
    POLY_TIMESTAMP,
    build_hmac_signature,
    build_l0_headers,
    build_l1_headers,
    build_l2_headers,
)
from clob_client.auth.credentials import ApiCredentials, Signer
from clob_client.auth.signing import sign_clob_auth
from clob_client.exceptions import AuthError, InvalidSecretEncodingError

TEST_KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_SECRET = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="


class TestSigner:
    """Signer key handling."""

    def test_address_derived(self):
        assert Signer(TEST_KEY).address == TEST_ADDRESS

    def test_prefix_optional(self):
        assert Signer("0x" + TEST_KEY).address == TEST_ADDRESS

    def test_repr_hides_key(self):
        signer = Signer(TEST_KEY)
        assert TEST_KEY not in repr(signer)
        assert TEST_KEY not in str(signer)

    def test_invalid_key(self):
        with pytest.raises(AuthError) as exc_info:
            Signer("not-a-key")
        assert "not-a-key" not in str(exc_info.value)


class TestClobAuthSignature:
    """EIP-712 ClobAuth signing."""

    def test_reference_vector(self):
        sig = sign_clob_auth(TEST_KEY, TEST_ADDRESS, 80002, 10000000, 23)
        assert sig == (
            "0xf62319a987514da40e57e2f4d7529f7bac38f0355bd88bb5adbb3768d80de6c1"
            "682518e0af677d5260366425f4361e7b70c25ae232aff0ab2331e2b164a1aedc1b"
        )

    def test_signature_shape(self):
        sig = sign_clob_auth(TEST_KEY, TEST_ADDRESS, 137, 1000000, 0)
        assert sig.startswith("0x")
        assert len(sig) == 132

    def test_chain_bound_into_signature(self):
        polygon = sign_clob_auth(TEST_KEY, TEST_ADDRESS, 137, 1000000, 0)
        amoy = sign_clob_auth(TEST_KEY, TEST_ADDRESS, 80002, 1000000, 0)
        assert polygon != amoy


class TestHeaders:
    """Header sets per auth level."""

    def test_l0_empty(self):
        assert build_l0_headers() == {}

    def test_l1_headers(self):
        headers = build_l1_headers(Signer(TEST_KEY), 137, nonce=42, timestamp=1000000)
        assert set(headers) == {POLY_ADDRESS, POLY_SIGNATURE, POLY_TIMESTAMP, POLY_NONCE}
        assert headers[POLY_ADDRESS] == TEST_ADDRESS
        assert headers[POLY_NONCE] == "42"
        assert headers[POLY_TIMESTAMP] == "1000000"
        assert headers[POLY_SIGNATURE] == sign_clob_auth(TEST_KEY, TEST_ADDRESS, 137, 1000000, 42)

    def test_l1_defaults_timestamp_to_now(self):
        headers = build_l1_headers(Signer(TEST_KEY), 137)
        assert headers[POLY_TIMESTAMP].isdigit()

    def test_l2_headers(self):
        creds = ApiCredentials("key-1", TEST_SECRET, "pass-1", address=TEST_ADDRESS)
        headers = build_l2_headers(creds, "POST", "/order", '{"a":1}', timestamp=1000000)
        assert headers[POLY_ADDRESS] == TEST_ADDRESS
        assert headers[POLY_API_KEY] == "key-1"
        assert headers[POLY_PASSPHRASE] == "pass-1"
        assert headers[POLY_TIMESTAMP] == "1000000"
        assert headers[POLY_SIGNATURE] == build_hmac_signature(
            TEST_SECRET, "1000000", "POST", "/order", '{"a":1}'
        )

    def test_l2_requires_address(self):
        creds = ApiCredentials("key-1", TEST_SECRET, "pass-1")
        with pytest.raises(AuthError):
            build_l2_headers(creds, "GET", "/data/orders")

    def test_credentials_repr_hides_secrets(self):
        creds = ApiCredentials("key-1", TEST_SECRET, "pass-1")
        assert TEST_SECRET not in repr(creds)
        assert "pass-1" not in repr(creds)


class TestHmacSignature:
    """L2 request signatures."""

    def test_compact_body_vector(self):
        sig = build_hmac_signature(TEST_SECRET, "1000000", "test-sign", "/orders", '{"hash":"0x123"}')
        assert sig == "4gJVbox-R6XlDK4nlaicig0_ANVL1qdcahiL8CXfXLM="

    def test_body_signed_verbatim(self):
        """A space after the colon changes the signature; the body is never re-encoded."""
        sig = build_hmac_signature(TEST_SECRET, "1000000", "test-sign", "/orders", '{"hash": "0x123"}')
        assert sig == "ZwAdJKvoYRlEKDkNMwd5BuwNNtg93kNaR_oU2HrfVvc="

    def test_empty_body(self):
        sig = build_hmac_signature(TEST_SECRET, "1000000", "GET", "/markets")
        assert sig
        assert sig != build_hmac_signature(TEST_SECRET, "1000000", "GET", "/markets/x")

    def test_invalid_secret(self):
        with pytest.raises(InvalidSecretEncodingError):
            build_hmac_signature("not-valid-base64!!!", "1000000", "GET", "/markets")

    def test_invalid_secret_is_auth_error(self):
        with pytest.raises(AuthError):
            build_hmac_signature("not-valid-base64!!!", "1000000", "GET", "/markets")
