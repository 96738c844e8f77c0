"""
EIP-712 struct models for the CLOB.

Uses poly_eip712_structs (Polymarket's fork). Field order is part of the
type hash and must not change.
"""

from poly_eip712_structs import EIP712Struct, Address, String, Uint


class ClobAuth(EIP712Struct):
    """
    CLOB authentication message structure.

    Used for Level 1 (private key) authentication.
    """
    address = Address()
    timestamp = String()
    nonce = Uint()
    message = String()


class Order(EIP712Struct):
    """CTF exchange order structure."""
    salt = Uint(256)
    maker = Address()
    signer = Address()
    taker = Address()
    tokenId = Uint(256)
    makerAmount = Uint(256)
    takerAmount = Uint(256)
    expiration = Uint(256)
    nonce = Uint(256)
    feeRateBps = Uint(256)
    side = Uint(8)
    signatureType = Uint(8)
