"""
EIP-712 hash-and-sign primitive.

Shared by order signing and the L1 ClobAuth message.
"""

from typing import Optional
import logging

from eth_account import Account
from eth_account.messages import SignableMessage
from eth_utils import keccak
from poly_eip712_structs import EIP712Struct, make_domain

from .eip712_models import ClobAuth

logger = logging.getLogger(__name__)

CLOB_AUTH_DOMAIN_NAME = "ClobAuthDomain"
CLOB_AUTH_DOMAIN_VERSION = "1"
CLOB_AUTH_MESSAGE = "This message attests that I control the given wallet"


def typed_data_digest(struct: EIP712Struct, domain: EIP712Struct) -> bytes:
    """keccak256(0x19 0x01 || domainSeparator || structHash)."""
    return keccak(struct.signable_bytes(domain))


def encode_signature(r: int, s: int, v: int) -> str:
    """
    Hex-encode r || s || v with a 0x prefix.

    v is normalized to 27/28; a raw 0/1 recovery id gets 27 added.
    """
    if v < 27:
        v += 27
    raw = r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v])
    return "0x" + raw.hex()


def sign_typed_struct(struct: EIP712Struct, domain: EIP712Struct, private_key: str) -> str:
    """
    Sign an EIP-712 struct under a domain.

    Args:
        struct: Populated struct instance
        domain: Domain struct from make_domain()
        private_key: Hex private key

    Returns:
        65-byte signature as 0x-prefixed hex
    """
    signable = SignableMessage(
        version=b"\x01",
        header=domain.hash_struct(),
        body=struct.hash_struct(),
    )
    signed = Account.sign_message(signable, private_key)
    return encode_signature(signed.r, signed.s, signed.v)


def clob_auth_domain(chain_id: int) -> EIP712Struct:
    return make_domain(
        name=CLOB_AUTH_DOMAIN_NAME,
        version=CLOB_AUTH_DOMAIN_VERSION,
        chainId=chain_id
    )


def sign_clob_auth(
    private_key: str,
    address: str,
    chain_id: int,
    timestamp: int,
    nonce: int = 0,
    domain: Optional[EIP712Struct] = None
) -> str:
    """
    Sign the L1 ClobAuth attestation.

    Args:
        private_key: Signer private key
        address: Address being attested
        chain_id: Chain ID bound into the domain
        timestamp: Unix seconds, signed as a string
        nonce: Auth nonce

    Returns:
        0x-prefixed signature
    """
    message = ClobAuth(
        address=address,
        timestamp=str(timestamp),
        nonce=nonce,
        message=CLOB_AUTH_MESSAGE
    )
    return sign_typed_struct(message, domain or clob_auth_domain(chain_id), private_key)
