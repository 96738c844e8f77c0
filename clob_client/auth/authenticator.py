"""
Authentication header builders for the CLOB.

L0: no headers.
L1: EIP-712 ClobAuth signature proving control of the wallet.
L2: HMAC-SHA256 over timestamp + method + path + body with the API secret.
"""

import base64
import binascii
import hashlib
import hmac
import time
from typing import Optional
import logging

from .credentials import ApiCredentials, Signer
from .signing import sign_clob_auth
from ..exceptions import AuthError, InvalidSecretEncodingError

logger = logging.getLogger(__name__)

POLY_ADDRESS = "POLY_ADDRESS"
POLY_SIGNATURE = "POLY_SIGNATURE"
POLY_TIMESTAMP = "POLY_TIMESTAMP"
POLY_NONCE = "POLY_NONCE"
POLY_API_KEY = "POLY_API_KEY"
POLY_PASSPHRASE = "POLY_PASSPHRASE"


def build_l0_headers() -> dict[str, str]:
    """Public endpoints carry no auth headers."""
    return {}


def build_l1_headers(
    signer: Signer,
    chain_id: int,
    nonce: int = 0,
    timestamp: Optional[int] = None,
    address: Optional[str] = None
) -> dict[str, str]:
    """
    Create L1 authentication headers.

    Args:
        signer: Wallet key
        chain_id: Chain ID bound into the auth domain
        nonce: Auth nonce
        timestamp: Unix seconds (current time if None)
        address: Address override (defaults to the signer address)

    Returns:
        L1 headers dict

    Raises:
        AuthError: If signing fails
    """
    if timestamp is None:
        timestamp = int(time.time())
    address = address or signer.address

    try:
        signature = sign_clob_auth(signer.private_key, address, chain_id, timestamp, nonce)
    except Exception as e:
        # SECURITY: Sanitize error message to prevent credential leakage
        error_type = type(e).__name__
        logger.error(f"Failed to create L1 headers: {error_type}")
        raise AuthError(f"L1 signature failed: {error_type}. Check private key format.")

    logger.debug(f"Created L1 headers for {address}")
    return {
        POLY_ADDRESS: address,
        POLY_SIGNATURE: signature,
        POLY_TIMESTAMP: str(timestamp),
        POLY_NONCE: str(nonce),
    }


def decode_secret(secret: str) -> bytes:
    """
    Decode a base64url API secret.

    Raises:
        InvalidSecretEncodingError: If the secret is not valid base64url
    """
    try:
        return base64.b64decode(secret, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidSecretEncodingError(
            f"API secret is not valid base64url: {type(e).__name__}"
        )


def build_hmac_signature(
    secret: str,
    timestamp: str,
    method: str,
    path: str,
    body: str = ""
) -> str:
    """
    HMAC-SHA256 over the literal concatenation timestamp + method + path + body.

    The body must be the exact serialized bytes sent on the wire; nothing is
    reformatted here.

    Returns:
        base64url-encoded signature
    """
    key = decode_secret(secret)
    message = f"{timestamp}{method}{path}{body}"
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8")


def build_l2_headers(
    credentials: ApiCredentials,
    method: str,
    path: str,
    body: str = "",
    timestamp: Optional[int] = None,
    address: Optional[str] = None
) -> dict[str, str]:
    """
    Create L2 authentication headers.

    Args:
        credentials: API credentials
        method: HTTP method as sent
        path: Request path without query string
        body: Serialized request body
        timestamp: Unix seconds (current time if None)
        address: Address override (defaults to credentials.address)

    Returns:
        L2 headers dict

    Raises:
        InvalidSecretEncodingError: Secret is not base64url
        AuthError: No owning address known
    """
    if timestamp is None:
        timestamp = int(time.time())
    address = address or credentials.address
    if not address:
        raise AuthError("L2 headers require an address")

    signature = build_hmac_signature(
        credentials.api_secret, str(timestamp), method, path, body
    )

    logger.debug(f"Created L2 headers for {method} {path}")
    return {
        POLY_ADDRESS: address,
        POLY_SIGNATURE: signature,
        POLY_TIMESTAMP: str(timestamp),
        POLY_API_KEY: credentials.api_key,
        POLY_PASSPHRASE: credentials.api_passphrase,
    }
