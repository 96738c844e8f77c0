"""
Signing key and API credential holders.

Both are immutable after construction and safe to share across threads.
Sensitive fields are hidden from repr to keep them out of logs.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from ..exceptions import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCredentials:
    """
    L2 API credentials.

    SECURITY: secret and passphrase are hidden from repr.
    """
    api_key: str
    api_secret: str = field(repr=False)
    api_passphrase: str = field(repr=False)
    address: Optional[str] = None

    def with_address(self, address: str) -> "ApiCredentials":
        """Copy bound to an owning address."""
        return ApiCredentials(self.api_key, self.api_secret, self.api_passphrase, address)


class Signer:
    """
    Wraps a secp256k1 private key.

    The key itself is never exposed through repr or str.
    """

    def __init__(self, private_key: str):
        """
        Args:
            private_key: Hex private key, with or without 0x prefix

        Raises:
            AuthError: If the key cannot be parsed
        """
        key = private_key.strip()
        if not key.startswith("0x"):
            key = "0x" + key
        try:
            self._account: LocalAccount = Account.from_key(key)
        except Exception as e:
            # SECURITY: never echo the key back
            raise AuthError(f"Invalid private key: {type(e).__name__}")
        self._key = key

    @property
    def address(self) -> str:
        """Checksummed signer address."""
        return to_checksum_address(self._account.address)

    @property
    def private_key(self) -> str:
        return self._key

    def __repr__(self) -> str:
        return f"Signer(address={self.address})"

    __str__ = __repr__
