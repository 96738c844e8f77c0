"""Authentication modules for the CLOB client."""

from .authenticator import build_l0_headers, build_l1_headers, build_l2_headers
from .credentials import ApiCredentials, Signer

__all__ = [
    "build_l0_headers",
    "build_l1_headers",
    "build_l2_headers",
    "ApiCredentials",
    "Signer",
]
