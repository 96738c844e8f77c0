"""
Retry policy with exponential backoff and jitter.

Classifies transport failures as transient or terminal and computes the
wait before the next attempt. Also holds the streaming reconnect backoff.
"""

import random
import socket
from dataclasses import dataclass
from typing import Optional
import logging

import requests

from ..exceptions import APIError, RetryExhaustedError

logger = logging.getLogger(__name__)

# getaddrinfo codes meaning "this name does not exist"; anything else is transient
_PERMANENT_DNS_ERRORS = {
    code for code in (
        getattr(socket, "EAI_NONAME", None),
        getattr(socket, "EAI_NODATA", None),
    ) if code is not None
}

# Streaming reconnect schedule
RECONNECT_BASE_DELAY = 1.0
RECONNECT_MAX_DELAY = 60.0
RECONNECT_MULTIPLIER = 2.0


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable transport retry settings."""
    max_retries: int = 3
    base_delay: float = 0.1
    max_delay: float = 5.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class RetryStrategy:
    """
    Decides whether and how long to wait between transport attempts.

    Features:
    - Exponential backoff capped at max_delay
    - Jitter factor drawn from [0.75, 1.25]
    - Retry-After override for throttled/unavailable responses
    """

    JITTER_LOW = 0.75
    JITTER_HIGH = 1.25

    def __init__(self, policy: Optional[RetryPolicy] = None):
        self.policy = policy or RetryPolicy()

    def calculate_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay before retrying after the given zero-based attempt.

        Args:
            attempt: Index of the attempt that just failed
            retry_after: Server-provided delay, wins when present

        Returns:
            Seconds to wait
        """
        if retry_after is not None:
            return retry_after
        delay = min(self.policy.max_delay, self.policy.base_delay * (2 ** attempt))
        return delay * random.uniform(self.JITTER_LOW, self.JITTER_HIGH)

    @staticmethod
    def is_retryable_status(status_code: int) -> bool:
        """429 and every 5xx are transient."""
        return status_code == 429 or status_code >= 500

    def is_retryable_exception(self, exc: BaseException) -> bool:
        """
        Timeouts, connection errors and temporary DNS failures are transient.

        A DNS answer that the name does not exist is terminal.
        """
        if isinstance(exc, requests.exceptions.Timeout):
            return True
        if isinstance(exc, requests.exceptions.ConnectionError):
            gai = find_dns_error(exc)
            if gai is not None and gai.errno in _PERMANENT_DNS_ERRORS:
                return False
            return True
        if isinstance(exc, (ConnectionResetError, ConnectionRefusedError, BrokenPipeError)):
            return True
        return False


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Non-negative integer Retry-After seconds, else None."""
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return float(int(value))


def find_dns_error(exc: BaseException) -> Optional[socket.gaierror]:
    """
    Walk the exception chain looking for a getaddrinfo failure.

    requests/urllib3 bury it under __cause__/__context__, `reason` and args.
    """
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return current
        candidates = [current.__cause__, current.__context__, getattr(current, "reason", None)]
        candidates.extend(current.args)
        for candidate in candidates:
            if isinstance(candidate, BaseException):
                stack.append(candidate)
    return None


def is_retryable(exc: BaseException) -> bool:
    """
    True for API errors worth retrying above the transport loop (429/5xx).

    Retry-exhausted errors are unwrapped to their last failure first.
    """
    if isinstance(exc, RetryExhaustedError):
        exc = exc.last_error
    if isinstance(exc, APIError):
        return RetryStrategy.is_retryable_status(exc.status_code)
    return False


def reconnect_delay(attempt: int) -> float:
    """
    Streaming reconnect wait for a one-based attempt counter.

    1s doubled per attempt, capped at 60s, times a jitter factor in [0.5, 1.5].
    """
    delay = min(RECONNECT_MAX_DELAY, RECONNECT_BASE_DELAY * (RECONNECT_MULTIPLIER ** max(attempt - 1, 0)))
    return delay * (0.5 + random.random())
