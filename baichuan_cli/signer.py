"""Request signing.

The service authenticates a request by recomputing

    MD5(secret_key + body + timestamp)

over the exact body it received, so the string passed here must be the one
that goes on the wire.
"""

import hashlib
import time
from typing import Callable

from ulid import ULID

SIGN_ALGORITHM = "MD5"

# Seconds since the epoch; injectable so signatures can be pinned in tests.
Clock = Callable[[], float]


def md5_hash(text: str) -> str:
    """Lowercase hex MD5 digest of the UTF-8 encoding of text."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def compute_signature(secret_key: str, serialized_body: str, timestamp: int) -> str:
    """Signature for one request; no separators between the parts."""
    return md5_hash(f"{secret_key}{serialized_body}{timestamp}")


class Signer:
    """Builds the authentication headers for outgoing requests.

    Stateless apart from the clock, so one instance can sign concurrent
    requests.

    Example:
        >>> signer = Signer(clock=lambda: 1700000000)
        >>> headers, request_id = signer.sign("key", "secret", '{"a":1}')
        >>> headers["X-BC-Timestamp"]
        '1700000000'
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock if clock is not None else time.time

    def sign(
        self,
        api_key: str,
        secret_key: str,
        serialized_body: str,
    ) -> tuple[dict[str, str], str]:
        """Sign a serialized request body.

        Args:
            api_key: Sent as the bearer token.
            secret_key: Mixed into the signature, never sent.
            serialized_body: The exact body that will be transmitted.

        Returns:
            The header mapping and the request id placed in it.
        """
        now = self._clock()
        timestamp = int(now)
        signature = compute_signature(secret_key, serialized_body, timestamp)
        request_id = str(ULID.from_timestamp(float(now)))

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "X-BC-Request-Id": request_id,
            "X-BC-Timestamp": str(timestamp),
            "X-BC-Signature": signature,
            "X-BC-Sign-Algo": SIGN_ALGORITHM,
        }
        return headers, request_id


def sign(api_key: str, secret_key: str, serialized_body: str) -> tuple[dict[str, str], str]:
    """Sign with the system clock."""
    return Signer().sign(api_key, secret_key, serialized_body)
