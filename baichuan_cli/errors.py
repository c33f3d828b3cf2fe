"""Exception hierarchy for baichuan-cli.

Every failure raised by the client derives from BaichuanError and carries
the request id of the call it belongs to, when one was already assigned.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from baichuan_cli.models import ResponseCode


class BaichuanError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, request_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.request_id = request_id

    def __str__(self) -> str:
        if self.request_id:
            return f"{self.message} (request {self.request_id})"
        return self.message


class SerializationError(BaichuanError):
    """The outgoing request could not be serialized."""


class TransportError(BaichuanError):
    """Non-200 HTTP status or a network-level failure.

    Attributes:
        status_code: HTTP status, None for network failures.
        body: Raw response text (or the read failure's description).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, request_id)
        self.status_code = status_code
        self.body = body


class DecodeError(BaichuanError):
    """A 200 response body was not a well-formed response envelope."""


class ProtocolError(BaichuanError):
    """A well-formed response whose code is not Success.

    Returned by ResponseEnvelope.error; only raise_for_code() raises it.
    """

    def __init__(
        self,
        code: "ResponseCode",
        msg: str,
        request_id: str | None = None,
    ) -> None:
        super().__init__(f"{code.name} ({int(code)}): {msg}", request_id)
        self.code = code
        self.msg = msg


class RequestCancelled(BaichuanError):
    """The in-flight request was cancelled by the caller."""

    def __init__(self, request_id: str | None = None) -> None:
        super().__init__("request cancelled", request_id)
