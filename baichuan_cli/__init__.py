"""baichuan-cli - Terminal chat client for the Baichuan API.

Signs each request the way the service expects, sends it once, and decodes
the reply (including the service's error codes) into typed values.

Example:
    >>> import asyncio
    >>> from baichuan_cli import BaichuanClient, Model
    >>>
    >>> client = BaichuanClient(api_key, secret_key, Model.BAICHUAN2_53B)
    >>> resp = asyncio.run(client.chat(["Hello"]))
    >>> if resp.ok:
    ...     print(resp.messages[0].content)
    ... else:
    ...     print(resp.code.name, resp.msg)
"""

__version__ = "0.1.0"

from baichuan_cli.client import BaichuanClient, make_request
from baichuan_cli.config import ClientConfig
from baichuan_cli.errors import (
    BaichuanError,
    DecodeError,
    ProtocolError,
    RequestCancelled,
    SerializationError,
    TransportError,
)
from baichuan_cli.models import (
    ChatMessage,
    ErrorCategory,
    Model,
    RequestEnvelope,
    ResponseCode,
    ResponseData,
    ResponseEnvelope,
    UsageInfo,
)
from baichuan_cli.signer import Signer, md5_hash, sign

__all__ = [
    # Client
    "BaichuanClient",
    "ClientConfig",
    "make_request",
    # Signing
    "Signer",
    "sign",
    "md5_hash",
    # Types
    "ChatMessage",
    "ErrorCategory",
    "Model",
    "RequestEnvelope",
    "ResponseCode",
    "ResponseData",
    "ResponseEnvelope",
    "UsageInfo",
    # Errors
    "BaichuanError",
    "DecodeError",
    "ProtocolError",
    "RequestCancelled",
    "SerializationError",
    "TransportError",
    # Version
    "__version__",
]
