"""Wire types for the Baichuan chat API.

Requests are serialized to a canonical JSON string: compact separators,
non-ASCII text left unescaped, keys in declaration order. That exact string
is both signed and sent, so nothing may re-serialize it in between.
"""

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Mapping, Sequence

from baichuan_cli.errors import DecodeError, ProtocolError


class Model(Enum):
    """Target model variant.

    The enum value is the identifier used on the command line; the service
    knows each model under a different wire name (see ``wire_name``).
    """

    BAICHUAN2_53B = "baichuan2-53b"

    @property
    def wire_name(self) -> str:
        """Name of the model as the service expects it."""
        return _MODEL_WIRE_NAMES[self]

    @classmethod
    def from_wire(cls, name: str) -> "Model":
        """Map a wire name back to its Model.

        Raises:
            DecodeError: If the service name is unknown.
        """
        try:
            return _MODELS_BY_WIRE_NAME[name]
        except (KeyError, TypeError):
            raise DecodeError(f"unknown model name: {name!r}") from None

    @classmethod
    def parse(cls, text: str) -> "Model":
        """Accept either the CLI identifier or the wire name."""
        normalized = text.strip()
        for model in cls:
            if normalized.lower() == model.value or normalized == model.wire_name:
                return model
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"unknown model {text!r} (choose from: {choices})")

    def __str__(self) -> str:
        return self.value


_MODEL_WIRE_NAMES: dict[Model, str] = {
    Model.BAICHUAN2_53B: "Baichuan2-53B",
}
_MODELS_BY_WIRE_NAME: dict[str, Model] = {v: k for k, v in _MODEL_WIRE_NAMES.items()}


class ErrorCategory(Enum):
    """Severity class the service assigns to a failure code."""

    SYSTEM = "system"
    PARAMETER = "parameter"
    ACCOUNT = "account"
    SECURITY = "security"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


class ResponseCode(IntEnum):
    """Result code carried in every response body.

    Codes the service adds later decode into an ``UNKNOWN`` pseudo-member
    that keeps the raw integer, so ``ResponseCode(99999)`` does not raise.
    """

    SUCCESS = 0
    SYSTEM_ERROR = 1
    INVALID_PARAMETERS = 10000
    MISSING_APIKEY = 10100
    INVALID_APIKEY = 10101
    APIKEY_EXPIRED = 10102
    INVALID_TIMESTAMP = 10103
    EXPIRE_TIMESTAMP = 10104
    INVALID_SIGNATURE = 10105
    INVALID_ENCRYPTION_ALGORITHM = 10106
    ACCOUNT_NOT_FOUND = 10200
    ACCOUNT_LOCKED = 10201
    ACCOUNT_TEMP_LOCKED = 10202
    ACCOUNT_REQUEST_TOO_FREQUENT = 10203
    ACCOUNT_BALANCE_INSUFFICIENT = 10300
    ACCOUNT_NOT_VERIFIED = 10301
    PROMPT_NOT_SAFE = 10400
    ANSWER_NOT_SAFE = 10401
    INTERNAL_ERROR = 10500

    @classmethod
    def _missing_(cls, value: object) -> "ResponseCode | None":
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        pseudo = int.__new__(cls, value)
        pseudo._name_ = "UNKNOWN"
        pseudo._value_ = value
        return pseudo

    @property
    def is_known(self) -> bool:
        return int(self) in _CODE_DESCRIPTIONS

    @property
    def description(self) -> str:
        return _CODE_DESCRIPTIONS.get(int(self), "unknown response code")

    @property
    def category(self) -> ErrorCategory | None:
        """Failure class of this code; None for SUCCESS."""
        value = int(self)
        if value == 0:
            return None
        if not self.is_known:
            return ErrorCategory.UNKNOWN
        if value == 1:
            return ErrorCategory.SYSTEM
        if value < 10200:
            return ErrorCategory.PARAMETER
        if value < 10400:
            return ErrorCategory.ACCOUNT
        if value < 10500:
            return ErrorCategory.SECURITY
        return ErrorCategory.INTERNAL

    @property
    def is_retryable(self) -> bool:
        """Whether the same request may succeed if sent again later."""
        return self is ResponseCode.ACCOUNT_REQUEST_TOO_FREQUENT


_CODE_DESCRIPTIONS: dict[int, str] = {
    0: "success",
    1: "system error",
    10000: "Invalid parameters, please check",
    10100: "Missing apikey",
    10101: "Invalid apikey",
    10102: "apikey has expired",
    10103: "Invalid Timestamp parameter in request header",
    10104: "Expire Timestamp parameter in request header",
    10105: "Invalid Signature parameter in request header",
    10106: "Invalid encryption algorithm in request header, not supported by server",
    10200: "Account not found",
    10201: "Account is locked, please contact the support staff",
    10202: "Account is temporarily locked, please try again later",
    10203: "Request too frequent, please try again later",
    10300: "Insufficient account balance, please recharge",
    10301: "Account is not verified, please complete the verification first",
    10400: "Topic violates security policy",
    10401: "Topic violates security policy",
    10500: "Internal error",
}


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message.

    Attributes:
        role: "user" for requests, "assistant" for replies.
        content: Message text.
        finish_reason: Set by the service on replies only.
    """

    role: str
    content: str
    finish_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.finish_reason is not None:
            data["finish_reason"] = self.finish_reason
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ChatMessage":
        if not isinstance(data, dict):
            raise DecodeError(f"message must be an object, got {type(data).__name__}")
        role = _require(data, "role", str, "message")
        content = _require(data, "content", str, "message")
        finish_reason = data.get("finish_reason")
        if finish_reason is not None and not isinstance(finish_reason, str):
            raise DecodeError("message.finish_reason must be a string")
        return cls(role=role, content=content, finish_reason=finish_reason)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role="user", content=content)


@dataclass(frozen=True)
class RequestEnvelope:
    """Body of one chat request. Built fresh for every call."""

    model: Model
    messages: tuple[ChatMessage, ...]
    parameters: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_texts(
        cls,
        model: Model,
        texts: Sequence[str],
        parameters: Mapping[str, str] | None = None,
    ) -> "RequestEnvelope":
        """Wrap each text as a user message."""
        return cls(
            model=model,
            messages=tuple(ChatMessage.user(text) for text in texts),
            parameters=dict(parameters or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model.wire_name,
            "messages": [m.to_dict() for m in self.messages],
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "RequestEnvelope":
        if not isinstance(data, dict):
            raise DecodeError("request must be a JSON object")
        messages = _require(data, "messages", list, "request")
        parameters = data.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise DecodeError("request.parameters must be an object")
        return cls(
            model=Model.from_wire(data.get("model")),
            messages=tuple(ChatMessage.from_dict(m) for m in messages),
            parameters=parameters,
        )


@dataclass(frozen=True)
class UsageInfo:
    """Token accounting reported with successful replies."""

    prompt_tokens: int
    answer_tokens: int
    total_tokens: int

    @classmethod
    def from_dict(cls, data: Any) -> "UsageInfo":
        if not isinstance(data, dict):
            raise DecodeError("usage must be an object")
        return cls(
            prompt_tokens=_require_int(data, "prompt_tokens", "usage"),
            answer_tokens=_require_int(data, "answer_tokens", "usage"),
            total_tokens=_require_int(data, "total_tokens", "usage"),
        )


@dataclass(frozen=True)
class ResponseData:
    messages: tuple[ChatMessage, ...]

    @classmethod
    def from_dict(cls, data: Any) -> "ResponseData":
        if not isinstance(data, dict):
            raise DecodeError("data must be an object")
        messages = _require(data, "messages", list, "data")
        return cls(messages=tuple(ChatMessage.from_dict(m) for m in messages))


@dataclass(frozen=True)
class ResponseEnvelope:
    """Decoded response body, success or service-reported failure.

    ``data`` and ``usage`` are None on error responses; check ``ok`` (or
    use ``messages``) before reaching into them.
    """

    code: ResponseCode
    msg: str
    data: ResponseData | None = None
    usage: UsageInfo | None = None
    request_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.code is ResponseCode.SUCCESS

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self.data.messages if self.data is not None else ()

    @property
    def error(self) -> ProtocolError | None:
        """The service-reported failure, or None on success."""
        if self.ok:
            return None
        return ProtocolError(self.code, self.msg, request_id=self.request_id)

    def raise_for_code(self) -> "ResponseEnvelope":
        """Raise ProtocolError unless the code is SUCCESS."""
        error = self.error
        if error is not None:
            raise error
        return self


def encode_request(envelope: RequestEnvelope) -> str:
    """Serialize a request to its canonical JSON string."""
    return json.dumps(envelope.to_dict(), separators=(",", ":"), ensure_ascii=False)


def decode_request(text: str | bytes) -> RequestEnvelope:
    """Parse a serialized request; the inverse of encode_request."""
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise DecodeError(f"failed to parse json: {e}") from e
    return RequestEnvelope.from_dict(data)


def decode_response(
    body: str | bytes,
    *,
    strict_codes: bool = True,
    request_id: str | None = None,
) -> ResponseEnvelope:
    """Parse a response body into a ResponseEnvelope.

    Args:
        body: Raw response body.
        strict_codes: Reject codes outside the documented table instead of
            mapping them to ResponseCode UNKNOWN.
        request_id: Attached to the envelope and to any DecodeError.

    Raises:
        DecodeError: If the body is not JSON or does not match the schema.
    """
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise DecodeError(f"failed to parse json: {e}", request_id) from e

    try:
        return _envelope_from_dict(data, strict_codes, request_id)
    except DecodeError as e:
        e.request_id = request_id
        raise


def _envelope_from_dict(data: Any, strict_codes: bool, request_id: str | None) -> ResponseEnvelope:
    if not isinstance(data, dict):
        raise DecodeError("response must be a JSON object")

    raw_code = _require_int(data, "code", "response")
    code = ResponseCode(raw_code)
    if strict_codes and not code.is_known:
        raise DecodeError(f"unknown response code: {raw_code}")

    msg = _require(data, "msg", str, "response")
    raw_data = data.get("data")
    raw_usage = data.get("usage")

    return ResponseEnvelope(
        code=code,
        msg=msg,
        data=ResponseData.from_dict(raw_data) if raw_data is not None else None,
        usage=UsageInfo.from_dict(raw_usage) if raw_usage is not None else None,
        request_id=request_id,
    )


def _require(data: dict, key: str, kind: type, where: str) -> Any:
    if key not in data:
        raise DecodeError(f"missing field `{key}` in {where}")
    value = data[key]
    if not isinstance(value, kind):
        raise DecodeError(f"{where}.{key} must be {kind.__name__}, got {type(value).__name__}")
    return value


def _require_int(data: dict, key: str, where: str) -> int:
    value = _require(data, key, int, where)
    # bool is an int subclass
    if isinstance(value, bool):
        raise DecodeError(f"{where}.{key} must be int, got bool")
    return value
