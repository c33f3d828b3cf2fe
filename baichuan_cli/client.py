"""Async client for the Baichuan chat endpoint.

One call is one signed POST: no retries, no backoff. Service-reported
failures come back inside a normal ResponseEnvelope (check ``code``);
only transport, decoding and serialization problems raise.
"""

import asyncio
import logging
from typing import Mapping, Sequence

import httpx

from baichuan_cli.errors import RequestCancelled, SerializationError, TransportError
from baichuan_cli.models import (
    Model,
    RequestEnvelope,
    ResponseEnvelope,
    decode_response,
    encode_request,
)
from baichuan_cli.signer import Signer

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.baichuan-ai.com/v1/chat"
DEFAULT_TIMEOUT = 60.0


class BaichuanClient:
    """Client for the Baichuan chat API.

    The client only holds configuration; every call builds its own request,
    headers and HTTP connection, so one instance can serve concurrent calls.

    Example:
        >>> client = BaichuanClient(api_key, secret_key)
        >>> resp = await client.chat(["Hello"])
        >>> if resp.ok:
        ...     print(resp.messages[0].content)
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        model: Model = Model.BAICHUAN2_53B,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        signer: Signer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        strict_codes: bool = True,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key, sent as bearer token.
            secret_key: Secret used to sign requests.
            model: Model to address.
            endpoint: Chat endpoint URL.
            timeout: Per-call timeout in seconds.
            signer: Signer to use; a system-clock Signer if None.
            transport: Custom httpx transport (tests, proxies).
            strict_codes: Treat undocumented response codes as decode errors;
                False maps them to ResponseCode UNKNOWN instead.
        """
        self._api_key = api_key
        self._secret_key = secret_key
        self._model = model
        self._endpoint = endpoint
        self._timeout = httpx.Timeout(timeout)
        self._signer = signer or Signer()
        self._transport = transport
        self._strict_codes = strict_codes

    @property
    def model(self) -> Model:
        return self._model

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def chat(
        self,
        messages: Sequence[str],
        *,
        parameters: Mapping[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ResponseEnvelope:
        """Send user messages and decode the reply.

        Args:
            messages: User utterances, sent in order as "user" messages.
            parameters: Extra request parameters (empty by default).
            cancel: Setting this event aborts the in-flight request.

        Returns:
            The decoded response. Its code may be a service failure.

        Raises:
            SerializationError: The request could not be serialized.
            TransportError: Network failure, timeout or non-200 status.
            DecodeError: The 200 body is not a valid response envelope.
            RequestCancelled: ``cancel`` was set before a reply arrived.
        """
        envelope = RequestEnvelope.from_texts(self._model, messages, parameters)
        body = serialize_request(envelope)
        headers, request_id = self._signer.sign(self._api_key, self._secret_key, body)

        logger.debug(
            "request %s started (model %s)",
            request_id,
            self._model.wire_name,
            extra={"request_id": request_id, "model": self._model.wire_name},
        )

        if cancel is None:
            return await self._send(body, headers, request_id)

        if cancel.is_set():
            raise RequestCancelled(request_id)
        return await self._send_cancellable(body, headers, request_id, cancel)

    async def _send_cancellable(
        self,
        body: str,
        headers: dict[str, str],
        request_id: str,
        cancel: asyncio.Event,
    ) -> ResponseEnvelope:
        request = asyncio.create_task(self._send(body, headers, request_id))
        waiter = asyncio.create_task(cancel.wait())
        try:
            await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not request.done():
                request.cancel()
                await asyncio.wait({request})

        if request.cancelled():
            logger.info("request %s cancelled", request_id, extra={"request_id": request_id})
            raise RequestCancelled(request_id)
        return request.result()

    async def _send(self, body: str, headers: dict[str, str], request_id: str) -> ResponseEnvelope:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream(
                    "POST",
                    self._endpoint,
                    content=body.encode("utf-8"),
                    headers=headers,
                ) as response:
                    if response.status_code != httpx.codes.OK:
                        text = await _read_error_body(response)
                        raise TransportError(
                            f"failed to send request: HTTP {response.status_code}: {text}",
                            status_code=response.status_code,
                            body=text,
                            request_id=request_id,
                        )
                    payload = await response.aread()
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out: {e}", request_id=request_id) from e
        except httpx.HTTPError as e:
            raise TransportError(f"failed to send request: {e}", request_id=request_id) from e

        result = decode_response(payload, strict_codes=self._strict_codes, request_id=request_id)
        logger.debug(
            "request %s succeeded (code %d)",
            request_id,
            int(result.code),
            extra={"request_id": request_id, "code": int(result.code)},
        )
        return result


def serialize_request(envelope: RequestEnvelope) -> str:
    """Canonical body for a request, validated to be sendable as UTF-8.

    Raises:
        SerializationError: Non-string content or parameters, or text that
            cannot be encoded.
    """
    for message in envelope.messages:
        if not isinstance(message.content, str):
            raise SerializationError(
                f"message content must be a string, got {type(message.content).__name__}"
            )
    for key, value in envelope.parameters.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise SerializationError(f"parameter {key!r} must map a string to a string")

    try:
        body = encode_request(envelope)
        body.encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"failed to serialize request: {e}") from e
    return body


async def _read_error_body(response: httpx.Response) -> str:
    try:
        await response.aread()
    except httpx.HTTPError as e:
        return f"failed to read response body: {e}"
    return response.text


async def make_request(
    api_key: str,
    secret_key: str,
    model: Model,
    messages: Sequence[str],
    **kwargs,
) -> ResponseEnvelope:
    """Send one chat request with a throwaway client.

    Keyword arguments are passed to BaichuanClient.
    """
    client = BaichuanClient(api_key, secret_key, model, **kwargs)
    return await client.chat(messages)
