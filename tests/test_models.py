"""Tests for wire types and JSON encoding/decoding."""

import json

import pytest

from baichuan_cli.errors import DecodeError, ProtocolError
from baichuan_cli.models import (
    ChatMessage,
    ErrorCategory,
    Model,
    RequestEnvelope,
    ResponseCode,
    decode_request,
    decode_response,
    encode_request,
)


SUCCESS_BODY = (
    '{"code":0,"msg":"success","data":{"messages":[{"role":"assistant","content":"hello",'
    '"finish_reason":"stop"}]},"usage":{"prompt_tokens":3,"answer_tokens":15,"total_tokens":18}}'
)


class TestModel:
    """Tests for the Model enum and its wire names."""

    def test_wire_name(self):
        """Test that the wire name differs from the identifier."""
        assert Model.BAICHUAN2_53B.wire_name == "Baichuan2-53B"
        assert Model.BAICHUAN2_53B.value == "baichuan2-53b"

    def test_from_wire_round_trip(self):
        """Test mapping every model to its wire name and back."""
        for model in Model:
            assert Model.from_wire(model.wire_name) is model

    def test_from_wire_unknown(self):
        """Test that unknown wire names are decode errors."""
        with pytest.raises(DecodeError, match="unknown model name"):
            Model.from_wire("Baichuan2-13B")

    def test_from_wire_not_a_string(self):
        """Test that a missing model name is a decode error."""
        with pytest.raises(DecodeError):
            Model.from_wire(None)

    def test_parse_accepts_both_names(self):
        """Test CLI parsing of identifier and wire name."""
        assert Model.parse("baichuan2-53b") is Model.BAICHUAN2_53B
        assert Model.parse("Baichuan2-53B") is Model.BAICHUAN2_53B

    def test_parse_unknown(self):
        """Test that parse rejects unknown models."""
        with pytest.raises(ValueError, match="unknown model"):
            Model.parse("gpt-4")


class TestEncodeRequest:
    """Tests for canonical request serialization."""

    def test_canonical_form(self):
        """Test key order, compact separators and empty parameters."""
        envelope = RequestEnvelope.from_texts(Model.BAICHUAN2_53B, ["hi"])

        assert encode_request(envelope) == (
            '{"model":"Baichuan2-53B","messages":[{"role":"user","content":"hi"}],"parameters":{}}'
        )

    def test_user_messages_have_no_finish_reason(self):
        """Test that finish_reason is omitted when absent."""
        envelope = RequestEnvelope.from_texts(Model.BAICHUAN2_53B, ["a", "b"])
        data = json.loads(encode_request(envelope))

        assert data["messages"] == [
            {"role": "user", "content": "a"},
            {"role": "user", "content": "b"},
        ]

    def test_non_ascii_not_escaped(self):
        """Test that non-ASCII text is kept as-is."""
        envelope = RequestEnvelope.from_texts(Model.BAICHUAN2_53B, ["你好"])
        assert '"content":"你好"' in encode_request(envelope)

    def test_parameters_serialized(self):
        """Test that parameters are included as a string mapping."""
        envelope = RequestEnvelope.from_texts(
            Model.BAICHUAN2_53B, ["hi"], parameters={"temperature": "0.3"}
        )
        assert encode_request(envelope).endswith('"parameters":{"temperature":"0.3"}}')

    def test_encoding_is_stable(self):
        """Test that encoding the same envelope twice gives the same string."""
        envelope = RequestEnvelope.from_texts(Model.BAICHUAN2_53B, ["x", "y"])
        assert encode_request(envelope) == encode_request(envelope)

    def test_round_trip(self):
        """Test that decoding an encoded request reproduces model and messages."""
        envelope = RequestEnvelope.from_texts(Model.BAICHUAN2_53B, ["first", "第二", 'say "hi"\n'])

        decoded = decode_request(encode_request(envelope))

        assert decoded.model is envelope.model
        assert decoded.messages == envelope.messages
        assert dict(decoded.parameters) == {}


class TestDecodeResponse:
    """Tests for response decoding."""

    def test_sample_success(self):
        """Test decoding the documented success body."""
        resp = decode_response(SUCCESS_BODY)

        assert resp.code is ResponseCode.SUCCESS
        assert resp.ok
        assert resp.msg == "success"
        assert len(resp.data.messages) == 1
        message = resp.data.messages[0]
        assert message == ChatMessage(role="assistant", content="hello", finish_reason="stop")
        assert resp.usage.prompt_tokens == 3
        assert resp.usage.answer_tokens == 15
        assert resp.usage.total_tokens == 18
        assert resp.error is None

    def test_decode_from_bytes(self):
        """Test that raw response bytes decode too."""
        resp = decode_response(SUCCESS_BODY.encode("utf-8"))
        assert resp.ok

    def test_unicode_content(self):
        """Test a reply with non-ASCII content."""
        body = (
            '{"code":0,"msg":"success","data":{"messages":[{"role":"assistant",'
            '"content":"你好！很高兴为您提供帮助。","finish_reason":"stop"}]}}'
        )
        resp = decode_response(body)

        assert resp.messages[0].content == "你好！很高兴为您提供帮助。"
        assert resp.usage is None

    def test_error_without_data(self):
        """Test an error body: code decoded, data and usage absent."""
        resp = decode_response('{"code":10100,"msg":"Missing apikey"}')

        assert resp.code is ResponseCode.MISSING_APIKEY
        assert resp.data is None
        assert resp.usage is None
        assert resp.messages == ()
        assert not resp.ok

    def test_null_data_treated_as_absent(self):
        """Test that explicit nulls mean absent."""
        resp = decode_response('{"code":10500,"msg":"Internal error","data":null,"usage":null}')

        assert resp.code is ResponseCode.INTERNAL_ERROR
        assert resp.data is None

    def test_error_property(self):
        """Test that a failure code yields a ProtocolError value."""
        resp = decode_response('{"code":10203,"msg":"too frequent"}', request_id="01ABC")

        error = resp.error
        assert isinstance(error, ProtocolError)
        assert error.code is ResponseCode.ACCOUNT_REQUEST_TOO_FREQUENT
        assert error.msg == "too frequent"
        assert error.request_id == "01ABC"

    def test_raise_for_code(self):
        """Test raise_for_code on failure and success."""
        with pytest.raises(ProtocolError, match="INVALID_SIGNATURE"):
            decode_response('{"code":10105,"msg":"bad sig"}').raise_for_code()

        resp = decode_response(SUCCESS_BODY)
        assert resp.raise_for_code() is resp

    def test_unknown_fields_ignored(self):
        """Test that extra fields from the service are ignored."""
        resp = decode_response('{"code":0,"msg":"success","trace":"x","data":{"messages":[],"extra":1}}')
        assert resp.ok
        assert resp.messages == ()

    def test_unknown_code_rejected_by_default(self):
        """Test that undocumented codes are a decode error unless lenient."""
        with pytest.raises(DecodeError, match="unknown response code: 10999"):
            decode_response('{"code":10999,"msg":"new failure"}')

    def test_unknown_code_lenient(self):
        """Test that lenient decoding keeps the value of undocumented codes."""
        resp = decode_response('{"code":10999,"msg":"new failure"}', strict_codes=False)

        assert resp.code.name == "UNKNOWN"
        assert int(resp.code) == 10999
        assert not resp.code.is_known
        assert resp.code.category is ErrorCategory.UNKNOWN
        assert not resp.ok

    def test_unknown_code_strict(self):
        """Test that explicit strict mode rejects undocumented codes."""
        with pytest.raises(DecodeError, match="unknown response code: 10999"):
            decode_response('{"code":10999,"msg":"new failure"}', strict_codes=True)

    def test_strict_accepts_known_codes(self):
        """Test that strict mode still decodes documented codes."""
        resp = decode_response('{"code":10300,"msg":"pay up"}', strict_codes=True)
        assert resp.code is ResponseCode.ACCOUNT_BALANCE_INSUFFICIENT

    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            "",
            "[]",
            '{"msg":"success"}',
            '{"code":"0","msg":"success"}',
            '{"code":true,"msg":"success"}',
            '{"code":0.0,"msg":"success"}',
            '{"code":0}',
            '{"code":0,"msg":"success","data":{"messages":[{"role":"assistant"}]}}',
            '{"code":0,"msg":"success","data":{"messages":"hello"}}',
            '{"code":0,"msg":"success","usage":{"prompt_tokens":1}}',
        ],
    )
    def test_malformed_bodies(self, body):
        """Test that malformed bodies raise DecodeError."""
        with pytest.raises(DecodeError):
            decode_response(body)

    @pytest.mark.parametrize("prefix", ["", '{"msg":"x","code":'])
    def test_deeply_nested_body(self, prefix):
        """Test that nesting beyond the parser's depth limit is a DecodeError."""
        body = prefix + "[" * 100000 + "]" * 100000 + ("}" if prefix else "")

        with pytest.raises(DecodeError, match="failed to parse json") as exc_info:
            decode_response(body, request_id="01DEEP")
        assert exc_info.value.request_id == "01DEEP"

    def test_deeply_nested_request(self):
        """Test that decode_request maps the depth limit to DecodeError."""
        with pytest.raises(DecodeError):
            decode_request("[" * 100000 + "]" * 100000)

    def test_decode_error_carries_request_id(self):
        """Test that decode errors are tagged with the request id."""
        with pytest.raises(DecodeError) as exc_info:
            decode_response('{"code":0}', request_id="01REQ")

        assert exc_info.value.request_id == "01REQ"
        assert "01REQ" in str(exc_info.value)

    def test_parse_error_message_included(self):
        """Test that the parser message is kept."""
        with pytest.raises(DecodeError, match="failed to parse json"):
            decode_response("{oops")


class TestResponseCode:
    """Tests for the response code table."""

    def test_table_values(self):
        """Test the documented numeric codes."""
        expected = {
            "SUCCESS": 0,
            "SYSTEM_ERROR": 1,
            "INVALID_PARAMETERS": 10000,
            "MISSING_APIKEY": 10100,
            "INVALID_APIKEY": 10101,
            "APIKEY_EXPIRED": 10102,
            "INVALID_TIMESTAMP": 10103,
            "EXPIRE_TIMESTAMP": 10104,
            "INVALID_SIGNATURE": 10105,
            "INVALID_ENCRYPTION_ALGORITHM": 10106,
            "ACCOUNT_NOT_FOUND": 10200,
            "ACCOUNT_LOCKED": 10201,
            "ACCOUNT_TEMP_LOCKED": 10202,
            "ACCOUNT_REQUEST_TOO_FREQUENT": 10203,
            "ACCOUNT_BALANCE_INSUFFICIENT": 10300,
            "ACCOUNT_NOT_VERIFIED": 10301,
            "PROMPT_NOT_SAFE": 10400,
            "ANSWER_NOT_SAFE": 10401,
            "INTERNAL_ERROR": 10500,
        }
        assert {code.name: int(code) for code in ResponseCode} == expected

    @pytest.mark.parametrize(
        "code, category",
        [
            (ResponseCode.SUCCESS, None),
            (ResponseCode.SYSTEM_ERROR, ErrorCategory.SYSTEM),
            (ResponseCode.INVALID_PARAMETERS, ErrorCategory.PARAMETER),
            (ResponseCode.INVALID_ENCRYPTION_ALGORITHM, ErrorCategory.PARAMETER),
            (ResponseCode.ACCOUNT_NOT_FOUND, ErrorCategory.ACCOUNT),
            (ResponseCode.ACCOUNT_NOT_VERIFIED, ErrorCategory.ACCOUNT),
            (ResponseCode.PROMPT_NOT_SAFE, ErrorCategory.SECURITY),
            (ResponseCode.ANSWER_NOT_SAFE, ErrorCategory.SECURITY),
            (ResponseCode.INTERNAL_ERROR, ErrorCategory.INTERNAL),
        ],
    )
    def test_categories(self, code, category):
        """Test severity classes."""
        assert code.category is category

    def test_only_rate_limit_is_retryable(self):
        """Test that only the rate-limit code is retryable."""
        retryable = [code for code in ResponseCode if code.is_retryable]
        assert retryable == [ResponseCode.ACCOUNT_REQUEST_TOO_FREQUENT]

    def test_descriptions(self):
        """Test service descriptions for known and unknown codes."""
        assert ResponseCode.MISSING_APIKEY.description == "Missing apikey"
        assert ResponseCode(424242).description == "unknown response code"
