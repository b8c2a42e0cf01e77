"""
hchat - Error System Tests

Verifies:
- Transport vs semantic vs stream classification
- HTTP status mapping for vendor error bodies
- Feature error recognition per vendor
- httpx exception mapping
- Error payloads detected inside event streams
"""

import httpx
import pytest

from hchat.core.errors import (
    # Base classes
    ErrorType,
    HChatException,
    SemanticError,
    StreamError,
    TransportError,
    # Specific errors
    ConnectionTimeoutError,
    ContentFilteredError,
    InvalidAPIKeyError,
    InvalidRequestError,
    ModelNotFoundError,
    ProviderFeatureError,
    ProviderStreamError,
    RateLimitedError,
    ReadTimeoutError,
    StreamInterruptedError,
    UnknownModelError,
    UpstreamError,
    # Mapping functions
    error_from_stream_payload,
    handle_http_error,
    handle_transport_exception,
    parse_feature_error,
)


def make_response(status_code, json=None, text=None, headers=None):
    request = httpx.Request("POST", "https://gateway.test/v2/api/claude/messages")
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers, request=request)
    return httpx.Response(status_code, text=text or "", headers=headers, request=request)


# ============================================================
# Error Classification Tests
# ============================================================

class TestErrorClassification:
    """Test transport vs semantic vs stream classification."""

    def test_connection_timeout_is_transport(self):
        """ConnectionTimeoutError is transport and retryable."""
        error = ConnectionTimeoutError("openai", "req_123")
        assert isinstance(error, TransportError)
        assert error.error.type == ErrorType.TRANSPORT
        assert error.error.retryable is True
        assert error.status_code == 504

    def test_rate_limited_is_transport(self):
        error = RateLimitedError("openai", 60, request_id="req_123")
        assert isinstance(error, TransportError)
        assert error.error.retry_after == 60
        assert error.status_code == 429

    def test_upstream_code_includes_status(self):
        error = UpstreamError("claude", 503, "Service unavailable")
        assert error.code == "upstream_503"
        assert error.error.retryable is True

    def test_invalid_api_key_is_semantic(self):
        """Semantic errors are never retryable."""
        error = InvalidAPIKeyError("gemini")
        assert isinstance(error, SemanticError)
        assert error.error.type == ErrorType.SEMANTIC
        assert error.error.retryable is False

    def test_unknown_model(self):
        error = UnknownModelError("llama-3")
        assert isinstance(error, SemanticError)
        assert error.code == "unknown_model_provider"
        assert str(error) == "Unknown model provider for: llama-3"

    def test_stream_interrupted_keeps_partial(self):
        """Stream errors carry the text already delivered."""
        error = StreamInterruptedError("openai", "Hello, I", "req_123")
        assert isinstance(error, StreamError)
        assert error.error.type == ErrorType.STREAM
        assert error.error.partial_content == "Hello, I"
        assert error.error.retryable is False

    def test_all_share_base(self):
        for error in (
            ReadTimeoutError("claude"),
            ModelNotFoundError("gpt-9"),
            ProviderStreamError("claude", "Overloaded"),
        ):
            assert isinstance(error, HChatException)


class TestErrorDetails:
    """Test error serialization."""

    def test_to_dict_minimal(self):
        error = InvalidRequestError("bad field", "openai", "req_1")

        assert error.error.to_dict() == {
            "error": {
                "code": "invalid_request",
                "message": "Invalid request: bad field",
                "type": "semantic_error",
                "request_id": "req_1",
                "retryable": False,
                "provider": "openai",
            }
        }

    def test_to_dict_optional_fields(self):
        error = RateLimitedError("claude", 30)
        data = error.error.to_dict()["error"]

        assert data["retry_after"] == 30
        assert "partial_content" not in data

    def test_model_not_found_details(self):
        data = ModelNotFoundError("gpt-9", "openai").error.to_dict()["error"]

        assert data["model"] == "gpt-9"
        assert data["details"] == {"requested_model": "gpt-9"}


# ============================================================
# HTTP Error Mapping
# ============================================================

class TestHandleHttpError:
    """Test non-2xx responses map to hchat errors."""

    def test_401(self):
        response = make_response(401, {"type": "error", "error": {"type": "authentication_error", "message": "x"}})

        assert isinstance(handle_http_error("claude", response), InvalidAPIKeyError)

    def test_429_with_retry_after(self):
        response = make_response(429, {"error": {"message": "slow down"}}, headers={"retry-after": "12"})

        error = handle_http_error("openai", response)

        assert isinstance(error, RateLimitedError)
        assert error.error.retry_after == 12

    def test_429_with_date_retry_after(self):
        """Non-integer retry-after values are ignored."""
        response = make_response(
            429, {"error": {"message": "slow down"}},
            headers={"retry-after": "Wed, 21 Oct 2026 07:28:00 GMT"},
        )

        assert handle_http_error("openai", response).error.retry_after is None

    def test_404(self):
        response = make_response(404, {"error": {"message": "no such deployment"}})

        error = handle_http_error("openai", response, model="gpt-9")

        assert isinstance(error, ModelNotFoundError)
        assert error.error.model == "gpt-9"

    def test_500_keeps_vendor_request_id(self):
        response = make_response(
            500, {"error": {"message": "internal"}},
            headers={"x-request-id": "vendor-req-1"},
        )

        error = handle_http_error("openai", response, request_id="req_1")

        assert isinstance(error, UpstreamError)
        assert error.status_code == 500
        assert error.error.message == "internal"
        assert error.error.provider_request_id == "vendor-req-1"
        assert error.error.request_id == "req_1"

    def test_500_plain_text_body(self):
        response = make_response(502, text="Bad Gateway")

        error = handle_http_error("gemini", response)

        assert isinstance(error, UpstreamError)
        assert error.error.message == "Bad Gateway"

    def test_400_content_filter(self):
        response = make_response(400, {"error": {"message": "flagged", "code": "content_filter"}})

        assert isinstance(handle_http_error("openai", response), ContentFilteredError)

    def test_400_generic(self):
        response = make_response(400, {"error": {"message": "messages: field required"}})

        error = handle_http_error("openai", response)

        assert isinstance(error, InvalidRequestError)
        assert "messages: field required" in error.error.message

    def test_other_status_is_semantic(self):
        response = make_response(403, {"error": {"message": "forbidden", "code": "PERMISSION_DENIED"}})

        error = handle_http_error("gemini", response)

        assert type(error) is SemanticError
        assert error.status_code == 403
        assert error.code == "PERMISSION_DENIED"
        assert "forbidden" in error.error.message

    @pytest.mark.parametrize("status_code,expected", [
        (429, RateLimitedError),
        (500, UpstreamError),
        (503, UpstreamError),
    ])
    def test_transport_status_not_reclassified(self, status_code, expected):
        """Rate limits and server faults stay transport errors whatever the message says."""
        response = make_response(status_code, {"error": {"message": "Thinking is not supported right now"}})

        error = handle_http_error("openai", response)

        assert type(error) is expected

    def test_feature_error_wins_over_status(self):
        """A recognized feature problem is reported as such."""
        response = make_response(400, {
            "type": "error",
            "error": {"type": "invalid_request_error", "message": "Thinking blocks are not supported for this model"},
        })

        error = handle_http_error("claude", response, model="claude-3-haiku")

        assert isinstance(error, ProviderFeatureError)
        assert error.code == "THINKING_NOT_SUPPORTED"
        assert error.error.feature == "thinking"
        assert error.error.suggestion
        assert error.error.details["provider_message"].startswith("Thinking blocks")


class TestParseFeatureError:
    """Test vendor message recognition."""

    @pytest.mark.parametrize("provider,message,code", [
        ("claude", "tools.0.name: String should match pattern", "INVALID_TOOL_NAME"),
        ("claude", "Unsupported image type", "INVALID_IMAGE_FORMAT"),
        ("gemini", "Function declarations cannot be empty", "TOOLS_NOT_SUPPORTED"),
        ("gemini", "API key not valid. Please pass a valid API key.", "INVALID_API_KEY"),
        ("gemini", "Response was blocked due to SAFETY", "CONTENT_BLOCKED"),
        ("openai", "Invalid tool definition", "INVALID_TOOL_DEFINITION"),
        ("openai", "Unrecognized request argument supplied: thinking", "THINKING_NOT_SUPPORTED"),
        ("openai", "Unknown parameter: 'thinking'.", "THINKING_NOT_SUPPORTED"),
        ("openai", "Tools are not supported for this deployment", "TOOLS_NOT_SUPPORTED"),
    ])
    def test_recognized(self, provider, message, code):
        assert parse_feature_error(provider, message).code == code

    def test_vendor_code_matched(self):
        feature = parse_feature_error("openai", "something failed", code="image_size_exceeded")

        assert feature.code == "IMAGE_TOO_LARGE"

    def test_unrecognized(self):
        assert parse_feature_error("openai", "Internal server error") is None

    def test_thinking_mentioned_in_passing(self):
        """A message that only mentions thinking is not a feature error."""
        assert parse_feature_error("openai", "The model spent too long thinking; try again") is None

    def test_unknown_provider_uses_common_patterns(self):
        feature = parse_feature_error("mistral", "thinking blocks are not supported")

        assert feature.code == "THINKING_NOT_SUPPORTED"


# ============================================================
# Transport Exception Mapping
# ============================================================

class TestHandleTransportException:
    """Test httpx exceptions map to transport errors."""

    def test_connect_timeout(self):
        error = handle_transport_exception("openai", httpx.ConnectTimeout("timed out"))
        assert isinstance(error, ConnectionTimeoutError)

    def test_read_timeout(self):
        error = handle_transport_exception("claude", httpx.ReadTimeout("timed out"))
        assert isinstance(error, ReadTimeoutError)

    def test_connect_error(self):
        error = handle_transport_exception("gemini", httpx.ConnectError("refused"))
        assert isinstance(error, ConnectionTimeoutError)

    def test_other_transport_error(self):
        error = handle_transport_exception("claude", httpx.ReadError("connection reset"), "req_1")

        assert type(error) is TransportError
        assert error.code == "transport_error"
        assert error.error.message == "connection reset"
        assert error.error.request_id == "req_1"


# ============================================================
# Stream Error Payloads
# ============================================================

class TestErrorFromStreamPayload:
    """Test detection of error events inside a stream."""

    def test_claude_error_event(self):
        error = error_from_stream_payload(
            "claude", {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        )

        assert isinstance(error, ProviderStreamError)
        assert error.error.message == "Overloaded"
        assert error.error.details == {"vendor_code": "overloaded_error"}

    def test_gemini_error_object(self):
        error = error_from_stream_payload(
            "gemini", {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}
        )

        assert error.error.details == {"vendor_code": "UNAVAILABLE"}

    def test_error_without_message(self):
        error = error_from_stream_payload("claude", {"type": "error"})

        assert error.error.message == "Unknown streaming error"

    @pytest.mark.parametrize("payload", [
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "hi"}},
        {"choices": [], "error": None},
        [1, 2],
        "text",
    ])
    def test_regular_payloads(self, payload):
        assert error_from_stream_payload("openai", payload) is None
