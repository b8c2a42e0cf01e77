"""
hchat - Error Definitions

Error taxonomy with transport vs semantic vs stream classification.

- Transport errors happen before or around the HTTP exchange.
- Semantic errors mean the caller must change the request.
- Stream errors terminate a stream that had already started.

Nothing here retries; ``retryable`` is advisory for the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx


class ErrorType(str, Enum):
    """Error classification."""
    TRANSPORT = "transport_error"
    SEMANTIC = "semantic_error"
    STREAM = "stream_error"


@dataclass
class ErrorDetails:
    """Full error information attached to every HChatException."""
    # Core fields (always present)
    code: str
    message: str
    type: ErrorType

    # Context fields
    provider: Optional[str] = None
    model: Optional[str] = None

    # Trace fields
    request_id: str = ""
    provider_request_id: Optional[str] = None

    # Recovery fields
    retryable: bool = False
    retry_after: Optional[int] = None
    partial_content: Optional[str] = None

    # Feature guidance
    feature: Optional[str] = None
    suggestion: Optional[str] = None

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.model:
            result["model"] = self.model
        if self.provider_request_id:
            result["provider_request_id"] = self.provider_request_id
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.partial_content:
            result["partial_content"] = self.partial_content
        if self.feature:
            result["feature"] = self.feature
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details

        return {"error": result}


class HChatException(Exception):
    """Base exception for all hchat errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)

    @property
    def code(self) -> str:
        return self.error.code


# ============================================================
# Transport Errors
# ============================================================

class TransportError(HChatException):
    """Base class for network and gateway failures."""
    pass


class ConnectionTimeoutError(TransportError):
    """Failed to connect to the gateway."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="connection_timeout",
                message=f"Failed to connect to {provider} API within timeout",
                type=ErrorType.TRANSPORT,
                provider=provider,
                request_id=request_id,
                retryable=True,
            ),
            status_code=504
        )


class ReadTimeoutError(TransportError):
    """Gateway did not respond in time."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="read_timeout",
                message=f"{provider} did not respond within timeout",
                type=ErrorType.TRANSPORT,
                provider=provider,
                request_id=request_id,
                retryable=True,
            ),
            status_code=504
        )


class UpstreamError(TransportError):
    """Vendor returned a server error."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str = "",
        request_id: str = "",
        provider_request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code=f"upstream_{status_code}" if status_code >= 500 else "upstream_error",
                message=message or f"{provider} service error. Please try again later.",
                type=ErrorType.TRANSPORT,
                provider=provider,
                request_id=request_id,
                provider_request_id=provider_request_id or None,
                retryable=True,
            ),
            status_code=status_code
        )


class RateLimitedError(TransportError):
    """Rate limit exceeded."""

    def __init__(
        self,
        provider: str,
        retry_after: Optional[int] = None,
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="rate_limited",
                message="Rate limit exceeded",
                type=ErrorType.TRANSPORT,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=retry_after,
            ),
            status_code=429
        )


# ============================================================
# Semantic Errors (caller must fix the request)
# ============================================================

class SemanticError(HChatException):
    """Base class for semantic errors."""
    pass


class InvalidAPIKeyError(SemanticError):
    """Gateway rejected the API key."""

    def __init__(self, provider: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="invalid_api_key",
                message="Invalid API key",
                type=ErrorType.SEMANTIC,
                provider=provider or None,
                request_id=request_id,
            ),
            status_code=401
        )


class InvalidRequestError(SemanticError):
    """Request validation failed on the vendor side."""

    def __init__(
        self,
        message: str = "",
        provider: str = "",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="invalid_request",
                message=f"Invalid request: {message}" if message else "Invalid request",
                type=ErrorType.SEMANTIC,
                provider=provider or None,
                request_id=request_id,
            ),
            status_code=400
        )


class ModelNotFoundError(SemanticError):
    """Requested model does not exist on the gateway."""

    def __init__(self, model: str, provider: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="model_not_found",
                message="Model not found",
                type=ErrorType.SEMANTIC,
                provider=provider or None,
                model=model,
                request_id=request_id,
                details={"requested_model": model}
            ),
            status_code=404
        )


class ContentFilteredError(SemanticError):
    """Content was blocked by vendor safety systems."""

    def __init__(self, provider: str, reason: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="content_filtered",
                message="Your request was flagged by content moderation",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                details={"filter_reason": reason} if reason else {}
            ),
            status_code=400
        )


class UnknownModelError(SemanticError):
    """No prefix rule matches the model identifier."""

    def __init__(self, model: str):
        super().__init__(
            ErrorDetails(
                code="unknown_model_provider",
                message=f"Unknown model provider for: {model}",
                type=ErrorType.SEMANTIC,
                model=model,
            ),
            status_code=400
        )


@dataclass
class FeatureError:
    """A vendor error explained in terms of an unsupported or misused feature."""
    code: str
    feature: str
    message: str
    suggestion: str = ""


class ProviderFeatureError(SemanticError):
    """Vendor error recognized as a feature problem, with a suggestion."""

    def __init__(
        self,
        provider: str,
        feature_error: FeatureError,
        status_code: int = 400,
        model: str = "",
        request_id: str = "",
        provider_message: str = ""
    ):
        self.feature_error = feature_error
        super().__init__(
            ErrorDetails(
                code=feature_error.code,
                message=feature_error.message,
                type=ErrorType.SEMANTIC,
                provider=provider,
                model=model or None,
                request_id=request_id,
                feature=feature_error.feature,
                suggestion=feature_error.suggestion or None,
                details={"provider_message": provider_message} if provider_message else {}
            ),
            status_code=status_code
        )


# ============================================================
# Stream Errors (stream already started)
# ============================================================

class StreamError(HChatException):
    """Base class for failures that terminate an open stream."""
    pass


class ProviderStreamError(StreamError):
    """Vendor sent an error payload inside the event stream."""

    def __init__(
        self,
        provider: str,
        message: str,
        vendor_code: str = "",
        request_id: str = "",
        partial_content: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="provider_stream_error",
                message=message or "Unknown streaming error",
                type=ErrorType.STREAM,
                provider=provider,
                request_id=request_id,
                partial_content=partial_content or None,
                details={"vendor_code": vendor_code} if vendor_code else {}
            ),
            status_code=502
        )


class StreamInterruptedError(StreamError):
    """Connection was lost after content was produced."""

    def __init__(
        self,
        provider: str,
        partial_content: str = "",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="stream_interrupted",
                message="Connection lost after receiving partial content",
                type=ErrorType.STREAM,
                provider=provider,
                request_id=request_id,
                partial_content=partial_content or None,
            ),
            status_code=502
        )


# ============================================================
# Feature error patterns
# ============================================================

# (lowercase substrings, feature error); first match wins
FeaturePattern = Tuple[Tuple[str, ...], FeatureError]

_THINKING_BLOCKS = FeatureError(
    code="THINKING_NOT_SUPPORTED",
    feature="thinking",
    message="This model does not support thinking.",
    suggestion="Remove thinking or use a model that supports it.",
)

FEATURE_ERROR_PATTERNS: Dict[str, List[FeaturePattern]] = {
    "claude": [
        (("thinking blocks are not supported",), FeatureError(
            code="THINKING_NOT_SUPPORTED",
            feature="thinking",
            message="This model version does not support thinking.",
            suggestion="Use a newer Claude model (claude-sonnet-4, claude-opus-4) or set thinking=False.",
        )),
        (("tools.0.name",), FeatureError(
            code="INVALID_TOOL_NAME",
            feature="tools",
            message="Tool name is invalid.",
            suggestion="Tool names may only contain letters, digits and underscores.",
        )),
        (("invalid tool", "tool schema"), FeatureError(
            code="INVALID_TOOL_SCHEMA",
            feature="tools",
            message="Tool schema is invalid.",
            suggestion="Check that tool parameters are a valid JSON Schema object.",
        )),
        (("image format", "unsupported image"), FeatureError(
            code="INVALID_IMAGE_FORMAT",
            feature="vision",
            message="Unsupported image format.",
            suggestion="Use JPEG, PNG, GIF or WebP images.",
        )),
        (("max_tokens", "token limit"), FeatureError(
            code="TOKEN_LIMIT_EXCEEDED",
            feature="general",
            message="Token limit exceeded.",
            suggestion="Lower max_tokens or shorten the input messages.",
        )),
    ],
    "gemini": [
        (("function declarations cannot be empty",), FeatureError(
            code="TOOLS_NOT_SUPPORTED",
            feature="tools",
            message="Gemini models do not support tools on this API.",
            suggestion="Use a GPT or Claude model, or remove tools.",
        )),
        (("thinking is not supported", "thinking_mode"), FeatureError(
            code="THINKING_NOT_SUPPORTED",
            feature="thinking",
            message="Gemini models do not support thinking on this API.",
            suggestion="Use a Claude model or set thinking=False.",
        )),
        (("safety", "blocked"), FeatureError(
            code="CONTENT_BLOCKED",
            feature="safety",
            message="Content was blocked by Gemini safety policy.",
            suggestion="Rephrase the request or use another model.",
        )),
        (("image size", "too large"), FeatureError(
            code="IMAGE_TOO_LARGE",
            feature="vision",
            message="Image is too large.",
            suggestion="Reduce images to 4MB or less.",
        )),
        (("token limit", "max_output_tokens"), FeatureError(
            code="TOKEN_LIMIT_EXCEEDED",
            feature="general",
            message="Token limit exceeded.",
            suggestion="Set max_tokens to 8192 or less, or shorten the input.",
        )),
        (("api key not valid",), FeatureError(
            code="INVALID_API_KEY",
            feature="auth",
            message="Gemini API key is invalid.",
            suggestion="Check the API key and use a valid one.",
        )),
    ],
    "openai": [
        (("argument supplied: thinking", "unknown parameter: 'thinking'", "thinking is not supported"), FeatureError(
            code="THINKING_NOT_SUPPORTED",
            feature="thinking",
            message="GPT models do not support thinking.",
            suggestion="Use a Claude model (claude-sonnet-4, claude-opus-4) or set thinking=False.",
        )),
        (("invalid tool", "tool_calls"), FeatureError(
            code="INVALID_TOOL_DEFINITION",
            feature="tools",
            message="Tool definition is invalid.",
            suggestion="Check the tool parameters and description.",
        )),
        (("image too large", "image_size"), FeatureError(
            code="IMAGE_TOO_LARGE",
            feature="vision",
            message="Image is too large.",
            suggestion="Reduce images to 20MB or less.",
        )),
    ],
}

COMMON_FEATURE_PATTERNS: List[FeaturePattern] = [
    (("thinking blocks are not supported",), _THINKING_BLOCKS),
    (("tools are not supported",), FeatureError(
        code="TOOLS_NOT_SUPPORTED",
        feature="tools",
        message="This model does not support tools.",
        suggestion="Continue without tools or use another model.",
    )),
]


def parse_feature_error(
    provider: str,
    message: str,
    code: str = ""
) -> Optional[FeatureError]:
    """
    Recognize a vendor error message as a feature problem.

    Args:
        provider: Vendor name ("openai", "claude", "gemini")
        message: Vendor error message
        code: Vendor error code, matched like the message

    Returns:
        The matching FeatureError, or None
    """
    haystacks = (message.lower(), code.lower())
    patterns = FEATURE_ERROR_PATTERNS.get(provider, []) + COMMON_FEATURE_PATTERNS

    for needles, feature_error in patterns:
        for needle in needles:
            if any(needle in haystack for haystack in haystacks if haystack):
                return feature_error
    return None


# ============================================================
# HTTP and transport error mapping
# ============================================================

PROVIDER_REQUEST_ID_HEADERS = ("x-request-id", "request-id", "apim-request-id")


def _parse_error_body(response: httpx.Response) -> Tuple[str, str, str]:
    """
    Extract (message, code, type) from a vendor error body.

    Handles the three vendor shapes:
        OpenAI:  {"error": {"message", "type", "code"}}
        Claude:  {"type": "error", "error": {"type", "message"}}
        Gemini:  {"error": {"code", "message", "status"}}
    """
    try:
        data = response.json()
    except ValueError:
        return response.text.strip(), "", ""

    info = data.get("error") if isinstance(data, dict) else None
    if not isinstance(info, dict):
        if isinstance(data, dict) and "message" in data:
            return str(data["message"]), str(data.get("code", "")), ""
        return response.text.strip(), "", ""

    message = str(info.get("message", ""))
    code = str(info.get("code") or info.get("status") or "")
    error_type = str(info.get("type") or info.get("status") or "")
    return message, code, error_type


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def handle_http_error(
    provider: str,
    response: httpx.Response,
    model: str = "",
    request_id: str = ""
) -> HChatException:
    """
    Convert a non-2xx gateway response into an hchat exception.

    The response body must already be read.
    """
    status_code = response.status_code
    message, code, error_type = _parse_error_body(response)
    provider_req_id = next(
        (response.headers[h] for h in PROVIDER_REQUEST_ID_HEADERS if h in response.headers),
        ""
    )

    # Rate limits and server faults keep their transport classification
    feature_error = None
    if status_code != 429 and status_code < 500:
        feature_error = parse_feature_error(provider, message, code)
    if feature_error:
        return ProviderFeatureError(
            provider,
            feature_error,
            status_code=status_code,
            model=model,
            request_id=request_id,
            provider_message=message,
        )

    if status_code == 401:
        return InvalidAPIKeyError(provider, request_id)

    if status_code == 429:
        return RateLimitedError(provider, _retry_after(response), request_id)

    if status_code == 404:
        return ModelNotFoundError(model or "unknown", provider, request_id)

    if status_code >= 500:
        return UpstreamError(
            provider, status_code, message,
            request_id, provider_req_id
        )

    if status_code == 400:
        lowered = f"{code} {error_type}".lower()
        if "content_filter" in lowered or "content_policy" in lowered:
            return ContentFilteredError(provider, message, request_id)
        return InvalidRequestError(message, provider, request_id)

    # Default: treat as semantic error from the vendor
    return SemanticError(
        ErrorDetails(
            code=code or "provider_error",
            message=f"{provider} API Error ({status_code}): {message or 'Unknown error'}",
            type=ErrorType.SEMANTIC,
            provider=provider,
            model=model or None,
            request_id=request_id,
            provider_request_id=provider_req_id or None,
        ),
        status_code=status_code
    )


def handle_transport_exception(
    provider: str,
    error: Exception,
    request_id: str = ""
) -> HChatException:
    """Convert an httpx exception raised around the request into an hchat exception."""
    if isinstance(error, httpx.ConnectTimeout):
        return ConnectionTimeoutError(provider, request_id)

    if isinstance(error, httpx.TimeoutException):
        return ReadTimeoutError(provider, request_id)

    if isinstance(error, httpx.ConnectError):
        return ConnectionTimeoutError(provider, request_id)

    return TransportError(
        ErrorDetails(
            code="transport_error",
            message=str(error) or error.__class__.__name__,
            type=ErrorType.TRANSPORT,
            provider=provider,
            request_id=request_id,
            retryable=True,
        ),
        status_code=502
    )


def error_from_stream_payload(
    provider: str,
    payload: Any,
    request_id: str = ""
) -> Optional[ProviderStreamError]:
    """
    Detect a vendor error payload inside the event stream.

    Claude sends {"type": "error", "error": {...}}; OpenAI and Gemini
    send {"error": {...}}.
    """
    if not isinstance(payload, dict):
        return None

    info = payload.get("error")
    if payload.get("type") != "error" and not isinstance(info, dict):
        return None

    if not isinstance(info, dict):
        info = {"message": str(info) if info else ""}

    return ProviderStreamError(
        provider,
        message=str(info.get("message", "")),
        vendor_code=str(info.get("type") or info.get("status") or info.get("code") or ""),
        request_id=request_id,
    )
