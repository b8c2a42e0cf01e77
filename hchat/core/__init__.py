"""
hchat Core Module

Unified data models and the exception taxonomy shared by all vendors.
"""

from .models import (
    # Enums
    Provider,
    Role,
    FinishReason,

    # Messages
    Message,
    ContentPart,
    TextContent,
    ImageContent,
    ImageUrl,

    # Tool calling
    Tool,
    ToolCall,
    FunctionDefinition,
    FunctionCall,

    # Requests
    ChatRequest,
    ProviderChatRequest,

    # Responses
    ChatCompletion,
    Choice,
    Usage,

    # Serialization
    message_to_dict,
)

from .errors import (
    ErrorType,
    ErrorDetails,
    HChatException,
    TransportError,
    ConnectionTimeoutError,
    ReadTimeoutError,
    UpstreamError,
    RateLimitedError,
    SemanticError,
    InvalidAPIKeyError,
    InvalidRequestError,
    ModelNotFoundError,
    ContentFilteredError,
    UnknownModelError,
    FeatureError,
    ProviderFeatureError,
    StreamError,
    ProviderStreamError,
    StreamInterruptedError,
    parse_feature_error,
    handle_http_error,
    handle_transport_exception,
)

__all__ = [
    "Provider",
    "Role",
    "FinishReason",
    "Message",
    "ContentPart",
    "TextContent",
    "ImageContent",
    "ImageUrl",
    "Tool",
    "ToolCall",
    "FunctionDefinition",
    "FunctionCall",
    "ChatRequest",
    "ProviderChatRequest",
    "ChatCompletion",
    "Choice",
    "Usage",
    "message_to_dict",
    "ErrorType",
    "ErrorDetails",
    "HChatException",
    "TransportError",
    "ConnectionTimeoutError",
    "ReadTimeoutError",
    "UpstreamError",
    "RateLimitedError",
    "SemanticError",
    "InvalidAPIKeyError",
    "InvalidRequestError",
    "ModelNotFoundError",
    "ContentFilteredError",
    "UnknownModelError",
    "FeatureError",
    "ProviderFeatureError",
    "StreamError",
    "ProviderStreamError",
    "StreamInterruptedError",
    "parse_feature_error",
    "handle_http_error",
    "handle_transport_exception",
]
