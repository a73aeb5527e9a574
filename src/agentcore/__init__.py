"""Public exports for the agentcore package."""

from .agent import Agent, AgentConfig, AgentResult, LoopState, Transcript
from .config import CallConfig, RetryPolicy
from .context import Context, background
from .exceptions import (
    AgentCoreError,
    ContextCancelledError,
    ContextError,
    DeadlineExceededError,
    InvalidModelInfoError,
    ModelNotFoundError,
    NonRetryableError,
    ProviderConfigurationError,
    ProviderError,
    StreamingNotSupportedError,
    TemporaryError,
    ToolExecutionError,
    ToolLoopExceededError,
    ToolValidationError,
)
from .model import Model
from .providers import (
    DummyProvider,
    LocalProvider,
    ModelInfo,
    ModelRegistry,
    OpenAIProvider,
    Provider,
    ReplayProvider,
)
from .recording import RecordedResponse, ResponseRecorder, load_records
from .retry import Backoff, ErrorClass, Retrier, classify
from .streaming import ThinkTagSplitter, StreamAccumulator, accumulate, extract_think_tags
from .tools import (
    RegistrationResult,
    Tool,
    ToolContent,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    format_tool_result,
    tool,
)
from .types import (
    AIMessage,
    ContentPart,
    ContentPartType,
    Message,
    ResourceMessage,
    Role,
    StreamChunk,
    StreamDelta,
    SystemMessage,
    ToolCall,
    ToolCallDelta,
    ToolMessage,
    UserMessage,
)
from .usage import AgentUsage, UsageStats

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentResult",
    "LoopState",
    "Transcript",
    "Model",
    "CallConfig",
    "RetryPolicy",
    "Context",
    "background",
    # Retry and streaming
    "Backoff",
    "ErrorClass",
    "Retrier",
    "classify",
    "ThinkTagSplitter",
    "StreamAccumulator",
    "accumulate",
    "extract_think_tags",
    # Tools
    "Tool",
    "ToolParameter",
    "ToolContent",
    "ToolResult",
    "ToolRegistry",
    "RegistrationResult",
    "format_tool_result",
    "tool",
    # Providers
    "Provider",
    "OpenAIProvider",
    "LocalProvider",
    "DummyProvider",
    "ReplayProvider",
    "ModelInfo",
    "ModelRegistry",
    # Recording
    "RecordedResponse",
    "ResponseRecorder",
    "load_records",
    # Messages
    "Role",
    "Message",
    "UserMessage",
    "SystemMessage",
    "AIMessage",
    "ToolMessage",
    "ResourceMessage",
    "ContentPart",
    "ContentPartType",
    "ToolCall",
    "StreamChunk",
    "StreamDelta",
    "ToolCallDelta",
    # Exceptions
    "AgentCoreError",
    "TemporaryError",
    "NonRetryableError",
    "ProviderError",
    "StreamingNotSupportedError",
    "ContextError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "ToolLoopExceededError",
    "ToolValidationError",
    "ToolExecutionError",
    "ProviderConfigurationError",
    "ModelNotFoundError",
    "InvalidModelInfoError",
    # Usage tracking
    "UsageStats",
    "AgentUsage",
]
