"""
Exception hierarchy for the execution core.

Provider failures fall into three buckets that callers can tell apart:

- ``TemporaryError``: a transient failure that survived every retry.
- ``NonRetryableError``: a fatal provider failure, surfaced on first sight.
- ``ContextError``: the caller cancelled or the deadline passed.

Tool-level failures (``ToolValidationError``, ``ToolExecutionError``) never end
a run; the agent loop turns them into tool messages. ``ToolLoopExceededError``
is raised by the loop itself when its iteration budget is spent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .agent.transcript import Transcript


class AgentCoreError(Exception):
    """Base exception for all agentcore errors."""

    pass


class TemporaryError(AgentCoreError):
    """
    Sentinel for transient failures (network blips, rate limits, 5xx).

    Adapters may raise it directly to mark an error as retryable. The retry
    loop also raises it, chained to the last underlying error, once every
    attempt has failed.
    """

    def __init__(
        self,
        message: str = "temporary error - retry recommended",
        error: Optional[BaseException] = None,
    ):
        self.error = error
        super().__init__(message)


class NonRetryableError(AgentCoreError):
    """Raised when a provider call fails with an error that must not be retried."""

    def __init__(self, error: BaseException):
        self.error = error
        super().__init__(f"non-retryable error: {type(error).__name__}: {error}")

    @property
    def status_code(self) -> Optional[int]:
        code = getattr(self.error, "status_code", None)
        return code if isinstance(code, int) else None


class ProviderError(AgentCoreError):
    """Raised when an adapter cannot complete a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class StreamingNotSupportedError(ProviderError):
    """Raised when a provider is asked to stream but has no streaming primitive."""


class ContextError(AgentCoreError):
    """Base class for cancellation and deadline errors. Never retried."""


class ContextCancelledError(ContextError):
    """Raised when the context was cancelled by the caller."""

    def __init__(self, message: str = "context cancelled"):
        super().__init__(message)


class DeadlineExceededError(ContextError):
    """Raised when the context deadline has passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class ToolLoopExceededError(AgentCoreError):
    """Raised when the agent loop hits its iteration cap without a final answer."""

    def __init__(self, max_iterations: int, transcript: Optional["Transcript"] = None):
        self.max_iterations = max_iterations
        self.transcript = transcript
        super().__init__(f"tool loop limit exceeded ({max_iterations} iterations)")


class ToolValidationError(AgentCoreError):
    """Raised when tool parameters are invalid."""

    def __init__(self, tool_name: str, param_name: str, issue: str, suggestion: str = ""):
        self.tool_name = tool_name
        self.param_name = param_name
        self.issue = issue
        self.suggestion = suggestion

        message = f"\n{'='*60}\n"
        message += f"❌ Tool Validation Error: '{tool_name}'\n"
        message += f"{'='*60}\n\n"
        message += f"Parameter: {param_name}\n"
        message += f"Issue: {issue}\n"
        if suggestion:
            message += f"\n💡 Suggestion: {suggestion}\n"
        message += f"\n{'='*60}\n"

        super().__init__(message)


class ToolExecutionError(AgentCoreError):
    """Raised when tool execution fails."""

    def __init__(self, tool_name: str, error: Exception, params: Dict[str, Any]):
        self.tool_name = tool_name
        self.error = error
        self.params = params

        message = f"\n{'='*60}\n"
        message += f"❌ Tool Execution Failed: '{tool_name}'\n"
        message += f"{'='*60}\n\n"
        message += f"Error: {type(error).__name__}: {str(error)}\n"
        message += f"Parameters: {params}\n"
        message += f"\n{'='*60}\n"

        super().__init__(message)


class ProviderConfigurationError(AgentCoreError):
    """Raised when provider configuration is incorrect."""

    def __init__(self, provider_name: str, missing_config: str, env_var: str = ""):
        self.provider_name = provider_name
        self.missing_config = missing_config
        self.env_var = env_var

        message = f"\n{'='*60}\n"
        message += f"❌ Provider Configuration Error: '{provider_name}'\n"
        message += f"{'='*60}\n\n"
        message += f"Missing: {missing_config}\n"
        if env_var:
            message += "\n💡 How to fix:\n"
            message += "  1. Set the environment variable:\n"
            message += f"     export {env_var}='your-api-key'\n"
            message += "  2. Or pass it directly:\n"
            message += f"     provider = {provider_name}Provider(api_key='your-api-key')\n"
        message += f"\n{'='*60}\n"

        super().__init__(message)


class ModelNotFoundError(AgentCoreError):
    """Raised when a model identifier is not registered."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"model not found: {identifier}")


class InvalidModelInfoError(AgentCoreError):
    """Raised when a model registration is missing required fields."""

    def __init__(self, field_name: str, issue: str):
        self.field_name = field_name
        self.issue = issue
        super().__init__(f"invalid model info ({field_name}): {issue}")


__all__ = [
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
]
