"""codeagent exception hierarchy.

All codeagent-specific exceptions inherit from CodeAgentError,
enabling structured error handling and cleaner catch clauses.
"""


class CodeAgentError(Exception):
    """Base exception for all codeagent errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ProviderError(CodeAgentError):
    """Error communicating with an LLM provider."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class ToolError(CodeAgentError):
    """Error dispatching a tool call."""


class SchemaValidationError(ToolError):
    """Tool arguments do not match the tool's parameter schema."""


class ToolNotFoundError(ToolError):
    """The model requested a tool that is not registered."""


class SandboxError(CodeAgentError):
    """Error talking to the sandbox environment."""


class CommandFailedError(SandboxError):
    """A sandbox command failed. Carries whatever output was buffered."""

    def __init__(
        self,
        message: str = "",
        *,
        stdout: str = "",
        stderr: str = "",
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code


class StepFailedError(CodeAgentError):
    """A durable step recorded a failure and the caller asked to unwrap it."""

    def __init__(self, step_name: str, error_type: str, message: str) -> None:
        super().__init__(f"step {step_name!r} failed: {error_type}: {message}")
        self.step_name = step_name
        self.error_type = error_type


class RouterError(CodeAgentError):
    """The network router selected an agent outside the network."""


class ConfigError(CodeAgentError):
    """Invalid or missing configuration."""


class PersistenceError(CodeAgentError):
    """Error writing run artifacts to the store."""
