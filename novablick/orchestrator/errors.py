class AgentInvocationError(RuntimeError):
    """Fatal failure of one orchestration run."""


class LLMInvocationError(AgentInvocationError):
    """Raised when a provider call fails or returns unusable structured output."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class EventStreamClosedError(RuntimeError):
    """Raised when an event is emitted after the stream was closed."""
