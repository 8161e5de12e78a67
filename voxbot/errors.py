"""Shared error types for voxbot.

Goal: strategy and cache failures degrade locally; validation and handler
failures become result objects; only configuration errors escape as exceptions.
"""


class VoxbotError(Exception):
    """Base error for voxbot."""


class StrategyError(VoxbotError):
    """A classification strategy could not produce a vote."""


class CacheError(VoxbotError):
    """Cache backend failed (unavailable, corrupt payload, etc.)."""


class CommandValidationError(VoxbotError):
    """Command failed validation.

    Carries the field-level errors so callers that prefer exceptions over
    ``PipelineResult`` objects still get structured detail.
    """

    def __init__(self, errors: list) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Validation failed: {summary}")


class HandlerNotRegisteredError(VoxbotError, LookupError):
    """No handler is registered for a command type."""


class HandlerExecutionError(VoxbotError):
    """Handler threw while executing a command."""
