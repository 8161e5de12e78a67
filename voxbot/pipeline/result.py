"""Command outcome types."""

from pydantic import BaseModel, ConfigDict, Field

from voxbot.errors import CommandValidationError


class FieldError(BaseModel):
    """A single validation failure on one command field."""
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class PipelineResult(BaseModel):
    """
    Outcome of running a command through the pipeline.

    Immutable once produced. Serialized to JSON for the command cache.
    """
    model_config = ConfigDict(frozen=True)

    success: bool
    message: str = ""
    error: str | None = None
    validation_errors: tuple[FieldError, ...] = Field(default_factory=tuple)

    @classmethod
    def ok(cls, message: str = "") -> "PipelineResult":
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, error: str, message: str = "") -> "PipelineResult":
        return cls(success=False, message=message or error, error=error)

    @classmethod
    def invalid(cls, errors: list[FieldError]) -> "PipelineResult":
        """Failed result carrying field-level validation errors."""
        summary = "; ".join(f"{e.field}: {e.message}" for e in errors)
        return cls(
            success=False,
            message="Validation failed",
            error=summary,
            validation_errors=tuple(errors),
        )

    def errors_by_field(self) -> dict[str, list[str]]:
        """Validation messages grouped per field."""
        grouped: dict[str, list[str]] = {}
        for e in self.validation_errors:
            grouped.setdefault(e.field, []).append(e.message)
        return grouped

    def raise_for_validation(self) -> "PipelineResult":
        """Raise CommandValidationError if this result carries validation errors, else return self."""
        if self.validation_errors:
            raise CommandValidationError(list(self.validation_errors))
        return self
