"""Command execution pipeline."""

from voxbot.pipeline.builder import Pipeline, PipelineBuilder
from voxbot.pipeline.commands import COMMANDS, Command
from voxbot.pipeline.result import FieldError, PipelineResult
from voxbot.pipeline.stages import (
    CacheInvalidationStage,
    CachingStage,
    LoggingStage,
    PerformanceStage,
    Stage,
    ValidationStage,
)
from voxbot.pipeline.validation import Validator, ValidatorRegistry

__all__ = [
    "COMMANDS",
    "CacheInvalidationStage",
    "CachingStage",
    "Command",
    "FieldError",
    "LoggingStage",
    "PerformanceStage",
    "Pipeline",
    "PipelineBuilder",
    "PipelineResult",
    "Stage",
    "ValidationStage",
    "Validator",
    "ValidatorRegistry",
]
