"""Routes commands to their handler through the execution pipeline."""

from loguru import logger

from voxbot.dispatch.handlers import HandlerRegistry
from voxbot.errors import HandlerExecutionError
from voxbot.pipeline.builder import PipelineBuilder
from voxbot.pipeline.commands import Command
from voxbot.pipeline.result import PipelineResult


class CommandDispatcher:
    """
    Dispatches a command to its registered handler.

    A fresh pipeline is built for every call. A missing handler raises
    HandlerNotRegisteredError; any other failure comes back as a failed
    PipelineResult.
    """

    def __init__(self, handlers: HandlerRegistry, pipeline: PipelineBuilder):
        self.handlers = handlers
        self.pipeline = pipeline

    async def dispatch(self, command: Command) -> PipelineResult:
        handler = self.handlers.require(command.command_type)
        chain = self.pipeline.build(handler.handle)
        try:
            return await chain(command)
        except Exception as e:
            error = HandlerExecutionError(f"{command.name} failed: {type(e).__name__}: {e}")
            logger.error(str(error))
            return PipelineResult.fail(str(error))
