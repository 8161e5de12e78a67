"""Command handler contract and registry."""

import json
from abc import ABC, abstractmethod
from collections import deque

from voxbot.errors import HandlerNotRegisteredError
from voxbot.intent.types import CommandType
from voxbot.pipeline.commands import COMMANDS, Command
from voxbot.pipeline.result import PipelineResult


class Handler(ABC):
    """
    Executes one command type's domain action.

    Handlers return a PipelineResult for expected outcomes and raise for
    unexpected ones; the dispatcher turns raised errors into failed results.
    """

    command_type: CommandType

    @abstractmethod
    async def handle(self, command: Command) -> PipelineResult:
        ...


class HandlerRegistry:
    """One handler per command type."""

    def __init__(self):
        self._handlers: dict[CommandType, Handler] = {}

    def register(self, handler: Handler) -> None:
        """Register a handler, replacing any existing one for its type."""
        self._handlers[handler.command_type] = handler

    def unregister(self, command_type: CommandType) -> None:
        self._handlers.pop(command_type, None)

    def get(self, command_type: CommandType) -> Handler | None:
        return self._handlers.get(command_type)

    def require(self, command_type: CommandType) -> Handler:
        handler = self._handlers.get(command_type)
        if handler is None:
            raise HandlerNotRegisteredError(f"No handler registered for {command_type.value}")
        return handler

    def has(self, command_type: CommandType) -> bool:
        return command_type in self._handlers

    def __contains__(self, command_type: CommandType) -> bool:
        return self.has(command_type)

    @property
    def command_types(self) -> list[CommandType]:
        return list(self._handlers)

    @classmethod
    def dry_run(cls) -> "HandlerRegistry":
        """A registry with a DryRunHandler for every known command."""
        registry = cls()
        for command_type in COMMANDS:
            registry.register(DryRunHandler(command_type))
        return registry


class DryRunHandler(Handler):
    """Reports what would have been done without touching the system.

    Only the last ``history_size`` commands are kept in ``handled``.
    """

    def __init__(self, command_type: CommandType, history_size: int = 100):
        self.command_type = command_type
        self.handled: deque[Command] = deque(maxlen=history_size)

    async def handle(self, command: Command) -> PipelineResult:
        self.handled.append(command)
        params = json.dumps(command.parameters, ensure_ascii=False, default=str)
        return PipelineResult.ok(f"[dry-run] {command.command_type.value} {params}")
