"""Structured commands produced from intent decisions."""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from voxbot.intent.types import CommandType


class Command(BaseModel):
    """
    Base for every command that can run through the pipeline.

    Subclasses declare their caching behaviour with class attributes:
    ``cache_group`` and ``cache_ttl`` (seconds) for cacheable commands,
    ``invalidates`` for commands whose success makes cached groups stale.
    A command is cacheable only if ``cache_key`` returns a key.
    """
    model_config = ConfigDict(frozen=True)

    command_type: ClassVar[CommandType] = CommandType.UNKNOWN
    cache_group: ClassVar[str | None] = None
    cache_ttl: ClassVar[float | None] = None
    invalidates: ClassVar[tuple[str, ...]] = ()

    bypass_cache: bool = False

    @property
    def cache_key(self) -> str | None:
        return None

    @property
    def cache_group_key(self) -> str | None:
        return self.cache_group

    @property
    def sliding_expiration(self) -> float | None:
        return self.cache_ttl

    @property
    def invalidates_groups(self) -> tuple[str, ...]:
        return self.invalidates

    @property
    def parameters(self) -> dict[str, Any]:
        return self.model_dump(exclude={"bypass_cache"})

    @property
    def name(self) -> str:
        return type(self).__name__


class OpenApplicationCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.OPEN_APPLICATION
    cache_group: ClassVar[str | None] = "ApplicationCommands"
    cache_ttl: ClassVar[float | None] = 300.0

    application_name: str

    @property
    def cache_key(self) -> str | None:
        return f"OpenApplication-{self.application_name}"


class CloseApplicationCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.CLOSE_APPLICATION
    invalidates: ClassVar[tuple[str, ...]] = ("ApplicationCommands",)

    application_name: str


class PlayMusicCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.PLAY_MUSIC

    track_name: str
    preferred_application: str | None = None


class SearchWebCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.SEARCH_WEB
    cache_group: ClassVar[str | None] = "SearchCommands"
    cache_ttl: ClassVar[float | None] = 180.0

    query: str
    language: str = "en"
    results: int = 5

    @property
    def cache_key(self) -> str | None:
        return f"SearchWeb-{self.query}-{self.language}-{self.results}"


class SendMessageCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.SEND_MESSAGE

    recipient: str
    message: str


class ControlDeviceCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.CONTROL_DEVICE

    device_name: str
    action: str
    level: float | None = None


class AddTaskCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.ADD_TASK
    invalidates: ClassVar[tuple[str, ...]] = ("TaskCommands",)

    title: str


class SetReminderCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.SET_REMINDER
    invalidates: ClassVar[tuple[str, ...]] = ("TaskCommands",)

    message: str
    when: str | None = None


class ListTasksCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.LIST_TASKS
    cache_group: ClassVar[str | None] = "TaskCommands"
    cache_ttl: ClassVar[float | None] = 60.0

    @property
    def cache_key(self) -> str | None:
        return "ListTasks"


COMMANDS: dict[CommandType, type[Command]] = {
    cls.command_type: cls
    for cls in (
        OpenApplicationCommand,
        CloseApplicationCommand,
        PlayMusicCommand,
        SearchWebCommand,
        SendMessageCommand,
        ControlDeviceCommand,
        AddTaskCommand,
        SetReminderCommand,
        ListTasksCommand,
    )
}
