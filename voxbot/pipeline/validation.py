"""Per-command validators and their registry."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from voxbot.intent.types import CommandType
from voxbot.pipeline.commands import (
    AddTaskCommand,
    CloseApplicationCommand,
    Command,
    ControlDeviceCommand,
    OpenApplicationCommand,
    PlayMusicCommand,
    SearchWebCommand,
    SendMessageCommand,
    SetReminderCommand,
)
from voxbot.pipeline.result import FieldError

C = TypeVar("C", bound=Command)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class Validator(ABC, Generic[C]):
    """Checks one command type and reports field-level violations."""

    command_type: CommandType

    @abstractmethod
    def validate(self, command: C) -> list[FieldError]:
        """
        Validate a command.

        Returns:
            Field errors; empty when the command is valid.
        """
        ...


class OpenApplicationValidator(Validator[OpenApplicationCommand]):
    command_type = CommandType.OPEN_APPLICATION

    def validate(self, command: OpenApplicationCommand) -> list[FieldError]:
        if _blank(command.application_name):
            return [FieldError(field="application_name", message="Application name cannot be empty")]
        if len(command.application_name.strip()) < 2:
            return [FieldError(field="application_name", message="Application name must be at least 2 characters")]
        return []


class CloseApplicationValidator(Validator[CloseApplicationCommand]):
    command_type = CommandType.CLOSE_APPLICATION

    def validate(self, command: CloseApplicationCommand) -> list[FieldError]:
        if _blank(command.application_name):
            return [FieldError(field="application_name", message="Application name cannot be empty")]
        return []


class PlayMusicValidator(Validator[PlayMusicCommand]):
    command_type = CommandType.PLAY_MUSIC

    def validate(self, command: PlayMusicCommand) -> list[FieldError]:
        if _blank(command.track_name):
            return [FieldError(field="track_name", message="Track name cannot be empty")]
        return []


class SearchWebValidator(Validator[SearchWebCommand]):
    command_type = CommandType.SEARCH_WEB

    def validate(self, command: SearchWebCommand) -> list[FieldError]:
        errors = []
        if _blank(command.query):
            errors.append(FieldError(field="query", message="Search query cannot be empty"))
        if command.results < 1:
            errors.append(FieldError(field="results", message="Result count must be at least 1"))
        return errors


class SendMessageValidator(Validator[SendMessageCommand]):
    command_type = CommandType.SEND_MESSAGE

    def validate(self, command: SendMessageCommand) -> list[FieldError]:
        errors = []
        if _blank(command.recipient):
            errors.append(FieldError(field="recipient", message="Recipient cannot be empty"))
        if _blank(command.message):
            errors.append(FieldError(field="message", message="Message cannot be empty"))
        return errors


class ControlDeviceValidator(Validator[ControlDeviceCommand]):
    command_type = CommandType.CONTROL_DEVICE

    def validate(self, command: ControlDeviceCommand) -> list[FieldError]:
        errors = []
        if _blank(command.device_name):
            errors.append(FieldError(field="device_name", message="Device name cannot be empty"))
        if _blank(command.action):
            errors.append(FieldError(field="action", message="Action cannot be empty"))
        if command.level is not None and not 0 <= command.level <= 100:
            errors.append(FieldError(field="level", message="Level must be between 0 and 100"))
        return errors


class AddTaskValidator(Validator[AddTaskCommand]):
    command_type = CommandType.ADD_TASK

    def validate(self, command: AddTaskCommand) -> list[FieldError]:
        if _blank(command.title):
            return [FieldError(field="title", message="Task title cannot be empty")]
        return []


class SetReminderValidator(Validator[SetReminderCommand]):
    command_type = CommandType.SET_REMINDER

    def validate(self, command: SetReminderCommand) -> list[FieldError]:
        if _blank(command.message):
            return [FieldError(field="message", message="Reminder message cannot be empty")]
        return []


class ValidatorRegistry:
    """Validators keyed by command type; a type may have several."""

    def __init__(self):
        self._validators: dict[CommandType, list[Validator]] = {}

    def register(self, validator: Validator) -> None:
        self._validators.setdefault(validator.command_type, []).append(validator)

    def get(self, command_type: CommandType) -> list[Validator]:
        return list(self._validators.get(command_type, ()))

    def validate(self, command: Command) -> list[FieldError]:
        """Run every validator for the command's type and collect all errors."""
        errors: list[FieldError] = []
        for validator in self._validators.get(command.command_type, ()):
            errors.extend(validator.validate(command))
        return errors

    def __contains__(self, command_type: CommandType) -> bool:
        return command_type in self._validators

    @classmethod
    def default(cls) -> "ValidatorRegistry":
        registry = cls()
        for validator in (
            OpenApplicationValidator(),
            CloseApplicationValidator(),
            PlayMusicValidator(),
            SearchWebValidator(),
            SendMessageValidator(),
            ControlDeviceValidator(),
            AddTaskValidator(),
            SetReminderValidator(),
        ):
            registry.register(validator)
        return registry
