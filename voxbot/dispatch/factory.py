"""Builds commands from intent decisions."""

from loguru import logger

from voxbot.intent.types import CommandType, Entities, IntentDecision, NumberEntity, entity_text
from voxbot.pipeline.commands import (
    AddTaskCommand,
    CloseApplicationCommand,
    Command,
    ControlDeviceCommand,
    ListTasksCommand,
    OpenApplicationCommand,
    PlayMusicCommand,
    SearchWebCommand,
    SendMessageCommand,
    SetReminderCommand,
)


def _text(entities: Entities, *names: str) -> str:
    for name in names:
        value = entity_text(entities, name)
        if value:
            return value
    return ""


class CommandFactory:
    """Maps a confident IntentDecision onto its Command."""

    def __init__(self, minimum_confidence: float = 0.3):
        self.minimum_confidence = minimum_confidence

    def from_decision(self, decision: IntentDecision, bypass_cache: bool = False) -> Command | None:
        """
        Build a command for a decision.

        Returns:
            The command, or None for Unknown, low-confidence decisions and
            labels that have no command.
        """
        if decision.is_unknown:
            return None
        if decision.confidence < self.minimum_confidence:
            logger.info(
                f"Decision {decision.label.value} below minimum confidence "
                f"({decision.confidence:.2f} < {self.minimum_confidence:.2f})"
            )
            return None

        entities = decision.entities
        label = decision.label

        if label == CommandType.OPEN_APPLICATION:
            return OpenApplicationCommand(
                application_name=_text(entities, "applicationName"), bypass_cache=bypass_cache
            )
        if label == CommandType.CLOSE_APPLICATION:
            return CloseApplicationCommand(
                application_name=_text(entities, "applicationName"), bypass_cache=bypass_cache
            )
        if label == CommandType.PLAY_MUSIC:
            return PlayMusicCommand(
                track_name=_text(entities, "trackName", "query"),
                preferred_application=entity_text(entities, "preferredApplication")
                or entity_text(entities, "applicationName"),
                bypass_cache=bypass_cache,
            )
        if label == CommandType.SEARCH_WEB:
            return SearchWebCommand(
                query=_text(entities, "query"), language=decision.language, bypass_cache=bypass_cache
            )
        if label == CommandType.SEND_MESSAGE:
            return SendMessageCommand(
                recipient=_text(entities, "recipient"),
                message=_text(entities, "message"),
                bypass_cache=bypass_cache,
            )
        if label == CommandType.CONTROL_DEVICE:
            level = entities.get("level")
            return ControlDeviceCommand(
                device_name=_text(entities, "deviceName"),
                action=_text(entities, "action"),
                level=level.value if isinstance(level, NumberEntity) else None,
                bypass_cache=bypass_cache,
            )
        if label == CommandType.ADD_TASK:
            return AddTaskCommand(title=_text(entities, "title"), bypass_cache=bypass_cache)
        if label == CommandType.SET_REMINDER:
            return SetReminderCommand(
                message=_text(entities, "message"),
                when=entity_text(entities, "when"),
                bypass_cache=bypass_cache,
            )
        if label == CommandType.LIST_TASKS:
            return ListTasksCommand(bypass_cache=bypass_cache)

        logger.debug(f"No command for label {label.value}")
        return None
