"""Conversation state and the context adjuster."""

from voxbot.context.adjuster import PASSTHROUGH, ContextAdjuster
from voxbot.context.state import ApplicationState, ConversationState, HistoryEntry, UserPreference
from voxbot.context.store import ConversationStore

__all__ = [
    "PASSTHROUGH",
    "ApplicationState",
    "ContextAdjuster",
    "ConversationState",
    "ConversationStore",
    "HistoryEntry",
    "UserPreference",
]
