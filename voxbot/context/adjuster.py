"""Context-aware post-processing of ensemble decisions."""

from dataclasses import replace
from typing import Callable

from loguru import logger

from voxbot.context.state import ConversationState
from voxbot.context.store import ConversationStore
from voxbot.intent.types import CommandType, IntentDecision, TextEntity, entity_text
from voxbot.intent.vocabulary import (
    BROWSER_WORDS,
    BROWSERS,
    CLOSE_VERBS,
    MUSIC_APPLICATIONS,
    OPEN_VERBS,
    PLAY_VERBS,
    VOLUME_WORDS,
    extract_entities,
    extract_level,
    find_application,
    has_any_keyword,
    has_app_open_vocabulary,
    has_music_vocabulary,
    normalize_text,
)

Rule = Callable[[IntentDecision, ConversationState, str], IntentDecision | None]

PASSTHROUGH = "passthrough"


class ContextAdjuster:
    """
    Rewrites a decision using the session's conversation state.

    Rules run top to bottom and the first one that returns a decision wins;
    otherwise the decision passes through unchanged. Every call then records
    ``(rule, input, label)`` into the state and learns user preferences.
    """

    OPEN_CONFIDENCE = 0.9
    PLAY_CONFIDENCE = 0.85
    CLOSE_CONFIDENCE = 0.9

    def __init__(
        self,
        store: ConversationStore,
        recent_window: int = 10,
        preference_bonus: float = 0.1,
    ):
        self.store = store
        self.recent_window = recent_window
        self.preference_bonus = preference_bonus
        self.rules: list[tuple[str, Rule]] = [
            ("open_application", self._open_application),
            ("play_music", self._play_music),
            ("close_application", self._close_application),
            ("music_preference", self._music_preference),
        ]

    async def adjust(self, decision: IntentDecision, session_id: str) -> IntentDecision:
        """Adjust a decision under the session's lock."""
        async with self.store.session(session_id) as state:
            return self.apply(decision, state)

    def apply(self, decision: IntentDecision, state: ConversationState) -> IntentDecision:
        """
        Run the rules against ``state`` and record the outcome.

        Args:
            decision: Ensemble decision.
            state: The session's conversation state (caller holds its lock).

        Returns:
            The adjusted decision, or ``decision`` itself if no rule matched.
        """
        text = normalize_text(decision.original_text, decision.language)
        result = decision
        fired = PASSTHROUGH

        for name, rule in self.rules:
            adjusted = rule(decision, state, text)
            if adjusted is not None:
                result = replace(adjusted, adjusted_by=name)
                fired = name
                break

        if fired != PASSTHROUGH:
            logger.info(
                f"Context rule {fired}: {decision.label.value} ({decision.confidence:.2f}) "
                f"-> {result.label.value} ({result.confidence:.2f})"
            )

        state.record(fired, decision.original_text, result.label.value)
        self._learn_preferences(text, result, state)
        return result

    # ── Rules ───────────────────────────────────────────────────

    def _open_application(
        self, decision: IntentDecision, state: ConversationState, text: str
    ) -> IntentDecision | None:
        if not has_any_keyword(text, OPEN_VERBS):
            return None
        app = find_application(text) or self._application_from_state(state)
        if app is None:
            return None
        return replace(
            decision,
            label=CommandType.OPEN_APPLICATION,
            confidence=max(decision.confidence, self.OPEN_CONFIDENCE),
            entities={"applicationName": TextEntity(app)},
        )

    def _play_music(
        self, decision: IntentDecision, state: ConversationState, text: str
    ) -> IntentDecision | None:
        if not has_any_keyword(text, PLAY_VERBS):
            return None
        if not (has_music_vocabulary(text) or self._music_in_state(state)):
            return None
        if has_app_open_vocabulary(text):
            return None
        if decision.label == CommandType.PLAY_MUSIC:
            entities = dict(decision.entities)
        else:
            entities = extract_entities(text, CommandType.PLAY_MUSIC)
        return replace(
            decision,
            label=CommandType.PLAY_MUSIC,
            confidence=max(decision.confidence, self.PLAY_CONFIDENCE),
            entities=entities,
        )

    def _close_application(
        self, decision: IntentDecision, state: ConversationState, text: str
    ) -> IntentDecision | None:
        if not has_any_keyword(text, CLOSE_VERBS):
            return None
        open_apps = state.open_applications()
        if not open_apps:
            return None
        target = find_application(text) or open_apps[0]
        return replace(
            decision,
            label=CommandType.CLOSE_APPLICATION,
            confidence=max(decision.confidence, self.CLOSE_CONFIDENCE),
            entities={"applicationName": TextEntity(target)},
        )

    def _music_preference(
        self, decision: IntentDecision, state: ConversationState, text: str
    ) -> IntentDecision | None:
        if decision.label != CommandType.PLAY_MUSIC:
            return None
        preferred = state.preference("preferred_music_app")
        if not preferred:
            return None
        entities = dict(decision.entities)
        entities["preferredApplication"] = TextEntity(preferred)
        return replace(
            decision,
            confidence=min(decision.confidence + self.preference_bonus, 1.0),
            entities=entities,
        )

    # ── State lookups ───────────────────────────────────────────

    def _application_from_state(self, state: ConversationState) -> str | None:
        for entry in reversed(state.recent(self.recent_window)):
            app = find_application(normalize_text(entry.input))
            if app:
                return app
        open_apps = state.open_applications()
        return open_apps[0] if open_apps else None

    def _music_in_state(self, state: ConversationState) -> bool:
        if state.preference("preferred_music_app"):
            return True
        return any(
            entry.result == CommandType.PLAY_MUSIC.value or has_music_vocabulary(normalize_text(entry.input))
            for entry in state.recent(self.recent_window)
        )

    # ── Preference learning ─────────────────────────────────────

    def _learn_preferences(self, text: str, decision: IntentDecision, state: ConversationState) -> None:
        if has_any_keyword(text, VOLUME_WORDS):
            level = extract_level(text)
            if level is not None:
                state.set_preference("volume", str(int(level)))

        if decision.label == CommandType.PLAY_MUSIC or has_music_vocabulary(text):
            named = entity_text(decision.entities, "applicationName")
            app = named if named in MUSIC_APPLICATIONS else find_application(text, MUSIC_APPLICATIONS)
            if app:
                state.set_preference("preferred_music_app", app)

        if decision.label == CommandType.SEARCH_WEB or has_any_keyword(text, BROWSER_WORDS):
            browser = find_application(text, BROWSERS)
            if browser:
                state.set_preference("preferred_browser", browser)
