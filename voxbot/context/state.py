"""Short-lived per-session conversation state."""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class HistoryEntry:
    """One recorded resolution: which rule fired, what was said, what it became."""
    rule: str
    input: str
    result: str
    timestamp: float


@dataclass
class ApplicationState:
    name: str
    is_open: bool
    last_used: float


@dataclass
class UserPreference:
    category: str
    value: str
    last_updated: float
    usage_count: int = 1


@dataclass
class ConversationState:
    """
    Memory for one session.

    History is a bounded ring buffer (oldest evicted first); entries older
    than ``retention_seconds`` are evicted on every write and by ``evict_expired``.
    """

    session_id: str
    history_size: int = 50
    retention_seconds: float = 1800.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    history: deque[HistoryEntry] = field(init=False)
    applications: dict[str, ApplicationState] = field(default_factory=dict)
    preferences: dict[str, UserPreference] = field(default_factory=dict)
    created_at: float = field(init=False)
    updated_at: float = field(init=False)

    def __post_init__(self) -> None:
        self.history = deque(maxlen=self.history_size)
        self.created_at = self.updated_at = self.clock()

    def _touch(self) -> float:
        now = self.clock()
        self.updated_at = now
        return now

    def record(self, rule: str, input_text: str, result: str) -> None:
        """Append a history entry, evicting the oldest beyond capacity."""
        now = self._touch()
        self.history.append(HistoryEntry(rule=rule, input=input_text, result=result, timestamp=now))
        self.evict_expired(now)

    def evict_expired(self, now: float | None = None) -> int:
        """Drop history entries older than the retention window."""
        now = self.clock() if now is None else now
        removed = 0
        while self.history and now - self.history[0].timestamp > self.retention_seconds:
            self.history.popleft()
            removed += 1
        return removed

    def recent(self, limit: int = 10) -> list[HistoryEntry]:
        """Most recent entries, oldest first."""
        if limit <= 0:
            return []
        return list(self.history)[-limit:]

    # ── Applications ────────────────────────────────────────────

    def set_application_state(self, name: str, is_open: bool) -> None:
        now = self._touch()
        key = name.lower()
        app = self.applications.get(key)
        if app is None:
            self.applications[key] = ApplicationState(name=key, is_open=is_open, last_used=now)
        else:
            app.is_open = is_open
            app.last_used = now

    def is_application_open(self, name: str) -> bool:
        app = self.applications.get(name.lower())
        return app is not None and app.is_open

    def open_applications(self) -> list[str]:
        """Open applications, most recently used first."""
        apps = [a for a in self.applications.values() if a.is_open]
        apps.sort(key=lambda a: a.last_used, reverse=True)
        return [a.name for a in apps]

    # ── Preferences ─────────────────────────────────────────────

    def set_preference(self, category: str, value: str) -> None:
        now = self._touch()
        pref = self.preferences.get(category)
        if pref is None:
            self.preferences[category] = UserPreference(category=category, value=value, last_updated=now)
        else:
            pref.value = value
            pref.last_updated = now
            pref.usage_count += 1

    def preference(self, category: str) -> str | None:
        pref = self.preferences.get(category)
        return pref.value if pref else None

    def describe(self) -> str:
        """One-line summary of open apps, preferences and recent history."""
        parts = []
        open_apps = self.open_applications()
        if open_apps:
            parts.append(f"Open applications: {', '.join(open_apps)}")
        if self.preferences:
            prefs = ", ".join(f"{p.category}: {p.value}" for p in self.preferences.values())
            parts.append(f"Preferences: {prefs}")
        recent = self.recent(5)
        if recent:
            parts.append("Recent: " + ", ".join(f"{h.input} -> {h.result}" for h in recent))
        return " | ".join(parts)
