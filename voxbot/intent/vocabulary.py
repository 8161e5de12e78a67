"""Shared vocabulary, normalization and entity extraction for English and Turkish utterances."""

import re

from voxbot.intent.types import CommandType, Entities, NumberEntity, TextEntity

KNOWN_APPLICATIONS = (
    "visual studio code", "apple music", "youtube music",
    "spotify", "chrome", "firefox", "notepad", "word", "excel", "vlc",
    "calculator", "edge", "safari", "youtube", "slack", "discord",
    "outlook", "teams", "terminal", "vscode",
)

MUSIC_APPLICATIONS = ("spotify", "apple music", "youtube music", "youtube", "vlc")
BROWSERS = ("chrome", "firefox", "edge", "safari")

OPEN_VERBS = ("open", "launch", "start", "run", "aç", "başlat", "çalıştır")
CLOSE_VERBS = ("close", "quit", "exit", "kill", "shut down", "kapat", "sonlandır")
PLAY_VERBS = ("play", "çal", "oynat")

MUSIC_VOCABULARY = (
    "music", "song", "track", "album", "playlist", "artist", "radio", "spotify",
    "müzik", "şarkı", "albüm", "çalma listesi", "sanatçı",
)

# Prefix-matched words that mark an explicit "open the application" request.
APP_MARKERS = ("application", "app", "program", "uygulama")

VOLUME_WORDS = ("volume", "ses")
BROWSER_WORDS = ("browser", "web", "tarayıcı")

DEVICES = ("volume", "brightness", "wifi", "wi-fi", "bluetooth", "screen", "ses", "parlaklık", "ekran")
DEVICE_ACTIONS = {
    "up": "increase", "increase": "increase", "raise": "increase", "louder": "increase", "artır": "increase", "aç": "on",
    "down": "decrease", "decrease": "decrease", "lower": "decrease", "quieter": "decrease", "azalt": "decrease",
    "on": "on", "enable": "on", "off": "off", "disable": "off", "kapat": "off",
    "mute": "mute", "unmute": "unmute", "sessiz": "mute",
}

_FILLER = {"some", "me", "a", "the", "please", "for", "biraz", "lütfen"}
_PUNCTUATION = re.compile(r"[.,!?;:\"“”()]+")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str, language: str = "en") -> str:
    """Lowercase, strip punctuation and collapse whitespace (Turkish-aware casing)."""
    if not text:
        return ""
    if language.lower().startswith("tr"):
        text = text.replace("I", "ı").replace("İ", "i")
    text = _PUNCTUATION.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def has_keyword(text: str, keyword: str) -> bool:
    """True if ``keyword`` starts a word in ``text`` (tolerates suffixes like "kapatır")."""
    return re.search(rf"(?<!\w){re.escape(keyword)}", text) is not None


def has_word(text: str, word: str) -> bool:
    """True if ``word`` appears as a whole word in ``text``."""
    return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text) is not None


def has_any_keyword(text: str, keywords: tuple[str, ...] | list[str]) -> bool:
    return any(has_keyword(text, k) for k in keywords)


def find_application(text: str, candidates: tuple[str, ...] = KNOWN_APPLICATIONS) -> str | None:
    """Return the first known application named in ``text`` (longest names win)."""
    for app in sorted(candidates, key=len, reverse=True):
        if has_keyword(text, app):
            return app
    return None


def has_music_vocabulary(text: str) -> bool:
    return has_any_keyword(text, MUSIC_VOCABULARY)


def has_app_open_vocabulary(text: str) -> bool:
    """Explicit "open the app" phrasing, e.g. "spotify uygulamasını" or "spotify'ı aç"."""
    if has_word(text, "app") or any(has_keyword(text, m) for m in APP_MARKERS if m != "app"):
        return True
    return any(re.search(rf"(?<!\w){re.escape(app)}'", text) for app in KNOWN_APPLICATIONS)


def _text_after(text: str, verbs: tuple[str, ...]) -> str | None:
    for verb in verbs:
        match = re.search(rf"(?<!\w){re.escape(verb)}\w*\s+(.+)$", text)
        if match:
            return match.group(1).strip()
    return None


def _strip_filler(words: str) -> str:
    parts = [w for w in words.split() if w not in _FILLER]
    return " ".join(parts).strip()


def extract_track(text: str) -> str | None:
    rest = _text_after(text, ("play",))
    if rest is None:
        # Turkish is verb-final: "tarkan şarkısı çal"
        match = re.search(r"^(.+?)\s+(?:çal|oynat)\w*$", text)
        rest = match.group(1) if match else None
    if not rest:
        return None
    rest = re.sub(r"\s+(?:on|in|with)\s+(?:" + "|".join(re.escape(a) for a in MUSIC_APPLICATIONS) + r")$", "", rest)
    rest = _strip_filler(rest)
    return rest or None


def extract_query(text: str) -> str | None:
    rest = _text_after(text, ("search for", "search", "google", "look up", "find"))
    if rest is None:
        match = re.search(r"^(.+?)\s+(?:ara|araştır|bul)\w*$", text)
        rest = match.group(1) if match else None
    if not rest:
        return None
    rest = re.sub(r"^(?:for|on google|on the web)\s+", "", rest)
    rest = re.sub(r"\s+(?:on google|on the web|online)$", "", rest)
    return rest.strip() or None


def extract_message(text: str) -> tuple[str | None, str | None]:
    """Return (recipient, message) from phrasing like "send a message to ali saying hi"."""
    recipient = None
    message = None
    match = re.search(r"(?<!\w)(?:to|tell)\s+(\w+)", text)
    if match:
        recipient = match.group(1)
    match = re.search(r"(?<!\w)(?:saying|that)\s+(.+)$", text)
    if match:
        message = match.group(1).strip()
    return recipient, message


def extract_device(text: str) -> tuple[str | None, str | None, float | None]:
    """Return (device, action, level) from phrasing like "set volume to 40"."""
    device = next((d for d in DEVICES if has_keyword(text, d)), None)
    action = None
    for word, canonical in DEVICE_ACTIONS.items():
        if has_word(text, word):
            action = canonical
            break
    level = extract_level(text)
    if action is None and level is not None:
        action = "set"
    return device, action, level


def extract_level(text: str) -> float | None:
    """A 0-100 level ("40", "40%", "%40"), or None."""
    match = re.search(r"%?(\d{1,3})%?", text)
    if not match:
        return None
    level = int(match.group(1))
    return float(level) if 0 <= level <= 100 else None


def extract_entities(text: str, label: CommandType) -> Entities:
    """Best-effort entity extraction for a label from normalized text."""
    entities: Entities = {}

    if label in (CommandType.OPEN_APPLICATION, CommandType.CLOSE_APPLICATION):
        app = find_application(text)
        if app:
            entities["applicationName"] = TextEntity(app)

    elif label == CommandType.PLAY_MUSIC:
        track = extract_track(text)
        if track:
            entities["trackName"] = TextEntity(track)
        app = find_application(text, MUSIC_APPLICATIONS)
        if app:
            entities["applicationName"] = TextEntity(app)

    elif label == CommandType.SEARCH_WEB:
        query = extract_query(text)
        if query:
            entities["query"] = TextEntity(query)

    elif label == CommandType.SEND_MESSAGE:
        recipient, message = extract_message(text)
        if recipient:
            entities["recipient"] = TextEntity(recipient)
        if message:
            entities["message"] = TextEntity(message)

    elif label == CommandType.CONTROL_DEVICE:
        device, action, level = extract_device(text)
        if device:
            entities["deviceName"] = TextEntity(device)
        if action:
            entities["action"] = TextEntity(action)
        if level is not None:
            entities["level"] = NumberEntity(level)

    elif label == CommandType.ADD_TASK:
        title = _text_after(text, ("add task", "new task", "todo"))
        if title:
            entities["title"] = TextEntity(_strip_filler(title.removeprefix("to ")))

    elif label == CommandType.SET_REMINDER:
        match = re.search(r"remind me (?:to |about )?(.+?)(?:\s+(at|in|on|tomorrow)\b\s*(.*))?$", text)
        if match:
            entities["message"] = TextEntity(match.group(1).strip())
            if match.group(2):
                when = f"{match.group(2)} {match.group(3)}".strip()
                entities["when"] = TextEntity(when)

    return entities
