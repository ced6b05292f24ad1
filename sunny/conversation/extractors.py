"""
Slot extractors: one small, pure function per field.

Every extractor takes the raw utterance and returns a value or None. None
means "not found"; extractors never raise. The orchestrator runs the whole
``SLOT_EXTRACTORS`` registry over each message and hands the hits to the
slot manager for validation and merging.

``ANSWER_EXTRACTORS`` are looser fallbacks used only for the field the
previous reply asked about ("John Smith" is a name when we just asked for
one, and nothing in particular otherwise).
"""

import re
from typing import Callable, Optional

from sunny.schemas.conversation_schema import SlotValue
from sunny.utils import normalize_phone

Extractor = Callable[[str], Optional[SlotValue]]

MONTH_NAMES = {
    "jan": "January", "january": "January",
    "feb": "February", "february": "February",
    "mar": "March", "march": "March",
    "apr": "April", "april": "April",
    "may": "May",
    "jun": "June", "june": "June",
    "jul": "July", "july": "July",
    "aug": "August", "august": "August",
    "sep": "September", "sept": "September", "september": "September",
    "oct": "October", "october": "October",
    "nov": "November", "november": "November",
    "dec": "December", "december": "December",
}

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

STREET_TYPES = (
    "street|st|avenue|ave|road|rd|drive|dr|lane|ln|boulevard|blvd|"
    "court|ct|way|circle|cir|place|pl"
)

# Words that can follow "I am" / "this is" without being a name.
NAME_STOPWORDS = {
    "a", "an", "the", "about", "asking", "available", "calling", "fine", "free",
    "going", "good", "here", "hoping", "in", "interested", "it", "just", "looking",
    "not", "ok", "okay", "on", "really", "so", "sure", "that", "there", "trying",
    "very", "wondering", "what", "who", "how", "when", "where", "why", "yes", "no",
    "hi", "hello", "hey", "thanks", "please", "booking", "actually",
    "great", "perfect", "urgent", "awesome", "amazing", "wonderful", "excellent",
    "happy", "glad", "excited", "curious", "ready", "busy", "sorry", "worried",
    "concerned", "confused", "unsure", "important", "correct", "right", "wrong",
    "also", "still", "quite", "pretty", "new", "done",
}
NAME_TERMINATORS = {
    "and", "at", "from", "with", "for", "calling", "here", "in", "on", "to",
    "my", "i", "but", "so", "the", "please", "looking", "about",
}

_PANEL_COUNT = re.compile(r"(?<![\d.])(-?\d+(?:\.\d+)?)\s*(?:solar\s+)?panels?\b")
_BARE_NUMBER = re.compile(r"(?<![\d.])-?\d+(?:\.\d+)?(?![\d.])")
_PHONE = re.compile(r"(?<!\d)(?:\+?1[\s.-]?)?(\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4})(?!\d)")
_EMAIL = re.compile(r"[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}")
_NAME = re.compile(r"\b(?:my name is|this is|i am|i'm)\s+([a-z][a-z'-]*(?:\s+[a-z][a-z'-]*){0,3})")
_ADDRESS = re.compile(
    r"\b\d{1,6}\s+(?:(?:[a-z][a-z.'-]*|\d+(?:st|nd|rd|th))\s+){1,5}?"
    rf"(?:{STREET_TYPES})\b\.?"
    r"(?:,\s*[a-z]+(?:\s+[a-z]+){0,2}(?=\s*(?:,|\.|$)))?"
    r"(?:,\s*[a-z]{2}\b(?:\s+\d{5})?)?",
    re.IGNORECASE,
)
_SLASH_DATE = re.compile(r"(?<![\d/])(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?(?![\d/])")
_LONG_DATE = re.compile(
    r"\b(" + "|".join(sorted(MONTH_NAMES, key=len, reverse=True)) + r")\.?\s+"
    r"(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s*(\d{4})\b)?"
)
_WEEKDAY = re.compile(r"\b(" + "|".join(WEEKDAY_NAMES) + r")s?\b")
_TIME_MERIDIEM = re.compile(r"(?<![\d/:.-])(\d{1,2})(?::([0-5]\d))?\s*([ap])\.?\s?m\b\.?")
_TIME_24H = re.compile(r"(?<![\d/:.-])([01]?\d|2[0-3]):([0-5]\d)(?![\d:])")
_BARE_HOUR = re.compile(r"^(?:at\s+|around\s+|about\s+)?(\d{1,2})(?::([0-5]\d))?$")
_CONTACT_CALL = re.compile(r"\b(call|calling|phone call|by phone|ring me)\b")
_CONTACT_TEXT = re.compile(r"\b(text|texting|sms|message me)\b")
_CALLBACK_WINDOW = re.compile(
    r"\b(morning|afternoon|evening|tonight|today|tomorrow|anytime|any time|weekday|weekend)s?\b"
)
_REFUSAL = re.compile(
    r"\b(don't know|do not know|dont know|not sure|no idea|can't provide|cannot provide|"
    r"prefer not|rather not)\b"
)
_CORRECTION = re.compile(r"\b(actually|correction|i meant|change it to|make that|make it)\b")

LOCATION_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("ground_mount", re.compile(r"\bground\b")),
    ("second_story_roof", re.compile(r"\b(second|2nd|two|2)[\s-]*(story|storey|floor|level)\b")),
    ("first_story_roof", re.compile(r"\b(first|1st|one|single|1)[\s-]*(story|storey|floor|level)\b")),
    ("roof", re.compile(r"\broof(top)?s?\b")),
]


def _normalize(text: str) -> str:
    return (text or "").replace("’", "'").lower().strip()


def is_refusal(text: str) -> bool:
    """True when the user declines to give a value ("not sure", "prefer not")."""
    return _REFUSAL.search(_normalize(text)) is not None


def is_correction(text: str) -> bool:
    """True when the user is explicitly changing something they said earlier."""
    return _CORRECTION.search(_normalize(text)) is not None


def extract_panel_count(text: str) -> Optional[int]:
    """First number immediately preceding "panel(s)".

    Decimals and negatives are reported as not found so the field stays
    missing and gets re-prompted.
    """
    match = _PANEL_COUNT.search(_normalize(text))
    if not match:
        return None
    raw = match.group(1)
    if "." in raw or raw.startswith("-"):
        return None
    return int(raw)


def extract_phone(text: str) -> Optional[str]:
    match = _PHONE.search(text or "")
    if not match:
        return None
    return normalize_phone(match.group(1))


def extract_email(text: str) -> Optional[str]:
    match = _EMAIL.search(_normalize(text))
    return match.group(0).rstrip(".") if match else None


def _clean_name(words: list[str]) -> Optional[str]:
    kept: list[str] = []
    for word in words:
        if word in NAME_TERMINATORS:
            break
        kept.append(word)
    if not kept or kept[0] in NAME_STOPWORDS:
        return None
    return " ".join(w.capitalize() for w in kept)


def extract_client_name(text: str) -> Optional[str]:
    """Name from a self-introduction ("my name is", "this is", "I am")."""
    match = _NAME.search(_normalize(text))
    if not match:
        return None
    return _clean_name(match.group(1).split())


def extract_address(text: str) -> Optional[str]:
    """House number followed by a street name ending in a street type."""
    match = _ADDRESS.search(text or "")
    if not match:
        return None
    return match.group(0).strip().rstrip(".,")


def extract_requested_date(text: str) -> Optional[str]:
    """Slash date, then long month-name date, then bare weekday."""
    lower = _normalize(text)

    slash = _SLASH_DATE.search(lower)
    if slash:
        month, day = int(slash.group(1)), int(slash.group(2))
        if 1 <= month <= 12 and 1 <= day <= 31:
            return slash.group(0)

    long_date = _LONG_DATE.search(lower)
    if long_date:
        day = int(long_date.group(2))
        if 1 <= day <= 31:
            value = f"{MONTH_NAMES[long_date.group(1)]} {day}"
            if long_date.group(3):
                value += f", {long_date.group(3)}"
            return value

    weekday = _WEEKDAY.search(lower)
    if weekday:
        return weekday.group(1).capitalize()
    return None


def _to_24h(hour: int, minute: int, meridiem: Optional[str]) -> Optional[str]:
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        if meridiem == "a":
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
    elif not 0 <= hour <= 23:
        return None
    return f"{hour:02d}:{minute:02d}"


def extract_time(text: str) -> Optional[str]:
    """``H[:MM]am/pm`` or ``HH:MM`` normalized to zero-padded 24-hour time."""
    lower = _normalize(text)
    match = _TIME_MERIDIEM.search(lower)
    if match:
        return _to_24h(int(match.group(1)), int(match.group(2) or 0), match.group(3))
    match = _TIME_24H.search(lower)
    if match:
        return _to_24h(int(match.group(1)), int(match.group(2)), None)
    if re.search(r"\bnoon\b", lower):
        return "12:00"
    if re.search(r"\bmidnight\b", lower):
        return "00:00"
    return None


def extract_location(text: str) -> Optional[str]:
    lower = _normalize(text)
    for value, pattern in LOCATION_PATTERNS:
        if pattern.search(lower):
            return value
    return None


def extract_contact_method(text: str) -> Optional[str]:
    """"call" when calling is mentioned at all, else "text"."""
    lower = _normalize(text)
    if _CONTACT_CALL.search(lower):
        return "call"
    if _CONTACT_TEXT.search(lower):
        return "text"
    return None


def extract_callback_window(text: str) -> Optional[str]:
    """The whole utterance, when it mentions a time of day or a relative day."""
    if _CALLBACK_WINDOW.search(_normalize(text)):
        return (text or "").strip()
    return None


SLOT_EXTRACTORS: dict[str, Extractor] = {
    "panel_count": extract_panel_count,
    "client_name": extract_client_name,
    "phone": extract_phone,
    "email": extract_email,
    "address": extract_address,
    "requested_date": extract_requested_date,
    "time": extract_time,
    "location": extract_location,
    "contact_method": extract_contact_method,
    "callback_window": extract_callback_window,
}


# --- Bare answers to a direct question ---


def _answer_client_name(text: str) -> Optional[str]:
    cleaned = _normalize(text).rstrip(".!")
    if "?" in cleaned or any(ch.isdigit() for ch in cleaned):
        return None
    words = cleaned.replace(",", " ").split()
    if not 1 <= len(words) <= 4:
        return None
    if not all(re.fullmatch(r"[a-z][a-z'.-]*", w) for w in words):
        return None
    if any(w in NAME_STOPWORDS for w in words):
        return None
    return " ".join(w.capitalize() for w in words)


def _answer_address(text: str) -> Optional[str]:
    cleaned = (text or "").strip().rstrip(".")
    if "?" in cleaned or len(cleaned) < 5:
        return None
    if not re.search(r"\d", cleaned) or not re.search(r"[a-zA-Z]", cleaned):
        return None
    return cleaned


def _answer_panel_count(text: str) -> Optional[int]:
    numbers = _BARE_NUMBER.findall(_normalize(text))
    if len(numbers) != 1:
        return None
    raw = numbers[0]
    if "." in raw or raw.startswith("-"):
        return None
    return int(raw)


def _answer_time(text: str) -> Optional[str]:
    """A bare hour ("10", "at 3") read against daytime working hours."""
    match = _BARE_HOUR.match(_normalize(text).rstrip("."))
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2) or 0)
    if not 1 <= hour <= 12:
        return None
    if hour < 8:
        hour += 12
    return f"{hour:02d}:{minute:02d}"


def _answer_callback_window(text: str) -> Optional[str]:
    cleaned = (text or "").strip()
    return cleaned or None


ANSWER_EXTRACTORS: dict[str, Extractor] = {
    "client_name": _answer_client_name,
    "address": _answer_address,
    "panel_count": _answer_panel_count,
    "time": _answer_time,
    "callback_window": _answer_callback_window,
}


def extract_slots(text: str) -> dict[str, SlotValue]:
    """Run every registered extractor and keep the hits."""
    found: dict[str, SlotValue] = {}
    for field_name, extractor in SLOT_EXTRACTORS.items():
        value = extractor(text)
        if value is not None:
            found[field_name] = value
    return found


def extract_answer(field_name: str, text: str) -> Optional[SlotValue]:
    """Interpret the utterance as a bare answer for ``field_name``."""
    extractor = ANSWER_EXTRACTORS.get(field_name)
    return extractor(text) if extractor else None
