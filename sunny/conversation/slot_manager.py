"""
Slot validation, merging and ordering.

Slots live in ``ConversationState.slots`` as a plain dict; this module
decides which extracted values are allowed in and which required field the
engine should ask for next.

Usage:
    slots, newly_set = merge_slots(state.slots, extract_slots(text))
    manager = SlotManager.for_service(service)
    next_field = manager.get_next_missing(slots)
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sunny.schemas.conversation_schema import SlotValue
from sunny.schemas.knowledge_schema import QuoteField, Service

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_ADDRESS_LENGTH = 5

CONTACT_FIELDS = ("contact_method", "callback_window")

_PHONE = re.compile(r"^\d{3}-\d{3}-\d{4}$")
_EMAIL = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$")
_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _non_empty(value: SlotValue) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _validate_panel_count(value: SlotValue) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate_name(value: SlotValue) -> bool:
    return isinstance(value, str) and len(value.strip()) >= MIN_NAME_LENGTH


def _validate_phone(value: SlotValue) -> bool:
    return isinstance(value, str) and _PHONE.match(value) is not None


def _validate_email(value: SlotValue) -> bool:
    return isinstance(value, str) and _EMAIL.match(value.lower()) is not None


def _validate_address(value: SlotValue) -> bool:
    return isinstance(value, str) and len(value.strip()) >= MIN_ADDRESS_LENGTH


def _validate_time(value: SlotValue) -> bool:
    return isinstance(value, str) and _HHMM.match(value) is not None


def _validate_contact_method(value: SlotValue) -> bool:
    return value in ("call", "text")


FIELD_VALIDATORS: dict[str, Callable[[SlotValue], bool]] = {
    "panel_count": _validate_panel_count,
    "client_name": _validate_name,
    "phone": _validate_phone,
    "email": _validate_email,
    "address": _validate_address,
    "time": _validate_time,
    "contact_method": _validate_contact_method,
}


def is_valid(field_name: str, value: Optional[SlotValue]) -> bool:
    """Check a value against its field's rule. Unknown fields need any non-empty value."""
    if value is None:
        return False
    validator = FIELD_VALIDATORS.get(field_name)
    if validator is None:
        return _validate_panel_count(value) if isinstance(value, int) else _non_empty(value)
    return validator(value)


def merge_slots(
    existing: dict[str, SlotValue],
    incoming: dict[str, SlotValue],
    overwrite: Iterable[str] = (),
) -> tuple[dict[str, SlotValue], list[str]]:
    """Fold newly extracted values into the slot dict.

    The first valid value for a field wins; a later value only replaces it
    when the field is listed in ``overwrite`` (an explicit correction).
    Invalid incoming values are dropped. An invalid value already stored
    counts as absent and may be replaced.

    Returns:
        (merged slots, names of fields set or changed by this merge)
    """
    allowed = set(overwrite)
    merged = dict(existing)
    newly_set: list[str] = []
    for field_name, value in incoming.items():
        if not is_valid(field_name, value):
            logger.debug("Ignoring invalid value for '%s': %r", field_name, value)
            continue
        current = merged.get(field_name)
        if is_valid(field_name, current) and field_name not in allowed:
            continue
        if current == value:
            continue
        merged[field_name] = value
        newly_set.append(field_name)
        logger.debug("Slot '%s' set to %r", field_name, value)
    return merged, newly_set


@dataclass(frozen=True)
class SlotDefinition:
    """A field to collect, in the order the service declares it."""

    name: str
    prompt: str
    required: bool = True
    options: Optional[tuple[str, ...]] = None

    @classmethod
    def from_quote_field(cls, quote_field: QuoteField) -> "SlotDefinition":
        return cls(
            name=quote_field.field,
            prompt=quote_field.label,
            required=quote_field.required,
            options=tuple(quote_field.options) if quote_field.options else None,
        )


class SlotManager:
    """
    Ordered view of one service's required fields over a slot dict.

    The manager holds no slot values itself; every query takes the current
    slots, so it can be shared freely between turns.
    """

    def __init__(self, definitions: list[SlotDefinition]) -> None:
        self.definitions = definitions

    @classmethod
    def for_service(cls, service: Service) -> "SlotManager":
        return cls([SlotDefinition.from_quote_field(f) for f in service.required_for_quote])

    def get_missing(self, slots: dict[str, SlotValue]) -> list[SlotDefinition]:
        """All required fields without a valid value, in declared order."""
        return [
            defn
            for defn in self.definitions
            if defn.required and not is_valid(defn.name, slots.get(defn.name))
        ]

    def get_next_missing(self, slots: dict[str, SlotValue]) -> Optional[SlotDefinition]:
        """The single field to ask for next, or None when everything is in."""
        missing = self.get_missing(slots)
        return missing[0] if missing else None


def build_conversation_summary(service_name: Optional[str], slots: dict[str, SlotValue]) -> str:
    """One-line summary for the outcome log.

    Example: ``Service: Solar Panel Cleaning | Panels: 30 | Address: 12 Oak St | Preferred: Monday 10:00``
    """
    preferred = " ".join(
        str(slots[k]) for k in ("requested_date", "time") if slots.get(k) is not None
    )
    parts = [
        f"Service: {service_name or 'unknown'}",
        f"Panels: {slots.get('panel_count', 'unknown')}",
        f"Address: {slots.get('address', 'unknown')}",
        f"Preferred: {preferred or 'unknown'}",
    ]
    return " | ".join(parts)
