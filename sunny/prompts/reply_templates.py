"""Every customer-facing reply the engine can produce."""

from typing import Optional

from sunny.config import settings
from sunny.schemas.conversation_schema import BookingRecord, EscalationReason, Quote
from sunny.utils import format_currency

SAFE_FAIL_MESSAGE = (
    "I'm having trouble accessing our pricing details. Let me connect you with a human."
)

CONTACT_METHOD_PROMPT = "Would you prefer a text or a call?"
CALLBACK_WINDOW_PROMPT = "Thanks! What's a good callback window for them to reach you?"
HANDOFF_COMPLETE = "Thanks! Our team will follow up soon."

ESCALATION_LEAD_INS: dict[EscalationReason, str] = {
    EscalationReason.HUMAN_CONTACT_REQUESTED: "I can connect you with a human.",
    EscalationReason.REQUIRED_FIELD_REFUSED: (
        "No problem. I'll have someone from our team help with the rest."
    ),
    EscalationReason.REQUIRED_FIELD_NOT_COLLECTED: (
        "I'm having trouble getting that detail, so I'll have someone from our team follow up."
    ),
    EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE: (
        "I don't have a listed price for {panel_count} panels, so I'm sending this to our "
        "team for human review."
    ),
    EscalationReason.SERVICE_NOT_AUTO_QUOTED: (
        "{service_name} jobs are priced by our team, so I'm sending this over for human review."
    ),
    EscalationReason.GUARANTEE_OR_CUSTOM_PRICING_REQUEST: (
        "Guarantees and custom pricing are handled by our team directly."
    ),
    EscalationReason.SAFETY_OR_COMPLIANCE_CONCERN: (
        "Safety and access questions need a member of our team to take a look."
    ),
    EscalationReason.KNOWLEDGE_UNAVAILABLE: SAFE_FAIL_MESSAGE,
}


def escalation_lead_in(
    reason: EscalationReason,
    panel_count: Optional[int] = None,
    service_name: Optional[str] = None,
) -> str:
    template = ESCALATION_LEAD_INS[reason]
    return template.format(
        panel_count=panel_count if panel_count is not None else "that many",
        service_name=service_name or "Those",
    )


def greeting() -> str:
    biz = settings.business
    return f"Hi, I'm {biz.assistant_name} from {biz.name}. How can I help you today?"


def service_choice_prompt(service_names: list[str]) -> str:
    return f"Which service are you interested in: {_join(service_names)}?"


def service_info_reply(service_name: str, description: str) -> str:
    return f"{service_name}: {description} Would you like a quote?"


def catalog_reply(service_names: list[str]) -> str:
    return f"We offer {_join(service_names)}. Which one can I help you with?"


def general_reply(service_names: list[str]) -> str:
    return (
        f"I can help with quotes and bookings for {_join(service_names)}. "
        "What can I do for you?"
    )


def quote_amount(quote: Quote) -> str:
    return (
        f"Cleaning {quote.panel_count} panels is "
        f"{format_currency(quote.total, quote.currency)}."
    )


def quote_reply(quote: Quote) -> str:
    return f"{quote_amount(quote)} Would you like to book a time?"


def field_prompt(label: str, quote: Optional[Quote] = None) -> str:
    """Ask for one field, leading with the price when it was just looked up."""
    if quote is not None:
        return f"{quote_amount(quote)} {label}"
    return label


def unknown_date_prompt(requested_date: str, label: str) -> str:
    return f"I couldn't match {requested_date} to a day we're open. {label}"


def closed_day_prompt(day: str, label: str, next_open: Optional[str] = None) -> str:
    if next_open:
        return f"We're closed on {day}. Our next open day is {next_open}. {label}"
    return f"We're closed on {day}. {label}"


def outside_hours_prompt(day: str, open_time: str, close_time: str) -> str:
    return (
        f"We're open {open_time} to {close_time} on {day}. "
        "What time within those hours works for you?"
    )


def booking_confirmation(record: BookingRecord) -> str:
    fields = record.fields
    return (
        f"You're booked! {record.service_name} on {record.requested_day} "
        f"({fields.get('requested_date')}) at {fields.get('time')} for "
        f"{format_currency(record.total, record.currency)}. "
        f"Your reference is {record.booking_ref}. "
        f"We'll send a confirmation to {fields.get('email')}."
    )


def already_booked_reply(record: BookingRecord) -> str:
    return (
        f"You're already booked (reference {record.booking_ref}) for "
        f"{record.requested_day} at {record.fields.get('time')}. "
        "Our team will reach out if anything needs to change."
    )


def _join(names: list[str]) -> str:
    if not names:
        return "our services"
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + f" and {names[-1]}"
