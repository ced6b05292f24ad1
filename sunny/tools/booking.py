"""
Booking record construction.

There is no scheduling backend: a confirmed booking is returned to the
caller inside ``ConversationState.booking_record``, and the caller owns the
follow-up side effects (confirmation email, spreadsheet row).
"""

import hashlib
import json
import logging

from sunny.schemas.conversation_schema import BookingRecord, Quote, SlotValue
from sunny.schemas.knowledge_schema import Service

logger = logging.getLogger(__name__)


def _booking_ref(service_id: str, fields: dict[str, SlotValue], total: float) -> str:
    """Derive a stable reference from the booking contents.

    The same booking always gets the same reference, which keeps ``handle``
    deterministic and lets the caller de-duplicate repeated submissions.
    """
    payload = json.dumps(
        {"service": service_id, "fields": fields, "total": total},
        sort_keys=True,
        default=str,
    )
    return "BK-" + hashlib.sha1(payload.encode("utf-8")).hexdigest()[:8].upper()


def create_booking_record(
    service: Service,
    slots: dict[str, SlotValue],
    quote: Quote,
    requested_day: str,
) -> BookingRecord:
    """Snapshot the collected fields into a booking record.

    Raises:
        ValueError: If any required field of the service is missing or blank.
    """
    missing = [
        f.field
        for f in service.required_for_quote
        if f.required and (slots.get(f.field) is None or str(slots[f.field]).strip() == "")
    ]
    if missing:
        raise ValueError(
            f"Cannot create booking - missing required fields: {', '.join(missing)}."
        )

    fields = {f.field: slots[f.field] for f in service.required_for_quote if f.field in slots}
    ref = _booking_ref(service.id, fields, quote.total)

    logger.info(
        "Booking created: %s for %s on %s at %s",
        ref, slots.get("client_name"), requested_day, slots.get("time"),
    )
    return BookingRecord(
        booking_ref=ref,
        service_id=service.id,
        service_name=service.name,
        fields=fields,
        requested_day=requested_day,
        total=quote.total,
        currency=quote.currency,
        pricing_source=quote.pricing_source,
    )
