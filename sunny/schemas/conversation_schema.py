"""Conversation state and per-turn result models.

``ConversationState`` is the only memory the engine has. The caller sends
it in with every message and stores whatever comes back; nothing here is
retained between turns.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SlotValue = Union[int, str]


class Intent(str, Enum):
    BOOKING_REQUEST = "booking_request"
    PRICING_QUOTE = "pricing_quote"
    SERVICE_INFO = "service_info"
    FOLLOWUP_REQUEST = "followup_request"
    GENERAL = "general"


FLOW_INTENTS = frozenset({Intent.BOOKING_REQUEST, Intent.PRICING_QUOTE})


class Outcome(str, Enum):
    BOOKED_JOB = "booked_job"
    NEEDS_HUMAN_FOLLOWUP = "needs_human_followup"
    GENERAL_LEAD = "general_lead"


class EscalationReason(str, Enum):
    HUMAN_CONTACT_REQUESTED = "human_contact_requested"
    REQUIRED_FIELD_REFUSED = "required_field_refused"
    REQUIRED_FIELD_NOT_COLLECTED = "required_field_not_collected"
    PANEL_COUNT_NOT_IN_PRICING_TABLE = "panel_count_not_in_pricing_table"
    SERVICE_NOT_AUTO_QUOTED = "service_not_auto_quoted"
    GUARANTEE_OR_CUSTOM_PRICING_REQUEST = "guarantee_or_custom_pricing_request"
    SAFETY_OR_COMPLIANCE_CONCERN = "safety_or_compliance_concern"
    KNOWLEDGE_UNAVAILABLE = "knowledge_unavailable"


class ConversationStage(str, Enum):
    """Where the conversation sits in the quote/booking lifecycle."""
    IDLE = "idle"
    SERVICE_IDENTIFIED = "service_identified"
    QUOTE_COLLECTING = "quote_collecting"
    QUOTE_GIVEN = "quote_given"
    BOOKING_COLLECTING = "booking_collecting"
    HOURS_CHECKED = "hours_checked"
    BOOKED = "booked"
    ESCALATED = "escalated"


class Quote(BaseModel):
    """Result of an exact pricing-table lookup."""
    panel_count: int
    total: float
    currency: str = "USD"
    pricing_source: str


class BookingRecord(BaseModel):
    """Finalized snapshot of a confirmed booking."""
    booking_ref: str
    service_id: str
    service_name: str
    fields: dict[str, SlotValue]
    requested_day: str
    total: float
    currency: str = "USD"
    pricing_source: str


class ConversationState(BaseModel):
    """Everything the engine knows about one conversation.

    Field names are snake_case in Python; camelCase aliases
    (``needsHumanFollowup``, ``bookingRecord``...) are accepted on input and
    produced by ``to_wire()`` for the HTTP caller.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    intent: Intent = Intent.GENERAL
    active_intents: list[Intent] = Field(default_factory=list)
    service_id: Optional[str] = None
    slots: dict[str, SlotValue] = Field(default_factory=dict)
    outcome: Outcome = Outcome.GENERAL_LEAD
    needs_human_followup: bool = False
    escalation_reason: Optional[EscalationReason] = None
    booking_record: Optional[BookingRecord] = None
    quote: Optional[Quote] = None
    stage: ConversationStage = ConversationStage.IDLE
    active_flow: Optional[Intent] = None
    awaiting_field: Optional[str] = None
    awaiting_correction: bool = False
    field_attempts: dict[str, int] = Field(default_factory=dict)
    turn_count: int = 0
    conversation_id: Optional[str] = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the caller using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class TurnResult(BaseModel):
    """Reply text plus the state the caller must send back next turn."""
    reply: str
    state: ConversationState

    @property
    def needs_fallback(self) -> bool:
        """True when the caller may hand this turn to the generative fallback."""
        return (
            self.state.intent == Intent.GENERAL
            and self.state.outcome == Outcome.GENERAL_LEAD
            and not self.state.needs_human_followup
            and self.state.awaiting_field is None
        )
