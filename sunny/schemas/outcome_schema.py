"""Outcome log record schema."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from sunny.schemas.conversation_schema import (
    EscalationReason,
    Intent,
    Outcome,
    SlotValue,
)


class OutcomeRecord(BaseModel):
    """One line of the append-only outcome log, written once per turn."""

    timestamp: datetime
    outcome_type: Outcome
    intent: Intent
    detected_intents: list[Intent] = Field(default_factory=list)
    service_id: Optional[str] = None
    collected_fields: dict[str, SlotValue] = Field(default_factory=dict)
    conversation_summary: str = ""
    escalation_reason: Optional[EscalationReason] = None
    missing_fields: list[str] = Field(default_factory=list)
    stage_trace: list[str] = Field(default_factory=list)
    booking_ref: Optional[str] = None
    conversation_id: Optional[str] = None
    turn: int = 0
