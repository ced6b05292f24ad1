"""Shared test fixtures and helpers."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from sunny.config import AppConfig
from sunny.conversation.guardrails import GuardrailPipeline
from sunny.conversation.state_machine import ConversationStateMachine
from sunny.orchestrator import ConversationOrchestrator
from sunny.outcomes.recorder import InMemoryRecordWriter, OutcomeRecorder
from sunny.schemas.conversation_schema import (
    ConversationStage,
    ConversationState,
    Intent,
    Quote,
    TurnResult,
)
from sunny.schemas.knowledge_schema import (
    BusinessHoursEntry,
    KnowledgeBase,
    PricingTable,
    Service,
)
from sunny.tools.knowledge import load_knowledge

# Monday 2 March 2026, 09:00 UTC
FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

SOLAR_SLOTS = {
    "client_name": "Jane Doe",
    "address": "123 Main Street",
    "panel_count": 30,
    "location": "roof",
    "phone": "805-555-0142",
    "email": "jane@example.com",
    "requested_date": "Monday",
    "time": "10:00",
}


@pytest.fixture(scope="session")
def knowledge() -> KnowledgeBase:
    """The knowledge documents shipped under knowledge/."""
    return load_knowledge(AppConfig())


@pytest.fixture
def tier_knowledge() -> KnowledgeBase:
    """Small inline knowledge base using the tiered pricing shape."""
    solar = Service.model_validate({
        "id": "solar_panel_cleaning",
        "name": "Solar Panel Cleaning",
        "short_description": "Panel cleaning.",
        "required_for_quote": [
            {"field": "client_name", "required": True, "label": "What is your full name?"},
            {"field": "panel_count", "required": True, "label": "How many panels?"},
        ],
    })
    pricing = PricingTable.from_document(
        {"tiers": [
            {"min": 10, "max": 10, "job_total_usd": 160.5, "manual_quote": False},
            {"min": 20, "max": 20, "job_total_usd": None, "manual_quote": False},
            {"min": 30, "max": 30, "job_total_usd": 283.5, "manual_quote": True},
            {"min": 40, "max": 60, "job_total_usd": 400.0, "manual_quote": False},
        ]},
        source="tiers.json",
    )
    return KnowledgeBase(
        business_name="SunSweeper",
        services=(solar,),
        pricing=pricing,
        priced_service_id="solar_panel_cleaning",
        schedule=(BusinessHoursEntry(day="Monday", open="08:00", close="17:00"),),
    )


@pytest.fixture
def writer() -> InMemoryRecordWriter:
    return InMemoryRecordWriter()


@pytest.fixture
def recorder(writer) -> OutcomeRecorder:
    return OutcomeRecorder(writer)


@pytest.fixture
def orchestrator(knowledge, recorder) -> ConversationOrchestrator:
    return ConversationOrchestrator(
        knowledge, recorder, clock=lambda: FIXED_NOW, max_field_prompts=3
    )


@pytest.fixture
def state_machine():
    return ConversationStateMachine()


@pytest.fixture
def guardrail_pipeline():
    return GuardrailPipeline()


def run_conversation(
    orchestrator: ConversationOrchestrator,
    messages: list[str],
    state: Optional[ConversationState] = None,
) -> list[TurnResult]:
    """Send messages in order, carrying state between turns like the web caller."""
    results = []
    for message in messages:
        result = orchestrator.handle(message, state)
        state = result.state
        results.append(result)
    return results


def make_booking_state(
    omit: tuple[str, ...] = (),
    awaiting: Optional[str] = None,
    **overrides,
) -> ConversationState:
    """A solar booking in progress with every field filled except ``omit``."""
    slots = {k: v for k, v in SOLAR_SLOTS.items() if k not in omit}
    slots.update(overrides)
    return ConversationState(
        intent=Intent.BOOKING_REQUEST,
        active_intents=[Intent.BOOKING_REQUEST],
        service_id="solar_panel_cleaning",
        slots=slots,
        quote=Quote(
            panel_count=30,
            total=283.5,
            currency="USD",
            pricing_source="pricing/solar-pricing-v1.json",
        ),
        stage=ConversationStage.BOOKING_COLLECTING,
        active_flow=Intent.BOOKING_REQUEST,
        awaiting_field=awaiting,
        field_attempts={awaiting: 1} if awaiting else {},
        turn_count=3,
    )
