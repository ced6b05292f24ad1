"""End-to-end tests for conversations through the orchestrator."""

import pytest
from tests.conftest import FIXED_NOW, SOLAR_SLOTS, make_booking_state, run_conversation

from sunny.config import AppConfig, KnowledgeConfig, RecorderConfig
from sunny.orchestrator import ConversationOrchestrator
from sunny.outcomes.log_reader import load_outcome_log
from sunny.outcomes.recorder import OutcomeRecorder
from sunny.prompts.reply_templates import (
    CALLBACK_WINDOW_PROMPT,
    CONTACT_METHOD_PROMPT,
    HANDOFF_COMPLETE,
    SAFE_FAIL_MESSAGE,
)
from sunny.schemas.conversation_schema import (
    ConversationStage,
    ConversationState,
    EscalationReason,
    Intent,
    Outcome,
)

BOOKING_SCRIPT = [
    "Hi, I'd like to book a cleaning for 30 solar panels on Monday at 10am",
    "Jane Doe",
    "123 Main Street, Springfield",
    "They're on a second story roof",
    "805-555-0142",
    "jane.doe@example.com",
]


class TestPricing:
    def test_quote_for_listed_count(self, orchestrator):
        result = orchestrator.handle("How much to clean 30 panels")
        assert "$283.50" in result.reply
        state = result.state
        assert state.intent == Intent.PRICING_QUOTE
        assert state.service_id == "solar_panel_cleaning"
        assert state.quote.total == 283.5
        assert state.stage == ConversationStage.QUOTE_GIVEN
        assert state.outcome == Outcome.GENERAL_LEAD
        assert not state.needs_human_followup

    def test_asks_for_panel_count_then_quotes(self, orchestrator):
        first, second = run_conversation(orchestrator, [
            "How much for solar panel cleaning?",
            "25",
        ])
        assert first.reply == "How many solar panels need cleaning?"
        assert first.state.awaiting_field == "panel_count"
        assert first.state.stage == ConversationStage.QUOTE_COLLECTING
        assert second.reply.startswith("Cleaning 25 panels is $")
        assert second.state.quote.panel_count == 25

    def test_first_count_kept_without_correction(self, orchestrator):
        _, second = run_conversation(orchestrator, [
            "How much for 30 panels?",
            "How much for 40 panels?",
        ])
        assert second.state.slots["panel_count"] == 30

    def test_correction_replaces_count(self, orchestrator):
        _, second = run_conversation(orchestrator, [
            "How much for 30 panels?",
            "Actually make it 40 panels, how much?",
        ])
        assert second.state.slots["panel_count"] == 40
        assert second.reply.startswith("Cleaning 40 panels is $")

    def test_tiered_pricing(self, tier_knowledge, recorder):
        orch = ConversationOrchestrator(tier_knowledge, recorder, clock=lambda: FIXED_NOW)
        assert "$160.50" in orch.handle("How much for 10 panels?").reply
        manual = orch.handle("How much for 30 panels?")
        assert manual.state.escalation_reason == EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE


class TestBooking:
    def test_booking_request_asks_first_missing_field(self, orchestrator):
        result = orchestrator.handle("book 45 panels for Monday at 10am")
        assert "$375.75" in result.reply
        assert result.reply.endswith("What is your full name?")
        state = result.state
        assert state.slots["panel_count"] == 45
        assert state.slots["requested_date"] == "Monday"
        assert state.slots["time"] == "10:00"
        assert state.awaiting_field == "client_name"
        assert state.active_flow == Intent.BOOKING_REQUEST
        assert state.stage == ConversationStage.BOOKING_COLLECTING

    def test_adjective_after_this_is_not_a_name(self, orchestrator):
        result = orchestrator.handle("this is great, can I book 30 panels Monday at 10am")
        assert "client_name" not in result.state.slots
        assert result.state.awaiting_field == "client_name"

        named = orchestrator.handle("Jane Doe", result.state)
        assert named.state.slots["client_name"] == "Jane Doe"
        assert named.state.awaiting_field == "address"

    def test_full_booking(self, orchestrator, writer):
        results = run_conversation(orchestrator, BOOKING_SCRIPT)
        replies = [r.reply for r in results]
        assert replies[1] == "What is the service address?"
        assert replies[2] == "Where are the panels located (roof, ground mount, etc.)?"
        assert replies[3] == "What is the best phone number to reach you?"
        assert replies[4] == "What is the best email address for your booking confirmation?"

        final = results[-1].state
        record = final.booking_record
        assert record.booking_ref.startswith("BK-")
        assert record.booking_ref in replies[-1]
        assert record.fields["client_name"] == "Jane Doe"
        assert record.fields["location"] == "second_story_roof"
        assert record.fields["email"] == "jane.doe@example.com"
        assert final.outcome == Outcome.BOOKED_JOB
        assert final.stage == ConversationStage.BOOKED
        assert final.turn_count == 6

        assert len(writer.records) == 6
        assert writer.records[-1].booking_ref == record.booking_ref
        assert writer.records[-1].stage_trace[-1] == "booked"

    def test_missing_fields_asked_in_declared_order(self, orchestrator):
        state = make_booking_state(omit=("client_name", "address"))
        result = orchestrator.handle("book it please", state)
        assert result.reply == "What is your full name?"
        assert result.state.awaiting_field == "client_name"

    def test_reask_below_prompt_limit(self, orchestrator):
        state = make_booking_state(omit=("client_name",), awaiting="client_name")
        result = orchestrator.handle("what?", state)
        assert result.reply == "What is your full name?"
        assert result.state.field_attempts["client_name"] == 2

    def test_after_hours_time_rejected(self, orchestrator):
        state = make_booking_state(omit=("time",), awaiting="time")
        result = orchestrator.handle("11pm", state)
        assert result.reply == (
            "We're open 08:00 to 19:30 on Monday. What time within those hours works for you?"
        )
        assert result.state.booking_record is None
        assert result.state.awaiting_field == "time"
        assert result.state.awaiting_correction

        booked = orchestrator.handle("ok 2pm then", result.state)
        assert booked.state.booking_record.fields["time"] == "14:00"
        assert booked.state.outcome == Outcome.BOOKED_JOB

    def test_closed_day_rejected(self, orchestrator):
        state = make_booking_state(omit=("time",), awaiting="time", requested_date="Sunday")
        result = orchestrator.handle("10am", state)
        assert result.reply == (
            "We're closed on Sunday. Our next open day is Monday. What date would you like to book?"
        )
        assert result.state.awaiting_field == "requested_date"

        booked = orchestrator.handle("Tuesday please", result.state)
        assert booked.state.booking_record.requested_day == "Tuesday"

    def test_unresolvable_date(self, orchestrator):
        state = make_booking_state(requested_date="the 45th")
        result = orchestrator.handle("book it", state)
        assert result.reply.startswith("I couldn't match the 45th")
        assert result.state.booking_record is None

    def test_already_booked(self, orchestrator):
        results = run_conversation(orchestrator, BOOKING_SCRIPT + ["I'd like to book again"])
        last = results[-1]
        assert last.reply.startswith("You're already booked")
        assert last.state.stage == ConversationStage.BOOKED
        assert last.state.outcome == Outcome.BOOKED_JOB


class TestEscalation:
    def test_unlisted_panel_count(self, orchestrator, writer):
        result = orchestrator.handle("Can I get a quote for 500 panels?")
        state = result.state
        assert "human review" in result.reply
        assert result.reply.endswith(CONTACT_METHOD_PROMPT)
        assert state.needs_human_followup
        assert state.escalation_reason == EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE
        assert state.outcome == Outcome.NEEDS_HUMAN_FOLLOWUP
        assert state.stage == ConversationStage.ESCALATED
        assert state.booking_record is None
        assert writer.records[0].missing_fields == ["panel_count"]

    def test_handoff_collects_contact_preferences(self, orchestrator):
        results = run_conversation(orchestrator, [
            "Can I get a quote for 500 panels?",
            "text is best",
            "weekday mornings",
        ])
        assert results[1].reply == CALLBACK_WINDOW_PROMPT
        assert results[2].reply == HANDOFF_COMPLETE
        final = results[-1].state
        assert final.slots["contact_method"] == "text"
        assert final.slots["callback_window"] == "weekday mornings"
        assert final.needs_human_followup

    def test_followup_flag_sticks(self, orchestrator):
        _, second = run_conversation(orchestrator, [
            "Can I get a quote for 500 panels?",
            "thanks",
        ])
        assert second.reply == CONTACT_METHOD_PROMPT
        assert second.state.needs_human_followup
        assert second.state.outcome == Outcome.NEEDS_HUMAN_FOLLOWUP

    def test_guarantee_request(self, orchestrator):
        results = run_conversation(orchestrator, [
            "I want a guarantee this will work",
            "call me",
            "tomorrow afternoon",
        ])
        assert results[0].state.escalation_reason == EscalationReason.GUARANTEE_OR_CUSTOM_PRICING_REQUEST
        assert results[0].reply.startswith("Guarantees and custom pricing")
        assert results[1].reply == CALLBACK_WINDOW_PROMPT
        assert results[2].reply == HANDOFF_COMPLETE
        assert results[2].state.escalation_reason == EscalationReason.GUARANTEE_OR_CUSTOM_PRICING_REQUEST

    def test_refused_contact_method_skipped(self, orchestrator):
        _, second = run_conversation(orchestrator, [
            "I want a guarantee this will work",
            "I'd rather not say",
        ])
        assert second.reply == CALLBACK_WINDOW_PROMPT

    def test_booking_clears_completed_handoff(self, orchestrator):
        results = run_conversation(orchestrator, [
            "I want a guarantee this will work",
            "call me",
            "tomorrow afternoon",
        ])
        prior = results[-1].state
        prior = prior.model_copy(update={
            "slots": {**SOLAR_SLOTS, **prior.slots},
            "service_id": "solar_panel_cleaning",
        })
        result = orchestrator.handle("book it", prior)
        assert result.state.booking_record is not None
        assert not result.state.needs_human_followup
        assert result.state.escalation_reason is None
        assert result.state.outcome == Outcome.BOOKED_JOB

    def test_safety_concern(self, orchestrator):
        result = orchestrator.handle("The roof is really steep, is that a problem?")
        assert result.state.escalation_reason == EscalationReason.SAFETY_OR_COMPLIANCE_CONCERN

    def test_human_requested(self, orchestrator):
        result = orchestrator.handle("Can I speak to a real person?")
        assert result.state.escalation_reason == EscalationReason.HUMAN_CONTACT_REQUESTED
        assert result.reply.startswith("I can connect you with a human.")

    def test_service_not_auto_quoted(self, orchestrator):
        result = orchestrator.handle("How much for pressure washing my driveway?")
        assert result.state.service_id == "pressure_washing"
        assert result.state.escalation_reason == EscalationReason.SERVICE_NOT_AUTO_QUOTED

    def test_refused_required_field(self, orchestrator, writer):
        state = make_booking_state(omit=("client_name",), awaiting="client_name")
        result = orchestrator.handle("I'd rather not say", state)
        assert result.state.escalation_reason == EscalationReason.REQUIRED_FIELD_REFUSED
        assert result.reply.startswith("No problem.")
        assert writer.records[-1].missing_fields == ["client_name"]

    def test_field_not_collected(self, orchestrator):
        state = make_booking_state(omit=("client_name",), awaiting="client_name")
        state = state.model_copy(update={"field_attempts": {"client_name": 3}})
        result = orchestrator.handle("what?", state)
        assert result.state.escalation_reason == EscalationReason.REQUIRED_FIELD_NOT_COLLECTED


class TestInfoAndGeneral:
    def test_catalog(self, orchestrator):
        result = orchestrator.handle("What services do you offer?")
        assert result.reply == (
            "We offer Solar Panel Cleaning and Pressure Washing. Which one can I help you with?"
        )
        assert result.state.intent == Intent.SERVICE_INFO
        assert result.state.stage == ConversationStage.IDLE

    def test_service_description(self, orchestrator):
        result = orchestrator.handle("What solar services do you offer?")
        assert result.reply.startswith("Solar Panel Cleaning:")
        assert result.state.stage == ConversationStage.SERVICE_IDENTIFIED

    def test_general_turn_allows_fallback(self, orchestrator):
        result = orchestrator.handle("hello")
        assert result.state.intent == Intent.GENERAL
        assert result.needs_fallback

    def test_flow_turn_has_no_fallback(self, orchestrator):
        assert not orchestrator.handle("How much for 30 panels?").needs_fallback


class TestReducerContract:
    def test_empty_message_rejected(self, orchestrator):
        with pytest.raises(ValueError):
            orchestrator.handle("   ")

    def test_deterministic(self, orchestrator):
        state = make_booking_state()
        first = orchestrator.handle("book it", state)
        second = orchestrator.handle("book it", state)
        assert first == second

    def test_prior_state_untouched(self, orchestrator):
        state = make_booking_state(omit=("time",), awaiting="time")
        snapshot = state.model_copy(deep=True)
        orchestrator.handle("11am", state)
        assert state == snapshot

    def test_conversation_id_carried(self, orchestrator, writer):
        result = orchestrator.handle("hello", ConversationState(conversation_id="web-1"))
        assert result.state.conversation_id == "web-1"
        assert writer.records[0].conversation_id == "web-1"

    def test_active_intents_accumulate(self, orchestrator):
        _, second = run_conversation(orchestrator, [
            "What services do you offer?",
            "How much for 30 panels?",
        ])
        assert second.state.active_intents == [Intent.PRICING_QUOTE, Intent.SERVICE_INFO]

    def test_wire_format_uses_camel_case(self, orchestrator):
        state = orchestrator.handle("Can I get a quote for 500 panels?").state
        wire = state.to_wire()
        assert wire["needsHumanFollowup"] is True
        assert wire["escalationReason"] == "panel_count_not_in_pricing_table"
        assert ConversationState.model_validate(wire) == state

    def test_turn_recorded(self, orchestrator, writer):
        orchestrator.handle("How much to clean 30 panels")
        record = writer.records[0]
        assert record.timestamp == FIXED_NOW
        assert record.intent == Intent.PRICING_QUOTE
        assert record.outcome_type == Outcome.GENERAL_LEAD
        assert record.stage_trace == ["idle", "quote_given"]
        assert record.turn == 1


class TestFailClosed:
    def test_knowledge_unavailable(self, recorder, writer):
        orch = ConversationOrchestrator(None, recorder, clock=lambda: FIXED_NOW)
        result = orch.handle("How much for 30 panels?")
        assert result.reply == SAFE_FAIL_MESSAGE
        assert result.state.escalation_reason == EscalationReason.KNOWLEDGE_UNAVAILABLE
        assert result.state.outcome == Outcome.NEEDS_HUMAN_FOLLOWUP
        assert result.state.stage == ConversationStage.ESCALATED
        assert len(writer.records) == 1

    def test_recorder_failure_does_not_break_turn(self, knowledge):
        class BrokenWriter:
            def write(self, record):
                raise OSError("disk full")

        orch = ConversationOrchestrator(
            knowledge, OutcomeRecorder(BrokenWriter()), clock=lambda: FIXED_NOW
        )
        result = orch.handle("How much for 30 panels?")
        assert "$283.50" in result.reply

    def test_unexpected_writer_error_does_not_break_turn(self, knowledge):
        class FailingSink:
            def write(self, record):
                raise RuntimeError("sink down")

        orch = ConversationOrchestrator(
            knowledge, OutcomeRecorder(FailingSink()), clock=lambda: FIXED_NOW
        )
        result = orch.handle("How much to clean 30 panels")
        assert "$283.50" in result.reply
        assert result.state.quote.total == 283.5


class TestFromSettings:
    def test_writes_outcome_log(self, tmp_path):
        log = tmp_path / "outcomes.jsonl"
        orch = ConversationOrchestrator.from_settings(
            AppConfig(recorder=RecorderConfig(outcome_log_path=str(log)))
        )
        orch.handle("How much for 30 panels?")
        records = load_outcome_log(log)
        assert len(records) == 1
        assert records[0].intent == Intent.PRICING_QUOTE

    def test_bad_knowledge_fails_closed(self, tmp_path):
        orch = ConversationOrchestrator.from_settings(AppConfig(
            knowledge=KnowledgeConfig(knowledge_dir=str(tmp_path / "missing")),
            recorder=RecorderConfig(outcome_log_path=str(tmp_path / "outcomes.jsonl")),
        ))
        assert orch.handle("hello").reply == SAFE_FAIL_MESSAGE
