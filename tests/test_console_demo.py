"""Tests for the scripted console scenarios."""

from console_demo import ConsoleSession, main
from sunny.schemas.conversation_schema import EscalationReason, Outcome


class TestScenarios:
    def test_booking_scenario_books(self, capsys):
        session = ConsoleSession()
        session.run_scenario("booking")
        assert session.state.outcome == Outcome.BOOKED_JOB
        assert session.state.booking_record.booking_ref in capsys.readouterr().out

    def test_after_hours_scenario_recovers(self):
        session = ConsoleSession()
        session.run_scenario("after_hours")
        assert session.state.booking_record.fields["time"] == "14:00"
        assert session.state.booking_record.fields["client_name"] == "Sam Rivera"

    def test_escalation_scenario(self):
        session = ConsoleSession()
        session.run_scenario("escalation")
        assert session.state.escalation_reason == EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE
        assert session.state.slots["callback_window"] == "weekday mornings"

    def test_records_every_turn(self):
        session = ConsoleSession(conversation_id="demo-1")
        session.run_scenario("pricing")
        assert len(session.writer.records) == 2
        assert {r.conversation_id for r in session.writer.records} == {"demo-1"}

    def test_unknown_scenario(self, capsys):
        session = ConsoleSession()
        session.run_scenario("nope")
        assert "Unknown scenario" in capsys.readouterr().out

    def test_main_with_scenario(self, capsys):
        main(["--scenario", "guarantee"])
        assert "Guarantees and custom pricing" in capsys.readouterr().out
