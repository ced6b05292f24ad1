"""Tests for the outcome log, metrics and report CLI."""

import json

import pytest
from tests.conftest import FIXED_NOW

from sunny.outcomes.log_reader import load_outcome_log
from sunny.outcomes.metrics import MetricsCalculator, OutcomeMetrics, group_conversations
from sunny.outcomes.recorder import JsonlRecordWriter, OutcomeRecorder
from sunny.outcomes.run_report import main as report_main
from sunny.schemas.conversation_schema import (
    ConversationState,
    EscalationReason,
    Intent,
    Outcome,
)
from sunny.schemas.outcome_schema import OutcomeRecord


def _record(outcome, conversation_id=None, turn=1, intent=Intent.GENERAL, reason=None):
    return OutcomeRecord(
        timestamp=FIXED_NOW,
        outcome_type=outcome,
        intent=intent,
        escalation_reason=reason,
        conversation_id=conversation_id,
        turn=turn,
    )


@pytest.fixture
def sample_records():
    return [
        _record(Outcome.GENERAL_LEAD, "a", 1, Intent.PRICING_QUOTE),
        _record(Outcome.BOOKED_JOB, "a", 2, Intent.BOOKING_REQUEST),
        _record(
            Outcome.NEEDS_HUMAN_FOLLOWUP, "b", 1, Intent.PRICING_QUOTE,
            EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE,
        ),
        _record(Outcome.GENERAL_LEAD),
    ]


class TestOutcomeRecorder:
    def test_record_built_from_state(self, recorder, writer):
        state = ConversationState(
            intent=Intent.PRICING_QUOTE,
            active_intents=[Intent.PRICING_QUOTE],
            service_id="solar_panel_cleaning",
            slots={"panel_count": 30},
            conversation_id="web-9",
            turn_count=2,
        )
        record = recorder.record(
            state, FIXED_NOW, service_name="Solar Panel Cleaning", stage_trace=["idle", "quote_given"]
        )
        assert writer.records == [record]
        assert record.collected_fields == {"panel_count": 30}
        assert record.conversation_summary.startswith("Service: Solar Panel Cleaning | Panels: 30")
        assert record.turn == 2
        assert record.booking_ref is None

    def test_jsonl_appends_one_line_per_record(self, tmp_path):
        path = tmp_path / "logs" / "outcomes.jsonl"
        recorder = OutcomeRecorder(JsonlRecordWriter(path))
        recorder.record(ConversationState(turn_count=1), FIXED_NOW)
        recorder.record(ConversationState(turn_count=2), FIXED_NOW)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["turn"] == 2

    def test_write_failure_returns_none(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        recorder = OutcomeRecorder(JsonlRecordWriter(blocker / "outcomes.jsonl"))
        assert recorder.record(ConversationState(), FIXED_NOW) is None

    def test_unexpected_writer_error_returns_none(self):
        class FailingSink:
            def write(self, record):
                raise RuntimeError("sink down")

        assert OutcomeRecorder(FailingSink()).record(ConversationState(), FIXED_NOW) is None


class TestLogReader:
    def test_reads_records_and_skips_blank_lines(self, tmp_path, sample_records):
        path = tmp_path / "outcomes.jsonl"
        path.write_text(
            "\n".join(r.model_dump_json() for r in sample_records) + "\n\n", encoding="utf-8"
        )
        assert load_outcome_log(path) == sample_records

    def test_bad_line_skipped(self, tmp_path, sample_records):
        path = tmp_path / "outcomes.jsonl"
        path.write_text(sample_records[0].model_dump_json() + "\n{oops\n", encoding="utf-8")
        assert len(load_outcome_log(path)) == 1

    def test_bad_line_strict(self, tmp_path):
        path = tmp_path / "outcomes.jsonl"
        path.write_text('{"turn": 1}\n', encoding="utf-8")
        with pytest.raises(Exception):
            load_outcome_log(path, strict=True)


class TestMetricsCalculator:
    def test_empty(self):
        assert MetricsCalculator().calculate([]) == OutcomeMetrics()

    def test_grouping(self, sample_records):
        groups = group_conversations(sample_records)
        assert sorted(groups) == ["a", "anonymous-3", "b"]
        assert len(groups["a"]) == 2

    def test_rates_use_final_outcome(self, sample_records):
        metrics = MetricsCalculator().calculate(sample_records)
        assert metrics.total_conversations == 3
        assert metrics.total_turns == 4
        assert metrics.booking_rate == pytest.approx(1 / 3)
        assert metrics.escalation_rate == pytest.approx(1 / 3)
        assert metrics.general_lead_rate == pytest.approx(1 / 3)
        assert metrics.avg_turns_per_conversation == pytest.approx(4 / 3)
        assert metrics.avg_turns_to_booking == 2.0

    def test_breakdowns(self, sample_records):
        metrics = MetricsCalculator().calculate(sample_records)
        assert metrics.escalation_reasons == {"panel_count_not_in_pricing_table": 1}
        assert metrics.intent_counts == {"pricing_quote": 2, "booking_request": 1, "general": 1}

    def test_report_text(self, sample_records):
        calculator = MetricsCalculator()
        report = calculator.format_report(calculator.calculate(sample_records))
        assert "CONVERSATION OUTCOME REPORT" in report
        assert "Booking rate:           33.3%" in report
        assert "panel_count_not_in_pricing_table: 1" in report


class TestRunReport:
    def test_writes_report_file(self, tmp_path, sample_records):
        log = tmp_path / "outcomes.jsonl"
        log.write_text("\n".join(r.model_dump_json() for r in sample_records), encoding="utf-8")
        out = tmp_path / "report.txt"
        report_main(["--log", str(log), "--report", str(out)])
        assert "CONVERSATION OUTCOME REPORT" in out.read_text(encoding="utf-8")

    def test_prints_to_stdout(self, tmp_path, sample_records, capsys):
        log = tmp_path / "outcomes.jsonl"
        log.write_text(sample_records[0].model_dump_json(), encoding="utf-8")
        report_main(["--log", str(log)])
        assert "Conversations: 1" in capsys.readouterr().out

    def test_missing_log_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            report_main(["--log", str(tmp_path / "missing.jsonl")])
        assert exc.value.code == 1

    def test_empty_log_exits(self, tmp_path):
        log = tmp_path / "outcomes.jsonl"
        log.write_text("", encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            report_main(["--log", str(log)])
        assert exc.value.code == 1
