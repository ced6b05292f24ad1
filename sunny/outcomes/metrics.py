"""
Outcome KPIs computed from the per-turn outcome log.

Records are grouped into conversations by ``conversation_id``; the last
record of each conversation is its final outcome. Records without an ID are
treated as single-turn conversations.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from sunny.config import EvalConfig, settings
from sunny.schemas.conversation_schema import Outcome
from sunny.schemas.outcome_schema import OutcomeRecord

logger = logging.getLogger(__name__)


@dataclass
class OutcomeMetrics:
    """Aggregate metrics over a batch of conversations."""

    total_conversations: int = 0
    total_turns: int = 0

    # Outcomes
    booking_rate: float = 0.0
    escalation_rate: float = 0.0
    general_lead_rate: float = 0.0

    # Efficiency
    avg_turns_per_conversation: float = 0.0
    avg_turns_to_booking: float = 0.0

    # Breakdown
    escalation_reasons: dict[str, int] = field(default_factory=dict)
    intent_counts: dict[str, int] = field(default_factory=dict)


def group_conversations(records: list[OutcomeRecord]) -> dict[str, list[OutcomeRecord]]:
    """Group records by conversation, keeping log order within each group."""
    groups: dict[str, list[OutcomeRecord]] = {}
    for index, record in enumerate(records):
        key = record.conversation_id or f"anonymous-{index}"
        groups.setdefault(key, []).append(record)
    return groups


class MetricsCalculator:
    """Calculates outcome KPIs from outcome records."""

    def calculate(self, records: list[OutcomeRecord]) -> OutcomeMetrics:
        metrics = OutcomeMetrics()
        if not records:
            return metrics

        conversations = group_conversations(records)
        n = len(conversations)
        metrics.total_conversations = n
        metrics.total_turns = len(records)

        finals = [turns[-1] for turns in conversations.values()]
        outcomes = Counter(r.outcome_type for r in finals)
        metrics.booking_rate = outcomes[Outcome.BOOKED_JOB] / n
        metrics.escalation_rate = outcomes[Outcome.NEEDS_HUMAN_FOLLOWUP] / n
        metrics.general_lead_rate = outcomes[Outcome.GENERAL_LEAD] / n

        metrics.avg_turns_per_conversation = len(records) / n

        turns_to_booking: list[int] = []
        for turns in conversations.values():
            booked_at: Optional[int] = next(
                (r.turn for r in turns if r.outcome_type == Outcome.BOOKED_JOB), None
            )
            if booked_at is not None:
                turns_to_booking.append(booked_at)
        if turns_to_booking:
            metrics.avg_turns_to_booking = sum(turns_to_booking) / len(turns_to_booking)

        metrics.escalation_reasons = dict(
            Counter(r.escalation_reason.value for r in finals if r.escalation_reason)
        )
        metrics.intent_counts = dict(Counter(r.intent.value for r in records))
        return metrics

    def format_report(self, metrics: OutcomeMetrics, targets: Optional[EvalConfig] = None) -> str:
        """Format metrics into a human-readable report."""
        targets = targets or settings.evaluation

        lines = [
            "=" * 60,
            "CONVERSATION OUTCOME REPORT",
            "=" * 60,
            "",
            f"Conversations: {metrics.total_conversations}    Turns: {metrics.total_turns}",
            "",
            "OUTCOMES",
            f"  Booking rate:           {metrics.booking_rate:.1%}  (target: {targets.target_booking_rate:.0%})",
            f"  Escalation rate:        {metrics.escalation_rate:.1%}  (target: <{targets.target_escalation_rate:.0%})",
            f"  General lead rate:      {metrics.general_lead_rate:.1%}",
            "",
            "EFFICIENCY",
            f"  Avg turns/conversation: {metrics.avg_turns_per_conversation:.1f}",
            f"  Avg turns to booking:   {metrics.avg_turns_to_booking:.1f}  (target: <{targets.target_max_turns})",
        ]

        if metrics.escalation_reasons:
            lines += ["", "ESCALATION REASONS"]
            for reason, count in sorted(metrics.escalation_reasons.items(), key=lambda x: -x[1]):
                lines.append(f"  {reason}: {count}")

        if metrics.intent_counts:
            lines += ["", "INTENTS (per turn)"]
            for intent, count in sorted(metrics.intent_counts.items(), key=lambda x: -x[1]):
                lines.append(f"  {intent}: {count}")

        lines.append("=" * 60)
        return "\n".join(lines)
