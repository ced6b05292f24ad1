"""
Outcome recorder: one structured record per turn, appended to an audit log.

The sink is injectable. ``JsonlRecordWriter`` appends newline-delimited
JSON with a single ``write`` call per record, so concurrent turns never
interleave partial lines; ``InMemoryRecordWriter`` keeps records in a list
for tests and the console demo.

A failing sink never reaches the customer: ``OutcomeRecorder.record`` logs
the error and returns.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Union

from sunny.conversation.slot_manager import build_conversation_summary
from sunny.schemas.conversation_schema import ConversationState
from sunny.schemas.outcome_schema import OutcomeRecord

logger = logging.getLogger(__name__)


class RecordWriter(Protocol):
    """Anything that can persist an ``OutcomeRecord``."""

    def write(self, record: OutcomeRecord) -> None: ...


class JsonlRecordWriter:
    """Append-only NDJSON file sink."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def write(self, record: OutcomeRecord) -> None:
        line = record.model_dump_json() + "\n"
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)


class InMemoryRecordWriter:
    """Collects records in a list."""

    def __init__(self) -> None:
        self.records: list[OutcomeRecord] = []

    def write(self, record: OutcomeRecord) -> None:
        self.records.append(record)


class OutcomeRecorder:
    """Builds an ``OutcomeRecord`` from a finished turn and hands it to the writer."""

    def __init__(self, writer: RecordWriter) -> None:
        self.writer = writer

    def record(
        self,
        state: ConversationState,
        timestamp: datetime,
        service_name: Optional[str] = None,
        missing_fields: Optional[list[str]] = None,
        stage_trace: Optional[list[str]] = None,
    ) -> Optional[OutcomeRecord]:
        """Write one record for the turn that produced ``state``.

        Returns the record, or None if the writer failed.
        """
        record = OutcomeRecord(
            timestamp=timestamp,
            outcome_type=state.outcome,
            intent=state.intent,
            detected_intents=list(state.active_intents),
            service_id=state.service_id,
            collected_fields=dict(state.slots),
            conversation_summary=build_conversation_summary(service_name, state.slots),
            escalation_reason=state.escalation_reason,
            missing_fields=list(missing_fields or []),
            stage_trace=list(stage_trace or []),
            booking_ref=state.booking_record.booking_ref if state.booking_record else None,
            conversation_id=state.conversation_id,
            turn=state.turn_count,
        )
        try:
            self.writer.write(record)
        except Exception:
            logger.exception("Failed to write outcome record (turn %d)", state.turn_count)
            return None
        logger.debug("Outcome recorded: %s", record.outcome_type.value)
        return record
