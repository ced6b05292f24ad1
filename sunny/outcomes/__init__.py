from sunny.outcomes.log_reader import load_outcome_log
from sunny.outcomes.metrics import MetricsCalculator, OutcomeMetrics
from sunny.outcomes.recorder import (
    InMemoryRecordWriter,
    JsonlRecordWriter,
    OutcomeRecorder,
    RecordWriter,
)

__all__ = [
    "OutcomeRecorder",
    "RecordWriter",
    "JsonlRecordWriter",
    "InMemoryRecordWriter",
    "load_outcome_log",
    "MetricsCalculator",
    "OutcomeMetrics",
]
