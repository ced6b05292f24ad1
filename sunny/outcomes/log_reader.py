"""Loads an NDJSON outcome log back into ``OutcomeRecord`` objects."""

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from sunny.schemas.outcome_schema import OutcomeRecord

logger = logging.getLogger(__name__)


def load_outcome_log(path: Union[str, Path], strict: bool = False) -> list[OutcomeRecord]:
    """Parse every line of the log.

    Blank lines are ignored. A malformed line is skipped with a warning,
    or raised when ``strict`` is True.
    """
    records: list[OutcomeRecord] = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                records.append(OutcomeRecord.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                if strict:
                    raise
                logger.warning("Skipping invalid outcome record at %s:%d: %s", path, line_no, e)
    logger.info("Loaded %d outcome record(s) from %s", len(records), path)
    return records
