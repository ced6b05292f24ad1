"""
Knowledge store: loads the service catalog, pricing table and business
hours once at startup.

The result is a frozen ``KnowledgeBase`` that is passed explicitly into the
orchestrator. A load failure is reported as ``KnowledgeLoadError``; callers
that must keep serving (the orchestrator factory) use
``try_load_knowledge`` and fail closed on ``None``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from sunny.config import AppConfig, settings
from sunny.schemas.knowledge_schema import (
    BusinessHoursEntry,
    KnowledgeBase,
    PricingTable,
    Service,
)

logger = logging.getLogger(__name__)


class KnowledgeLoadError(Exception):
    """Raised when a reference-data document is missing or malformed."""


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise KnowledgeLoadError(f"Could not read {path}: {e}") from e


def _parse_services(document: Any) -> list[Service]:
    """Accept either a bare array or ``{"services": [...]}``."""
    if isinstance(document, dict):
        document = document.get("services", [])
    if not isinstance(document, list) or not document:
        raise KnowledgeLoadError("Service catalog must be a non-empty array")
    return [Service.model_validate(entry) for entry in document]


def _parse_schedule(document: Any) -> list[BusinessHoursEntry]:
    """Accept ``{"schedule": [...]}`` or the company document shape."""
    if isinstance(document, dict) and "company" in document:
        document = document["company"].get("hours_of_operation", {})
    if not isinstance(document, dict) or not isinstance(document.get("schedule"), list):
        raise KnowledgeLoadError("Business hours document must contain a 'schedule' array")
    return [BusinessHoursEntry.model_validate(entry) for entry in document["schedule"]]


def load_knowledge(config: Optional[AppConfig] = None) -> KnowledgeBase:
    """Load every reference document named in configuration.

    Raises:
        KnowledgeLoadError: If any document is unreadable or fails validation.
    """
    config = config or settings
    kc = config.knowledge
    base = Path(kc.knowledge_dir)

    services_doc = _read_json(base / kc.services_file)
    hours_doc = _read_json(base / kc.hours_file)
    pricing_doc = _read_json(base / kc.pricing_file)

    try:
        services = _parse_services(services_doc)
        schedule = _parse_schedule(hours_doc)
        pricing = PricingTable.from_document(
            pricing_doc, source=kc.pricing_file, currency=config.business.currency
        )
        knowledge = KnowledgeBase(
            business_name=config.business.name,
            services=tuple(services),
            pricing=pricing,
            priced_service_id=kc.priced_service_id,
            schedule=tuple(schedule),
            currency=config.business.currency,
        )
    except (ValidationError, ValueError) as e:
        raise KnowledgeLoadError(f"Invalid knowledge documents in {base}: {e}") from e

    if knowledge.get_service(kc.priced_service_id) is None:
        raise KnowledgeLoadError(
            f"Priced service '{kc.priced_service_id}' is not in the service catalog"
        )

    logger.info(
        "Knowledge loaded: %d service(s), %d price row(s), %d schedule day(s)",
        len(knowledge.services),
        len(pricing.flat) or len(pricing.tiers),
        len(knowledge.schedule),
    )
    return knowledge


def try_load_knowledge(config: Optional[AppConfig] = None) -> Optional[KnowledgeBase]:
    """Load knowledge, returning None (and logging) instead of raising."""
    try:
        return load_knowledge(config)
    except KnowledgeLoadError:
        logger.exception("Knowledge store unavailable; conversations will fail closed")
        return None
