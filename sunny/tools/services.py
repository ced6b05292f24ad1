"""Service resolution and catalog lookups."""

import logging
import re
from typing import Iterable, Optional

from sunny.schemas.knowledge_schema import Service

logger = logging.getLogger(__name__)

# Used when a catalog entry ships without its own keyword list.
SERVICE_KEYWORDS: dict[str, list[str]] = {
    "solar_panel_cleaning": ["solar", "panel", "panels", "pv"],
    "pressure_washing": ["pressure wash", "power wash", "driveway", "patio"],
}

_TOKEN = re.compile(r"[a-z0-9']+")


def get_service_keywords(service: Service) -> list[str]:
    """Return the keywords for a service, falling back to the built-in map."""
    if service.keywords:
        return [k.lower() for k in service.keywords]
    return SERVICE_KEYWORDS.get(service.id, [])


def _matches(keyword: str, tokens: set[str], normalized: str) -> bool:
    if " " in keyword:
        return re.search(rf"\b{re.escape(keyword)}", normalized) is not None
    return keyword in tokens


def resolve_service(message: str, services: Iterable[Service]) -> Optional[str]:
    """Match an utterance to a service ID. Returns None if no keyword matches.

    Single-word keywords must match a whole token ("pv" does not match
    "pvc"); multi-word keywords match as a phrase. Catalog order breaks ties.
    """
    normalized = (message or "").lower()
    tokens = set(_TOKEN.findall(normalized))
    for service in services:
        if any(_matches(k, tokens, normalized) for k in get_service_keywords(service)):
            logger.debug("Service resolved: %s", service.id)
            return service.id
    return None


def get_service_names(services: Iterable[Service]) -> list[str]:
    return [service.name for service in services]
