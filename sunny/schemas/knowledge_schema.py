"""Reference data models: service catalog, pricing table, business hours."""

import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class QuoteField(BaseModel):
    """One field a service needs before it can be quoted and booked."""
    field: str
    required: bool = True
    label: str
    options: Optional[list[str]] = None


class Service(BaseModel):
    id: str
    name: str
    short_description: str
    required_for_quote: list[QuoteField] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    def get_field(self, name: str) -> Optional[QuoteField]:
        for quote_field in self.required_for_quote:
            if quote_field.field == name:
                return quote_field
        return None


class PricingTier(BaseModel):
    min: int
    max: int
    job_total_usd: Optional[float] = None
    manual_quote: bool = False


class PricingTable(BaseModel):
    """Authoritative price list for the auto-quoted service.

    Exactly one of ``flat`` (panel count as string -> total) or ``tiers``
    is populated, depending on which document shape was loaded.
    """

    source: str
    currency: str = "USD"
    flat: dict[str, float] = Field(default_factory=dict)
    tiers: list[PricingTier] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Any, source: str, currency: str = "USD") -> "PricingTable":
        """Build a table from either supported JSON shape.

        Flat entries whose value is not a number are dropped, so a malformed
        row behaves like a missing one (escalation) rather than a guess.
        """
        if not isinstance(document, dict):
            raise ValueError(f"Pricing document {source} must be a JSON object")

        if "tiers" in document:
            return cls(source=source, currency=currency, tiers=document["tiers"])

        flat: dict[str, float] = {}
        for key, value in document.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning("Dropping non-numeric price for key %r in %s", key, source)
                continue
            flat[str(key).strip()] = float(value)
        return cls(source=source, currency=currency, flat=flat)


class BusinessHoursEntry(BaseModel):
    day: str
    open: Optional[str] = None
    close: Optional[str] = None

    @field_validator("open", "close")
    @classmethod
    def _check_hhmm(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _HHMM.match(value):
            raise ValueError(f"expected zero-padded HH:MM, got {value!r}")
        return value


class KnowledgeBase(BaseModel):
    """Immutable reference data shared by every conversation."""

    model_config = ConfigDict(frozen=True)

    business_name: str
    services: tuple[Service, ...]
    pricing: PricingTable
    priced_service_id: str
    schedule: tuple[BusinessHoursEntry, ...]
    currency: str = "USD"

    def get_service(self, service_id: Optional[str]) -> Optional[Service]:
        if service_id is None:
            return None
        for service in self.services:
            if service.id == service_id:
                return service
        return None
