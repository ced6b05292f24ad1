"""
Exact-match pricing resolver.

A quote is only ever read straight out of the pricing table. There is no
per-panel multiplication and no interpolation between rows: a panel count
without its own row returns None, which the escalation policy turns into a
human review.
"""

import logging
from typing import Optional

from sunny.schemas.conversation_schema import Quote
from sunny.schemas.knowledge_schema import PricingTable

logger = logging.getLogger(__name__)


def lookup_price(table: Optional[PricingTable], panel_count: int) -> Optional[Quote]:
    """Look up the job total for exactly ``panel_count`` panels.

    Returns None when the table is unavailable, the count has no row, or the
    matching tier is flagged ``manual_quote`` / has no ``job_total_usd``.
    """
    if table is None:
        logger.debug("Lookup skipped: pricing table unavailable (panel_count=%s)", panel_count)
        return None

    if isinstance(panel_count, bool) or not isinstance(panel_count, int) or panel_count <= 0:
        return None

    total: Optional[float] = None
    if table.tiers:
        for tier in table.tiers:
            if tier.min == panel_count and tier.max == panel_count:
                if not tier.manual_quote and tier.job_total_usd is not None:
                    total = tier.job_total_usd
                break
    else:
        total = table.flat.get(str(panel_count))

    logger.debug("Pricing lookup for %d panel(s): %s", panel_count, total)
    if total is None:
        return None

    return Quote(
        panel_count=panel_count,
        total=total,
        currency=table.currency,
        pricing_source=table.source,
    )
