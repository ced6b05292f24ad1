"""
Intent classifier: ordered pattern tests, first match wins.

Booking vocabulary is checked before pricing vocabulary, so "book 45 panels,
how much?" is a booking request. Every pattern is word-bounded so "books"
or "services" inflections still match but "facebook" does not.
"""

import re

from sunny.schemas.conversation_schema import Intent

INTENT_PATTERNS: list[tuple[Intent, re.Pattern[str]]] = [
    (
        Intent.BOOKING_REQUEST,
        re.compile(r"\b(book\w*|schedul\w*|appointments?|reserv\w*|availability)\b"),
    ),
    (
        Intent.PRICING_QUOTE,
        re.compile(r"\b(prices?|pricing|quotes?|costs?|estimates?|how much)\b"),
    ),
    (
        Intent.SERVICE_INFO,
        re.compile(r"\b(services?|offer\w*|provide\w*|what do you)\b"),
    ),
    (
        Intent.FOLLOWUP_REQUEST,
        re.compile(
            r"\b(call me|text me|human|representative|real person|speak to someone|follow up)\b"
        ),
    ),
]


def classify_intent(text: str) -> Intent:
    """Map an utterance to exactly one intent."""
    lower = (text or "").lower()
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(lower):
            return intent
    return Intent.GENERAL
