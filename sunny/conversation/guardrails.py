"""
Trigger-phrase guardrails checked against every user message.

Three independent layers, each checking a different concern:
1. GuaranteeGuardrail: guarantees, warranties, discounts and custom pricing
2. SafetyGuardrail: access, safety and permit/compliance questions
3. RefusalGuardrail: the customer declines to give a requested detail

Guarantee and safety hits always escalate. A refusal only matters while a
required field is outstanding, which is the escalation policy's call.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from sunny.conversation.extractors import is_refusal
from sunny.schemas.conversation_schema import EscalationReason

logger = logging.getLogger(__name__)


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[EscalationReason] = None
    message: Optional[str] = None
    severity: str = "warning"  # "warning" | "escalate"


class GuaranteeGuardrail:
    """Pricing promises the assistant is never allowed to make."""

    PATTERN = re.compile(
        r"\b(guarantee[sd]?|warrant(y|ies)|custom (price|pricing|quote)|discounts?|"
        r"price match(ing)?|promo code|coupon)\b"
    )

    def check(self, text: str) -> GuardrailResult:
        match = self.PATTERN.search(text.lower())
        if match:
            logger.info("Guarantee/custom pricing phrase detected: '%s'", match.group(0))
            return GuardrailResult(
                passed=False,
                violation_type=EscalationReason.GUARANTEE_OR_CUSTOM_PRICING_REQUEST,
                message=f"Customer asked about '{match.group(0)}'.",
                severity="escalate",
            )
        return GuardrailResult(passed=True)


class SafetyGuardrail:
    """Site access, safety and compliance questions need a person."""

    PATTERN = re.compile(
        r"\b(unsafe|hazards?|hazardous|dangerous|no access|can't access|cannot access|"
        r"permits?|compliance|code violation|steep|fragile|broken panels?)\b"
    )

    def check(self, text: str) -> GuardrailResult:
        match = self.PATTERN.search(text.lower().replace("’", "'"))
        if match:
            logger.info("Safety/compliance phrase detected: '%s'", match.group(0))
            return GuardrailResult(
                passed=False,
                violation_type=EscalationReason.SAFETY_OR_COMPLIANCE_CONCERN,
                message=f"Customer raised '{match.group(0)}'.",
                severity="escalate",
            )
        return GuardrailResult(passed=True)


class RefusalGuardrail:
    """Detects "I don't know" / "prefer not to say" style answers."""

    def check(self, text: str) -> GuardrailResult:
        if is_refusal(text):
            return GuardrailResult(
                passed=False,
                violation_type=EscalationReason.REQUIRED_FIELD_REFUSED,
                message="Customer declined to provide a requested detail.",
            )
        return GuardrailResult(passed=True)


class GuardrailPipeline:
    """Composes the guardrails in escalation priority order."""

    def __init__(self) -> None:
        self.guarantee = GuaranteeGuardrail()
        self.safety = SafetyGuardrail()
        self.refusal = RefusalGuardrail()

    def check_user_input(self, text: str) -> list[GuardrailResult]:
        """Return the escalating violations in the message, guarantee first."""
        results = [
            self.guarantee.check(text),
            self.safety.check(text),
        ]
        return [r for r in results if not r.passed and r.severity == "escalate"]

    def is_refusal(self, text: str) -> bool:
        return not self.refusal.check(text).passed
