"""
Escalation policy: decides when a conversation goes to a human.

Triggers are evaluated in a fixed order and the first one that fires wins:

1. guarantee / custom pricing vocabulary
2. safety, access or compliance vocabulary
3. explicit request for a human
4. refusal of a field that was just asked for
5. a valid panel count with no row in the pricing table
6. a pricing or booking request for a service that is not auto-quoted
7. a required field asked for too many times without an answer
8. an earlier handoff still waiting for contact preferences

The knowledge-unavailable case never reaches this module; the orchestrator
fails closed before any evaluation happens.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sunny.config import settings
from sunny.conversation.guardrails import GuardrailPipeline
from sunny.conversation.slot_manager import CONTACT_FIELDS, is_valid
from sunny.schemas.conversation_schema import (
    FLOW_INTENTS,
    ConversationState,
    EscalationReason,
    Intent,
)
from sunny.schemas.knowledge_schema import KnowledgeBase
from sunny.tools.pricing import lookup_price

logger = logging.getLogger(__name__)


class HandoffStage(str, Enum):
    """Contact-preference collection once a conversation is escalated."""
    NEED_CONTACT_METHOD = "need_contact_method"
    NEED_CALLBACK_WINDOW = "need_callback_window"
    SATISFIED = "satisfied"


def get_handoff_stage(state: ConversationState, max_prompts: Optional[int] = None) -> HandoffStage:
    """Derive the handoff stage from the contact slots.

    A contact field that has already been asked for ``max_prompts`` times
    is skipped, so the handoff always terminates.
    """
    limit = max_prompts if max_prompts is not None else settings.guardrails.max_field_prompts
    for field_name, stage in (
        ("contact_method", HandoffStage.NEED_CONTACT_METHOD),
        ("callback_window", HandoffStage.NEED_CALLBACK_WINDOW),
    ):
        if is_valid(field_name, state.slots.get(field_name)):
            continue
        if state.field_attempts.get(field_name, 0) >= limit:
            continue
        return stage
    return HandoffStage.SATISFIED


@dataclass
class EscalationDecision:
    """Why this turn escalates, and whether the reason is new."""
    reason: EscalationReason
    newly_triggered: bool = True
    missing_fields: list[str] = field(default_factory=list)


class EscalationPolicy:
    """Evaluates the escalation triggers for one turn."""

    def __init__(self, knowledge: KnowledgeBase, max_field_prompts: Optional[int] = None) -> None:
        self.knowledge = knowledge
        self.max_field_prompts = (
            max_field_prompts
            if max_field_prompts is not None
            else settings.guardrails.max_field_prompts
        )
        self.guardrails = GuardrailPipeline()

    def _decision(
        self,
        reason: EscalationReason,
        prior: ConversationState,
        missing_fields: Optional[list[str]] = None,
    ) -> EscalationDecision:
        newly = not prior.needs_human_followup or prior.escalation_reason != reason
        if newly:
            logger.info("Escalation triggered: %s", reason.value)
        return EscalationDecision(
            reason=reason,
            newly_triggered=newly,
            missing_fields=missing_fields or [],
        )

    def evaluate(
        self,
        text: str,
        intent: Intent,
        state: ConversationState,
        prior: ConversationState,
        newly_set: list[str],
    ) -> Optional[EscalationDecision]:
        """
        Check every trigger against this turn.

        Args:
            text: The raw utterance.
            intent: The effective intent for the turn.
            state: Working state with this turn's slots and service merged in.
            prior: The state the caller sent in.
            newly_set: Fields this turn's message filled or corrected.

        Returns:
            The first decision that fires, or None to continue normally.
        """
        violations = self.guardrails.check_user_input(text)
        if violations:
            logger.info("Guardrail escalation: %s", violations[0].message)
            return self._decision(violations[0].violation_type, prior)

        if intent == Intent.FOLLOWUP_REQUEST:
            if prior.needs_human_followup and prior.escalation_reason is not None:
                return EscalationDecision(reason=prior.escalation_reason, newly_triggered=False)
            return self._decision(EscalationReason.HUMAN_CONTACT_REQUESTED, prior)

        awaiting = prior.awaiting_field
        if (
            awaiting
            and awaiting not in CONTACT_FIELDS
            and awaiting not in newly_set
            and self.guardrails.is_refusal(text)
        ):
            return self._decision(EscalationReason.REQUIRED_FIELD_REFUSED, prior, [awaiting])

        panel_count = state.slots.get("panel_count")
        if (
            is_valid("panel_count", panel_count)
            and state.service_id in (None, self.knowledge.priced_service_id)
            and lookup_price(self.knowledge.pricing, panel_count) is None
        ):
            return self._decision(
                EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE, prior, ["panel_count"]
            )

        if (
            intent in FLOW_INTENTS
            and state.service_id is not None
            and state.service_id != self.knowledge.priced_service_id
        ):
            return self._decision(EscalationReason.SERVICE_NOT_AUTO_QUOTED, prior)

        if (
            awaiting
            and awaiting not in CONTACT_FIELDS
            and awaiting not in newly_set
            and prior.field_attempts.get(awaiting, 0) >= self.max_field_prompts
        ):
            return self._decision(
                EscalationReason.REQUIRED_FIELD_NOT_COLLECTED, prior, [awaiting]
            )

        if (
            prior.needs_human_followup
            and prior.escalation_reason is not None
            and get_handoff_stage(prior, self.max_field_prompts) != HandoffStage.SATISFIED
        ):
            return EscalationDecision(reason=prior.escalation_reason, newly_triggered=False)

        return None
