"""
Escalation agent: phrases the human handoff and collects contact preferences.

The first escalated turn leads with a reason-specific sentence; every
escalated turn then asks for whatever the handoff still needs (contact
method, then callback window) or closes with the follow-up promise.
"""

from typing import Optional

from sunny.agents.base import Agent, AgentReply
from sunny.conversation.escalation_policy import HandoffStage, get_handoff_stage
from sunny.conversation.state_machine import TransitionTrigger
from sunny.logging_context import get_conversation_logger
from sunny.prompts.reply_templates import (
    CALLBACK_WINDOW_PROMPT,
    CONTACT_METHOD_PROMPT,
    HANDOFF_COMPLETE,
    escalation_lead_in,
)
from sunny.schemas.conversation_schema import ConversationState, EscalationReason
from sunny.schemas.knowledge_schema import KnowledgeBase

logger = get_conversation_logger(__name__)

_STAGE_FIELDS = {
    HandoffStage.NEED_CONTACT_METHOD: "contact_method",
    HandoffStage.NEED_CALLBACK_WINDOW: "callback_window",
}
_STAGE_PROMPTS = {
    HandoffStage.NEED_CONTACT_METHOD: CONTACT_METHOD_PROMPT,
    HandoffStage.NEED_CALLBACK_WINDOW: CALLBACK_WINDOW_PROMPT,
    HandoffStage.SATISFIED: HANDOFF_COMPLETE,
}


class EscalationAgent(Agent):
    """Human handoff handler."""

    def __init__(self, knowledge: KnowledgeBase, max_field_prompts: int) -> None:
        super().__init__(knowledge)
        self.max_field_prompts = max_field_prompts

    def handle(
        self,
        state: ConversationState,
        reason: EscalationReason,
        newly_triggered: bool,
        refused: bool = False,
    ) -> AgentReply:
        """
        Build the escalation reply for this turn.

        Args:
            state: Working state with this turn's slots merged in.
            reason: Why the conversation is with a human.
            newly_triggered: Lead with the reason sentence when True.
            refused: The customer declined the contact question just asked;
                that question is dropped instead of repeated.
        """
        attempts = dict(state.field_attempts)
        if refused and state.awaiting_field in _STAGE_FIELDS.values():
            attempts[state.awaiting_field] = self.max_field_prompts

        working = state.model_copy(update={"field_attempts": attempts})
        stage = get_handoff_stage(working, self.max_field_prompts)

        pending_field: Optional[str] = _STAGE_FIELDS.get(stage)
        if pending_field is not None:
            attempts[pending_field] = attempts.get(pending_field, 0) + 1

        parts = []
        if newly_triggered:
            service = self.knowledge.get_service(state.service_id)
            parts.append(escalation_lead_in(
                reason,
                panel_count=state.slots.get("panel_count"),
                service_name=service.name if service else None,
            ))
        parts.append(_STAGE_PROMPTS[stage])

        logger.info("Handoff (%s): stage=%s", reason.value, stage.value)
        return AgentReply(
            reply=" ".join(parts),
            updates={
                "needs_human_followup": True,
                "escalation_reason": reason,
                "awaiting_field": pending_field,
                "awaiting_correction": False,
                "field_attempts": attempts,
            },
            triggers=[TransitionTrigger.ESCALATION_TRIGGERED],
        )
