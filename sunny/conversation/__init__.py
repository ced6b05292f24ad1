from sunny.conversation.escalation_policy import (
    EscalationDecision,
    EscalationPolicy,
    HandoffStage,
    get_handoff_stage,
)
from sunny.conversation.extractors import SLOT_EXTRACTORS, extract_answer, extract_slots
from sunny.conversation.guardrails import GuardrailPipeline
from sunny.conversation.intent import classify_intent
from sunny.conversation.slot_manager import SlotManager, merge_slots
from sunny.conversation.state_machine import (
    ConversationStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)

__all__ = [
    "ConversationStateMachine",
    "InvalidTransitionError",
    "TransitionTrigger",
    "SlotManager",
    "merge_slots",
    "SLOT_EXTRACTORS",
    "extract_slots",
    "extract_answer",
    "classify_intent",
    "GuardrailPipeline",
    "EscalationPolicy",
    "EscalationDecision",
    "HandoffStage",
    "get_handoff_stage",
]
