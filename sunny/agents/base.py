"""Shared types for the deterministic turn handlers."""

from dataclasses import dataclass, field
from typing import Any, Optional

from sunny.conversation.state_machine import TransitionTrigger
from sunny.schemas.conversation_schema import EscalationReason
from sunny.schemas.knowledge_schema import KnowledgeBase
from sunny.tools.services import get_service_names


@dataclass
class AgentReply:
    """What a handler decided for this turn.

    ``updates`` holds ``ConversationState`` field changes; the orchestrator
    applies them with ``model_copy`` so no handler mutates state directly.
    A handler that discovers an escalation condition sets ``escalate``
    instead of phrasing the handoff itself.
    """
    reply: str = ""
    updates: dict[str, Any] = field(default_factory=dict)
    triggers: list[TransitionTrigger] = field(default_factory=list)
    escalate: Optional[EscalationReason] = None


class Agent:
    """Base class: every handler reads the same immutable knowledge."""

    def __init__(self, knowledge: KnowledgeBase) -> None:
        self.knowledge = knowledge

    @property
    def service_names(self) -> list[str]:
        return get_service_names(self.knowledge.services)
