"""
Info agent: answers service questions from the catalog.

Also produces the reply for ``general`` turns, which the caller may replace
with its generative fallback (see ``TurnResult.needs_fallback``).
"""

from sunny.agents.base import Agent, AgentReply
from sunny.conversation.state_machine import TransitionTrigger
from sunny.logging_context import get_conversation_logger
from sunny.prompts.reply_templates import catalog_reply, general_reply, service_info_reply
from sunny.schemas.conversation_schema import ConversationStage, ConversationState

logger = get_conversation_logger(__name__)


class InfoAgent(Agent):
    """Service information and catalog overview."""

    def handle_service_info(self, state: ConversationState) -> AgentReply:
        service = self.knowledge.get_service(state.service_id)
        if service is None:
            logger.debug("Service info without a resolved service; listing catalog")
            return AgentReply(reply=catalog_reply(self.service_names))

        triggers = []
        if state.stage == ConversationStage.IDLE:
            triggers.append(TransitionTrigger.SERVICE_RESOLVED)
        return AgentReply(
            reply=service_info_reply(service.name, service.short_description),
            triggers=triggers,
        )

    def handle_general(self, state: ConversationState) -> AgentReply:
        triggers = []
        if state.service_id is not None and state.stage == ConversationStage.IDLE:
            triggers.append(TransitionTrigger.SERVICE_RESOLVED)
        return AgentReply(reply=general_reply(self.service_names), triggers=triggers)
