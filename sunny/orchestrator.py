"""
Conversation orchestrator: the single entry point for a customer message.

``handle`` is a pure reducer over ``ConversationState``. It reads the prior
state, derives a new one with ``model_copy`` and returns it with the reply;
nothing about the conversation is kept on the orchestrator. The only side
effect is one outcome record per turn.

Per turn:
1. merge slots extracted from the message (first value wins unless corrected)
2. resolve the service and classify the intent
3. evaluate the escalation policy and short-circuit on a trigger
4. otherwise answer service info, advance the pricing/booking flow, or reply
   generally
5. derive the outcome and record the turn
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

from sunny.agents.base import AgentReply
from sunny.agents.booking_agent import BookingAgent
from sunny.agents.escalation_agent import EscalationAgent
from sunny.agents.info_agent import InfoAgent
from sunny.config import AppConfig, settings
from sunny.conversation.escalation_policy import EscalationPolicy
from sunny.conversation.extractors import extract_answer, extract_slots, is_correction, is_refusal
from sunny.conversation.intent import classify_intent
from sunny.conversation.slot_manager import CONTACT_FIELDS, SlotManager, merge_slots
from sunny.conversation.state_machine import (
    ConversationStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)
from sunny.logging_context import (
    NO_CONVERSATION_ID,
    get_conversation_logger,
    set_conversation_id,
)
from sunny.outcomes.recorder import JsonlRecordWriter, OutcomeRecorder
from sunny.prompts.reply_templates import SAFE_FAIL_MESSAGE, already_booked_reply
from sunny.schemas.conversation_schema import (
    FLOW_INTENTS,
    ConversationState,
    EscalationReason,
    Intent,
    Outcome,
    TurnResult,
)
from sunny.schemas.knowledge_schema import KnowledgeBase
from sunny.tools.knowledge import try_load_knowledge
from sunny.tools.services import resolve_service

logger = get_conversation_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationOrchestrator:
    """
    Sequences the extractors, classifier, policy and agents for one turn.

    Args:
        knowledge: Loaded reference data, or None when loading failed. With
            None every turn returns the safe-fail reply and escalates.
        recorder: Destination for one outcome record per turn.
        clock: Source of "now" for record timestamps and date resolution.
        max_field_prompts: How often a field is asked before giving up.
    """

    def __init__(
        self,
        knowledge: Optional[KnowledgeBase],
        recorder: OutcomeRecorder,
        clock: Clock = _utc_now,
        max_field_prompts: Optional[int] = None,
    ) -> None:
        self.knowledge = knowledge
        self.recorder = recorder
        self.clock = clock
        self.max_field_prompts = (
            max_field_prompts
            if max_field_prompts is not None
            else settings.guardrails.max_field_prompts
        )
        if knowledge is not None:
            self.policy = EscalationPolicy(knowledge, self.max_field_prompts)
            self.info_agent = InfoAgent(knowledge)
            self.booking_agent = BookingAgent(knowledge)
            self.escalation_agent = EscalationAgent(knowledge, self.max_field_prompts)

    @classmethod
    def from_settings(cls, config: Optional[AppConfig] = None) -> "ConversationOrchestrator":
        """Build an orchestrator from configuration, failing closed on bad knowledge."""
        config = config or settings
        knowledge = try_load_knowledge(config)
        recorder = OutcomeRecorder(JsonlRecordWriter(config.recorder.outcome_log_path))
        return cls(knowledge, recorder, max_field_prompts=config.guardrails.max_field_prompts)

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def handle(
        self, message: str, prior_state: Optional[ConversationState] = None
    ) -> TurnResult:
        """
        Process one customer message.

        Args:
            message: The raw utterance. Must be non-empty.
            prior_state: The state returned by the previous turn, or None
                to start a new conversation.

        Returns:
            The reply and the state to send back with the next message.

        Raises:
            ValueError: If ``message`` is empty or whitespace.
        """
        if not message or not message.strip():
            raise ValueError("message must be a non-empty string")

        prior = prior_state or ConversationState()
        set_conversation_id(prior.conversation_id or NO_CONVERSATION_ID)
        now = self.clock()

        slots, newly_set = self._update_slots(message, prior)
        classified = classify_intent(message)
        active_intents = sorted(
            set(prior.active_intents) | {classified},
            key=lambda i: i.value,
        )
        working = prior.model_copy(update={
            "slots": slots,
            "intent": classified,
            "active_intents": active_intents,
            "turn_count": prior.turn_count + 1,
        })

        if self.knowledge is None:
            return self._safe_fail(working, now)

        service_id = resolve_service(message, self.knowledge.services)
        if service_id is not None and service_id != prior.service_id:
            working = working.model_copy(update={"service_id": service_id})
            if prior.awaiting_field == "service_id":
                newly_set.append("service_id")

        intent = self._effective_intent(classified, prior, newly_set)
        working = working.model_copy(update={"intent": intent})
        logger.debug("Intent: classified=%s effective=%s", classified.value, intent.value)

        machine = ConversationStateMachine(prior.stage)
        missing_fields: list[str] = []

        decision = self.policy.evaluate(message, intent, working, prior, newly_set)
        if decision is not None:
            agent_reply = self._escalate(working, decision.reason, decision.newly_triggered, message)
            missing_fields = decision.missing_fields
        else:
            agent_reply = self._route(working, intent, now.date())
            if agent_reply.escalate is not None:
                agent_reply = self._escalate(working, agent_reply.escalate, True, message)

        new_state = self._apply(working, agent_reply, machine)
        new_state = self._finalize(new_state, booked_now="booking_record" in agent_reply.updates)

        service = self.knowledge.get_service(new_state.service_id)
        if not missing_fields and service is not None:
            manager = SlotManager.for_service(service)
            missing_fields = [d.name for d in manager.get_missing(new_state.slots)]
        self.recorder.record(
            new_state,
            timestamp=now,
            service_name=service.name if service else None,
            missing_fields=missing_fields,
            stage_trace=machine.get_state_trace(),
        )
        logger.info(
            "Turn %d: intent=%s outcome=%s stage=%s",
            new_state.turn_count, new_state.intent.value,
            new_state.outcome.value, new_state.stage.value,
        )
        return TurnResult(reply=agent_reply.reply, state=new_state)

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _update_slots(
        self, message: str, prior: ConversationState
    ) -> tuple[dict, list[str]]:
        extracted = extract_slots(message)

        awaiting = prior.awaiting_field
        if awaiting and awaiting not in extracted and not is_refusal(message):
            answer = extract_answer(awaiting, message)
            if answer is not None:
                extracted[awaiting] = answer

        overwrite: set[str] = set(extracted) if is_correction(message) else set()
        if prior.awaiting_correction and awaiting:
            overwrite.add(awaiting)

        return merge_slots(prior.slots, extracted, overwrite)

    def _effective_intent(
        self, classified: Intent, prior: ConversationState, newly_set: list[str]
    ) -> Intent:
        """Treat answers to a pending flow question as part of that flow."""
        if prior.active_flow is None or prior.awaiting_field in (None, *CONTACT_FIELDS):
            return classified
        if classified == Intent.GENERAL:
            return prior.active_flow
        if (
            classified in (Intent.SERVICE_INFO, Intent.FOLLOWUP_REQUEST)
            and prior.awaiting_field in newly_set
        ):
            return prior.active_flow
        return classified

    def _route(self, state: ConversationState, intent: Intent, today: date) -> AgentReply:
        if intent == Intent.SERVICE_INFO:
            return self.info_agent.handle_service_info(state)

        if intent in FLOW_INTENTS:
            if state.booking_record is not None:
                return AgentReply(reply=already_booked_reply(state.booking_record))
            reply = self.booking_agent.handle(state, intent, today)
            reply.updates.setdefault("active_flow", intent)
            return reply

        return self.info_agent.handle_general(state)

    def _escalate(
        self,
        state: ConversationState,
        reason: EscalationReason,
        newly_triggered: bool,
        message: str,
    ) -> AgentReply:
        return self.escalation_agent.handle(
            state, reason, newly_triggered, refused=is_refusal(message)
        )

    def _apply(
        self,
        state: ConversationState,
        agent_reply: AgentReply,
        machine: ConversationStateMachine,
    ) -> ConversationState:
        for trigger in agent_reply.triggers:
            if not machine.can_transition(trigger):
                logger.warning(
                    "Ignoring stage transition from %s: %s",
                    machine.current_stage.value, trigger.value,
                )
                continue
            machine.transition(trigger)

        updates = dict(agent_reply.updates)
        updates.setdefault("awaiting_field", None)
        updates.setdefault("awaiting_correction", False)
        updates["stage"] = machine.current_stage
        return state.model_copy(update=updates)

    def _finalize(self, state: ConversationState, booked_now: bool = False) -> ConversationState:
        """Derive the outcome. A booking made this turn resolves any pending follow-up."""
        if booked_now:
            if state.needs_human_followup:
                logger.info("Booking resolved pending follow-up (%s)", state.escalation_reason)
            state = state.model_copy(update={
                "needs_human_followup": False,
                "escalation_reason": None,
            })

        if state.needs_human_followup:
            outcome = Outcome.NEEDS_HUMAN_FOLLOWUP
        elif state.booking_record is not None:
            outcome = Outcome.BOOKED_JOB
        else:
            outcome = Outcome.GENERAL_LEAD
        return state.model_copy(update={"outcome": outcome})

    def _safe_fail(self, state: ConversationState, now: datetime) -> TurnResult:
        """Knowledge is unavailable: fixed reply, forced escalation."""
        logger.error("Knowledge unavailable; returning safe-fail reply")
        machine = ConversationStateMachine(state.stage)
        try:
            machine.transition(TransitionTrigger.ESCALATION_TRIGGERED)
        except InvalidTransitionError as e:
            logger.warning("Ignoring stage transition: %s", e)

        new_state = state.model_copy(update={
            "needs_human_followup": True,
            "escalation_reason": EscalationReason.KNOWLEDGE_UNAVAILABLE,
            "outcome": Outcome.NEEDS_HUMAN_FOLLOWUP,
            "stage": machine.current_stage,
            "awaiting_field": None,
            "awaiting_correction": False,
        })
        self.recorder.record(new_state, timestamp=now, stage_trace=machine.get_state_trace())
        return TurnResult(reply=SAFE_FAIL_MESSAGE, state=new_state)
