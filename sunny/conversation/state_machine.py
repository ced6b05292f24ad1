"""
Finite state machine for the quote/booking lifecycle.

Stages and triggers are explicit; every stage change the orchestrator makes
goes through ``transition`` and is rejected if the graph does not allow it.
The machine is rebuilt from ``ConversationState.stage`` on every turn, so
the history only covers the current turn and becomes the outcome record's
stage trace.

Usage:
    sm = ConversationStateMachine(ConversationStage.IDLE)
    sm.transition(TransitionTrigger.PANEL_COUNT_REQUESTED)
    assert sm.current_stage == ConversationStage.QUOTE_COLLECTING
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sunny.schemas.conversation_schema import ConversationStage

logger = logging.getLogger(__name__)


class TransitionTrigger(str, Enum):
    """Events that cause stage transitions."""
    SERVICE_RESOLVED = "service_resolved"
    PANEL_COUNT_REQUESTED = "panel_count_requested"
    QUOTE_DELIVERED = "quote_delivered"
    COLLECT_BOOKING_FIELDS = "collect_booking_fields"
    HOURS_REJECTED = "hours_rejected"
    HOURS_ACCEPTED = "hours_accepted"
    BOOKING_CONFIRMED = "booking_confirmed"
    ESCALATION_TRIGGERED = "escalation_triggered"


@dataclass
class Transition:
    """A single valid stage transition."""
    from_stage: ConversationStage
    to_stage: ConversationStage
    trigger: TransitionTrigger


@dataclass
class StageEntry:
    """Recorded history entry for a stage visit."""
    stage: ConversationStage
    trigger: Optional[TransitionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current stage."""


# Stages from which a pricing or booking flow may (re)start.
_FLOW_SOURCES = [
    ConversationStage.IDLE,
    ConversationStage.SERVICE_IDENTIFIED,
    ConversationStage.QUOTE_COLLECTING,
    ConversationStage.QUOTE_GIVEN,
    ConversationStage.BOOKING_COLLECTING,
    ConversationStage.ESCALATED,
]


def _fan_in(trigger: TransitionTrigger, to_stage: ConversationStage) -> list[Transition]:
    return [Transition(source, to_stage, trigger) for source in _FLOW_SOURCES]


class ConversationStateMachine:
    """
    Deterministic stage machine for one turn of a conversation.

    Every transition must be explicitly defined. An undefined transition
    raises ``InvalidTransitionError`` listing what is allowed instead.
    """

    TRANSITIONS: list[Transition] = [
        # --- Service ---
        Transition(ConversationStage.IDLE, ConversationStage.SERVICE_IDENTIFIED,
                   TransitionTrigger.SERVICE_RESOLVED),

        # --- Quote ---
        *_fan_in(TransitionTrigger.PANEL_COUNT_REQUESTED, ConversationStage.QUOTE_COLLECTING),
        *_fan_in(TransitionTrigger.QUOTE_DELIVERED, ConversationStage.QUOTE_GIVEN),

        # --- Booking ---
        *_fan_in(TransitionTrigger.COLLECT_BOOKING_FIELDS, ConversationStage.BOOKING_COLLECTING),
        Transition(ConversationStage.BOOKING_COLLECTING, ConversationStage.BOOKING_COLLECTING,
                   TransitionTrigger.HOURS_REJECTED),
        Transition(ConversationStage.BOOKING_COLLECTING, ConversationStage.HOURS_CHECKED,
                   TransitionTrigger.HOURS_ACCEPTED),
        Transition(ConversationStage.HOURS_CHECKED, ConversationStage.BOOKED,
                   TransitionTrigger.BOOKING_CONFIRMED),

        # --- Escalation (from anywhere) ---
        *[
            Transition(stage, ConversationStage.ESCALATED, TransitionTrigger.ESCALATION_TRIGGERED)
            for stage in ConversationStage
        ],
    ]

    def __init__(self, initial: ConversationStage = ConversationStage.IDLE) -> None:
        self._current_stage = initial
        self._history: list[StageEntry] = [StageEntry(stage=initial)]

    @property
    def current_stage(self) -> ConversationStage:
        return self._current_stage

    def transition(self, trigger: TransitionTrigger) -> ConversationStage:
        """
        Execute a stage transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new stage.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_stage == self._current_stage and t.trigger == trigger:
                old_stage = self._current_stage
                self._current_stage = t.to_stage
                self._history.append(StageEntry(stage=self._current_stage, trigger=trigger))
                logger.debug(
                    "Stage transition: %s -> %s (trigger: %s)",
                    old_stage.value, self._current_stage.value, trigger.value,
                )
                return self._current_stage

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_stage.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can_transition(self, trigger: TransitionTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current stage."""
        return [t.trigger for t in self.TRANSITIONS if t.from_stage == self._current_stage]

    def get_state_trace(self) -> list[str]:
        """Return ordered list of stage names visited."""
        return [entry.stage.value for entry in self._history]
