"""
Booking agent: drives the pricing and booking flows.

Pricing flow:  service -> panel count -> exact price lookup -> quote.
Booking flow:  the same, then every required field of the service one at
a time in declared order, then the business-hours check, then the booking
record.

The agent only ever asks one question per turn and never computes a price;
a pricing miss is handed back to the orchestrator as an escalation.
"""

from datetime import date
from typing import Optional

from sunny.agents.base import Agent, AgentReply
from sunny.conversation.slot_manager import SlotManager, is_valid
from sunny.conversation.state_machine import TransitionTrigger
from sunny.logging_context import get_conversation_logger
from sunny.prompts.reply_templates import (
    booking_confirmation,
    closed_day_prompt,
    field_prompt,
    outside_hours_prompt,
    quote_reply,
    service_choice_prompt,
    unknown_date_prompt,
)
from sunny.schemas.conversation_schema import ConversationState, EscalationReason, Intent, Quote
from sunny.schemas.knowledge_schema import Service
from sunny.tools.availability import (
    get_hours_for_day,
    is_within_hours,
    next_open_day,
    resolve_weekday,
)
from sunny.tools.booking import create_booking_record
from sunny.tools.pricing import lookup_price

logger = get_conversation_logger(__name__)

DEFAULT_PANEL_COUNT_PROMPT = "How many solar panels need cleaning?"
DEFAULT_DATE_PROMPT = "What date would you like to book?"


class BookingAgent(Agent):
    """Quote and booking specialist."""

    def _ask(
        self,
        state: ConversationState,
        field_name: str,
        prompt: str,
        triggers: list[TransitionTrigger],
        correction: bool = False,
    ) -> AgentReply:
        attempts = dict(state.field_attempts)
        attempts[field_name] = attempts.get(field_name, 0) + 1
        logger.debug("Asking for '%s' (attempt %d)", field_name, attempts[field_name])
        return AgentReply(
            reply=prompt,
            updates={
                "awaiting_field": field_name,
                "awaiting_correction": correction,
                "field_attempts": attempts,
            },
            triggers=triggers,
        )

    def _label(self, service: Service, field_name: str, default: str) -> str:
        quote_field = service.get_field(field_name)
        return quote_field.label if quote_field else default

    def handle(self, state: ConversationState, intent: Intent, today: date) -> AgentReply:
        """
        Advance the flow for ``intent`` by one step.

        Args:
            state: Working state with this turn's slots and service merged in.
            intent: ``pricing_quote`` or ``booking_request``.
            today: Reference date for resolving month/day dates to weekdays.
        """
        service = self.knowledge.get_service(state.service_id)
        if service is None:
            return self._ask(
                state, "service_id", service_choice_prompt(self.service_names), []
            )

        if not is_valid("panel_count", state.slots.get("panel_count")):
            return self._ask(
                state,
                "panel_count",
                self._label(service, "panel_count", DEFAULT_PANEL_COUNT_PROMPT),
                [TransitionTrigger.PANEL_COUNT_REQUESTED],
            )

        quote = lookup_price(self.knowledge.pricing, state.slots["panel_count"])
        if quote is None:
            return AgentReply(escalate=EscalationReason.PANEL_COUNT_NOT_IN_PRICING_TABLE)

        if intent == Intent.PRICING_QUOTE:
            logger.info("Quote delivered: %d panels, %.2f", quote.panel_count, quote.total)
            return AgentReply(
                reply=quote_reply(quote),
                updates={"quote": quote, "awaiting_field": None, "awaiting_correction": False},
                triggers=[TransitionTrigger.QUOTE_DELIVERED],
            )

        return self._collect_booking(state, service, quote, today)

    def _collect_booking(
        self, state: ConversationState, service: Service, quote: Quote, today: date
    ) -> AgentReply:
        new_quote = state.quote != quote
        triggers = []
        if new_quote:
            triggers.append(TransitionTrigger.QUOTE_DELIVERED)
        triggers.append(TransitionTrigger.COLLECT_BOOKING_FIELDS)

        manager = SlotManager.for_service(service)
        missing = manager.get_next_missing(state.slots)
        if missing is not None:
            reply = self._ask(
                state,
                missing.name,
                field_prompt(missing.prompt, quote if new_quote else None),
                triggers,
            )
            reply.updates["quote"] = quote
            return reply

        reply = self._check_hours(state, service, quote, today, triggers)
        reply.updates["quote"] = quote
        return reply

    def _check_hours(
        self,
        state: ConversationState,
        service: Service,
        quote: Quote,
        today: date,
        triggers: list[TransitionTrigger],
    ) -> AgentReply:
        requested_date = str(state.slots.get("requested_date"))
        requested_time = str(state.slots.get("time"))
        date_label = self._label(service, "requested_date", DEFAULT_DATE_PROMPT)
        rejected = triggers + [TransitionTrigger.HOURS_REJECTED]

        weekday: Optional[str] = resolve_weekday(requested_date, today)
        if weekday is None:
            return self._ask(
                state, "requested_date", unknown_date_prompt(requested_date, date_label),
                rejected, correction=True,
            )

        hours = get_hours_for_day(weekday, self.knowledge.schedule)
        if hours is None or not hours.open or not hours.close:
            return self._ask(
                state,
                "requested_date",
                closed_day_prompt(
                    weekday, date_label, next_open_day(weekday, self.knowledge.schedule)
                ),
                rejected, correction=True,
            )

        if not is_within_hours(weekday, requested_time, self.knowledge.schedule):
            logger.info("Requested %s %s is outside business hours", weekday, requested_time)
            return self._ask(
                state, "time", outside_hours_prompt(weekday, hours.open, hours.close),
                rejected, correction=True,
            )

        record = create_booking_record(service, state.slots, quote, weekday)
        return AgentReply(
            reply=booking_confirmation(record),
            updates={
                "booking_record": record,
                "awaiting_field": None,
                "awaiting_correction": False,
                "active_flow": None,
            },
            triggers=triggers + [
                TransitionTrigger.HOURS_ACCEPTED,
                TransitionTrigger.BOOKING_CONFIRMED,
            ],
        )
