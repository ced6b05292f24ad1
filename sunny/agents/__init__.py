from sunny.agents.base import Agent, AgentReply
from sunny.agents.booking_agent import BookingAgent
from sunny.agents.escalation_agent import EscalationAgent
from sunny.agents.info_agent import InfoAgent

__all__ = ["Agent", "AgentReply", "BookingAgent", "InfoAgent", "EscalationAgent"]
