"""
Offline console demo: runs conversations through the real engine.

Uses the shipped knowledge documents, the real orchestrator and an
in-memory outcome log. No network calls, no generative model.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario escalation
"""

import argparse
import sys
from typing import Optional

from sunny.config import settings
from sunny.orchestrator import ConversationOrchestrator
from sunny.outcomes.metrics import MetricsCalculator
from sunny.outcomes.recorder import InMemoryRecordWriter, OutcomeRecorder
from sunny.prompts.reply_templates import greeting
from sunny.schemas.conversation_schema import ConversationState
from sunny.tools.knowledge import try_load_knowledge

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """One conversation in the terminal, state carried between turns like a web client would."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "Hi, I'd like to book a cleaning for 30 solar panels on Monday at 10am",
            "Jane Doe",
            "123 Main Street, Springfield",
            "They're on a second story roof",
            "805-555-0142",
            "jane.doe@example.com",
        ],
        "pricing": [
            "What services do you offer?",
            "How much to clean 30 panels?",
        ],
        "escalation": [
            "Can I get a quote for 500 panels?",
            "text is best",
            "weekday mornings",
        ],
        "guarantee": [
            "I want a guarantee this will work",
            "call me",
            "tomorrow afternoon",
        ],
        "after_hours": [
            "Book 30 panels for Monday at 11pm",
            "My name is Sam Rivera",
            "45 Oak Avenue",
            "ground mount",
            "(805) 555-0199",
            "sam@example.com",
            "ok 2pm then",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, conversation_id: str = "console") -> None:
        self.writer = InMemoryRecordWriter()
        self.orchestrator = ConversationOrchestrator(
            try_load_knowledge(), OutcomeRecorder(self.writer)
        )
        self.state: Optional[ConversationState] = ConversationState(
            conversation_id=conversation_id
        )

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.business.assistant_name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _process_input(self, text: str) -> None:
        result = self.orchestrator.handle(text, self.state)
        self.state = result.state
        self.agent_say(result.reply)

        s = result.state
        self.system_log(
            f"intent={s.intent.value} stage={s.stage.value} outcome={s.outcome.value}"
        )
        if s.escalation_reason:
            self.system_log(f"{YELLOW}escalation={s.escalation_reason.value}{RESET}")
        if result.needs_fallback:
            self.system_log("general turn: a web client would call its fallback here")

    def _summary(self, label: str) -> None:
        calculator = MetricsCalculator()
        metrics = calculator.calculate(self.writer.records)
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {label}{RESET}")
        if self.state is not None:
            print(f"{DIM}  Slots: {self.state.slots}{RESET}")
            if self.state.booking_record:
                print(f"{DIM}  Booking: {self.state.booking_record.booking_ref}{RESET}")
        print(f"{DIM}  Turns recorded: {metrics.total_turns}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"SUNNY CONVERSATION ENGINE - Scenario: {scenario}")
        self.agent_say(greeting())

        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            self._process_input(step)

        self._summary(f"Scenario '{scenario}' complete.")

    def run(self) -> None:
        self._banner("SUNNY CONVERSATION ENGINE - Console Demo")
        print(f"{BOLD}  Type 'quit' to exit{RESET}\n")
        self.agent_say(greeting())

        while True:
            try:
                user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            except EOFError:
                break
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                break

            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue

            self._process_input(user_input)

        self._summary("Session ended.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Sunny console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        help="Auto-play a scripted scenario instead of reading from stdin.",
    )
    args = parser.parse_args(argv)

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main(sys.argv[1:])
