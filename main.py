"""
Command-line entry point.

Usage:
    Console demo:   python main.py console
    Scripted demo:  python main.py console --scenario booking
    Outcome report: python main.py report --log logs/outcomes.jsonl
"""

import sys

USAGE = "usage: python main.py {console,report} [options]"


def _run_console_mode(argv: list[str]) -> None:
    """Start the offline console demo."""
    from console_demo import main as console_main

    console_main(argv)


def _run_report(argv: list[str]) -> None:
    """Summarize an outcome log."""
    from sunny.outcomes.run_report import main as report_main

    report_main(argv)


def main(argv: list[str]) -> int:
    if not argv:
        print(USAGE, file=sys.stderr)
        return 2

    command, rest = argv[0], argv[1:]
    if command == "console":
        _run_console_mode(rest)
    elif command == "report":
        _run_report(rest)
    else:
        print(USAGE, file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
