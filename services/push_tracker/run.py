#!/usr/bin/env python3
"""
Push Tracker Entry Point

Runs one hook evaluation for the repository in the current directory.
Equivalent to ``party hook``.
"""

import sys

from config.settings import configure_logging, get_settings
from services.push_tracker.cli import display_breakdown
from services.push_tracker.main import PushTrackerService


def main():
    """Evaluate the current repository once."""
    settings = get_settings()
    configure_logging(settings)

    breakdown = PushTrackerService(settings=settings).evaluate_now()
    if breakdown is not None:
        display_breakdown(breakdown)
    return 0


if __name__ == "__main__":
    sys.exit(main())
