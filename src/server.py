"""Protean Engine runner for the ordering domain.

With ``event_processing = "async"`` (production overlay) cart and order
events are handed to the Engine, which invokes the realtime fan-out handlers
outside the request cycle. In the default and test overlays events are
processed synchronously and this runner is not needed.

Usage:
    python src/server.py
    python src/server.py --test-mode   # Drain pending messages and exit
"""

import argparse
import asyncio

from protean.server.engine import Engine

from ordering.domain import ordering
from ordering.utils.logging import configure_logging


async def run(test_mode: bool = False):
    ordering.init()
    engine = Engine(ordering, test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Luxe Commerce ordering engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
