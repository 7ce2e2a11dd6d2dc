# src/taskpulse/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the collections, then runs:
- background sync for every store,
- the reminder scheduler,
- the console REPL until /exit.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _startup(state: AppState) -> None:
    for store in state.stores:
        if not store.is_online:
            logger.info("%s: starting offline, skipping initial fetch", store.name)
            continue
        if not await store.fetch_all():
            logger.warning("%s: initial fetch failed: %s", store.name, store.last_error)

    for store in state.stores:
        store.start_background_sync()
    state.scheduler.start()


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.scheduler.stop()
    except Exception:
        logger.exception("Failed to stop reminder scheduler.")

    for store in state.stores:
        try:
            await store.close()
        except Exception:
            logger.exception("Failed to close %s store.", store.name)

        pending = len(store.pending_operations)
        if pending:
            # The queue is memory-only.
            logger.warning("%s: %d unsynced change(s) discarded on exit", store.name, pending)


async def run(settings) -> None:
    state = create_initial_state(settings=settings)
    await _startup(state)
    try:
        await run_console_loop(state)
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)
    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
