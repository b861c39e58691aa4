"""
Crateship — Workflow step logger with duration tracking.
"""

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Generator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("crateship")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


@contextmanager
def step_timer(step_name: str) -> Generator[None, None, None]:
    """
    Context manager that logs the start and duration of a workflow step.

    A step that raises is logged as failed (cancelled, for task
    cancellation) and the exception propagates unchanged.
    """
    logger.info("▶ %s — started", step_name)
    start = time.perf_counter()
    try:
        yield
    except asyncio.CancelledError:
        logger.warning("⊘ %s — cancelled after %.0f ms", step_name, _elapsed_ms(start))
        raise
    except Exception as exc:
        logger.error("✘ %s — failed after %.0f ms: %s", step_name, _elapsed_ms(start), exc)
        raise
    logger.info("✔ %s — completed in %.0f ms", step_name, _elapsed_ms(start))
