from __future__ import annotations

import asyncio
import numbers
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from app.services.errors import DerivationFailure
from app.services.llm import generate_embedding, generate_title, process_story_to_timeline
from app.utils.config import DERIVATION_TIMEOUT_SECONDS, EMBEDDING_DIMENSIONS
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Derivers:
    """The three text -> artifact capabilities, each a blocking callable."""

    embedding: Callable[[str], List[float]]
    timeline: Callable[[str], Any]
    title: Callable[[str], Optional[str]]
    leg_timeout: float = DERIVATION_TIMEOUT_SECONDS


@dataclass
class DerivedArtifacts:
    timeline: Any
    embedding: List[float]
    title: Optional[str]


DEFAULT_DERIVERS = Derivers(
    embedding=generate_embedding,
    timeline=process_story_to_timeline,
    title=generate_title,
)


def get_derivers() -> Derivers:
    return DEFAULT_DERIVERS


def _check_embedding(vec: Any) -> List[float]:
    if not isinstance(vec, (list, tuple)) or len(vec) != EMBEDDING_DIMENSIONS:
        size = len(vec) if isinstance(vec, (list, tuple)) else type(vec).__name__
        raise DerivationFailure("embedding", f"expected {EMBEDDING_DIMENSIONS} values, got {size}")
    if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in vec):
        raise DerivationFailure("embedding", "non-numeric value in vector")
    return list(vec)


async def _run_leg(name: str, fn: Callable[[str], Any], text: str, timeout: float) -> Any:
    started = time.monotonic()
    try:
        result = await asyncio.wait_for(asyncio.to_thread(fn, text), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("derivation leg %s timed out after %.1fs", name, timeout)
        raise DerivationFailure(name, "timed out") from e
    except Exception as e:
        logger.warning("derivation leg %s failed: %s", name, e)
        raise DerivationFailure(name, str(e)) from e
    logger.debug("derivation leg %s done in %.2fs", name, time.monotonic() - started)
    return result


async def derive_artifacts(text: str, derivers: Derivers = DEFAULT_DERIVERS) -> DerivedArtifacts:
    """
    Run timeline / embedding / title derivation concurrently and join them.

    The first failing leg fails the whole call right away. Legs still in
    flight are left to finish in their worker threads; their results are
    dropped.
    """
    timeline, embedding, title = await asyncio.gather(
        _run_leg("timeline", derivers.timeline, text, derivers.leg_timeout),
        _run_leg("embedding", derivers.embedding, text, derivers.leg_timeout),
        _run_leg("title", derivers.title, text, derivers.leg_timeout),
    )

    if isinstance(title, str):
        title = title.strip() or None
    elif title is not None:
        raise DerivationFailure("title", f"expected str, got {type(title).__name__}")

    return DerivedArtifacts(
        timeline=timeline,
        embedding=_check_embedding(embedding),
        title=title,
    )
