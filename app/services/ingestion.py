from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services import stories
from app.services.derivation import DEFAULT_DERIVERS, Derivers, derive_artifacts
from app.services.errors import DerivationFailure, IdentityFailure, PersistenceFailure, PipelineError
from app.services.identity import resolve_user
from app.utils.config import REQUEST_TIMEOUT_SECONDS
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class IngestionResult:
    user_id: str
    story_id: str
    session_token: str


def _timeout_error(stage: str) -> PipelineError:
    if stage == "resolve_identity":
        return IdentityFailure("timed out resolving identity")
    if stage == "derive":
        return DerivationFailure(None, "request timed out")
    return PersistenceFailure("timed out writing story")


async def ingest_story(
    db: AsyncSession,
    text: str,
    principal_id: str,
    session_token: Optional[str] = None,
    display_name: Optional[str] = None,
    derivers: Derivers = DEFAULT_DERIVERS,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> IngestionResult:
    """
    resolve identity -> derive artifacts -> persist, under one outer timeout.

    A timeout is reported as the failure of whichever stage was running.
    """
    stage = "resolve_identity"

    async def _run() -> IngestionResult:
        nonlocal stage
        user, token = await resolve_user(db, session_token, principal_id, display_name)

        stage = "derive"
        artifacts = await derive_artifacts(text, derivers)

        stage = "persist"
        story_id = await stories.create_story(
            db,
            user_id=user.id,
            title=artifacts.title,
            raw_text=text,
            timeline=artifacts.timeline,
            embedding=artifacts.embedding,
        )
        return IngestionResult(user_id=user.id, story_id=story_id, session_token=token)

    try:
        return await asyncio.wait_for(_run(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("ingestion for principal %s timed out during %s", principal_id, stage)
        raise _timeout_error(stage) from e
