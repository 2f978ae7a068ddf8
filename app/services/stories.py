from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.story import Story
from app.services.errors import PersistenceFailure
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


async def create_story(
    db: AsyncSession,
    user_id: str,
    title: Optional[str],
    raw_text: str,
    timeline: Any,
    embedding: List[float],
) -> str:
    """Insert one story row in a single commit and return its id."""
    row = Story(
        user_id=user_id,
        title=title,
        raw_text=raw_text,
        timeline_json=timeline,
        embedding=embedding,
    )
    db.add(row)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceFailure(f"story insert failed: {e}") from e
    logger.info("stored story %s for user %s", row.id, user_id)
    return row.id
