from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import asc, delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models.story import Story
from app.services.identity import find_user_by_principal
from app.utils.auth import Principal, require_principal

router = APIRouter(prefix="/api/stories", tags=["stories"])


# ---------- Schemas ----------
class StoryOut(BaseModel):
    id: str
    title: Optional[str] = None
    raw_text: str = Field(serialization_alias="rawText")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TimelineEntryOut(BaseModel):
    story_id: str
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    timeline: Any = None


# ---------- Routes ----------
@router.get("", response_model=List[StoryOut])
async def list_stories(
    limit: int = Query(100, ge=1, le=500),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await find_user_by_principal(db, principal.id)
    if user is None:
        return []
    stmt = (
        select(Story)
        .where(Story.user_id == user.id)
        .order_by(desc(Story.created_at))
        .limit(limit)
    )
    return (await db.execute(stmt)).scalars().all()


@router.get("/timeline", response_model=List[TimelineEntryOut])
async def list_timelines(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    """Every story's timeline, oldest story first, for the combined timeline view."""
    user = await find_user_by_principal(db, principal.id)
    if user is None:
        return []
    stmt = select(Story).where(Story.user_id == user.id).order_by(asc(Story.created_at))
    rows = (await db.execute(stmt)).scalars().all()
    return [
        TimelineEntryOut(story_id=r.id, title=r.title, created_at=r.created_at, timeline=r.timeline_json)
        for r in rows
    ]


@router.delete("/delete-all")
async def delete_all_stories(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    user = await find_user_by_principal(db, principal.id)
    if user is None:
        return {"success": True, "deleted": 0}
    res = await db.execute(delete(Story).where(Story.user_id == user.id))
    await db.commit()
    return {"success": True, "deleted": res.rowcount or 0}
