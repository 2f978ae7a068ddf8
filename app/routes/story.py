from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models.story import Story
from app.services.derivation import Derivers, derive_artifacts, get_derivers
from app.services.errors import PipelineError
from app.services.identity import find_user_by_principal
from app.services.ingestion import ingest_story
from app.utils.auth import Principal, require_principal
from app.utils.config import COOKIE_SECURE, SESSION_COOKIE_MAX_AGE, SESSION_COOKIE_NAME
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/story", tags=["story"])


# ---------- Schemas ----------
def _require_text(v):
    if not isinstance(v, str) or not v.strip():
        raise ValueError("text must be a non-empty string")
    return v


class StoryIn(BaseModel):
    story: str

    @field_validator("story", mode="before")
    @classmethod
    def non_empty(cls, v):
        return _require_text(v)


class StoryUpdate(BaseModel):
    # the frontend sends camelCase
    raw_text: str = Field(validation_alias=AliasChoices("rawText", "raw_text"))

    @field_validator("raw_text", mode="before")
    @classmethod
    def non_empty(cls, v):
        return _require_text(v)


class StoryDetailOut(BaseModel):
    id: str
    title: Optional[str] = None
    raw_text: str = Field(serialization_alias="rawText")
    timeline_json: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _failure(code: str, retryable: bool) -> JSONResponse:
    # details go to the log only
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to process story", "code": code, "retryable": retryable},
    )


async def _owned_story(db: AsyncSession, principal: Principal, story_id: str) -> Story:
    user = await find_user_by_principal(db, principal.id)
    if user is None:
        raise HTTPException(status_code=404, detail="Not found")
    stmt = select(Story).where(Story.id == story_id, Story.user_id == user.id)
    row = (await db.execute(stmt)).scalars().first()
    if not row:
        raise HTTPException(status_code=404, detail="Not found")
    return row


# ---------- Routes ----------
@router.post("", status_code=201)
async def submit_story(
    payload: StoryIn,
    request: Request,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    derivers: Derivers = Depends(get_derivers),
):
    session_id = request.cookies.get(SESSION_COOKIE_NAME) or None

    try:
        result = await ingest_story(
            db,
            payload.story,
            principal_id=principal.id,
            session_token=session_id,
            display_name=principal.display_name,
            derivers=derivers,
        )
    except PipelineError as e:
        logger.exception("story ingestion failed for principal %s (%s)", principal.id, e.code)
        return _failure(e.code, e.retryable)
    except Exception:
        logger.exception("unexpected error processing story for principal %s", principal.id)
        return _failure("internal_error", False)

    response = JSONResponse(status_code=status.HTTP_201_CREATED, content={"success": True, "id": result.story_id})

    # Only hand out a cookie when the caller didn't bring one
    if not session_id:
        response.set_cookie(
            SESSION_COOKIE_NAME,
            result.session_token,
            max_age=SESSION_COOKIE_MAX_AGE,
            httponly=True,
            secure=COOKIE_SECURE,
            samesite="lax",
        )
    return response


@router.get("/{story_id}", response_model=StoryDetailOut)
async def get_story(
    story_id: str,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    return await _owned_story(db, principal, story_id)


@router.put("/{story_id}", response_model=StoryDetailOut)
async def update_story(
    story_id: str,
    payload: StoryUpdate,
    rederive: bool = Query(False, description="Recompute title, timeline and embedding (slower)"),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    derivers: Derivers = Depends(get_derivers),
):
    row = await _owned_story(db, principal, story_id)

    if rederive:
        try:
            artifacts = await derive_artifacts(payload.raw_text, derivers)
        except PipelineError as e:
            logger.exception("re-derivation failed for story %s", story_id)
            return _failure(e.code, e.retryable)
        row.title = artifacts.title
        row.timeline_json = artifacts.timeline
        row.embedding = artifacts.embedding

    row.raw_text = payload.raw_text
    await db.commit()
    await db.refresh(row)
    return row
