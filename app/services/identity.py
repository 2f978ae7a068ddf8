from __future__ import annotations

import secrets
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services.errors import IdentityConflict, IdentityFailure
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

IDENTITY_MAX_ATTEMPTS = 3


def mint_session_token() -> str:
    return secrets.token_urlsafe(32)


async def find_user_by_principal(db: AsyncSession, principal_id: str) -> Optional[User]:
    stmt = select(User).where(User.principal_id == principal_id)
    return (await db.execute(stmt)).scalars().first()


async def find_user_by_session(db: AsyncSession, session_token: str) -> Optional[User]:
    stmt = select(User).where(User.session_token == session_token)
    return (await db.execute(stmt)).scalars().first()


async def _commit_or_conflict(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise IdentityConflict(str(e.orig)) from e


async def _resolve_once(
    db: AsyncSession,
    session_token: Optional[str],
    principal_id: str,
    display_name: Optional[str],
) -> Tuple[User, str]:
    # 1) Known principal
    user = await find_user_by_principal(db, principal_id)
    if user is not None:
        if session_token:
            return user, session_token
        if not user.session_token:
            user.session_token = mint_session_token()
            await _commit_or_conflict(db)
            await db.refresh(user)
        return user, user.session_token

    # 2) Anonymous session being claimed by this principal
    if session_token:
        anon = await find_user_by_session(db, session_token)
        if anon is not None and anon.principal_id is None:
            # rollback expires `anon`, so keep the id in a plain local
            anon_id = anon.id
            # Conditional update so only one promotion can win; the anonymous
            # token is dropped so the cookie can't be claimed again.
            res = await db.execute(
                update(User)
                .where(User.id == anon_id, User.principal_id.is_(None))
                .values(principal_id=principal_id, session_token=None)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                await db.rollback()
                raise IdentityConflict(f"user {anon_id} was promoted concurrently")
            await _commit_or_conflict(db)
            await db.refresh(anon)
            logger.info("promoted anonymous user %s to principal %s", anon_id, principal_id)
            return anon, session_token

    # 3) First sighting
    user = User(
        principal_id=principal_id,
        display_name=display_name or None,
        session_token=mint_session_token(),
    )
    db.add(user)
    await _commit_or_conflict(db)
    await db.refresh(user)
    logger.info("created user %s for principal %s", user.id, principal_id)
    return user, user.session_token


async def resolve_user(
    db: AsyncSession,
    session_token: Optional[str],
    principal_id: str,
    display_name: Optional[str] = None,
) -> Tuple[User, str]:
    """
    Map (cookie token?, principal, display name?) to one durable user.

    Returns the user and the session token the caller should hold. Losing a
    uniqueness race rolls back and resolves again, which picks up the row the
    other request wrote.
    """
    last_conflict: Optional[IdentityConflict] = None
    for attempt in range(IDENTITY_MAX_ATTEMPTS):
        try:
            return await _resolve_once(db, session_token, principal_id, display_name)
        except IdentityConflict as e:
            last_conflict = e
            logger.info("identity race for principal %s (attempt %d): %s", principal_id, attempt + 1, e)
        except SQLAlchemyError as e:
            await db.rollback()
            raise IdentityFailure(f"storage error: {e}") from e
    raise IdentityFailure(f"could not settle identity for principal {principal_id}") from last_conflict
