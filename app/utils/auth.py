from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from app.utils.config import AUTH_USER_HEADER, AUTH_USERNAME_HEADER


@dataclass(frozen=True)
class Principal:
    id: str
    display_name: Optional[str] = None


def require_principal(request: Request) -> Principal:
    """
    Identity headers are set upstream after the token has been verified.
    Missing user id -> 401, nothing else runs.
    """
    principal_id = (request.headers.get(AUTH_USER_HEADER) or "").strip()
    if not principal_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    display_name = (request.headers.get(AUTH_USERNAME_HEADER) or "").strip() or None
    return Principal(id=principal_id, display_name=display_name)
