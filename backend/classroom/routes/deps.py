"""
Shared route dependencies.

Authentication happens upstream; the authenticated user's id reaches this
service in the X-User-ID header and is used as the owner of every
student, call record and PK session the request touches.
"""

from typing import Optional
from fastapi import Header, HTTPException

from classroom.logging_config import owner_id_var


async def get_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Resolve the owner for the current request or answer 401.

    Async so the owner is bound in the request's own context and shows up
    in every log entry written while the endpoint runs.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    owner_id = x_user_id.strip()
    owner_id_var.set(owner_id)
    return owner_id
