"""
Caller identity for API routes.

Authentication happens upstream; requests arrive with the resolved
participant id in the X-Participant-Id header.
"""
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status


async def get_current_participant_id(
    x_participant_id: Optional[str] = Header(None, alias="X-Participant-Id"),
) -> UUID:
    """Resolve the calling participant's id from the request headers"""
    if not x_participant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Participant-Id header is required",
        )
    try:
        return UUID(x_participant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid participant id: {x_participant_id}",
        )
