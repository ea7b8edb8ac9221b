from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import verify_api_key
from app.core.rate_limit import enforce_rate_limit
from app.core.session import get_current_principal

router = APIRouter(tags=["Session"])


@router.get(
    "/session",
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit)],
)
async def current_session() -> dict:
    """Return the principal the request was authenticated as."""

    return {"principal_id": get_current_principal()}
