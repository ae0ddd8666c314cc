"""Guest allowance route."""

from typing import Optional

from fastapi import APIRouter, Header, HTTPException, status

from ..dependencies import GUEST_ID_PATTERN
from ..schemas import GuestUsageResponse
from ..usage_meter import guest_counter

router = APIRouter(tags=["Guest"])


@router.get("/guest/usage", response_model=GuestUsageResponse)
async def get_guest_usage(
    x_guest_id: Optional[str] = Header(None),
    x_timezone: Optional[str] = Header(None),
):
    """How many free guest messages this device has left."""
    if not x_guest_id or not GUEST_ID_PATTERN.match(x_guest_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing or invalid X-Guest-Id header")
    return guest_counter.stats(x_guest_id, x_timezone)
