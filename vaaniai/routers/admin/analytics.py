"""
Admin statistics endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ... import reporting
from ...database import get_db
from ...dependencies import get_current_admin_user
from ...models import User
from ...schemas import AdminStatsResponse

router = APIRouter()


@router.get("/stats", response_model=AdminStatsResponse)
async def get_admin_stats(
    current_user: User = Depends(get_current_admin_user), db: Session = Depends(get_db)
):
    """
    Dashboard numbers: users per plan, sessions, messages, API calls and the
    estimated monthly revenue in INR.
    """
    return AdminStatsResponse(**reporting.build_stats(db))
