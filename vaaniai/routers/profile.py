"""
Profile endpoints for the logged-in user: details, name, password, plan,
data export and account deletion.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import account_store
from ..config import PLAN_CONFIG, is_unlimited
from ..config.constants import PLAN_CURRENCY
from ..config.helpers import get_plan_limit
from ..database import get_db
from ..dependencies import get_current_user_required
from ..models import User
from ..schemas import PasswordChange, PlanInfo, PlanUpdate, ProfileUpdate, UserResponse

router = APIRouter(tags=["Profile"])


@router.get("/me", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user_required)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
):
    return account_store.update_profile(db, current_user.id, update.name)


@router.post("/me/password", status_code=status.HTTP_200_OK)
async def change_password(
    change: PasswordChange,
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    account_store.change_password(db, current_user.id, change.current_password, change.new_password)
    return {"message": "Password changed successfully"}


@router.put("/me/plan", response_model=UserResponse)
async def change_plan(
    update: PlanUpdate,
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
):
    """
    Switch the caller's plan.

    There is no payment step; the plan takes effect immediately.
    """
    return account_store.update_plan(db, current_user.id, update.plan)


@router.get("/me/export")
async def export_data(
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return account_store.export_user_data(db, current_user.id)


@router.delete("/me", status_code=status.HTTP_200_OK)
async def delete_account(
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
) -> Dict[str, str]:
    """Delete the caller's account together with all their chat sessions."""
    account_store.delete_user(db, current_user.id)
    return {"message": "Account deleted successfully"}


@router.get("/plans", response_model=List[PlanInfo])
async def list_plans():
    """Available plans with quota and monthly price."""
    plans = []
    for plan_id, config in PLAN_CONFIG.items():
        limit = get_plan_limit(plan_id)
        plans.append(
            PlanInfo(
                id=plan_id,
                name_hindi=config["name_hindi"],
                messages_limit=limit,
                unlimited=is_unlimited(limit),
                price=config["price"],
                currency=PLAN_CURRENCY,
            )
        )
    return plans
