"""
Admin user management endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from ... import account_store
from ...database import get_db
from ...dependencies import get_current_admin_user, require_admin_role
from ...models import User
from ...schemas import AdminUserListResponse, AdminUserResponse, PlanUpdate

from .helpers import admin_user_response, log_admin_action

router = APIRouter()


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: str | None = Query(None),
    plan: str | None = Query(None),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """List users with search by name or email, plan filter and pagination."""
    query = db.query(User)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.email.ilike(pattern), User.name.ilike(pattern)))

    if plan:
        query = query.filter(User.plan == plan)

    total = query.count()

    offset = (page - 1) * per_page
    users = query.order_by(desc(User.created_at), desc(User.id)).offset(offset).limit(per_page).all()

    total_pages = (total + per_page - 1) // per_page

    return AdminUserListResponse(
        users=[admin_user_response(db, user) for user in users],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages,
    )


@router.get("/users/{user_id}", response_model=AdminUserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    user = account_store.get_user(db, user_id)
    return admin_user_response(db, user)


@router.put("/users/{user_id}/plan", response_model=AdminUserResponse)
async def change_user_plan(
    user_id: int,
    update: PlanUpdate,
    request: Request,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Move a user to another plan; their quota follows the new plan."""
    old_plan = account_store.get_user(db, user_id).plan
    user = account_store.update_plan(db, user_id, update.plan)

    log_admin_action(
        db=db,
        admin_user=current_user,
        action_type="plan_update",
        action_description=f"Changed plan of {user.email} from {old_plan} to {user.plan}",
        target_user_id=user.id,
        details={"old_plan": old_plan, "new_plan": user.plan},
        request=request,
    )

    return admin_user_response(db, user)


@router.post("/users/{user_id}/reset-usage", response_model=AdminUserResponse)
async def reset_user_usage(
    user_id: int,
    request: Request,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Set the user's used message count back to zero."""
    previous = account_store.get_user(db, user_id).messages_used
    user = account_store.reset_usage(db, user_id)

    log_admin_action(
        db=db,
        admin_user=current_user,
        action_type="usage_reset",
        action_description=f"Reset message usage for {user.email}",
        target_user_id=user.id,
        details={"previous_messages_used": previous},
        request=request,
    )

    return admin_user_response(db, user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    request: Request,
    current_user: User = Depends(require_admin_role("super_admin")),
    db: Session = Depends(get_db),
):
    """Delete a user and all their sessions (super admin only)."""
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")

    user = account_store.get_user(db, user_id)
    email = user.email

    # Logged first: the audit row keeps the email after target_user_id is nulled
    log_admin_action(
        db=db,
        admin_user=current_user,
        action_type="user_delete",
        action_description=f"Deleted user {email}",
        target_user_id=user_id,
        details={"email": email, "plan": user.plan},
        request=request,
    )

    account_store.delete_user(db, user_id)
