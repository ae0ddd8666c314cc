"""
Authentication router for user registration, login and token refresh.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .. import account_store
from ..auth import create_token_pair, verify_token
from ..database import get_db
from ..exceptions import InvalidCredentialsError
from ..models import User, utcnow
from ..schemas import RefreshTokenRequest, TokenResponse, UserLogin, UserRegister, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

# Rate limiting for login attempts
# Track failed login attempts per IP address
failed_login_attempts: Dict[str, list] = defaultdict(list)
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_DURATION_MINUTES = 15


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def check_login_rate_limit(client_ip: str) -> None:
    """
    Check if IP has exceeded login attempt rate limit.

    Raises HTTPException if rate limit exceeded.
    """
    now = utcnow()

    failed_login_attempts[client_ip] = [
        attempt
        for attempt in failed_login_attempts[client_ip]
        if attempt > now - timedelta(minutes=LOCKOUT_DURATION_MINUTES)
    ]

    if len(failed_login_attempts[client_ip]) >= MAX_LOGIN_ATTEMPTS:
        oldest_attempt = min(failed_login_attempts[client_ip])
        lockout_until = oldest_attempt + timedelta(minutes=LOCKOUT_DURATION_MINUTES)
        remaining_seconds = int((lockout_until - now).total_seconds())

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many login attempts. Please try again in {remaining_seconds} seconds.",
        )


def record_failed_login(client_ip: str, when: datetime | None = None) -> None:
    failed_login_attempts[client_ip].append(when or utcnow())


def clear_login_attempts(client_ip: str) -> None:
    failed_login_attempts.pop(client_ip, None)


def _token_response(user: User) -> TokenResponse:
    tokens = create_token_pair(user.id)
    return TokenResponse(**tokens, user=UserResponse.model_validate(user))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """
    Create a free-plan account and log it in.

    Returns 400 if the email is already registered.
    """
    user = account_store.register(db, user_data.name, user_data.email, user_data.password)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(user_data: UserLogin, request: Request, db: Session = Depends(get_db)):
    """
    Exchange email and password for an access/refresh token pair.

    Failed attempts are counted per client IP; after MAX_LOGIN_ATTEMPTS the
    IP is locked out for LOCKOUT_DURATION_MINUTES.
    """
    client_ip = get_client_ip(request)
    check_login_rate_limit(client_ip)

    try:
        user = account_store.login(db, user_data.email, user_data.password)
    except InvalidCredentialsError:
        record_failed_login(client_ip)
        raise

    clear_login_attempts(client_ip)
    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(token_data: RefreshTokenRequest, db: Session = Depends(get_db)):
    """Issue a new token pair from a valid refresh token."""
    payload = verify_token(token_data.refresh_token, token_type="refresh")
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return _token_response(user)
