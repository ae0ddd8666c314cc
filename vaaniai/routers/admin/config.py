"""
Admin endpoints for the completion API configuration.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...admin_config import admin_config_store
from ...database import get_db
from ...dependencies import get_current_admin_user
from ...exceptions import ConfigMissingError
from ...llm import OpenRouterClient
from ...llm import client as llm_client
from ...models import User
from ...schemas import AdminConfigResponse, AdminConfigUpdate, ConnectionTestResponse

from .helpers import log_admin_action

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/config", response_model=AdminConfigResponse)
async def get_config(current_user: User = Depends(get_current_admin_user), db: Session = Depends(get_db)):
    """Current configuration with the API key masked."""
    return admin_config_store.to_public_dict(admin_config_store.get(db))


@router.put("/config", response_model=AdminConfigResponse)
async def update_config(
    update: AdminConfigUpdate,
    request: Request,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """
    Replace the configuration. The next message sent by anyone uses it.

    Omitted optional fields fall back to their defaults.
    """
    config = admin_config_store.set(db, update.model_dump())

    log_admin_action(
        db=db,
        admin_user=current_user,
        action_type="config_update",
        action_description=f"Updated API config (model {config.selected_model})",
        details={
            "selected_model": config.selected_model,
            "vision_model": config.vision_model,
            "rate_limit": config.rate_limit,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "api_key_set": bool(config.api_key),
        },
        request=request,
    )

    return admin_config_store.to_public_dict(config)


@router.post("/config/test", response_model=ConnectionTestResponse)
async def test_config(current_user: User = Depends(get_current_admin_user), db: Session = Depends(get_db)):
    """Send "नमस्ते" with the stored configuration and report whether it worked."""
    config = admin_config_store.get(db)
    try:
        client = OpenRouterClient.from_config(config)
    except ConfigMissingError as e:
        return ConnectionTestResponse(success=False, error=e.detail)

    result = await llm_client.test_connection(client)
    logger.info(f"[CONFIG] Connection test by admin {current_user.id}: success={result['success']}")
    return ConnectionTestResponse(**result)
