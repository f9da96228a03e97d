"""Health check and settings endpoints."""

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from backend import config

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get app settings (LLM connection, pipeline knobs)."""
    return config.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update app settings (partial merge). Applies to the next session."""
    try:
        return config.update_config(body)
    except ValidationError as e:
        raise HTTPException(400, str(e))
