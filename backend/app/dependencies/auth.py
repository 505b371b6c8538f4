"""Authentication dependencies for the Scout control routes."""

import secrets

from fastapi import Header, HTTPException

from app.config import get_settings


async def require_admin(x_admin_password: str | None = Header(None)) -> None:
    """Check the shared admin secret; open when none is configured (local dev)."""
    expected = get_settings().admin_password
    if not expected:
        return
    if not x_admin_password or not secrets.compare_digest(x_admin_password, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
