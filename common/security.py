"""
Storefront - Security Utilities
================================
Admin API key check for the admin JSON routes.
"""

import hmac
import logging

from fastapi import Header, HTTPException

from config import settings

logger = logging.getLogger("storefront.security")


def require_admin_key(x_admin_key: str = Header(..., alias="X-Admin-Key")) -> str:
    """FastAPI dependency: authenticate admin requests via X-Admin-Key header."""
    expected = settings.ADMIN_API_KEY
    if not expected or not hmac.compare_digest(x_admin_key.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin request with invalid API key")
        raise HTTPException(
            status_code=401,
            detail={"success": False, "error": "Invalid admin API key"},
        )
    return x_admin_key
