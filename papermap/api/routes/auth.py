"""Admin login against the single shared password."""

import logging
import secrets

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from papermap.api.dependencies import get_settings
from papermap.config import Settings
from papermap.mindmap.schemas import LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login")
def login(request: LoginRequest, settings: Settings = Depends(get_settings)):
    if secrets.compare_digest(
        request.password.encode("utf-8"), settings.admin_password.encode("utf-8")
    ):
        return {"success": True, "message": "Login successful"}

    logger.warning("Rejected admin login attempt")
    return JSONResponse(
        status_code=401,
        content={"success": False, "message": "Invalid password"},
    )
