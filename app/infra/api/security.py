# app/infra/api/security.py
from fastapi import Depends, HTTPException, status
from fastapi.security.api_key import APIKeyHeader
import os, logging
log = logging.getLogger("suppadvisor.api")

API_KEY_NAME = "X-Api-Key"
ADMIN_KEY_NAME = "X-Admin-Key"
_api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)
_admin_key_header = APIKeyHeader(name=ADMIN_KEY_NAME, auto_error=False)

REQUIRE_API_KEY = os.getenv("REQUIRE_API_KEY", "1") == "1"
SERVICE_API_KEY = os.getenv("SERVICE_API_KEY", "")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

async def require_api_key(api_key: str = Depends(_api_key_header)):
    if not REQUIRE_API_KEY:
        return
    if not SERVICE_API_KEY:
        log.warning("Auth fail: SERVICE_API_KEY not configured")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service key not configured")
    if not api_key or api_key != SERVICE_API_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

async def require_admin_key(admin_key: str = Depends(_admin_key_header)):
    # manual sync / cache control are operator actions; never open by default
    if not ADMIN_API_KEY:
        log.warning("Admin action refused: ADMIN_API_KEY not configured")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin key not configured")
    if not admin_key or admin_key != ADMIN_API_KEY:
        log.warning("Admin action refused: invalid X-Admin-Key")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
