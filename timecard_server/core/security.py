import hmac
import logging
from fastapi import HTTPException, Request, Depends
from pydantic import BaseModel
from timecard_server.core.config import ServerConfig, TimecardConfig

logger = logging.getLogger(__name__)

KNOWN_ROLES = ("admin", "in_house", "supervisor", "coordinator", "talent_escort")

class CurrentUser(BaseModel):
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in TimecardConfig.ADMIN_ROLES

async def require_api_key(request: Request):
    """Require the shared API key in header when one is configured"""
    if not ServerConfig.API_SECRET:
        return True
    api_key = request.headers.get("X-Api-Key", "")
    if not hmac.compare_digest(api_key, ServerConfig.API_SECRET):
        logger.warning(f"Invalid API key from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(status_code=401, detail="Invalid API credentials")
    return True

async def get_current_user(request: Request, _: bool = Depends(require_api_key)) -> CurrentUser:
    """Identity forwarded by the authenticating gateway"""
    user_id = request.headers.get("X-User-Id", "").strip()
    role = request.headers.get("X-User-Role", "").strip().lower()

    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if role not in KNOWN_ROLES:
        logger.warning(f"Unknown role '{role}' for user {user_id}")
        raise HTTPException(status_code=403, detail="Unknown role")
    return CurrentUser(user_id=user_id, role=role)

async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Only admin and in-house staff"""
    if not user.is_admin:
        logger.warning(f"Admin access denied for user {user.user_id} ({user.role})")
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return user
