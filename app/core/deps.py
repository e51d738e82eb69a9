from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


class CurrentUser(BaseModel):
    """Identity of the caller, as asserted by the token issuer."""
    id: int
    email: Optional[str] = None
    role: Optional[str] = None


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    # Tokens carry the numeric user id in "user_id"; older ones only in "sub"
    user_id = payload.get("user_id", payload.get("sub"))
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise credentials_exception

    return CurrentUser(id=user_id, email=payload.get("email"), role=payload.get("role"))
