from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from app.core.config import settings

logger = logging.getLogger(__name__)

# Tokens are issued by the account service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token."""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )

    return encoded_jwt

def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode a token, raising 401 when it is invalid or has no subject."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError as jwt_error:
        logger.warning(f"JWT decode error: {jwt_error}")
        raise credentials_exception

    if payload.get("sub") is None:
        raise credentials_exception
    return payload

async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """Subject of any valid token (client or stylist)."""
    return decode_access_token(token)["sub"]

async def get_current_stylist_id(token: str = Depends(oauth2_scheme)) -> str:
    """Stylist id from a stylist token: { sub: <stylistId>, role: "stylist" }."""
    payload = decode_access_token(token)
    if payload.get("role") != "stylist":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Stylist account required"
        )
    return payload["sub"]
