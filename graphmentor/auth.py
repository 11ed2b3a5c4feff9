# auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from graphmentor.config import JWT_SECRET, JWT_ALGORITHM
from graphmentor.errors import Unauthorized

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def issue_token(email: str, name: str = "User", hours: int = 1) -> str:
    payload = {
        "email": email,
        "name": name,
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> str:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise Unauthorized("Invalid or expired token")
    user_id = payload.get("email")
    if not user_id:
        raise Unauthorized("Token missing user ID")
    return user_id


async def optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Email of the caller, or None when no usable bearer token was sent."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    try:
        return decode_token(credentials.credentials)
    except Unauthorized as e:
        logger.info(f"Ignoring bearer token: {e.message}")
        return None


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if credentials is None:
        raise Unauthorized("Unauthorized")
    if credentials.scheme.lower() != "bearer":
        raise Unauthorized("Invalid authentication scheme.")
    user_id = decode_token(credentials.credentials)
    logger.info(f"Token validated for user: {user_id}")
    return user_id
