"""
Admin authentication.

POST /api/admin/login exchanges the shared ADMIN_PASSWORD for a signed
HS256 token carrying role="admin"; admin routes depend on require_admin.
Settings are read per call so tests can patch the environment.
"""

import hmac
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from cupbracket.services.errors import AuthorizationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"
DEFAULT_TOKEN_TTL_MINUTES = 720

bearer_scheme = HTTPBearer(auto_error=False)


def _secret_key() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="JWT_SECRET is not configured")
    return secret


def _token_ttl() -> timedelta:
    return timedelta(minutes=int(os.getenv("ADMIN_TOKEN_TTL_MINUTES", str(DEFAULT_TOKEN_TTL_MINUTES))))


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or _token_ttl())
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, _secret_key(), algorithm=ALGORITHM)


def login_admin(password: str) -> str:
    """Check the admin password and issue a token."""
    expected = os.getenv("ADMIN_PASSWORD")
    if not expected:
        logger.warning("Admin login attempted but ADMIN_PASSWORD is not set")
        raise AuthorizationError("Admin login is disabled")
    if not hmac.compare_digest((password or "").encode(), expected.encode()):
        logger.warning("Rejected admin login")
        raise AuthorizationError("Invalid admin password")
    return create_access_token({"sub": ADMIN_ROLE, "role": ADMIN_ROLE})


def require_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Dict[str, Any]:
    """Dependency: 401 for a missing or invalid token, 403 for a non-admin role."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Admin token required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise unauthorized
    try:
        payload = jwt.decode(credentials.credentials, _secret_key(), algorithms=[ALGORITHM])
    except JWTError:
        raise unauthorized
    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return payload
