from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import UnauthorizedError
from app.models.waitlist import Waitlist
from app.repositories.waitlist_repository import WaitlistRepository

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed principal token. The identity provider owns login; this
    exists so collaborators and tests can mint tokens the service accepts.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Your session has expired, please log in again")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("The provided token is invalid")


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """Resolve the already-verified principal id from the bearer token."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Please provide a valid Bearer token")

    payload = decode_access_token(credentials.credentials)
    principal_id = payload.get("sub")
    if not principal_id:
        raise UnauthorizedError("Token verification failed")
    return principal_id


def get_api_key_waitlist(
    x_api_key: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> Waitlist:
    if not x_api_key:
        raise UnauthorizedError("API key required")

    waitlist = WaitlistRepository(db).get_by_api_key(x_api_key)
    if not waitlist:
        raise UnauthorizedError("Invalid API key")
    return waitlist


def get_automation_key_waitlist(
    x_api_key: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> Waitlist:
    """Automation callers present the automation key; the api key is still honoured."""
    if not x_api_key:
        raise UnauthorizedError("API key required")

    waitlist_repo = WaitlistRepository(db)
    waitlist = waitlist_repo.get_by_automation_key(x_api_key) or waitlist_repo.get_by_api_key(x_api_key)
    if not waitlist:
        raise UnauthorizedError("Invalid API key")
    return waitlist
