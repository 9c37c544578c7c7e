from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from tcapi.config import settings
from tcapi.core.exceptions import AuthenticationError, AuthorizationError

ADMIN_ROLE = "admin"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_admin_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token({"sub": subject, "role": ADMIN_ROLE}, expires_delta)


# Security schemes
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    sub: str
    role: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def decode_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid authentication credentials")


def verify_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> TokenPayload:
    """Decode the bearer token, 401 when it is missing or invalid."""
    return decode_token(credentials.credentials)


def admin_required(token: TokenPayload = Depends(verify_token)) -> TokenPayload:
    if not token.is_admin:
        raise AuthorizationError("Admin privileges required")
    return token


def is_privileged(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> bool:
    """True for requests carrying a valid admin token; anonymous requests are allowed."""
    if credentials is None:
        return False
    return decode_token(credentials.credentials).is_admin
