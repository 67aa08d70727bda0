import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
import bcrypt

from ...core.config import ACCESS_PIN, SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

# The PIN gate carries no identity: every session has the same subject.
SESSION_SUBJECT = "device"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@lru_cache(maxsize=None)
def _pin_hash(pin: str) -> bytes:
    return bcrypt.hashpw(pin.encode('utf-8'), bcrypt.gensalt())


def verify_pin(plain_pin: str, expected_pin: str = ACCESS_PIN) -> bool:
    return bcrypt.checkpw(plain_pin.encode('utf-8'), _pin_hash(expected_pin))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


async def require_session(token: Annotated[str, Depends(oauth2_scheme)]) -> str:
    """Is this session authorized? Returns the session subject or raises 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.error(f"JWT decoding error: {e}")
        raise credentials_exception
    sub: Optional[str] = payload.get("sub")
    if sub != SESSION_SUBJECT:
        logger.warning("Token sub is missing or unknown.")
        raise credentials_exception
    return sub
