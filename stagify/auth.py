from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from stagify.config import settings

# Initialize logging
logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "your_secret_key"

if settings.secret_key == DEFAULT_SECRET_KEY:
    logger.warning("SECRET_KEY is set to the default value; set a unique SECRET_KEY outside development")


# Function to create an access token with an expiration time
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})

    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (user id) in token data.")
    to_encode["sub"] = str(to_encode["sub"])

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


# Function to decode an access token into a user id; None when the token is unusable
def decode_access_token(token: str) -> Optional[int]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.info("Token expired")
        return None
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        return None

    subject = payload.get("sub")
    if subject is None:
        logger.warning("Token is missing 'sub' claim")
        return None
    try:
        return int(subject)
    except (TypeError, ValueError):
        logger.warning("Token 'sub' claim is not a user id: %r", subject)
        return None


def get_identity(request: Request) -> Optional[int]:
    """
    Identity provider dependency.

    Reads a Bearer token from the Authorization header. A missing, malformed,
    expired or forged token yields None, which the request gate rejects as
    unauthenticated.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return decode_access_token(token.strip())
