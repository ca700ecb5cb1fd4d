"""Bearer-token principal for stream and upload routes.

Account management lives elsewhere; this only verifies the JWT it issues.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from loguru import logger
from pydantic import BaseModel

from riffstream.core.config import Config

from .deps import get_config

http_bearer = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    user_id: str


def decode_principal(token: str, config: Config) -> Optional[Principal]:
    """Decode a token into a principal; None if invalid or missing a subject."""
    try:
        payload = jwt.decode(
            token, config.auth.jwt_secret, algorithms=[config.auth.jwt_algorithm]
        )
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        return None

    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        return None
    return Principal(user_id=str(user_id))


async def get_optional_principal(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    config: Config = Depends(get_config),
) -> Optional[Principal]:
    """Caller identity if a valid token was sent; anonymous otherwise."""
    if creds is None:
        return None
    return decode_principal(creds.credentials, config)


async def get_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return principal
