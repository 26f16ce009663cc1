"""Request guards: every route needs a bearer token, catalog writes need the admin role."""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bookshop.auth.jwt_handler import verify_token

bearer_scheme = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> dict:
    """The shopper behind the token; the email keys their cart entries."""
    claims = verify_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("invalid or expired authentication token")
    if claims.get("type") != "access" or not claims.get("sub"):
        raise _unauthorized("authentication token is not an access token")

    return {"email": claims["sub"], "role": claims.get("role", "user")}


async def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user["role"] != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="only catalog administrators may change books",
        )
    return current_user
