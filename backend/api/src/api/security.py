"""Bearer credential requirement for caller-initiated endpoints.

Token validation belongs to the identity provider in front of the API;
this dependency only insists that a bearer credential is present.
"""

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED

bearer_scheme = HTTPBearer(auto_error=False, description="Caller access token")


def require_bearer(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Return the bearer token or reject the request with 401."""
    if credentials is None or not credentials.credentials.strip():
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Bearer credential required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
