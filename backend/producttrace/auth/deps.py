"""FastAPI dependencies for caller identity.

Dependencies:
  get_caller  → decode the bearer JWT and return its ``sub`` claim

Reads are public; every mutating route depends on ``get_caller`` and passes
the identity to the ledger, which enforces administrator / producer / owner
rules itself.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from producttrace.auth.jwt import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    identity: str | None = payload.get("sub")
    if not identity or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
