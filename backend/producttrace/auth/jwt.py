"""JWT token creation and decoding.

Token claims:
  - sub:   caller identity (the producer / administrator address)
  - type:  "access"
  - exp:   expiry timestamp

Tokens are issued out of band (``producttrace issue-token``); the ledger
itself decides what an identity may do.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from producttrace.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    identity: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": identity,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
