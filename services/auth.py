from datetime import datetime, timedelta, timezone

import jwt

from config import settings

_ALGO = "HS256"

def create_token(user_id: str, ttl_minutes: int = 60) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGO)

def verify_token(token: str) -> str:
    """Return the user id carried by `token`; raises jwt.PyJWTError if invalid."""
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[_ALGO])
    return payload["sub"]
