import uuid
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from app.core.config import settings

http_bearer = HTTPBearer(auto_error=False)

class Identity(BaseModel):
    id: uuid.UUID
    email: str | None = None

def _decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
        return payload
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")

def create_access_token(subject: uuid.UUID, email: str | None, ttl: timedelta | None = None, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "email": email,
        "iss": settings.TOKEN_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int((now + (ttl or timedelta(minutes=settings.CUSTOMER_TOKEN_TTL_MINUTES))).timestamp()),
        **claims,
    }
    if settings.REQUIRED_AUDIENCE:
        payload["aud"] = settings.REQUIRED_AUDIENCE
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

async def get_identity(creds: HTTPAuthorizationCredentials | None = Depends(http_bearer)) -> Identity | None:
    """currentIdentity(): the caller's auth identity, or None when no credentials were sent."""
    if creds is None:
        return None
    data = _decode_token(creds.credentials)
    try:
        user_id = uuid.UUID(str(data.get("sub") or data.get("user_id")))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    email = data.get("email")
    return Identity(id=user_id, email=email.strip().lower() if email else None)

async def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return identity
