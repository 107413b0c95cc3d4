# workorders/utils/get_user.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, HTTPException, Request
from jose import jwt, JWTError

from workorders.core.config import JWT_SECRET, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from workorders.schemas.actor_schemas import Actor


def create_access_token(actor: Actor, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": actor.id,
        "name": actor.name,
        "email": actor.email,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def get_current_actor(
    request: Request,
    token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> Actor:
    # Support either header
    raw_token = token
    if not raw_token and authorization and authorization.startswith("Bearer "):
        raw_token = authorization.split("Bearer ")[1]

    if not raw_token:
        raise HTTPException(status_code=401, detail="Missing access token")

    try:
        payload = jwt.decode(raw_token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    actor_id = payload.get("sub")
    if not actor_id or payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token payload")

    actor = Actor(
        id=actor_id,
        name=payload.get("name") or actor_id,
        email=payload.get("email") or "",
    )
    request.state.actor = actor
    return actor
