from datetime import datetime, timedelta, timezone

import jwt

from clinic_backend.core import config
from clinic_backend.core.actors import Actor, ActorRole


def create_access_token(actor: Actor, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {
        "sub": str(actor.id),
        "role": actor.role.value,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])


def actor_from_claims(payload: dict) -> Actor:
    """Raises ValueError when the subject or role claim is missing or malformed."""
    subject = payload.get("sub")
    role = payload.get("role")
    if subject is None or role is None:
        raise ValueError("Token is missing the subject or role claim")
    return Actor(role=ActorRole(role), id=int(subject))
