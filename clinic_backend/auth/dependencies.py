from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_backend.auth import jwt_handler
from clinic_backend.core.actors import Actor, ActorRole

security = HTTPBearer()


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    try:
        return jwt_handler.actor_from_claims(payload)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid token subject") from exc


def require_role(*roles: ActorRole):
    allowed = set(roles)

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=403, detail="This action is not available for your role.")
        return actor

    return dependency


require_patient = require_role(ActorRole.patient)
require_provider = require_role(ActorRole.provider)
require_admin = require_role(ActorRole.admin)
