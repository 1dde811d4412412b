import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from clinic_backend.auth.dependencies import get_current_actor, require_admin, require_role
from clinic_backend.auth.jwt_handler import actor_from_claims, create_access_token, decode_access_token
from clinic_backend.core import config
from clinic_backend.core.actors import Actor, ActorRole


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_carries_role_and_subject() -> None:
    token = create_access_token(Actor(ActorRole.provider, 12))

    payload = decode_access_token(token)

    assert payload['sub'] == '12'
    assert payload['role'] == 'provider'
    assert actor_from_claims(payload) == Actor(ActorRole.provider, 12)


@pytest.mark.parametrize(
    'payload',
    [
        {'role': 'patient'},
        {'sub': '3'},
        {'sub': '3', 'role': 'nurse'},
        {'sub': 'abc', 'role': 'patient'},
    ],
)
def test_actor_from_claims_rejects_malformed_claims(payload: dict) -> None:
    with pytest.raises(ValueError):
        actor_from_claims(payload)


def test_get_current_actor_accepts_valid_token() -> None:
    token = create_access_token(Actor(ActorRole.patient, 5))

    assert get_current_actor(_credentials(token)) == Actor(ActorRole.patient, 5)


def test_get_current_actor_rejects_bad_signature() -> None:
    token = jwt.encode({'sub': '5', 'role': 'patient'}, 'another-secret', algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_actor(_credentials(token))

    assert exception_info.value.status_code == 401


def test_get_current_actor_rejects_token_without_role() -> None:
    token = jwt.encode({'sub': '5'}, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_actor(_credentials(token))

    assert exception_info.value.status_code == 401


def test_require_role_rejects_other_roles() -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_admin(Actor(ActorRole.patient, 1))

    assert exception_info.value.status_code == 403


def test_require_role_accepts_any_listed_role() -> None:
    dependency = require_role(ActorRole.provider, ActorRole.admin)

    assert dependency(Actor(ActorRole.admin, 9)) == Actor(ActorRole.admin, 9)
