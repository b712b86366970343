"""Unit tests for JWT handling and principals."""

import uuid
from datetime import timedelta

import pytest
from jose import jwt

from ridemate.auth import (
    AuthenticationError,
    Principal,
    Role,
    create_access_token,
    create_user_token,
    verify_token,
)
from ridemate.core.errors import ForbiddenError


@pytest.mark.unit
def test_user_token_round_trip(settings):
    user_id = uuid.uuid4()

    payload = verify_token(create_user_token(user_id, settings), settings)

    assert payload["sub"] == str(user_id)
    assert payload["role"] == "user"
    assert "exp" in payload and "iat" in payload


@pytest.mark.unit
def test_admin_role_claim(settings):
    token = create_user_token(uuid.uuid4(), settings, role=Role.ADMIN)

    assert verify_token(token, settings)["role"] == "admin"


@pytest.mark.unit
def test_expired_token_rejected(settings):
    token = create_access_token(
        {"sub": str(uuid.uuid4())}, settings, expires_delta=timedelta(seconds=-1)
    )

    with pytest.raises(AuthenticationError):
        verify_token(token, settings)


@pytest.mark.unit
def test_token_signed_with_other_key_rejected(settings):
    token = jwt.encode({"sub": str(uuid.uuid4())}, "other-key", algorithm="HS256")

    with pytest.raises(AuthenticationError):
        verify_token(token, settings)


@pytest.mark.unit
def test_principal_self_or_admin():
    me = uuid.uuid4()
    someone = uuid.uuid4()

    Principal(id=me).ensure_self_or_admin(me)
    Principal(id=me, role=Role.ADMIN).ensure_self_or_admin(someone)
    with pytest.raises(ForbiddenError):
        Principal(id=me).ensure_self_or_admin(someone)


@pytest.mark.unit
def test_token_without_subject_unauthorized(client, settings):
    token = create_access_token({"role": "user"}, settings)

    response = client.get(
        "/api/v1/bookings/me", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.unit
def test_unknown_role_unauthorized(client, settings):
    token = create_access_token({"sub": str(uuid.uuid4()), "role": "root"}, settings)

    response = client.get(
        "/api/v1/bookings/me", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401
