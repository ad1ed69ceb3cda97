import json

import aiohttp
import pytest

from services import identity as identity_module
from services.identity import FirebaseIdentityService, IdentityProviderError


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.payload = payload

    async def json(self, content_type=None):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Answers Identity Toolkit calls from a queue of (status, payload) pairs"""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.requests = []

    def post(self, url, params=None, json=None):
        self.requests.append((url.rsplit("/", 1)[-1], params, json))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return FakeResponse(*answer)


def error(code):
    return 400, {"error": {"code": 400, "message": code}}


@pytest.mark.asyncio
async def test_sign_in_returns_user_with_profile_metadata():
    session = FakeSession(
        (200, {"localId": "uid-1", "email": "writer@example.com", "displayName": "Writer", "idToken": "id-tok"}),
        (200, {"users": [{"localId": "uid-1", "emailVerified": True,
                          "customAttributes": json.dumps({"role": "editor"})}]}),
    )
    service = FirebaseIdentityService(session, "api-key")

    user = await service.sign_in("writer@example.com", "secret")

    assert user.id == "uid-1"
    assert user.display_name == "Writer"
    assert user.metadata == {"name": "Writer", "display_name": "Writer", "email_verified": True, "role": "editor"}
    endpoint, params, body = session.requests[0]
    assert endpoint == "accounts:signInWithPassword"
    assert params == {"key": "api-key"}
    assert body["email"] == "writer@example.com"
    assert session.requests[1][2] == {"idToken": "id-tok"}


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["INVALID_LOGIN_CREDENTIALS", "INVALID_PASSWORD", "EMAIL_NOT_FOUND"])
async def test_sign_in_with_rejected_credentials(code):
    service = FirebaseIdentityService(FakeSession(error(code)), "api-key")

    assert await service.sign_in("writer@example.com", "wrong") is None


@pytest.mark.asyncio
async def test_sign_in_unexpected_provider_error_raises():
    service = FirebaseIdentityService(FakeSession((500, {"error": {"message": "INTERNAL"}})), "api-key")

    with pytest.raises(IdentityProviderError) as exc_info:
        await service.sign_in("writer@example.com", "secret")

    assert exc_info.value.reason == "INTERNAL"


@pytest.mark.asyncio
async def test_transport_failure_raises():
    service = FirebaseIdentityService(FakeSession(aiohttp.ClientConnectionError("connection reset")), "api-key")

    with pytest.raises(IdentityProviderError) as exc_info:
        await service.send_password_reset("writer@example.com")

    assert "connection reset" in str(exc_info.value)


@pytest.mark.asyncio
async def test_sign_up_sends_display_name():
    session = FakeSession((200, {"localId": "uid-2", "email": "new@example.com", "idToken": "t"}))
    service = FirebaseIdentityService(session, "api-key")

    user = await service.sign_up("new@example.com", "secret1", "New Writer")

    assert user.id == "uid-2"
    assert user.display_name == "New Writer"
    assert session.requests[0][2]["displayName"] == "New Writer"


@pytest.mark.asyncio
async def test_sign_up_with_existing_email():
    service = FirebaseIdentityService(FakeSession(error("EMAIL_EXISTS")), "api-key")

    assert await service.sign_up("taken@example.com", "secret1", "Taken") is None


@pytest.mark.asyncio
async def test_weak_password_reason_ignores_provider_detail():
    detail = "WEAK_PASSWORD : Password should be at least 6 characters"
    service = FirebaseIdentityService(FakeSession(error(detail)), "api-key")

    assert await service.sign_up("new@example.com", "123", "New") is None


@pytest.mark.asyncio
async def test_password_reset_flow():
    session = FakeSession((200, {"email": "writer@example.com"}), (200, {}), error("INVALID_OOB_CODE"))
    service = FirebaseIdentityService(session, "api-key")

    await service.send_password_reset("writer@example.com")
    accepted = await service.reset_password("code", "abc123")
    rejected = await service.reset_password("stale", "abc123")

    assert session.requests[0][2] == {"requestType": "PASSWORD_RESET", "email": "writer@example.com"}
    assert session.requests[1][2] == {"oobCode": "code", "newPassword": "abc123"}
    assert accepted is True
    assert rejected is False


@pytest.mark.asyncio
async def test_missing_api_key_raises_without_calling_out():
    session = FakeSession()
    service = FirebaseIdentityService(session, "")

    with pytest.raises(IdentityProviderError):
        await service.sign_in("writer@example.com", "secret")

    assert session.requests == []


@pytest.mark.asyncio
async def test_revoke_sessions(monkeypatch):
    revoked = []
    monkeypatch.setattr(identity_module.auth, "revoke_refresh_tokens",
                        lambda uid, app=None: revoked.append(uid))
    service = FirebaseIdentityService(FakeSession(), "api-key")

    await service.revoke_sessions("uid-3")

    assert revoked == ["uid-3"]


@pytest.mark.asyncio
async def test_revoke_sessions_for_unknown_user(monkeypatch):
    def fail(uid, app=None):
        raise ValueError("Invalid uid")

    monkeypatch.setattr(identity_module.auth, "revoke_refresh_tokens", fail)
    service = FirebaseIdentityService(FakeSession(), "api-key")

    with pytest.raises(IdentityProviderError):
        await service.revoke_sessions("")
