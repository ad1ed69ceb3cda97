from datetime import datetime, timedelta, timezone

import jwt
import pytest

from services.tokens import TokenService


def test_issued_token_validates_with_claims(token_service):
    token = token_service.issue("uid-1", "a@example.com", "Alice", {"plan": "pro"})

    result = token_service.validate(token)

    assert result.valid
    assert result.error is None
    assert result.claims.user_id == "uid-1"
    assert result.claims.email == "a@example.com"
    assert result.claims.name == "Alice"
    assert result.claims.metadata == {"plan": "pro"}


def test_metadata_claim_is_a_json_string_and_omitted_when_empty(token_service):
    with_metadata = token_service.issue("uid-1", "a@example.com", "Alice", {"plan": "pro"})
    without_metadata = token_service.issue("uid-1", "a@example.com", "Alice", {})

    payload = jwt.decode(with_metadata, options={"verify_signature": False})
    assert payload["metadata"] == '{"plan": "pro"}'
    assert "metadata" not in jwt.decode(without_metadata, options={"verify_signature": False})
    assert token_service.validate(without_metadata).claims.metadata == {}


def test_token_expires_after_three_hours(token_service):
    issued = datetime.now(timezone.utc) - timedelta(hours=3, seconds=1)
    token = token_service.issue("uid-1", "a@example.com", "Alice", now=issued)

    result = token_service.validate(token)

    assert not result.valid
    assert result.claims is None
    assert "expired" in result.error


def test_token_is_still_valid_shortly_before_expiry(token_service):
    issued = datetime.now(timezone.utc) - timedelta(hours=2, minutes=59)
    token = token_service.issue("uid-1", "a@example.com", "Alice", now=issued)

    assert token_service.validate(token).valid


def test_expiry_is_three_hours_after_issuance(token_service):
    issued = datetime(2030, 1, 1, tzinfo=timezone.utc)
    token = token_service.issue("uid-1", "a@example.com", "Alice", now=issued)

    payload = jwt.decode(token, options={"verify_signature": False})
    assert payload["exp"] - payload["iat"] == 3 * 60 * 60


@pytest.mark.parametrize("token", ["", None, "not-a-token", "a.b.c"])
def test_malformed_tokens_are_reported_not_raised(token_service, token):
    result = token_service.validate(token)

    assert not result.valid
    assert result.error


def test_token_with_swapped_payload_is_rejected(token_service):
    genuine = token_service.issue("uid-1", "a@example.com", "Alice")
    other = token_service.issue("uid-2", "b@example.com", "Bob")
    header, _, signature = genuine.split(".")
    forged = ".".join([header, other.split(".")[1], signature])

    assert not token_service.validate(forged).valid


def test_token_signed_with_another_secret_is_rejected(token_service):
    other = TokenService("a-completely-different-secret-value-123", token_service.issuer, token_service.audience)
    token = other.issue("uid-1", "a@example.com", "Alice")

    assert not token_service.validate(token).valid


def test_wrong_audience_or_issuer_is_rejected(token_service):
    wrong_audience = TokenService(token_service.secret_key, token_service.issuer, "someone-else").issue("uid-1", "a@example.com", "A")
    wrong_issuer = TokenService(token_service.secret_key, "someone-else", token_service.audience).issue("uid-1", "a@example.com", "A")

    assert not token_service.validate(wrong_audience).valid
    assert not token_service.validate(wrong_issuer).valid


def test_missing_secret_is_refused():
    with pytest.raises(ValueError):
        TokenService("", "blog-backend", "blog-frontend")
