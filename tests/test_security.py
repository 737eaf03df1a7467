from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tasktracker.errors import TokenExpired, TokenInvalid
from tasktracker.security import Identity, PasswordHasher, TokenService

SECRET = "unit-test-secret-key-with-enough-length"


@pytest.fixture
def tokens():
    return TokenService(SECRET)


def test_hash_is_salted_and_verifies():
    hasher = PasswordHasher(rounds=4)
    first = hasher.hash("password123")
    second = hasher.hash("password123")
    assert first != "password123"
    assert first != second
    assert hasher.verify("password123", first)
    assert not hasher.verify("password124", first)


def test_hash_uses_configured_cost():
    hashed = PasswordHasher(rounds=5).hash("pw")
    assert hashed.startswith("$2b$05$")


def test_issue_embeds_identity_and_24h_expiry(tokens):
    token = tokens.issue(7, "alice")
    payload = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert payload["id"] == 7
    assert payload["username"] == "alice"
    assert payload["exp"] - payload["iat"] == 24 * 60 * 60
    assert tokens.verify(token) == Identity(id=7, username="alice")


def test_expired_token(tokens):
    token = tokens.issue(1, "alice", now=datetime.now(timezone.utc) - timedelta(hours=25))
    with pytest.raises(TokenExpired):
        tokens.verify(token)


def test_tampered_token(tokens):
    token = tokens.issue(1, "alice")
    header, _, signature = token.split(".")
    forged = jwt.encode({"id": 2, "username": "bob", "iat": 0, "exp": 4102444800}, "other-secret-of-some-length-123456")
    forged_payload = forged.split(".")[1]
    with pytest.raises(TokenInvalid):
        tokens.verify(".".join([header, forged_payload, signature]))


def test_wrong_secret_and_garbage(tokens):
    other = TokenService("a-completely-different-secret-value-42")
    with pytest.raises(TokenInvalid):
        tokens.verify(other.issue(1, "alice"))
    with pytest.raises(TokenInvalid):
        tokens.verify("not-a-token")


def test_token_without_identity_claims(tokens):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode({"iat": now, "exp": now + 60}, SECRET, algorithm="HS256")
    with pytest.raises(TokenInvalid):
        tokens.verify(token)


def test_expired_and_invalid_look_the_same():
    assert issubclass(TokenExpired, TokenInvalid)
    assert TokenExpired().status_code == TokenInvalid().status_code == 403
    assert TokenExpired().message == TokenInvalid().message == "Invalid token"
