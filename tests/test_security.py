"""
Token service, password hashing and duration parsing
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from sqlalchemy.engine import make_url

from auth.security import TokenService, hash_password, verify_password
from config import Settings, parse_duration
from services.errors import InvalidToken, Unauthorized


@pytest.fixture
def tokens():
    return TokenService("unit-secret", "HS256", timedelta(minutes=5))


class TestTokenService:

    def test_issue_then_verify_returns_user_id(self, tokens):
        token = tokens.issue(42)
        assert tokens.verify(token) == 42

    def test_subject_is_stored_as_string(self, tokens):
        payload = jwt.decode(tokens.issue(7), "unit-secret", algorithms=["HS256"])
        assert payload["sub"] == "7"
        assert "exp" in payload

    def test_expired_token_is_rejected(self, tokens):
        token = tokens.issue(1, expires_delta=timedelta(seconds=-30))
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_wrong_secret_is_rejected(self, tokens):
        other = TokenService("another-secret")
        with pytest.raises(InvalidToken):
            tokens.verify(other.issue(1))

    def test_garbage_is_rejected(self, tokens):
        with pytest.raises(InvalidToken):
            tokens.verify("not.a.token")

    def test_missing_subject_is_rejected(self, tokens):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"exp": exp}, "unit-secret", algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_non_integer_subject_is_rejected(self, tokens):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "abc", "exp": exp}, "unit-secret", algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_missing_expiry_is_rejected(self, tokens):
        token = jwt.encode({"sub": "1"}, "unit-secret", algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_invalid_token_is_unauthorized_with_uniform_message(self, tokens):
        with pytest.raises(Unauthorized) as exc_info:
            tokens.verify("x")
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Not authorized, token failed"


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("secret123", rounds=4)
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("secret123", "not-a-bcrypt-hash") is False


class TestParseDuration:

    @pytest.mark.parametrize("value, expected", [
        ("1d", timedelta(days=1)),
        ("12h", timedelta(hours=12)),
        ("30m", timedelta(minutes=30)),
        ("45s", timedelta(seconds=45)),
        ("3600", timedelta(seconds=3600)),
    ])
    def test_units(self, value, expected):
        assert parse_duration(value) == expected

    def test_rejects_unknown_format(self):
        with pytest.raises(ValueError):
            parse_duration("two days")


def test_default_database_url_names_the_installed_driver():
    assert make_url(Settings().database_url).drivername == "postgresql+psycopg2"
