from datetime import datetime, timedelta

import pytest

from comfin.core.config import Settings
from comfin.core.exceptions import AuthenticationError
from comfin.core.security import (
    constant_time_equals,
    encode_token,
    get_password_hash,
    verify_password,
)
from comfin.models.user import OtpCredential, PasswordCredential, Role, User
from comfin.services.token_service import TokenService
from comfin.utils.time_utils import parse_date
from comfin.utils.validation_utils import (
    normalize_email,
    normalize_pan,
    validate_otp_format,
    validate_pan,
    validate_password,
    validate_pran,
)


def make_user(**overrides):
    doc = {"_id": "64b7f0000000000000000001", "email": "a@x.com", "name": "A", "role": "user", "useOTP": False}
    doc.update(overrides)
    return User.from_document(doc)


def test_password_hash_roundtrip():
    hashed = get_password_hash("secret1", rounds=4)
    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_handles_missing_or_malformed_hash():
    assert not verify_password("secret1", "")
    assert not verify_password("", get_password_hash("secret1", rounds=4))
    assert not verify_password("secret1", "not-a-bcrypt-hash")


def test_constant_time_equals():
    assert constant_time_equals("123456", "123456")
    assert not constant_time_equals("123456", "654321")


def test_session_token_claims():
    tokens = TokenService(Settings(JWT_SECRET="s"))
    user = make_user(role="admin")

    claims = tokens.decode(tokens.issue_session_token(user))
    assert claims.user_id == user.id
    assert claims.role == "admin"
    assert claims.temp is False


def test_temp_token_is_marked():
    tokens = TokenService(Settings(JWT_SECRET="s"))
    claims = tokens.decode(tokens.issue_temp_token(make_user()))
    assert claims.temp is True


def test_token_signed_with_other_secret_rejected():
    token = TokenService(Settings(JWT_SECRET="one")).issue_session_token(make_user())
    with pytest.raises(AuthenticationError):
        TokenService(Settings(JWT_SECRET="two")).decode(token)


def test_expired_token_rejected():
    token = encode_token({"user": {"id": "x", "role": "user"}}, "s", "HS256", timedelta(seconds=-1))
    with pytest.raises(AuthenticationError):
        TokenService(Settings(JWT_SECRET="s")).decode(token)


def test_token_without_user_rejected():
    token = encode_token({"sub": "x"}, "s", "HS256", timedelta(minutes=5))
    with pytest.raises(AuthenticationError):
        TokenService(Settings(JWT_SECRET="s")).decode(token)


def test_user_credential_follows_mode():
    password_user = make_user(password="$2b$hash", otp="123456", otpExpiry=datetime(2030, 1, 1))
    assert isinstance(password_user.credential, PasswordCredential)
    assert password_user.credential.password_hash == "$2b$hash"
    assert password_user.otp_challenge.code == "123456"

    otp_user = make_user(useOTP=True, password="$2b$stale")
    assert isinstance(otp_user.credential, OtpCredential)
    assert otp_user.uses_otp
    assert otp_user.role == Role.USER


def test_user_public_views_hide_credentials():
    user = make_user(password="$2b$hash", otp="123456", otpExpiry=datetime(2030, 1, 1))
    public = user.to_public()
    assert "password" not in public
    assert "otp" not in public
    assert user.summary() == {"id": user.id, "name": "A", "email": "a@x.com", "role": "user", "useOTP": False}


@pytest.mark.parametrize("pan,valid", [
    ("ABCDE1234F", True),
    ("abcde1234f", False),
    ("ABCD1234F", False),
    ("ABCDE12345", False),
    ("", False),
])
def test_validate_pan(pan, valid):
    assert validate_pan(pan) is valid


def test_normalizers():
    assert normalize_pan(" abcde1234f ") == "ABCDE1234F"
    assert normalize_email("  A@X.com ") == "a@x.com"


def test_validate_pran_and_otp_and_password():
    assert validate_pran("123456789012")
    assert not validate_pran("12345")
    assert validate_otp_format("123456")
    assert not validate_otp_format("12345a")
    assert validate_password("secret")
    assert not validate_password("short")
    assert not validate_password(None)


def test_parse_date():
    assert parse_date(None) is None
    assert parse_date("2024-03-31") == datetime(2024, 3, 31)
    assert parse_date("2024-03-31", end_of_day=True) == datetime(2024, 3, 31, 23, 59, 59, 999000)
    with pytest.raises(ValueError):
        parse_date("31/03/2024")
