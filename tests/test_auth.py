from datetime import timedelta

from conftest import FailingMailer, auth_header, register, run
from fastapi.testclient import TestClient

from comfin.main import create_app
from comfin.utils.time_utils import utcnow


# ============================================================================
# Password accounts
# ============================================================================

def test_register_then_login_with_password(client):
    response = register(client, name="A", email="a@x.com", password="secret1")
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "a@x.com"
    assert data["user"]["role"] == "user"
    assert data["user"]["useOTP"] is False

    response = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert response.status_code == 200
    assert response.json()["token"]


def test_login_wrong_password(client):
    register(client, email="a@x.com", password="secret1")

    response = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PASSWORD"


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret1"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_LOGIN"


def test_login_email_is_case_insensitive(client):
    register(client, email="Mixed@Example.com", password="secret1")

    response = client.post("/api/auth/login", json={"email": "mixed@example.com", "password": "secret1"})
    assert response.status_code == 200


def test_password_account_rejects_otp(client):
    register(client, email="a@x.com", password="secret1")

    response = client.post("/api/auth/login", json={"email": "a@x.com", "otp": "123456"})
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "PASSWORD_REQUIRED"
    assert data["details"] == {"authMethod": "password"}


def test_login_without_credential(client):
    register(client, email="a@x.com", password="secret1")

    response = client.post("/api/auth/login", json={"email": "a@x.com"})
    assert response.status_code == 400
    assert response.json()["code"] == "CREDENTIAL_REQUIRED"
    assert response.json()["details"] == {"missing": "password"}


def test_login_role_mismatch(client):
    register(client, email="a@x.com", password="secret1")

    response = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1", "role": "admin"})
    assert response.status_code == 403
    assert response.json()["code"] == "ACCESS_DENIED"


def test_register_duplicate_email(client):
    register(client, email="a@x.com")

    response = register(client, email="A@x.com")
    assert response.status_code == 400
    assert response.json()["code"] == "EMAIL_IN_USE"


def test_register_requires_password_unless_otp(client):
    response = register(client, email="a@x.com", password=None)
    assert response.status_code == 400
    assert response.json()["code"] == "PASSWORD_REQUIRED"


def test_register_rejects_short_password(client):
    response = register(client, email="a@x.com", password="abc")
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_register_stores_bcrypt_hash(client, db):
    register(client, email="a@x.com", password="secret1")

    doc = run(db.users.find_one({"email": "a@x.com"}))
    assert doc["password"] != "secret1"
    assert doc["password"].startswith("$2")


# ============================================================================
# OTP accounts
# ============================================================================

def test_otp_register_request_verify_once(client, mailer):
    response = register(client, email="o@x.com", password=None, use_otp=True)
    assert response.status_code == 200
    assert response.json()["user"]["useOTP"] is True

    response = client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    assert response.status_code == 200
    code = mailer.last_code("o@x.com")
    assert code is not None and len(code) == 6

    response = client.post("/api/auth/verify-otp", json={"email": "o@x.com", "otp": code})
    assert response.status_code == 200
    assert response.json()["message"] == "OTP verified successfully"
    assert response.json()["tempToken"]

    replay = client.post("/api/auth/verify-otp", json={"email": "o@x.com", "otp": code})
    assert replay.status_code == 400
    assert replay.json()["code"] == "INVALID_OTP"


def test_otp_login_single_use(client, mailer):
    register(client, email="o@x.com", password=None, use_otp=True)
    client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    code = mailer.last_code("o@x.com")

    response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": code})
    assert response.status_code == 200
    assert response.json()["user"]["useOTP"] is True

    response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": code})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_OTP"


def test_otp_account_rejects_password(client):
    register(client, email="o@x.com", password=None, use_otp=True)

    response = client.post("/api/auth/login", json={"email": "o@x.com", "password": "secret1"})
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "OTP_REQUIRED"
    assert data["details"] == {"authMethod": "otp"}


def test_expired_otp_is_rejected(client, db, mailer):
    register(client, email="o@x.com", password=None, use_otp=True)
    client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    code = mailer.last_code("o@x.com")

    run(db.users.update_one(
        {"email": "o@x.com"},
        {"$set": {"otpExpiry": utcnow() - timedelta(minutes=1)}}
    ))

    response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": code})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_OTP"


def test_otp_discarded_after_max_attempts(client, db, mailer, test_settings):
    register(client, email="o@x.com", password=None, use_otp=True)
    client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    code = mailer.last_code("o@x.com")
    wrong = "111111" if code != "111111" else "222222"

    for _ in range(test_settings.OTP_MAX_ATTEMPTS):
        response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": wrong})
        assert response.json()["code"] == "INVALID_OTP"

    doc = run(db.users.find_one({"email": "o@x.com"}))
    assert "otp" not in doc

    response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": code})
    assert response.status_code == 400


def test_new_otp_replaces_previous(client, mailer):
    register(client, email="o@x.com", password=None, use_otp=True)
    client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    first = mailer.last_code("o@x.com")
    client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    second = mailer.last_code("o@x.com")

    if first != second:
        response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": first})
        assert response.status_code == 400

    response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": second})
    assert response.status_code == 200


def test_request_otp_does_not_reveal_unknown_email(client, mailer):
    register(client, email="o@x.com", password=None, use_otp=True)

    known = client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    unknown = client.post("/api/auth/request-otp", json={"email": "ghost@x.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert mailer.last_code("ghost@x.com") is None


def test_otp_stays_valid_when_email_delivery_fails(db, test_settings):
    failing = FailingMailer()
    app = create_app(database=db, mailer=failing, config=test_settings)

    with TestClient(app) as client:
        response = register(client, email="o@x.com", password=None, use_otp=True)
        assert response.status_code == 200

        response = client.post("/api/auth/request-otp", json={"email": "o@x.com"})
        assert response.status_code == 200

        code = failing.last_code("o@x.com")
        response = client.post("/api/auth/login", json={"email": "o@x.com", "otp": code})
        assert response.status_code == 200


# ============================================================================
# Toggle, reset and temporary tokens
# ============================================================================

def test_toggle_on_clears_password_and_sends_code(client, db, mailer):
    token = register(client, email="a@x.com", password="secret1").json()["token"]

    response = client.post("/api/auth/toggle-otp", json={}, headers=auth_header(token))
    assert response.status_code == 200
    assert response.json() == {"message": "OTP authentication enabled", "useOTP": True}

    doc = run(db.users.find_one({"email": "a@x.com"}))
    assert "password" not in doc
    assert mailer.last_code("a@x.com") is not None

    response = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert response.json()["code"] == "OTP_REQUIRED"


def test_toggle_off_requires_new_password(client):
    token = register(client, email="o@x.com", password=None, use_otp=True).json()["token"]

    response = client.post("/api/auth/toggle-otp", json={}, headers=auth_header(token))
    assert response.status_code == 400
    assert response.json()["code"] == "PASSWORD_REQUIRED"

    response = client.post("/api/auth/toggle-otp", json={"password": "newpass1"}, headers=auth_header(token))
    assert response.status_code == 200
    assert response.json()["useOTP"] is False

    response = client.post("/api/auth/login", json={"email": "o@x.com", "password": "newpass1"})
    assert response.status_code == 200


def test_reset_password_with_temp_token(client, mailer):
    register(client, email="a@x.com", password="secret1")
    client.post("/api/auth/request-otp", json={"email": "a@x.com"})
    code = mailer.last_code("a@x.com")
    temp = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": code}).json()["tempToken"]

    response = client.post("/api/auth/reset-password", json={"password": "brandnew"}, headers=auth_header(temp))
    assert response.status_code == 200
    assert response.json()["useOTP"] is False

    assert client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"}).status_code == 400
    assert client.post("/api/auth/login", json={"email": "a@x.com", "password": "brandnew"}).status_code == 200


def test_temp_token_on_toggle_resets_password(client, mailer):
    register(client, email="o@x.com", password=None, use_otp=True)
    client.post("/api/auth/request-otp", json={"email": "o@x.com"})
    code = mailer.last_code("o@x.com")
    temp = client.post("/api/auth/verify-otp", json={"email": "o@x.com", "otp": code}).json()["tempToken"]

    response = client.post("/api/auth/toggle-otp", json={"password": "brandnew"}, headers=auth_header(temp))
    assert response.status_code == 200
    assert response.json() == {"message": "Password reset successfully", "useOTP": False}

    assert client.post("/api/auth/login", json={"email": "o@x.com", "password": "brandnew"}).status_code == 200


def test_temp_token_rejected_elsewhere(client, mailer):
    register(client, email="a@x.com", password="secret1")
    client.post("/api/auth/request-otp", json={"email": "a@x.com"})
    code = mailer.last_code("a@x.com")
    temp = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": code}).json()["tempToken"]

    response = client.get("/api/auth/me", headers=auth_header(temp))
    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"

    response = client.get("/api/forms/my-submissions", headers=auth_header(temp))
    assert response.status_code == 401


def test_reset_password_refuses_session_token(client, user_token):
    response = client.post("/api/auth/reset-password", json={"password": "brandnew"}, headers=auth_header(user_token))
    assert response.status_code == 401


# ============================================================================
# Profile and password change
# ============================================================================

def test_me_hides_credentials(client, user_token):
    response = client.get("/api/auth/me", headers=auth_header(user_token))
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "asha@example.com"
    assert "password" not in data
    assert "otp" not in data


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"


def test_me_rejects_garbage_token(client):
    response = client.get("/api/auth/me", headers=auth_header("not-a-jwt"))
    assert response.status_code == 401


def test_update_profile(client, user_token):
    response = client.put(
        "/api/auth/profile",
        json={"name": "Asha K", "pan": "abcde1234f", "mobile": "9876543210"},
        headers=auth_header(user_token),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Asha K"
    assert data["pan"] == "ABCDE1234F"
    assert data["mobile"] == "9876543210"


def test_update_profile_invalid_pan(client, user_token):
    response = client.put("/api/auth/profile", json={"pan": "BAD"}, headers=auth_header(user_token))
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PAN"


def test_update_profile_email_taken(client, user_token):
    register(client, email="taken@example.com")

    response = client.put("/api/auth/profile", json={"email": "taken@example.com"}, headers=auth_header(user_token))
    assert response.status_code == 400
    assert response.json()["code"] == "EMAIL_IN_USE"


def test_change_password(client, user_token):
    response = client.put(
        "/api/auth/password",
        json={"currentPassword": "secret1", "newPassword": "secret2"},
        headers=auth_header(user_token),
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Password updated successfully"}

    response = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret2"})
    assert response.status_code == 200


def test_change_password_wrong_current(client, user_token):
    response = client.put(
        "/api/auth/password",
        json={"currentPassword": "nope", "newPassword": "secret2"},
        headers=auth_header(user_token),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PASSWORD"


def test_login_body_validation(client):
    response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
