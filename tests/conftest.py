import asyncio

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from comfin.core.config import Settings
from comfin.core.exceptions import ExternalServiceError
from comfin.db.mongo import MongoDatabase
from comfin.main import create_app


class FakeMailer:
    """Records OTP emails instead of sending them."""

    def __init__(self):
        self.sent = []

    async def send_otp_email(self, to_email, otp, validity_minutes):
        self.sent.append({"to": to_email, "otp": otp, "minutes": validity_minutes})

    def last_code(self, email):
        codes = [m["otp"] for m in self.sent if m["to"] == email]
        return codes[-1] if codes else None


class FailingMailer(FakeMailer):
    async def send_otp_email(self, to_email, otp, validity_minutes):
        await super().send_otp_email(to_email, otp, validity_minutes)
        raise ExternalServiceError("SMTP unavailable")


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def test_settings():
    return Settings(
        ENVIRONMENT="test",
        JWT_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        MAX_UPLOAD_BYTES=1024,
        MAX_SUBMISSION_BYTES=1536,
        OTP_MAX_ATTEMPTS=3,
    )


@pytest.fixture
def db():
    client = AsyncMongoMockClient()
    return MongoDatabase(database=client["comfinancial_test"])


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def app(db, mailer, test_settings):
    return create_app(database=db, mailer=mailer, config=test_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, name="A", email="a@example.com", password="secret1", use_otp=False):
    body = {"name": name, "email": email, "useOTP": use_otp}
    if password is not None:
        body["password"] = password
    return client.post("/api/auth/register", json=body)


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    response = register(client, name="Asha", email="asha@example.com", password="secret1")
    return response.json()["token"]


@pytest.fixture
def admin_token(client, db):
    register(client, name="Admin", email="admin@example.com", password="adminpass")
    run(db.users.update_one({"email": "admin@example.com"}, {"$set": {"role": "admin"}}))
    response = client.post(
        "/api/auth/login",
        json={"email": "admin@example.com", "password": "adminpass", "role": "admin"},
    )
    return response.json()["token"]
