import asyncio
from datetime import timedelta

import pytest
from mongomock_motor import AsyncMongoMockClient

from comfin.db.indexes import create_indexes
from comfin.db.mongo import MongoDatabase
from comfin.services.otp_service import OtpService, generate_otp
from comfin.services.user_service import UserService
from comfin.utils.time_utils import utcnow

from conftest import FakeMailer


@pytest.fixture
async def services(test_settings):
    db = MongoDatabase(database=AsyncMongoMockClient()["otp_service_test"])
    await create_indexes(db)
    users = UserService(db, test_settings)
    mailer = FakeMailer()
    otp = OtpService(users, mailer, test_settings)
    return db, users, otp, mailer


def test_generate_otp_is_six_digits():
    for _ in range(200):
        code = generate_otp()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


async def test_generate_and_save_unknown_email(services):
    _, _, otp, mailer = services
    assert await otp.generate_and_save("ghost@example.com") is None
    assert mailer.sent == []


async def test_generate_and_save_sets_expiry(services, test_settings):
    db, users, otp, mailer = services
    await users.create_user(name="O", email="o@example.com", use_otp=True)

    before = utcnow()
    code = await otp.generate_and_save("o@example.com")

    doc = await db.users.find_one({"email": "o@example.com"})
    assert doc["otp"] == code
    assert doc["otpAttempts"] == 0
    assert doc["otpExpiry"] >= before + timedelta(minutes=test_settings.OTP_EXPIRY_MINUTES)
    assert mailer.last_code("o@example.com") == code


async def test_verify_consumes_code(services):
    db, users, otp, _ = services
    await users.create_user(name="O", email="o@example.com", use_otp=True)
    code = await otp.generate_and_save("o@example.com")

    assert await otp.verify("o@example.com", code) is True
    assert await otp.verify("o@example.com", code) is False

    doc = await db.users.find_one({"email": "o@example.com"})
    assert "otp" not in doc
    assert "otpExpiry" not in doc


async def test_concurrent_verifications_succeed_once(services):
    _, users, otp, _ = services
    await users.create_user(name="O", email="o@example.com", use_otp=True)
    code = await otp.generate_and_save("o@example.com")

    results = await asyncio.gather(*(otp.verify("o@example.com", code) for _ in range(5)))
    assert results.count(True) == 1


async def test_verify_rejects_malformed_code(services):
    _, users, otp, _ = services
    await users.create_user(name="O", email="o@example.com", use_otp=True)
    await otp.generate_and_save("o@example.com")

    assert await otp.verify("o@example.com", "abc") is False
    assert await otp.verify("o@example.com", "") is False


async def test_toggle_helpers_keep_one_credential(services):
    db, users, _, _ = services
    user = await users.create_user(name="P", email="p@example.com", password="secret1")

    await users.enable_otp(user.id)
    doc = await db.users.find_one({"email": "p@example.com"})
    assert doc["useOTP"] is True
    assert "password" not in doc

    await users.save_otp("p@example.com", "123456", utcnow() + timedelta(minutes=10))
    await users.set_password(user.id, "newpass1")
    doc = await db.users.find_one({"email": "p@example.com"})
    assert doc["useOTP"] is False
    assert doc["password"].startswith("$2")
    assert "otp" not in doc


async def test_verify_refuses_code_at_attempt_limit(services, test_settings):
    db, users, otp, _ = services
    await users.create_user(name="O", email="o@example.com", use_otp=True)
    code = await otp.generate_and_save("o@example.com")

    # counter already at the cap but the code was never cleared
    await db.users.update_one(
        {"email": "o@example.com"},
        {"$set": {"otpAttempts": test_settings.OTP_MAX_ATTEMPTS}},
    )

    assert await otp.verify("o@example.com", code) is False
    doc = await db.users.find_one({"email": "o@example.com"})
    assert doc["otp"] == code
