from app import main
from app.services.sms_service import MockSMSService, get_sms_service

PHONE = "+919876543210"
DEV_OTP = "123456"


def _register_payload(**overrides):
    payload = {
        "name": "Asha Verma",
        "phone": "+919811112222",
        "password": "secret123",
        "batch_year": 2005,
        "state": "Rajasthan",
        "district": "Jaipur",
    }
    payload.update(overrides)
    return payload


class _FailingProvider(MockSMSService):
    name = "failing"

    async def send_otp(self, phone, otp):
        return False

    async def send_whatsapp_otp(self, phone, otp):
        return False


def test_send_otp_requires_phone(client):
    response = client.post("/api/auth/send-otp", json={"method": "sms"})

    assert response.status_code == 400
    assert response.json()["message"] == "Phone number is required"


def test_send_otp_defaults_to_whatsapp_and_echoes_code_outside_production(client):
    response = client.post("/api/auth/send-otp", json={"phone": PHONE})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["phone"] == PHONE
    assert data["method"] == "whatsapp"
    assert len(data["otp"]) == 6


def test_send_otp_reports_dispatch_failure(client):
    main.app.dependency_overrides[get_sms_service] = lambda: _FailingProvider()

    response = client.post("/api/auth/send-otp", json={"phone": PHONE, "method": "sms"})

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to send OTP"


def test_issued_code_logs_in(client):
    sent = client.post("/api/auth/send-otp", json={"phone": PHONE, "method": "sms"}).json()["data"]

    response = client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": sent["otp"]})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_new_user"] is True
    assert data["profile_complete"] is False
    assert data["user"]["phone"] == PHONE
    assert data["user"]["phone_verified"] is True
    assert "password_hash" not in data["user"]


def test_issued_code_is_single_use(client):
    sent = client.post("/api/auth/send-otp", json={"phone": PHONE}).json()["data"]
    client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": sent["otp"]})

    response = client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": sent["otp"]})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"


def test_wrong_otp_is_rejected(client):
    response = client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": "000000"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"
    assert response.json()["status"] == "error"


def test_second_otp_login_is_not_a_new_user(client, login):
    login(PHONE)

    response = client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": DEV_OTP})

    assert response.status_code == 200
    assert response.json()["data"]["is_new_user"] is False


def test_me_without_token_is_unauthorized(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_me_with_garbage_token_is_unauthorized(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_me_returns_identity(client, login):
    headers = login(PHONE)

    response = client.get("/api/auth/me", headers=headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["phone"] == PHONE
    assert data["profile_complete"] is False


def test_logout_revokes_session(client, login):
    headers = login(PHONE)

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logout successful"

    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_logout_keeps_other_sessions(client, login):
    first = login(PHONE)
    second = login(PHONE)

    client.post("/api/auth/logout", headers=first)

    assert client.get("/api/auth/me", headers=second).status_code == 200


def test_register_creates_complete_identity(client):
    response = client.post("/api/auth/register", json=_register_payload())

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["profile_complete"] is True
    assert data["user"]["has_password"] is True
    assert data["user"]["name"] == "Asha Verma"
    assert data["access_token"]


def test_register_rejects_duplicate_phone(client):
    client.post("/api/auth/register", json=_register_payload())

    response = client.post("/api/auth/register", json=_register_payload(name="Someone Else"))

    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this phone number"


def test_register_rejects_short_password(client):
    response = client.post("/api/auth/register", json=_register_payload(password="abc"))

    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at least 6 characters"


def test_password_login(client):
    client.post("/api/auth/register", json=_register_payload())

    response = client.post("/api/auth/login", json={"phone": "+919811112222", "password": "secret123"})

    assert response.status_code == 200
    assert response.json()["data"]["user"]["name"] == "Asha Verma"


def test_password_login_rejects_wrong_password(client):
    client.post("/api/auth/register", json=_register_payload())

    response = client.post("/api/auth/login", json={"phone": "+919811112222", "password": "wrong-one"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid phone or password"


def test_add_and_verify_phone(client, db_session):
    from app.models.user import User
    from app.services.auth_service import start_session

    user = User(name="Social Person", email="social@example.com", auth_provider="google", google_id="g-1")
    db_session.add(user)
    db_session.flush()
    token = start_session(db_session, user, "google")
    db_session.commit()
    headers = {"Authorization": f"Bearer {token}"}

    sent = client.post("/api/auth/add-phone", json={"phone": PHONE}, headers=headers)
    assert sent.status_code == 200
    assert sent.json()["data"]["method"] == "sms"

    verified = client.post(
        "/api/auth/verify-phone",
        json={"phone": PHONE, "otp": sent.json()["data"]["otp"]},
        headers=headers,
    )
    assert verified.status_code == 200
    assert verified.json()["data"]["user"]["phone"] == PHONE
    assert verified.json()["data"]["user"]["phone_verified"] is True


def test_add_phone_rejects_number_owned_by_someone_else(client, login):
    login(PHONE)
    other = login("+919800000001")

    response = client.post("/api/auth/add-phone", json={"phone": PHONE}, headers=other)

    assert response.status_code == 400
    assert response.json()["message"] == "Phone number already registered"


def test_register_rejects_password_over_bcrypt_limit(client):
    response = client.post("/api/auth/register", json=_register_payload(password="é" * 40))

    assert response.status_code == 400
    assert response.json()["message"] == "Password is too long"


def test_expired_otp_is_rejected(client, db_session):
    from datetime import datetime, timedelta

    from app.models.otp_verification import OtpVerification

    sent = client.post("/api/auth/send-otp", json={"phone": PHONE, "method": "sms"}).json()["data"]
    record = db_session.query(OtpVerification).filter(OtpVerification.otp == sent["otp"]).first()
    record.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db_session.commit()

    response = client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": sent["otp"]})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"
