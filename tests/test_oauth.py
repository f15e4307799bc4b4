from app.config import settings
from app.models.user import User
from app.routers.oauth import next_step_for
from app.services.oauth_service import resolve_social_user


def test_first_social_login_creates_partial_identity(db_session):
    user, created = resolve_social_user(db_session, "google", "g-123", email="meena@example.com", name="Meena")
    db_session.commit()

    assert created is True
    assert user.google_id == "g-123"
    assert user.phone is None
    assert user.email_verified is True
    assert next_step_for(user) == "verify_phone"


def test_repeat_social_login_finds_same_identity(db_session):
    first, _ = resolve_social_user(db_session, "facebook", "fb-1", name="Meena")
    db_session.commit()

    again, created = resolve_social_user(db_session, "facebook", "fb-1")

    assert created is False
    assert again.id == first.id


def test_social_login_links_existing_email(db_session):
    existing = User(phone="+919876543210", email="meena@example.com")
    db_session.add(existing)
    db_session.commit()

    user, created = resolve_social_user(db_session, "google", "g-9", email="meena@example.com")

    assert created is False
    assert user.id == existing.id
    assert user.google_id == "g-9"
    assert next_step_for(user) == "complete_profile"


def test_unknown_provider_is_not_found(client):
    response = client.get("/api/auth/myspace/login")

    assert response.status_code == 404
    assert response.json()["message"] == "Unknown OAuth provider"


def test_unconfigured_provider_is_unavailable(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", None)

    response = client.get("/api/auth/google/login")

    assert response.status_code == 503
