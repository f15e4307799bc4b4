import logging
from typing import Optional

from authlib.integrations.starlette_client import OAuth
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User

logger = logging.getLogger(__name__)

oauth = OAuth()

oauth.register(
    name="google",
    client_id=settings.GOOGLE_CLIENT_ID,
    client_secret=settings.GOOGLE_CLIENT_SECRET,
    server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
    client_kwargs={"scope": "openid email profile"},
)

oauth.register(
    name="facebook",
    client_id=settings.FACEBOOK_APP_ID,
    client_secret=settings.FACEBOOK_APP_SECRET,
    access_token_url="https://graph.facebook.com/v18.0/oauth/access_token",
    authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
    api_base_url="https://graph.facebook.com/v18.0/",
    client_kwargs={"scope": "email public_profile"},
)

SOCIAL_ID_COLUMNS = {
    "google": User.google_id,
    "facebook": User.facebook_id,
}


def is_provider_configured(provider: str) -> bool:
    if provider == "google":
        return bool(settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET)
    if provider == "facebook":
        return bool(settings.FACEBOOK_APP_ID and settings.FACEBOOK_APP_SECRET)
    return False


def resolve_social_user(
    db: Session,
    provider: str,
    social_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    picture: Optional[str] = None,
) -> tuple[User, bool]:
    """Find or create the identity behind an OAuth login.

    Lookup order: provider id, then email (linking the provider to that
    account). New identities carry no phone or JNV fields; the client is
    expected to link a phone and complete the profile afterwards.
    Returns ``(user, created)``; the caller commits.
    """
    column = SOCIAL_ID_COLUMNS[provider]
    user = db.query(User).filter(column == social_id).first()
    if user:
        return user, False

    if email:
        user = db.query(User).filter(User.email == email).first()
        if user:
            logger.info("Linking %s account to existing user %s", provider, user.id)
            setattr(user, column.key, social_id)
            user.auth_provider = provider
            return user, False

    user = User(
        name=name or None,
        email=email or None,
        email_verified=bool(email),
        auth_provider=provider,
        profile_image=picture,
    )
    setattr(user, column.key, social_id)
    db.add(user)
    db.flush()
    logger.info("Created %s user %s", provider, user.id)
    return user, True
