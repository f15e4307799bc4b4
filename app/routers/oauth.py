import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.routers.auth import identity_payload
from app.services.auth_service import start_session
from app.services.oauth_service import is_provider_configured, oauth, resolve_social_user
from app.services.profile_completion import is_profile_complete
from app.utils.response import create_response, handle_exception

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["OAuth"])

REDIRECT_URIS = {
    "google": settings.GOOGLE_REDIRECT_URI,
    "facebook": settings.FACEBOOK_REDIRECT_URI,
}


def next_step_for(user: User) -> str:
    if not user.phone:
        return "verify_phone"
    if not is_profile_complete(user):
        return "complete_profile"
    return "home"


def _client_for(provider: str):
    if provider not in REDIRECT_URIS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown OAuth provider")
    if not is_provider_configured(provider):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"{provider} login is not configured")
    return oauth.create_client(provider)


async def _fetch_profile(provider: str, client, token: dict) -> dict:
    if provider == "google":
        info = token.get("userinfo")
        if not info:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Google token")
        return {"id": info["sub"], "email": info.get("email"), "name": info.get("name"), "picture": info.get("picture")}

    response = await client.get("me", params={"fields": "id,name,email,picture"}, token=token)
    response.raise_for_status()
    info = response.json()
    picture = (info.get("picture") or {}).get("data", {}).get("url")
    return {"id": info["id"], "email": info.get("email"), "name": info.get("name"), "picture": picture}


@router.get("/{provider}/login")
async def oauth_login(provider: str, request: Request):
    try:
        client = _client_for(provider)
        redirect_uri = REDIRECT_URIS[provider] or str(request.url_for("oauth_callback", provider=provider))
        return await client.authorize_redirect(request, redirect_uri)
    except Exception as exc:
        return handle_exception(exc)


@router.get("/{provider}/callback", name="oauth_callback")
async def oauth_callback(provider: str, request: Request, db: Session = Depends(get_db)):
    try:
        client = _client_for(provider)
        token = await client.authorize_access_token(request)
        profile = await _fetch_profile(provider, client, token)

        user, created = resolve_social_user(
            db,
            provider,
            str(profile["id"]),
            email=profile["email"],
            name=profile["name"],
            picture=profile["picture"],
        )
        access_token = start_session(db, user, provider)
        db.commit()
        db.refresh(user)

        return create_response(
            message=f"{provider.capitalize()} login success",
            data=identity_payload(
                user,
                access_token=access_token,
                token_type="bearer",
                is_new_user=created,
                next_step=next_step_for(user),
            ),
            status_code=status.HTTP_200_OK
        )
    except HTTPException as exc:
        return handle_exception(exc)
    except Exception:
        logger.exception("%s authentication failed", provider)
        return handle_exception(HTTPException(status_code=500, detail=f"{provider.capitalize()} authentication failed"))
