import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth import check_new_password
from app.schemas.user import ProfileResponse, ProfileUpdate
from app.services.auth_middleware import get_current_user
from app.services.auth_service import hash_password
from app.services.profile_completion import is_profile_complete, profile_completion_details
from app.utils.response import create_response, handle_exception

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["Profile"])


@router.get("/profile")
def get_profile(
    current_user: User = Depends(get_current_user),
):
    try:
        return create_response(
            message="Profile fetched successfully",
            data={
                "user": ProfileResponse.model_validate(current_user).model_dump(),
                "profile_complete": is_profile_complete(current_user),
            },
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.put("/profile")
def update_profile(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        user = db.query(User).filter(User.id == current_user.id).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        update_data = update.model_dump(exclude_unset=True)
        password = update_data.pop("password", None)
        if password is not None:
            check_new_password(password)
            user.password_hash = hash_password(password)

        # null clears optional columns; for required ones it means "leave as is"
        update_data = {
            field: value
            for field, value in update_data.items()
            if value is not None or User.__table__.columns[field].nullable
        }
        for field, value in update_data.items():
            setattr(user, field, value)

        db.commit()
        db.refresh(user)
        logger.info("Updated profile for user %s (fields=%s)", user.id, sorted(update_data))

        return create_response(
            message="Profile updated successfully",
            data={
                "user": ProfileResponse.model_validate(user).model_dump(),
                "profile_complete": is_profile_complete(user),
            },
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/profile/completion")
def get_profile_completion(current_user: User = Depends(get_current_user)):
    try:
        return create_response(
            message="Profile completion fetched successfully",
            data=profile_completion_details(current_user),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
