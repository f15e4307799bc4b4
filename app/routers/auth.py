import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.user import (
    AddPhoneRequest,
    OtpChannel,
    PasswordLoginRequest,
    ProfileResponse,
    RegisterRequest,
    SendOtpRequest,
    VerifyOtpRequest,
    VerifyPhoneRequest,
)
from app.services.auth_middleware import get_current_session, get_current_user
from app.services.auth_service import (
    MAX_PASSWORD_BYTES,
    authenticate_user,
    get_user_by_phone,
    hash_password,
    start_session,
)
from app.services.otp_service import OtpDeliveryError, dispatch_otp, issue_otp, verify_otp
from app.services.profile_completion import is_profile_complete
from app.services.sms_service import SMSService, get_sms_service
from app.utils.response import create_response, handle_exception

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Auth"])

MIN_PASSWORD_LENGTH = 6


def _normalize_phone(phone: str | None) -> str:
    return (phone or "").replace(" ", "").replace("-", "").strip()


def identity_payload(user: User, **extra) -> dict:
    payload = {
        "user": ProfileResponse.model_validate(user).model_dump(),
        "profile_complete": is_profile_complete(user),
    }
    payload.update(extra)
    return payload


def check_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is too long")


def _ensure_active(user: User) -> None:
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account has been deactivated")


async def _send_code(db: Session, provider: SMSService, phone: str, channel: OtpChannel) -> dict:
    record = issue_otp(db, phone, channel.value)
    try:
        await dispatch_otp(provider, phone, record.otp, channel.value)
    except OtpDeliveryError as exc:
        logger.warning("OTP dispatch failed for %s: %s", phone, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send OTP")

    data = {"phone": phone, "method": channel.value}
    if not settings.is_production:
        data["otp"] = record.otp
    return data


@router.post("/send-otp")
async def send_otp(
    body: SendOtpRequest,
    db: Session = Depends(get_db),
    provider: SMSService = Depends(get_sms_service),
):
    try:
        phone = _normalize_phone(body.phone)
        if not phone:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number is required")

        logger.info("OTP requested for %s via %s", phone, body.method.value)
        data = await _send_code(db, provider, phone, body.method)
        return create_response(
            message=f"OTP sent successfully via {body.method.value}",
            data=data,
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/verify-otp")
def verify_otp_login(body: VerifyOtpRequest, db: Session = Depends(get_db)):
    try:
        phone = _normalize_phone(body.phone)
        if not phone or not body.otp:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number and OTP are required")
        if not verify_otp(db, phone, body.otp.strip()):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP")

        user = get_user_by_phone(db, phone)
        is_new_user = user is None
        if is_new_user:
            logger.info("Creating new user for verified phone %s", phone)
            user = User(phone=phone, phone_verified=True, auth_provider="phone")
            db.add(user)
            db.flush()
        else:
            _ensure_active(user)
            user.phone_verified = True

        token = start_session(db, user, "otp")
        db.commit()
        db.refresh(user)

        return create_response(
            message="OTP verified successfully",
            data=identity_payload(user, access_token=token, token_type="bearer", is_new_user=is_new_user),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/login")
def password_login(body: PasswordLoginRequest, db: Session = Depends(get_db)):
    try:
        user = authenticate_user(db, _normalize_phone(body.phone), body.password)
        if not user:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid phone or password")

        token = start_session(db, user, "password")
        db.commit()
        db.refresh(user)

        return create_response(
            message="Login successful",
            data=identity_payload(user, access_token=token, token_type="bearer"),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/register")
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    try:
        phone = _normalize_phone(body.phone)
        if not phone:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number is required")
        check_new_password(body.password)
        if get_user_by_phone(db, phone):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User already exists with this phone number",
            )

        user = User(
            phone=phone,
            name=body.name.strip(),
            email=body.email,
            password_hash=hash_password(body.password),
            batch_year=body.batch_year,
            state=body.state.strip(),
            district=body.district.strip(),
            profession=body.profession,
            auth_provider=body.auth_provider.value,
        )
        db.add(user)
        db.flush()
        token = start_session(db, user, "register")
        db.commit()
        db.refresh(user)
        logger.info("Registered user %s (%s)", user.id, phone)

        return create_response(
            message="Registration successful",
            data=identity_payload(user, access_token=token, token_type="bearer"),
            status_code=status.HTTP_201_CREATED
        )
    except Exception as exc:
        return handle_exception(exc)


@router.get("/me")
def who_am_i(current_user: User = Depends(get_current_user)):
    try:
        return create_response(
            message="Current user fetched successfully",
            data=identity_payload(current_user),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/logout")
def logout_user(auth_context=Depends(get_current_session)):
    try:
        session = auth_context["session"]
        db: Session = auth_context["db"]
        user: User = auth_context["user"]

        session.is_active = False
        session.revoked_at = datetime.utcnow()
        db.commit()

        return create_response(
            message="Logout successful",
            data={"user_id": user.id, "session_id": session.id},
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/add-phone")
async def add_phone(
    body: AddPhoneRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: SMSService = Depends(get_sms_service),
):
    try:
        phone = _normalize_phone(body.phone)
        if not phone:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number is required")
        owner = get_user_by_phone(db, phone)
        if owner and owner.id != current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number already registered")

        data = await _send_code(db, provider, phone, OtpChannel.sms)
        return create_response(
            message="OTP sent successfully",
            data=data,
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)


@router.post("/verify-phone")
def verify_phone(
    body: VerifyPhoneRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        phone = _normalize_phone(body.phone)
        if not verify_otp(db, phone, body.otp.strip()):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP")
        owner = get_user_by_phone(db, phone)
        if owner and owner.id != current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number already registered")

        user = db.query(User).filter(User.id == current_user.id).first()
        user.phone = phone
        user.phone_verified = True
        db.commit()
        db.refresh(user)
        logger.info("Linked phone %s to user %s", phone, user.id)

        return create_response(
            message="Phone verified successfully",
            data=identity_payload(user),
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
