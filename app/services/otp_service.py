import logging
import random
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import settings
from app.models.otp_verification import OtpVerification
from app.services.sms_service import SMSService

logger = logging.getLogger(__name__)

CHANNEL_SMS = "sms"
CHANNEL_WHATSAPP = "whatsapp"
CHANNELS = (CHANNEL_SMS, CHANNEL_WHATSAPP)


class OtpDeliveryError(Exception):
    """The provider refused or failed to deliver the code."""


def generate_otp() -> str:
    return str(random.randint(100000, 999999))


def issue_otp(db: Session, phone: str, channel: str = CHANNEL_WHATSAPP) -> OtpVerification:
    record = OtpVerification(
        phone=phone,
        otp=generate_otp(),
        channel=channel,
        expires_at=datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


async def dispatch_otp(provider: SMSService, phone: str, otp: str, channel: str) -> None:
    if channel == CHANNEL_WHATSAPP and not provider.supports_whatsapp:
        logger.warning("Provider %s has no WhatsApp support; sending SMS to %s", provider.name, phone)
        channel = CHANNEL_SMS

    if channel == CHANNEL_WHATSAPP:
        delivered = await provider.send_whatsapp_otp(phone, otp)
    else:
        delivered = await provider.send_otp(phone, otp)

    if not delivered:
        raise OtpDeliveryError(f"{provider.name} could not deliver OTP via {channel}")


def verify_otp(db: Session, phone: str, otp: str) -> bool:
    """Consume the newest unexpired code matching ``phone`` and ``otp``."""
    if not settings.is_production and settings.DEV_DEFAULT_OTP and otp == settings.DEV_DEFAULT_OTP:
        logger.info("[DEV] Accepting default OTP for %s", phone)
        return True

    record = (
        db.query(OtpVerification)
        .filter(
            OtpVerification.phone == phone,
            OtpVerification.otp == otp,
            OtpVerification.verified == False,
            OtpVerification.expires_at > datetime.utcnow(),
        )
        .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
        .first()
    )
    if not record:
        logger.info("Invalid or expired OTP for %s", phone)
        return False

    record.verified = True
    db.commit()
    return True
