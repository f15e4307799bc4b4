"""OTP dispatch providers.

Each provider returns ``True`` when the code was handed off and ``False`` on
any failure; callers decide what a failed dispatch means. No retries here.
"""
import logging
from typing import Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

OTP_MESSAGE = (
    "Your OTP for Navodaya Connection is: {otp}. Valid for {minutes} minutes. "
    "Do not share this OTP with anyone."
)
MSG91_FLOW_URL = "https://api.msg91.com/api/v5/flow/"
MSG91_WHATSAPP_URL = "https://api.msg91.com/api/v5/whatsapp/whatsapp-outbound-message/bulk"
TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
REQUEST_TIMEOUT_SECONDS = 15


class SMSService:
    name = "base"
    supports_whatsapp = False

    async def send_otp(self, phone: str, otp: str) -> bool:
        raise NotImplementedError

    async def send_whatsapp_otp(self, phone: str, otp: str) -> bool:
        raise NotImplementedError(f"{self.name} does not deliver WhatsApp messages")


class TwilioSMSService(SMSService):
    name = "twilio"

    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    async def send_otp(self, phone: str, otp: str) -> bool:
        if not self.account_sid or not self.auth_token or not self.from_number:
            logger.error("Twilio credentials not configured")
            return False

        body = OTP_MESSAGE.format(otp=otp, minutes=settings.OTP_EXPIRE_MINUTES)
        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                    data={"To": phone, "From": self.from_number, "Body": body},
                    auth=(self.account_sid, self.auth_token),
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send SMS via Twilio to %s: %s", phone, exc)
            return False

        logger.info("SMS sent to %s sid=%s", phone, payload.get("sid"))
        return True


class MSG91SMSService(SMSService):
    name = "msg91"
    supports_whatsapp = True

    def __init__(self, api_key: str, sender_id: str, template_id: str, whatsapp_template_id: str):
        self.api_key = api_key
        self.sender_id = sender_id
        self.template_id = template_id
        self.whatsapp_template_id = whatsapp_template_id

    @staticmethod
    def _normalize_phone(phone: str) -> str:
        # MSG91 expects 919876543210
        return phone.replace("+91", "91", 1).replace("+", "")

    async def _post(self, url: str, payload: dict, purpose: str, phone: str) -> bool:
        headers = {"Content-Type": "application/json", "Authkey": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send %s via MSG91 to %s: %s", purpose, phone, exc)
            return False

        if data.get("type") != "success":
            logger.error("MSG91 %s error: %s", purpose, data)
            return False
        logger.info("%s sent to %s via MSG91", purpose, phone)
        return True

    async def send_otp(self, phone: str, otp: str) -> bool:
        if not self.api_key or not self.sender_id:
            logger.error("MSG91 credentials not configured")
            return False
        payload = {
            "flow_id": self.template_id,
            "sender": self.sender_id,
            "mobiles": self._normalize_phone(phone),
            "VAR1": otp,
        }
        return await self._post(MSG91_FLOW_URL, payload, "SMS OTP", phone)

    async def send_whatsapp_otp(self, phone: str, otp: str) -> bool:
        if not self.api_key or not self.whatsapp_template_id:
            logger.error("MSG91 WhatsApp credentials not configured")
            return False
        payload = {
            "to": self._normalize_phone(phone),
            "type": "template",
            "template": {
                "name": self.whatsapp_template_id,
                "language": {"code": "en"},
                "components": [
                    {"type": "body", "parameters": [{"type": "text", "text": otp}]}
                ],
            },
        }
        return await self._post(MSG91_WHATSAPP_URL, payload, "WhatsApp OTP", phone)


class MockSMSService(SMSService):
    name = "mock"
    supports_whatsapp = True

    async def send_otp(self, phone: str, otp: str) -> bool:
        logger.info("[MOCK SMS] OTP %s sent to %s", otp, phone)
        return True

    async def send_whatsapp_otp(self, phone: str, otp: str) -> bool:
        logger.info("[MOCK WHATSAPP] OTP %s sent to %s", otp, phone)
        return True


def create_sms_service(provider: Optional[str] = None) -> SMSService:
    provider = (provider or settings.SMS_PROVIDER or "mock").lower()
    if provider == "twilio":
        return TwilioSMSService(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            settings.TWILIO_FROM_NUMBER,
        )
    if provider == "msg91":
        return MSG91SMSService(
            settings.MSG91_API_KEY,
            settings.MSG91_SENDER_ID,
            settings.MSG91_TEMPLATE_ID,
            settings.MSG91_WHATSAPP_TEMPLATE_ID,
        )
    if provider != "mock":
        logger.warning("Unknown SMS_PROVIDER %r; using mock provider", provider)
    return MockSMSService()


sms_service = create_sms_service()


def get_sms_service() -> SMSService:
    return sms_service
