import asyncio
from datetime import datetime, timedelta

import pytest

from app.services.otp_service import OtpDeliveryError, dispatch_otp, issue_otp, verify_otp
from app.services.sms_service import (
    MockSMSService,
    MSG91SMSService,
    SMSService,
    TwilioSMSService,
    create_sms_service,
)


class RecordingProvider(SMSService):
    name = "recording"

    def __init__(self, supports_whatsapp=False, delivered=True):
        self.supports_whatsapp = supports_whatsapp
        self.delivered = delivered
        self.sent = []

    async def send_otp(self, phone, otp):
        self.sent.append(("sms", phone, otp))
        return self.delivered

    async def send_whatsapp_otp(self, phone, otp):
        self.sent.append(("whatsapp", phone, otp))
        return self.delivered


@pytest.mark.parametrize(
    "name, expected",
    [("twilio", TwilioSMSService), ("msg91", MSG91SMSService), ("mock", MockSMSService), ("carrier-pigeon", MockSMSService)],
)
def test_factory_selects_provider(name, expected):
    assert isinstance(create_sms_service(name), expected)


def test_whatsapp_falls_back_to_sms_when_unsupported():
    provider = RecordingProvider(supports_whatsapp=False)

    asyncio.run(dispatch_otp(provider, "+919876543210", "111222", "whatsapp"))

    assert provider.sent == [("sms", "+919876543210", "111222")]


def test_whatsapp_used_when_supported():
    provider = RecordingProvider(supports_whatsapp=True)

    asyncio.run(dispatch_otp(provider, "+919876543210", "111222", "whatsapp"))

    assert provider.sent == [("whatsapp", "+919876543210", "111222")]


def test_failed_delivery_raises():
    provider = RecordingProvider(delivered=False)

    with pytest.raises(OtpDeliveryError):
        asyncio.run(dispatch_otp(provider, "+919876543210", "111222", "sms"))


def test_unconfigured_twilio_reports_failure():
    provider = TwilioSMSService("", "", "")

    assert asyncio.run(provider.send_otp("+919876543210", "111222")) is False


def test_msg91_phone_format():
    assert MSG91SMSService._normalize_phone("+919876543210") == "919876543210"


def test_issued_code_is_six_digits_and_verifies_once(db_session):
    record = issue_otp(db_session, "+919876543210", "sms")

    assert len(record.otp) == 6 and record.otp.isdigit()
    assert verify_otp(db_session, "+919876543210", record.otp) is True
    assert verify_otp(db_session, "+919876543210", record.otp) is False


def test_code_for_other_phone_is_rejected(db_session):
    record = issue_otp(db_session, "+919876543210", "sms")

    assert verify_otp(db_session, "+919800000000", record.otp) is False


def test_expired_code_is_rejected(db_session):
    record = issue_otp(db_session, "+919876543210", "sms")
    record.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db_session.commit()

    assert verify_otp(db_session, "+919876543210", record.otp) is False
