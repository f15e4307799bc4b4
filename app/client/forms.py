"""Client-side form validation, run before any request leaves the device."""
import re
from datetime import date

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from app.schemas.user import AuthProvider, OtpChannel, ProfileUpdate, RegisterRequest

JNV_FIRST_BATCH_YEAR = 1988
MIN_PHONE_DIGITS = 10
OTP_LENGTH = 6
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72

_NON_PHONE_CHARS = re.compile(r"[\s\-()]")


def _clean_phone(value: str) -> str:
    cleaned = _NON_PHONE_CHARS.sub("", value or "")
    digits = cleaned[1:] if cleaned.startswith("+") else cleaned
    if not digits.isdigit() or len(digits) < MIN_PHONE_DIGITS:
        raise ValueError(f"Phone number must be at least {MIN_PHONE_DIGITS} digits")
    return cleaned


def _required_text(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


class OtpRequestForm(BaseModel):
    phone: str
    channel: OtpChannel = OtpChannel.whatsapp

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _clean_phone(value)


class OtpVerifyForm(BaseModel):
    phone: str
    otp: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _clean_phone(value)

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, value: str) -> str:
        value = value.strip()
        if len(value) != OTP_LENGTH or not value.isdigit():
            raise ValueError(f"OTP must be {OTP_LENGTH} digits")
        return value


class PasswordLoginForm(BaseModel):
    phone: str
    password: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _clean_phone(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


def _validate_batch_year(value: int) -> int:
    current_year = date.today().year
    if not JNV_FIRST_BATCH_YEAR <= value <= current_year:
        raise ValueError(f"Batch year must be between {JNV_FIRST_BATCH_YEAR} and {current_year}")
    return value


def _validate_new_password(value: str) -> str:
    if len(value or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError("Password is too long")
    return value


class RegistrationForm(BaseModel):
    name: str
    phone: str
    password: str
    batch_year: int
    state: str
    district: str
    email: EmailStr | None = None
    profession: str | None = None
    auth_provider: AuthProvider = AuthProvider.phone

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _clean_phone(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _required_text(value, "Full name")

    @field_validator("state")
    @classmethod
    def validate_state(cls, value: str) -> str:
        return _required_text(value, "JNV state")

    @field_validator("district")
    @classmethod
    def validate_district(cls, value: str) -> str:
        return _required_text(value, "JNV district")

    @field_validator("batch_year")
    @classmethod
    def validate_batch_year(cls, value: int) -> int:
        return _validate_batch_year(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_new_password(value)

    def to_request(self) -> RegisterRequest:
        return RegisterRequest(**self.model_dump())


class ProfileCompletionForm(BaseModel):
    """The blocking "complete your profile" form."""

    name: str
    password: str
    confirm_password: str
    batch_year: int
    state: str
    district: str
    email: EmailStr | None = None
    profession: str | None = None
    bio: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _required_text(value, "Full name")

    @field_validator("state")
    @classmethod
    def validate_state(cls, value: str) -> str:
        return _required_text(value, "JNV state")

    @field_validator("district")
    @classmethod
    def validate_district(cls, value: str) -> str:
        return _required_text(value, "JNV district")

    @field_validator("batch_year")
    @classmethod
    def validate_batch_year(cls, value: int) -> int:
        return _validate_batch_year(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_new_password(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

    def to_update(self) -> ProfileUpdate:
        return ProfileUpdate(**self.model_dump(exclude={"confirm_password"}, exclude_none=True))
