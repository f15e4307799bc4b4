from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class OtpChannel(str, Enum):
    sms = "sms"
    whatsapp = "whatsapp"


class AuthProvider(str, Enum):
    phone = "phone"
    google = "google"
    facebook = "facebook"


class SendOtpRequest(BaseModel):
    # Optional so a missing phone gets the API's own 400 message
    phone: str | None = None
    method: OtpChannel = OtpChannel.whatsapp


class VerifyOtpRequest(BaseModel):
    phone: str
    otp: str


class PasswordLoginRequest(BaseModel):
    phone: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    phone: str
    password: str
    batch_year: int
    state: str
    district: str
    email: EmailStr | None = None
    profession: str | None = None
    auth_provider: AuthProvider = AuthProvider.phone


class AddPhoneRequest(BaseModel):
    phone: str


class VerifyPhoneRequest(BaseModel):
    phone: str
    otp: str


class ProfileUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    password: str | None = None
    batch_year: int | None = None
    state: str | None = None
    district: str | None = None
    profession: str | None = None
    bio: str | None = None
    profile_image: str | None = None
    is_expert: bool | None = None
    expertise_areas: list[str] | None = None
    daily_request_limit: int | None = Field(default=None, ge=0)
    phone_visible: bool | None = None

    @field_validator("name", "state", "district", "profession")
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class ProfileResponse(BaseModel):
    """Identity as sent over the wire. The password hash is never included."""

    id: int
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    phone_verified: bool = False
    has_password: bool = False
    auth_provider: str = AuthProvider.phone.value
    email_verified: bool = False
    batch_year: int | None = None
    state: str | None = None
    district: str | None = None
    profession: str | None = None
    bio: str | None = None
    profile_image: str | None = None
    is_expert: bool = False
    expertise_areas: list[str] | None = None
    daily_request_limit: int | None = None
    phone_visible: bool | None = None
    available_slots: int | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def expert_attributes_only_for_experts(self):
        if not self.is_expert:
            self.expertise_areas = None
            self.daily_request_limit = None
            self.phone_visible = None
            self.available_slots = None
        elif self.available_slots is None and self.daily_request_limit is not None:
            self.available_slots = max(self.daily_request_limit, 0)
        return self
