"""HTTP wrapper around the auth endpoint family.

Every call either returns parsed data or raises one of the
``app.client.exceptions`` types; httpx errors never leak out.
"""
import logging
from typing import Any, Optional, Type

import httpx
from pydantic import BaseModel

from app.client.exceptions import (
    AuthClientError,
    NotAuthenticatedError,
    OtpRejectedError,
    RemoteRejectionError,
    TransportError,
)
from app.config import settings
from app.schemas.user import OtpChannel, ProfileResponse, ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)


class OtpAck(BaseModel):
    phone: str
    method: OtpChannel
    debug_otp: Optional[str] = None  # only echoed by non-production servers


class AuthResult(BaseModel):
    user: ProfileResponse
    access_token: str
    is_new_user: bool = False
    profile_complete: bool = False


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"Request failed with status {response.status_code}"
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("detail")
        if isinstance(message, str) and message:
            return message
        if message:
            return str(message)
    return f"Request failed with status {response.status_code}"


class AuthApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout or settings.API_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._token: Optional[str] = None

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        rejection: Type[RemoteRejectionError] = RemoteRejectionError,
    ) -> dict:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed without a response: %s", method, path, exc)
            raise TransportError(details={"path": path, "error": str(exc)}) from exc

        if response.status_code == 401:
            raise NotAuthenticatedError(_error_message(response), response.status_code)
        if response.status_code >= 400:
            message = _error_message(response)
            error_type = rejection if response.status_code == 400 else RemoteRejectionError
            raise error_type(message, response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthClientError("Malformed response from server", response.status_code) from exc
        return payload.get("data") or {}

    async def who_am_i(self) -> Optional[ProfileResponse]:
        """Return the signed-in identity, or ``None`` when the server says 401."""
        try:
            data = await self._request("GET", "/api/auth/me")
        except NotAuthenticatedError:
            return None
        user = data.get("user")
        return ProfileResponse.model_validate(user) if user else None

    async def send_otp(self, phone: str, channel: OtpChannel = OtpChannel.whatsapp) -> OtpAck:
        data = await self._request("POST", "/api/auth/send-otp", json={"phone": phone, "method": channel.value})
        return OtpAck(phone=data.get("phone", phone), method=data.get("method", channel.value), debug_otp=data.get("otp"))

    async def verify_otp(self, phone: str, otp: str) -> AuthResult:
        data = await self._request(
            "POST", "/api/auth/verify-otp", json={"phone": phone, "otp": otp}, rejection=OtpRejectedError
        )
        return AuthResult.model_validate(data)

    async def login_with_password(self, phone: str, password: str) -> AuthResult:
        data = await self._request("POST", "/api/auth/login", json={"phone": phone, "password": password})
        return AuthResult.model_validate(data)

    async def register(self, payload: RegisterRequest) -> AuthResult:
        data = await self._request("POST", "/api/auth/register", json=payload.model_dump(mode="json"))
        return AuthResult.model_validate(data)

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout")

    async def update_profile(self, changes: ProfileUpdate) -> ProfileResponse:
        data = await self._request("PUT", "/api/users/profile", json=changes.model_dump(mode="json", exclude_unset=True))
        return ProfileResponse.model_validate(data["user"])

    async def add_phone(self, phone: str) -> OtpAck:
        data = await self._request("POST", "/api/auth/add-phone", json={"phone": phone})
        return OtpAck(phone=data.get("phone", phone), method=data.get("method", OtpChannel.sms.value), debug_otp=data.get("otp"))

    async def verify_phone(self, phone: str, otp: str) -> ProfileResponse:
        data = await self._request(
            "POST", "/api/auth/verify-phone", json={"phone": phone, "otp": otp}, rejection=OtpRejectedError
        )
        return ProfileResponse.model_validate(data["user"])
