"""Client-side session/identity manager.

One ``SessionManager`` is created when the app starts and closed when it
shuts down; screens receive it rather than reaching for a global. It is the
only place that starts authentication side effects and the only writer of the
current identity.

Session states::

    UNKNOWN --probe(user)--> AUTHENTICATED
    UNKNOWN --probe(401)---> ANONYMOUS
    ANONYMOUS --login/register--> AUTHENTICATED
    AUTHENTICATED --logout / probe(401)--> ANONYMOUS

Every transition bumps ``sequence``. A "who am I" probe remembers the sequence
it was issued under and its answer is dropped if any transition happened while
it was in flight, so a slow probe can never undo a login or logout.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from app.client.auth_api import AuthApiClient, AuthResult, OtpAck
from app.client.exceptions import AuthClientError
from app.client.forms import (
    OtpRequestForm,
    OtpVerifyForm,
    PasswordLoginForm,
    ProfileCompletionForm,
    RegistrationForm,
)
from app.client.onboarding_store import OnboardingTracker
from app.config import settings
from app.schemas.user import OtpChannel, ProfileResponse, ProfileUpdate
from app.services.profile_completion import (
    is_profile_complete,
    missing_profile_fields,
    profile_completion_percentage,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class ProfileGate:
    is_complete: bool
    missing_fields: List[str]
    completion_percentage: int
    show_completion_modal: bool
    show_onboarding_hint: bool


Listener = Callable[[SessionState, Optional[ProfileResponse]], None]


class SessionManager:
    def __init__(
        self,
        api: AuthApiClient,
        onboarding: Optional[OnboardingTracker] = None,
        navigate: Optional[Callable[[str], None]] = None,
        entry_point: Optional[str] = None,
    ):
        self.api = api
        self.onboarding = onboarding or OnboardingTracker()
        self._navigate = navigate
        self.entry_point = entry_point or settings.AUTH_ENTRY_POINT
        self._state = SessionState.UNKNOWN
        self._identity: Optional[ProfileResponse] = None
        self._sequence = 0
        self._probe_cache: Optional[ProfileResponse] = None
        self._probe_cached = False
        self._listeners: List[Listener] = []

    async def __aenter__(self) -> "SessionManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[ProfileResponse]:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def sequence(self) -> int:
        return self._sequence

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _transition(self, state: SessionState, identity: Optional[ProfileResponse]) -> None:
        self._sequence += 1
        previous = self._state
        self._state = state
        self._identity = identity
        if previous is not state:
            logger.info("Session %s -> %s (seq=%s)", previous.value, state.value, self._sequence)
        for listener in list(self._listeners):
            try:
                listener(state, identity)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    def _accept(self, result: AuthResult) -> AuthResult:
        self.api.set_token(result.access_token)
        self._invalidate_probe_cache()
        self._transition(SessionState.AUTHENTICATED, result.user)
        return result

    def _invalidate_probe_cache(self) -> None:
        self._probe_cache = None
        self._probe_cached = False

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> Optional[ProfileResponse]:
        return await self.probe()

    async def close(self) -> None:
        self._listeners.clear()
        await self.api.aclose()

    # -- background identity sync --------------------------------------------

    async def probe(self) -> Optional[ProfileResponse]:
        """Ask the server who is signed in and apply the answer unless stale."""
        issued_at = self._sequence
        try:
            identity = await self.api.who_am_i()
        except AuthClientError as exc:
            logger.warning("Identity probe failed (%s)", exc.message)
            if issued_at == self._sequence and self._state is SessionState.UNKNOWN:
                self._transition(SessionState.ANONYMOUS, None)
            return self._identity

        if issued_at != self._sequence:
            logger.debug("Discarding stale identity probe (issued seq=%s, now %s)", issued_at, self._sequence)
            return self._identity

        self._probe_cache = identity
        self._probe_cached = True
        if identity is None:
            self.api.clear_token()
            self._transition(SessionState.ANONYMOUS, None)
        else:
            self._transition(SessionState.AUTHENTICATED, identity)
        return identity

    async def who_am_i(self, force: bool = False) -> Optional[ProfileResponse]:
        """Return the cached probe answer, probing first if needed or forced."""
        if force or not self._probe_cached:
            await self.probe()
            if not self._probe_cached:
                return self._identity
        return self._probe_cache

    # -- user-initiated operations -------------------------------------------

    async def send_otp(self, phone: str, channel: OtpChannel | str = OtpChannel.whatsapp) -> OtpAck:
        form = OtpRequestForm(phone=phone, channel=channel)
        return await self.api.send_otp(form.phone, form.channel)

    async def login(self, phone: str, otp: str) -> AuthResult:
        form = OtpVerifyForm(phone=phone, otp=otp)
        result = await self.api.verify_otp(form.phone, form.otp)
        return self._accept(result)

    async def login_with_password(self, phone: str, password: str) -> AuthResult:
        form = PasswordLoginForm(phone=phone, password=password)
        result = await self.api.login_with_password(form.phone, form.password)
        return self._accept(result)

    async def register(self, profile_data: RegistrationForm | dict) -> AuthResult:
        form = RegistrationForm.model_validate(profile_data)
        result = await self.api.register(form.to_request())
        return self._accept(result)

    async def logout(self) -> None:
        """Sign out; local state is cleared even if the server can't be reached."""
        try:
            await self.api.logout()
        except AuthClientError as exc:
            logger.warning("Remote logout failed (%s); clearing local session anyway", exc.message)
        finally:
            self.api.clear_token()
            self._invalidate_probe_cache()
            self._transition(SessionState.ANONYMOUS, None)
            if self._navigate is not None:
                self._navigate(self.entry_point)

    def update_user(self, identity: ProfileResponse) -> bool:
        """Replace the cached identity with one the caller already holds.

        Only a signed-in session can be updated; returns whether it was applied.
        """
        if not self.is_authenticated:
            logger.warning("Ignoring identity update while session is %s", self._state.value)
            return False
        self._invalidate_probe_cache()
        self._transition(SessionState.AUTHENTICATED, identity.model_copy())
        return True

    def _apply_if_current(self, issued_at: int, identity: ProfileResponse) -> None:
        if issued_at != self._sequence:
            logger.debug("Discarding stale identity update (issued seq=%s, now %s)", issued_at, self._sequence)
            return
        self.update_user(identity)

    async def save_profile(self, changes: ProfileCompletionForm | ProfileUpdate | dict) -> ProfileResponse:
        if isinstance(changes, ProfileCompletionForm):
            update = changes.to_update()
        else:
            update = ProfileUpdate.model_validate(changes)
        issued_at = self._sequence
        identity = await self.api.update_profile(update)
        self._apply_if_current(issued_at, identity)
        return identity

    async def add_phone(self, phone: str) -> OtpAck:
        form = OtpRequestForm(phone=phone, channel=OtpChannel.sms)
        return await self.api.add_phone(form.phone)

    async def verify_phone(self, phone: str, otp: str) -> ProfileResponse:
        form = OtpVerifyForm(phone=phone, otp=otp)
        issued_at = self._sequence
        identity = await self.api.verify_phone(form.phone, form.otp)
        self._apply_if_current(issued_at, identity)
        return identity

    # -- derived state ---------------------------------------------------------

    def profile_gate(self) -> ProfileGate:
        identity = self._identity
        complete = is_profile_complete(identity)
        identity_id = identity.id if identity else None
        return ProfileGate(
            is_complete=complete,
            missing_fields=missing_profile_fields(identity),
            completion_percentage=profile_completion_percentage(identity),
            show_completion_modal=self.is_authenticated and not complete,
            show_onboarding_hint=(
                self.is_authenticated and complete and not self.onboarding.has_seen_onboarding(identity_id)
            ),
        )
