"""
Client-side sign-in and password-reset flows.

Each flow is an explicit state machine over the BeCopy auth endpoints:

    AuthFlow:            Unauthenticated -> OAuthPending -> OtpPending -> Authenticated
    ForgotPasswordFlow:  SendCode -> MatchCode -> ChangePass -> Done

A call made from the wrong state raises InvalidTransition without touching
the network. A request the server rejects raises ApiError and leaves the
state unchanged, so the same step can be retried. The exception is the
OAuth callback: the server spends the state token on every attempt, so a
rejected callback drops the flow back to Unauthenticated.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import httpx

from app.client.session_store import MemorySessionStore

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response; `message` is the server's `error` text as sent."""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class InvalidTransition(Exception):
    pass


def _is_six_digits(code) -> bool:
    return isinstance(code, str) and len(code) == 6 and code.isdigit()


def _call(http: httpx.Client, method: str, path: str, **kwargs) -> dict:
    response = http.request(method, path, **kwargs)
    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code >= 400:
        message = body.get("error") or body.get("message") or response.reason_phrase
        raise ApiError(response.status_code, message)
    return body


# ===========================
# SIGN-IN STATES
# ===========================

@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class OAuthPending:
    state_token: str
    user_type: str
    country: str


@dataclass(frozen=True)
class OtpPending:
    user_id: str
    email: str


@dataclass(frozen=True)
class Authenticated:
    token: str
    user: dict
    replayed: list = field(default_factory=list)


AuthState = Union[Unauthenticated, OAuthPending, OtpPending, Authenticated]


class AuthFlow:
    def __init__(self, http: httpx.Client, store=None):
        self.http = http
        self.store = store or MemorySessionStore()

        saved = self.store.load()
        if saved:
            self.state: AuthState = Authenticated(token=saved["token"], user=saved["user"])
        else:
            self.state = Unauthenticated()

    def _expect(self, *allowed):
        if not isinstance(self.state, allowed):
            names = " or ".join(cls.__name__ for cls in allowed)
            raise InvalidTransition(f"Expected {names}, flow is in {type(self.state).__name__}")

    @property
    def token(self) -> Optional[str]:
        return self.state.token if isinstance(self.state, Authenticated) else None

    def begin_oauth(self, user_type: str, country: str, pending_actions=()) -> OAuthPending:
        """Register the role/country choice (and deferred actions) before leaving for the provider."""
        self._expect(Unauthenticated)

        body = _call(self.http, "POST", "/api/auth/oauth/state", json={
            "userType": user_type,
            "country": country,
            "pendingActions": list(pending_actions),
        })
        self.state = OAuthPending(state_token=body["state"], user_type=user_type, country=country)
        return self.state

    def complete_oauth(self, provider: str, provider_account_id: str, email: str, name: str = None) -> OtpPending:
        self._expect(OAuthPending)

        try:
            body = _call(self.http, "POST", "/api/auth/oauth", json={
                "provider": provider,
                "providerAccountId": provider_account_id,
                "email": email,
                "name": name,
                "state": self.state.state_token,
            })
        except ApiError:
            self.state = Unauthenticated()
            raise
        self.state = OtpPending(user_id=body["userId"], email=body["email"])
        return self.state

    def cancel(self) -> Unauthenticated:
        """Abandon a sign-in in progress; begin_oauth can start over."""
        self._expect(OAuthPending, OtpPending)
        self.state = Unauthenticated()
        return self.state

    def resend_otp(self):
        self._expect(OtpPending)
        _call(self.http, "POST", "/api/auth/resend-otp", json={"userId": self.state.user_id})

    def submit_otp(self, code: str) -> Authenticated:
        self._expect(OtpPending)
        if not _is_six_digits(code):
            raise ValueError("OTP must be a 6-digit number")

        body = _call(self.http, "POST", "/api/auth/verify-otp", json={
            "userId": self.state.user_id,
            "otpCode": code,
        })
        self.store.save(body["token"], body["user"])
        self.state = Authenticated(token=body["token"], user=body["user"], replayed=body.get("replayed", []))
        logger.info("Signed in as %s", body["user"].get("email"))
        return self.state

    def logout(self) -> Unauthenticated:
        self._expect(Authenticated)
        _call(self.http, "POST", "/api/auth/logout")
        self.store.clear()
        self.state = Unauthenticated()
        return self.state


# ===========================
# FORGOT-PASSWORD STATES
# ===========================

@dataclass(frozen=True)
class SendCode:
    pass


@dataclass(frozen=True)
class MatchCode:
    email: str


@dataclass(frozen=True)
class ChangePass:
    email: str
    code: str


@dataclass(frozen=True)
class Done:
    email: str


ResetState = Union[SendCode, MatchCode, ChangePass, Done]


class ForgotPasswordFlow:
    def __init__(self, http: httpx.Client):
        self.http = http
        self.state: ResetState = SendCode()

    def _expect(self, allowed):
        if not isinstance(self.state, allowed):
            raise InvalidTransition(f"Expected {allowed.__name__}, flow is in {type(self.state).__name__}")

    def send_code(self, email: str) -> MatchCode:
        self._expect(SendCode)
        _call(self.http, "POST", "/api/auth/send-code", json={"email": email})
        self.state = MatchCode(email=email)
        return self.state

    def resend_code(self) -> MatchCode:
        """Stay in MatchCode; the server re-sends the still-valid code."""
        self._expect(MatchCode)
        _call(self.http, "POST", "/api/auth/send-code", json={"email": self.state.email})
        return self.state

    def match_code(self, code: str) -> ChangePass:
        self._expect(MatchCode)
        if not _is_six_digits(code):
            raise ValueError("Code must be a 6-digit number")

        _call(self.http, "POST", "/api/auth/match-code", json={"email": self.state.email, "code": code})
        self.state = ChangePass(email=self.state.email, code=code)
        return self.state

    def change_password(self, password: str, confirm_password: str) -> Done:
        self._expect(ChangePass)
        _call(self.http, "POST", "/api/auth/reset-pass", json={
            "email": self.state.email,
            "code": self.state.code,
            "password": password,
            "confirmPassword": confirm_password,
        })
        self.state = Done(email=self.state.email)
        return self.state
