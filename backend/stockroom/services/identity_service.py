# Overview: Identity provider interface, principal type, and the local account-backed provider.

"""
Identity Provider

The inventory core never looks at accounts or tokens directly. It consumes
an IdentityProvider: something that can sign a user in or out and that
announces every change of the signed-in principal to its listeners.

LocalIdentityProvider implements that contract on top of the account and
session services. One provider instance models one client session (one
browser tab, one API caller): it remembers the current principal and its
bearer token, and ``restore(token)`` resumes a session issued earlier.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from . import auth_service, session_service
from .auth_service import EmailInUseError, EmailValidationError, PasswordValidationError
from ..models import User
from stockroom.time_utils import to_utc_z


INVALID_CREDENTIAL = "invalid-credential"
USER_NOT_FOUND = "user-not-found"
WRONG_PASSWORD = "wrong-password"
EMAIL_IN_USE = "email-already-in-use"
INVALID_EMAIL = "invalid-email"
WEAK_PASSWORD = "weak-password"
GENERIC_FAILURE = "generic-failure"

AUTH_ERROR_MESSAGES = {
    INVALID_CREDENTIAL: "Invalid email or wrong password.",
    USER_NOT_FOUND: "No account found with this email.",
    WRONG_PASSWORD: "Wrong password. Please try again.",
    EMAIL_IN_USE: "Account already exists. Please sign in.",
    INVALID_EMAIL: "Please enter a valid email address.",
    WEAK_PASSWORD: f"Password must be at least {auth_service.MIN_PASSWORD_LENGTH} characters.",
    GENERIC_FAILURE: "Something went wrong. Please try again.",
}


class AuthError(Exception):
    """Authentication failure carrying a provider error code."""

    def __init__(self, code: str, detail: str | None = None):
        super().__init__(detail or code)
        self.code = code if code in AUTH_ERROR_MESSAGES else GENERIC_FAILURE

    @property
    def user_message(self) -> str:
        return auth_error_message(self.code)


def auth_error_message(code: str | None) -> str:
    """User-readable text for an error code; unknown codes get the generic text."""
    return AUTH_ERROR_MESSAGES.get(code or "", AUTH_ERROR_MESSAGES[GENERIC_FAILURE])


@dataclass(frozen=True)
class Principal:
    """The signed-in actor. ``uid`` scopes every read and write."""
    uid: str
    email: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            uid=user.uid,
            email=user.email,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


AuthStateListener = Callable[[Optional[Principal]], None]


class IdentityProvider(ABC):
    """Contract the session tracker consumes."""

    @property
    @abstractmethod
    def current_user(self) -> Principal | None:
        ...

    @abstractmethod
    def on_auth_state_change(self, callback: AuthStateListener) -> Callable[[], None]:
        """
        Register ``callback`` and call it right away with the current state.

        Returns a function that removes the callback.
        """

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Principal:
        ...

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Principal:
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...


class LocalIdentityProvider(IdentityProvider):
    """
    IdentityProvider backed by the ``users`` and ``session_tokens`` tables.

    With email enumeration protection on, an unknown email and a wrong
    password both fail with ``invalid-credential``.
    """

    def __init__(self, *, enumeration_protection: bool | None = None):
        if enumeration_protection is None:
            enumeration_protection = (
                current_app.config.get("AUTH_EMAIL_ENUMERATION_PROTECTION", True)
                if has_app_context() else True
            )
        self.enumeration_protection = enumeration_protection
        self._listeners: list[AuthStateListener] = []
        self._current: Principal | None = None
        self._token: str | None = None

    @property
    def current_user(self) -> Principal | None:
        return self._current

    @property
    def token(self) -> str | None:
        return self._token

    def on_auth_state_change(self, callback):
        self._listeners.append(callback)
        callback(self._current)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _transition(self, principal: Principal | None, token: str | None) -> None:
        previous_uid = self._current.uid if self._current else None
        self._current = principal
        self._token = token
        new_uid = principal.uid if principal else None
        if previous_uid == new_uid:
            return
        for listener in list(self._listeners):
            listener(principal)

    def _credential_error(self, specific_code: str) -> AuthError:
        if self.enumeration_protection:
            return AuthError(INVALID_CREDENTIAL)
        return AuthError(specific_code)

    def sign_in(
        self,
        email: str,
        password: str,
        *,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> Principal:
        email = auth_service.normalize_email(email)
        if not email or not password:
            raise AuthError(INVALID_CREDENTIAL, "email and password required")
        try:
            auth_service.validate_email(email)
        except EmailValidationError as e:
            raise AuthError(INVALID_EMAIL, str(e)) from e

        try:
            user, password_ok = auth_service.check_credentials(email, password)
            if user is None:
                raise self._credential_error(USER_NOT_FOUND)
            if not password_ok:
                raise self._credential_error(WRONG_PASSWORD)
            _, token = session_service.create_session(
                user_id=user.id,
                user_agent=user_agent,
                ip_address=ip_address,
            )
        except SQLAlchemyError as e:
            raise AuthError(GENERIC_FAILURE, str(e)) from e

        principal = Principal.from_user(user)
        self._transition(principal, token)
        return principal

    def sign_up(self, email: str, password: str) -> Principal:
        """
        Create an account. The caller is not signed in; they sign in next.
        """
        try:
            user = auth_service.create_user(email, password)
        except EmailValidationError as e:
            raise AuthError(INVALID_EMAIL, str(e)) from e
        except PasswordValidationError as e:
            raise AuthError(WEAK_PASSWORD, str(e)) from e
        except EmailInUseError as e:
            raise AuthError(EMAIL_IN_USE, str(e)) from e
        except SQLAlchemyError as e:
            raise AuthError(GENERIC_FAILURE, str(e)) from e
        return Principal.from_user(user)

    def sign_out(self) -> None:
        if self._token:
            session_service.revoke_session(self._token, reason="User logout")
        self._transition(None, None)

    def restore(self, token: str | None) -> Principal | None:
        """Resume the session for ``token``; an invalid token signs out."""
        user = session_service.validate_session(token) if token else None
        if user is None:
            self._transition(None, None)
            return None
        principal = Principal.from_user(user)
        self._transition(principal, token)
        return principal
