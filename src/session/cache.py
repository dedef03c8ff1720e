"""Signed-in identity: rehydration, sign-in/sign-up/sign-out, profile refresh.

Lifecycle::

    UNINITIALIZED ─rehydrate─▶ REHYDRATING ─▶ AUTHENTICATED | ANONYMOUS
    AUTHENTICATED ─sign_out─▶ ANONYMOUS ─sign_in─▶ AUTHENTICATED

Sign-up provisions an account but does not establish a session.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import ValidationError

from src.api.gateway import RemoteGateway, ensure_ok, read_json
from src.api.payloads import parse_auth_payload, parse_profile
from src.core.errors import HTTPFailure, SyncError
from src.core.schemas import LoginCredentials, SignUpCredentials, UserProfile
from src.session.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

LOGIN_ERROR = "Login failed. Check your credentials."
SIGNUP_ERROR = "Sign-up failed. Please try again."


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    REHYDRATING = "rehydrating"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


def _user_message(error: SyncError, default: str) -> str:
    if isinstance(error, HTTPFailure) and error.message:
        return error.message
    return default


class SessionCache:
    """Owns the current UserProfile and its persisted copy."""

    def __init__(
        self,
        gateway: RemoteGateway,
        kv_store: KeyValueStore,
        profile_key: str = "userProfile",
    ) -> None:
        self._gateway = gateway
        self._kv = kv_store
        self._key = profile_key
        self._state = SessionState.UNINITIALIZED
        self._profile: UserProfile | None = None
        self._is_loading = True
        self._error: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    def rehydrate(self) -> SessionState:
        """Adopt the persisted profile, if there is a readable one."""
        self._state = SessionState.REHYDRATING
        self._profile = self._load_persisted()
        self._state = (
            SessionState.AUTHENTICATED if self._profile is not None else SessionState.ANONYMOUS
        )
        self._is_loading = False
        logger.debug("Session rehydrated: %s", self._state.value)
        return self._state

    async def sign_in(self, credentials: LoginCredentials) -> bool:
        """Log in and persist the returned profile. On failure ``error`` is set."""
        self._error = None
        self._is_loading = True
        try:
            response = await self._gateway.post("/api/auth/login", credentials.model_dump())
            ensure_ok(response, LOGIN_ERROR)
            profile = parse_auth_payload(read_json(response))
        except SyncError as e:
            logger.warning("Sign-in for %s failed: %s", credentials.email, e)
            self._error = _user_message(e, LOGIN_ERROR)
            return False
        finally:
            self._is_loading = False

        self._adopt(profile)
        self._state = SessionState.AUTHENTICATED
        logger.info("Signed in as user %d", profile.id)
        return True

    async def sign_up(self, credentials: SignUpCredentials) -> UserProfile | None:
        """Create an account. The session itself is left as it was."""
        self._error = None
        self._is_loading = True
        try:
            response = await self._gateway.post("/api/auth/signup", credentials.model_dump())
            ensure_ok(response, SIGNUP_ERROR)
            profile = parse_auth_payload(read_json(response))
        except SyncError as e:
            logger.warning("Sign-up for %s failed: %s", credentials.email, e)
            self._error = _user_message(e, SIGNUP_ERROR)
            return None
        finally:
            self._is_loading = False

        logger.info("Provisioned user %d", profile.id)
        return profile

    def sign_out(self) -> None:
        """Forget everything persisted, not just the profile key."""
        self._kv.clear()
        self._profile = None
        self._error = None
        self._state = SessionState.ANONYMOUS
        self._is_loading = False
        logger.info("Signed out")

    async def refetch_profile(self) -> None:
        """Refresh the cached profile from the server; failures keep the old one."""
        if self._profile is None:
            logger.warning("Profile refresh requested without a signed-in user")
            return
        user_id = self._profile.id
        try:
            response = await self._gateway.get(f"/api/users/{user_id}")
            ensure_ok(response, "Failed to fetch updated profile")
            profile = parse_profile(read_json(response))
        except SyncError as e:
            logger.warning("Could not refresh profile of user %d: %s", user_id, e)
            return
        self._adopt(profile)

    def update_profile(self, **changes: Any) -> UserProfile | None:
        """Merge local edits into the current profile and persist them.

        Raises:
            ValueError: a keyword is not a ``UserProfile`` field.
        """
        unknown = sorted(set(changes) - set(UserProfile.model_fields))
        if unknown:
            msg = f"Unknown profile field(s): {', '.join(unknown)}"
            raise ValueError(msg)
        if self._profile is None:
            return None
        merged = UserProfile.model_validate({**self._profile.model_dump(), **changes})
        self._adopt(merged)
        return merged

    def _adopt(self, profile: UserProfile) -> None:
        self._kv.set(self._key, profile.model_dump_json())
        self._profile = profile

    def _load_persisted(self) -> UserProfile | None:
        raw = self._kv.get(self._key)
        if raw is None:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Ignoring unreadable persisted profile: %s", e)
            return None
