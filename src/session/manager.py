from __future__ import annotations

import logging
from typing import Any, Optional

from common.api import ApiClient, ApiError
from common.results import ErrorKind, Result
from state.credential_store import CredentialStore, CredentialStoreError
from state.models import Session, SessionState


logger = logging.getLogger(__name__)

REGISTER_PATH = "/api/auth/register"
LOGIN_PATH = "/api/auth/login"

GENERIC_ERROR_MESSAGE = "An error occurred"


def _extract_token(payload: Any) -> Optional[str]:
    """Pull the token out of the login envelope `{data: {token}}`."""
    data = payload.get("data") if isinstance(payload, dict) else None
    token = data.get("token") if isinstance(data, dict) else None
    return token if isinstance(token, str) and token else None


def _failure_from_api_error(exc: ApiError) -> Result[Any]:
    return Result.failure(
        exc.kind,
        exc.message or GENERIC_ERROR_MESSAGE,
        status_code=exc.status_code,
    )


class SessionManager:
    """
    Owns the client's single Session: login, registration and logout.

    State machine
    - LOGGED_OUT --login ok--> LOGGED_IN --logout--> LOGGED_OUT
    - A failed login changes nothing, neither in memory nor on disk.

    The session is restored lazily from the credential store on first access,
    so a login survives restarts. Tokens are never refreshed; an expired token
    only shows up as a failing authenticated request.
    """

    def __init__(self, api: ApiClient, credentials: CredentialStore) -> None:
        self._api = api
        self._credentials = credentials
        self._session: Optional[Session] = None

    def _ensure_loaded(self) -> Session:
        if self._session is None:
            self._session = Session(token=self._credentials.load())
        return self._session

    @property
    def session(self) -> Session:
        return self._ensure_loaded()

    @property
    def state(self) -> SessionState:
        return self._ensure_loaded().state

    @property
    def is_logged_in(self) -> bool:
        return self.state is SessionState.LOGGED_IN

    async def register(self, username: str, password: str) -> Result[None]:
        """Create an account. Does not log in; call `login` afterwards."""
        try:
            await self._api.post(REGISTER_PATH, {"username": username, "password": password})
        except ApiError as exc:
            logger.info("Registration failed (status=%s)", exc.status_code)
            return _failure_from_api_error(exc)
        logger.info("Registered user %s", username)
        return Result.success()

    async def login(self, username: str, password: str) -> Result[str]:
        """
        Exchange credentials for a session token and persist it.

        Returns the token on success. On failure the server's message is used
        when it sent one, else a generic message; the stored token is untouched.
        """
        try:
            payload = await self._api.post(LOGIN_PATH, {"username": username, "password": password})
        except ApiError as exc:
            logger.info("Login failed (status=%s)", exc.status_code)
            return _failure_from_api_error(exc)

        token = _extract_token(payload)
        if token is None:
            logger.warning("Login response did not contain a token")
            return Result.failure(ErrorKind.TRANSPORT, GENERIC_ERROR_MESSAGE)

        try:
            self._credentials.save(token)
        except CredentialStoreError as exc:
            logger.error("Could not persist session token: %s", exc)
            return Result.failure(ErrorKind.STORAGE, GENERIC_ERROR_MESSAGE)

        self._session = Session(token=token)
        logger.info("Logged in as %s", username)
        return Result.success(token)

    def logout(self) -> None:
        """Forget the session locally. No server call; safe to repeat."""
        self._credentials.clear()
        self._session = Session.empty()
        logger.info("Logged out")


__all__ = ["SessionManager", "GENERIC_ERROR_MESSAGE"]
