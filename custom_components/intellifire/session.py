"""Relay session management for IntelliFire integration."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from . import api
from .const import COOKIE_AUTH, COOKIE_USER
from .models import SessionCredentials

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

_LOGGER = logging.getLogger(__name__)


class IntelliFireSessionManager:
    """Owns the relay login shared by every fireplace on an account.

    Each successful login replaces the session cookies and bumps the
    session generation, so callers holding an older generation can tell
    their cookies are stale. Logins are serialised: a second caller
    waiting on the lock sees the first caller's result instead of
    logging in again.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        email: str | None,
        password: str | None,
        *,
        save_credentials: bool = True,
    ) -> None:
        """Initialize the session manager.

        Args:
            session: HTTP client used for relay requests.
            email: Account email.
            password: Account password, None if not stored.
            save_credentials: Keep the password after a successful login.

        """
        self._session = session
        self.credentials = SessionCredentials(email=email, password=password)
        self.save_credentials = save_credentials
        self._login_lock = asyncio.Lock()
        self._listeners: list[Callable[[bool, int], None]] = []

    @property
    def generation(self) -> int:
        """Return the current session generation."""
        return self.credentials.generation

    @property
    def logged_in(self) -> bool:
        """Return True if session cookies are held."""
        return bool(self.credentials.cookies)

    @property
    def user_id(self) -> str | None:
        """Return the account user id, as handed out in the login cookies."""
        return self.credentials.cookies.get(COOKIE_USER)

    @property
    def auth_cookie(self) -> str | None:
        """Return the auth cookie value used by path-authenticated endpoints."""
        return self.credentials.cookies.get(COOKIE_AUTH)

    def cookie_header(self, generation: int | None = None) -> str | None:
        """Return the Cookie header value.

        Args:
            generation: If given, return None unless the session is still
                the one from that generation.

        """
        if generation is not None and generation != self.credentials.generation:
            return None
        return api.make_cookie_header(self.credentials.cookies)

    def register_listener(
        self,
        callback: Callable[[bool, int], None],
    ) -> Callable[[], None]:
        """Register a callback for login changes.

        The callback receives (logged_in, generation).

        Returns:
            A function to unregister the callback.

        """
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister

    def _notify(self, logged_in: bool) -> None:
        for callback in list(self._listeners):
            try:
                callback(logged_in, self.credentials.generation)
            except Exception:
                _LOGGER.exception("Error in login change callback")

    async def async_login(
        self,
        email: str | None = None,
        password: str | None = None,
    ) -> None:
        """Log in with new or stored credentials.

        Raises:
            api.IntelliFireAuthError: If the credentials are rejected or
                none are available.
            api.IntelliFireTransportError: If the relay could not be reached.

        """
        async with self._login_lock:
            if email is not None:
                self.credentials.email = email
            if password is not None:
                self.credentials.password = password
            await self._async_login_locked(purge_on_reject=False)

    async def async_refresh_credentials(self, observed_generation: int) -> bool:
        """Log in again after the relay rejected the session.

        Stored credentials that are rejected now are no longer trusted:
        they are purged and listeners are told cloud operations must stop
        until someone re-authenticates.

        Args:
            observed_generation: Generation of the session that was rejected.

        Returns:
            True if a fresh session is available.

        """
        async with self._login_lock:
            if self.logged_in and self.credentials.generation != observed_generation:
                _LOGGER.debug(
                    "Session already refreshed (generation %d -> %d)",
                    observed_generation,
                    self.credentials.generation,
                )
                return True

            _LOGGER.info("Relay session rejected, logging in again")
            try:
                await self._async_login_locked(purge_on_reject=True)
            except api.IntelliFireAuthError:
                return False
            except api.IntelliFireTransportError as err:
                _LOGGER.warning("Could not refresh relay session: %s", err)
                return False
            return True

    async def _async_login_locked(self, *, purge_on_reject: bool) -> None:
        # Cookies survive a transport failure; only a rejection drops them.
        email = self.credentials.email
        password = self.credentials.password
        if not email or not password:
            error_msg = "Login aborted, credentials not provided"
            _LOGGER.error(error_msg)
            self.credentials.cookies = {}
            self._notify(logged_in=False)
            raise api.IntelliFireAuthError(error_msg)

        try:
            cookies = await api.async_login(self._session, email, password)
        except api.IntelliFireAuthError:
            _LOGGER.error("Invalid IntelliFire credentials for %s", email)
            self.credentials.cookies = {}
            if purge_on_reject:
                self.save_credentials = False
                self._clear_credentials_if_needed()
            self._notify(logged_in=False)
            raise

        self.credentials.cookies = cookies
        self.credentials.generation += 1
        self._clear_credentials_if_needed()
        _LOGGER.info(
            "Logged in to IntelliFire relay (generation %d)",
            self.credentials.generation,
        )
        self._notify(logged_in=True)

    def _clear_credentials_if_needed(self) -> None:
        if not self.save_credentials:
            self.credentials.password = None

