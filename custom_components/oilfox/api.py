"""
API client for the FoxInsights customer API used by OilFox devices.

This module is responsible *only* for:
- Talking to the remote HTTP endpoints (login, token refresh, device list)
- Holding the access/refresh token pair and deciding when to renew it
- Converting low-level HTTP/JSON issues into integration-specific exceptions

Nothing in here imports Home Assistant. The bridge coordinator
(coordinator.py) uses this client via OilFoxClient and reacts to the
exceptions below by changing its connectivity status.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import aiohttp

from .const import (
    ACCESS_TOKEN_MAX_AGE,
    CONNECT_TIMEOUT,
    DEFAULT_ADDRESS,
    DEVICE_PATH,
    LOGIN_PATH,
    READ_TIMEOUT,
    STATUS_CANNOT_CONNECT,
    STATUS_INVALID_AUTH,
    STATUS_RATE_LIMITED,
    STATUS_UNKNOWN_USER,
    TOKEN_PATH,
)
from .models import OilFoxDevice, parse_devices

_LOGGER = logging.getLogger(__name__)


# --------------------------------------------------------------------------------------
# Custom exceptions
# --------------------------------------------------------------------------------------
class OilFoxError(Exception):
    """Base class for every error raised by the OilFox client.

    ``reason`` is the status code the bridge reports while offline; it is
    also the config flow error key.
    """

    reason = STATUS_CANNOT_CONNECT


class AuthError(OilFoxError):
    """Credentials were rejected, or the refresh token is no longer valid."""

    reason = STATUS_INVALID_AUTH


class NotFoundError(OilFoxError):
    """The account (e-mail address) is unknown to the API (HTTP 404)."""

    reason = STATUS_UNKNOWN_USER


class RateLimitError(OilFoxError):
    """The API refused the request because of too many requests (HTTP 429)."""

    reason = STATUS_RATE_LIMITED


class CommunicationError(OilFoxError):
    """Timeouts, transport failures, malformed data or unexpected HTTP status."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(OilFoxError):
    """A required device identifier (hwid) is missing."""


# --------------------------------------------------------------------------------------
# Session state
# --------------------------------------------------------------------------------------
@dataclass
class OilFoxSession:
    """Access/refresh token pair owned by exactly one client."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    obtained_at: float = 0.0  # time.monotonic() of the last login/refresh

    def update(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.obtained_at = time.monotonic()

    def clear(self) -> None:
        """Drop both tokens so the next cycle performs a full login."""
        self.access_token = None
        self.refresh_token = None

    def age(self) -> float:
        """Seconds since the tokens were obtained."""
        return time.monotonic() - self.obtained_at

    def is_fresh(self) -> bool:
        return (
            self.refresh_token is not None
            and self.age() < ACCESS_TOKEN_MAX_AGE.total_seconds()
        )


# --------------------------------------------------------------------------------------
# OilFoxClient implementation
# --------------------------------------------------------------------------------------
class OilFoxClient:
    """Thin wrapper around aiohttp.ClientSession for the FoxInsights API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        email: str,
        password: str,
        address: str = DEFAULT_ADDRESS,
    ) -> None:
        """
        The aiohttp session is shared and owned by Home Assistant
        (async_get_clientsession); the client never closes it.
        """
        self._session = session
        self._email = email
        self._password = password
        self._address = address
        self._timeout = aiohttp.ClientTimeout(
            sock_connect=CONNECT_TIMEOUT, sock_read=READ_TIMEOUT
        )
        self.auth = OilFoxSession()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"https://{self._address}{path}"

    @staticmethod
    def _raise_for_status(status: int, path: str) -> None:
        """Map an HTTP status to the matching exception; 200 passes."""
        if status == 200:
            return
        if status == 401:
            raise AuthError(f"{path}: unauthorized, password invalid")
        if status == 404:
            raise NotFoundError(f"{path}: user not valid")
        if status == 429:
            raise RateLimitError(f"{path}: too many requests")
        raise CommunicationError(f"{path}: request failed with HTTP {status}", status)

    async def _async_request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Any = None,
        authenticated: bool = False,
    ) -> Any:
        """Perform one request and return the decoded JSON body."""
        headers = {"Accept": "application/json"}
        if authenticated:
            if not self.auth.access_token:
                raise AuthError("Not logged in")
            headers["Authorization"] = f"Bearer {self.auth.access_token}"

        _LOGGER.debug("OilFoxClient: %s %s", method, path)

        try:
            async with self._session.request(
                method,
                self._url(path),
                json=json,
                data=data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                self._raise_for_status(resp.status, path)
                try:
                    return await resp.json(content_type=None)
                except ValueError as err:  # JSON decoding error
                    raise CommunicationError(
                        f"{path}: failed to decode JSON: {err}"
                    ) from err

        except asyncio.TimeoutError as err:
            raise CommunicationError(f"{path}: request timed out") from err
        except aiohttp.ClientError as err:
            raise CommunicationError(f"{path}: HTTP error: {err}") from err

    def _apply_tokens(self, payload: Any, path: str) -> None:
        if not isinstance(payload, dict):
            raise CommunicationError(f"{path}: invalid response object")

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        if not access_token or not refresh_token:
            raise CommunicationError(f"{path}: tokens missing from response")

        self.auth.update(str(access_token), str(refresh_token))

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------
    async def async_login(self) -> None:
        """Log in with e-mail and password and store the new token pair."""
        _LOGGER.debug("OilFoxClient: login with user and password for %s", self._email)

        payload = await self._async_request(
            "POST",
            LOGIN_PATH,
            json={"email": self._email, "password": self._password},
        )
        self._apply_tokens(payload, LOGIN_PATH)

        _LOGGER.debug("OilFoxClient: login successful")

    async def async_refresh_token(self) -> None:
        """
        Exchange the refresh token for a new token pair.

        Any non-200 answer invalidates both tokens, which forces a full
        login on the next cycle. Transport failures keep them.
        """
        refresh_token = self.auth.refresh_token
        if refresh_token is None:
            raise AuthError("No refresh token")

        try:
            payload = await self._async_request(
                "POST", TOKEN_PATH, data={"refresh_token": refresh_token}
            )
        except CommunicationError as err:
            if err.status is None:
                raise
            self.auth.clear()
            raise AuthError(f"Refresh token rejected, HTTP {err.status}") from err
        except (AuthError, NotFoundError, RateLimitError) as err:
            self.auth.clear()
            raise AuthError(f"Refresh token rejected: {err}") from err

        self._apply_tokens(payload, TOKEN_PATH)
        _LOGGER.debug("OilFoxClient: access token refreshed")

    async def async_ensure_authenticated(self) -> None:
        """
        Make sure a usable access token is held.

        - Tokens younger than 15 minutes are reused as they are.
        - Older tokens are refreshed; if that fails for any reason we fall
          back to a full login.
        - Without a refresh token we log in with e-mail and password.

        Raises the login's exception if no token could be obtained.
        """
        if self.auth.refresh_token is not None:
            if self.auth.is_fresh():
                _LOGGER.debug(
                    "OilFoxClient: access token age %d seconds, no need to refresh",
                    self.auth.age(),
                )
                return

            _LOGGER.debug(
                "OilFoxClient: access token age %d seconds, need to refresh",
                self.auth.age(),
            )
            try:
                await self.async_refresh_token()
                return
            except OilFoxError as err:
                # Retry with user/password below
                _LOGGER.debug("OilFoxClient: refreshing access token failed: %s", err)

        await self.async_login()

    async def async_get_devices(self) -> List[OilFoxDevice]:
        """
        Fetch every device of the account.

        The API answers with ``{"items": [ {...device...}, ... ]}``. A 401
        here means the token went stale; the session is cleared so the next
        cycle logs in again.
        """
        try:
            payload = await self._async_request("GET", DEVICE_PATH, authenticated=True)
        except AuthError:
            self.auth.clear()
            raise

        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise CommunicationError(f"{DEVICE_PATH}: invalid response object")

        devices = parse_devices(items)
        _LOGGER.debug("OilFoxClient: fetched %d device(s)", len(devices))
        return devices
