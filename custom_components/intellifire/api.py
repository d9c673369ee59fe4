"""API client for the IntelliFire cloud relay.

This module provides functions to interact with the relay service,
including login and cookie capture, account enumeration, snapshot and
long-poll status retrieval, and command submission.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from homeassistant.core import HomeAssistant
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    BASE_URL,
    CLOUD_TIMEOUT,
    LONG_POLL_TIMEOUT,
    USER_AGENT,
)
from .models import LongPollOutcome, LongPollResult, Snapshot

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_REQUEST_TIMEOUT = 408
HTTP_UNPROCESSABLE = 422

AUTH_ERROR_STATUSES = (HTTP_FORBIDDEN, HTTP_UNPROCESSABLE)


class IntelliFireApiClientError(Exception):
    """Base exception for IntelliFire client errors."""


class IntelliFireAuthError(IntelliFireApiClientError):
    """Exception raised when the relay rejects the credentials or session."""


class IntelliFireTransportError(IntelliFireApiClientError):
    """Exception raised for network failures and unexpected responses.

    Attributes:
        network_failure: True when the request never got an answer
            (connect error or timeout), as opposed to an error status.

    """

    def __init__(self, message: str, *, network_failure: bool = False) -> None:
        """Initialize the error."""
        super().__init__(message)
        self.network_failure = network_failure


class IntelliFireNotFoundError(IntelliFireTransportError):
    """Exception raised when the relay does not know the fireplace serial."""


class IntelliFireOutOfRangeError(IntelliFireApiClientError):
    """Exception raised when a command value is outside its valid range."""


@dataclass(frozen=True)
class IntelliFireFireplace:
    """Represents a fireplace registered with the relay.

    Attributes:
        serial: Appliance serial number.
        name: Human-readable fireplace name.
        api_key: Shared secret used to authenticate commands.

    """

    serial: str
    name: str
    api_key: str


def create_headers(cookie_header: str | None = None) -> dict[str, str]:
    """Create HTTP headers for relay requests.

    Args:
        cookie_header: Optional session cookie string to include.

    Returns:
        Dictionary containing HTTP headers for relay requests.

    """
    headers = {
        "accept": "application/json, text/plain, */*",
        "user-agent": USER_AGENT,
    }
    if cookie_header:
        headers["Cookie"] = cookie_header
    return headers


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code means the credentials or session were rejected."""
    return status in AUTH_ERROR_STATUSES


def validate_response(response: httpx.Response) -> httpx.Response:
    """Validate an HTTP response from the relay.

    Args:
        response: HTTP response object to validate.

    Returns:
        The same response, for chaining.

    Raises:
        IntelliFireAuthError: If the relay rejected the session.
        IntelliFireNotFoundError: If the fireplace is unknown to the relay.
        IntelliFireTransportError: For any other error status.

    """
    status = response.status_code
    if not is_http_error(status):
        return response

    if is_auth_error(status):
        auth_error = f"Authentication error: {status}"
        raise IntelliFireAuthError(auth_error)

    if status == HTTP_NOT_FOUND:
        not_found = "Fireplace not found on relay"
        raise IntelliFireNotFoundError(not_found)

    client_error = f"Request failed: {status}"
    raise IntelliFireTransportError(client_error)


def _json_from(response: httpx.Response) -> Any:  # noqa: ANN401
    """Decode a relay body; maintenance pages come back as HTML with a 200."""
    try:
        return response.json()
    except ValueError as err:
        invalid = f"Relay returned invalid JSON: {err}"
        raise IntelliFireTransportError(invalid) from err


def parse_cookies(response: httpx.Response) -> dict[str, str]:
    """Extract name=value pairs from Set-Cookie headers.

    Cookie attributes (path, expiry...) are discarded and cookies with an
    empty value are dropped.
    """
    cookies: dict[str, str] = {}
    for raw in response.headers.get_list("set-cookie"):
        pair = raw.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        if not sep or not value.strip():
            continue
        cookies[name.strip()] = value.strip()
    return cookies


def make_cookie_header(cookies: dict[str, str]) -> str:
    """Serialise session cookies for the Cookie request header."""
    return "".join(f"{name}={value};" for name, value in cookies.items())


def _translate_request_error(err: httpx.RequestError, what: str) -> IntelliFireTransportError:
    """Wrap an httpx error, flagging failures where no answer was received."""
    network_failure = isinstance(err, (httpx.TimeoutException, httpx.ConnectError))
    return IntelliFireTransportError(
        f"{what} failed: {err!r}", network_failure=network_failure
    )


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the relay.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=CLOUD_TIMEOUT)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def async_login(
    session: httpx.AsyncClient,
    email: str,
    password: str,
) -> dict[str, str]:
    """Log in to the relay and return the session cookies.

    Raises:
        IntelliFireAuthError: If the relay rejects the credentials.
        IntelliFireTransportError: On any other failure.

    """
    url = f"{BASE_URL}/login"
    payload = {"username": email, "password": password}

    _LOGGER.debug("Logging in to IntelliFire relay")
    try:
        response = await session.post(url, headers=create_headers(), data=payload)
    except httpx.RequestError as err:
        raise _translate_request_error(err, "Login") from err

    validate_response(response)
    cookies = parse_cookies(response)
    _LOGGER.debug("Login succeeded, received cookies: %s", sorted(cookies))
    return cookies


async def async_get_locations(
    session: httpx.AsyncClient,
    cookie_header: str,
) -> dict[str, str]:
    """Return the account's locations as {location_id: location_name}."""
    url = f"{BASE_URL}/enumlocations"

    try:
        response = await session.get(url, headers=create_headers(cookie_header))
    except httpx.RequestError as err:
        raise _translate_request_error(err, "Location enumeration") from err

    data = _json_from(validate_response(response))
    locations = {
        str(location["location_id"]): location.get("location_name", "")
        for location in data.get("locations", [])
    }
    _LOGGER.debug("Retrieved %d locations", len(locations))
    return locations


async def async_get_fireplaces(
    session: httpx.AsyncClient,
    cookie_header: str,
    location_id: str,
) -> list[IntelliFireFireplace]:
    """Return the fireplaces registered at a location."""
    url = f"{BASE_URL}/enumfireplaces"

    try:
        response = await session.get(
            url,
            headers=create_headers(cookie_header),
            params={"location_id": location_id},
        )
    except httpx.RequestError as err:
        raise _translate_request_error(err, "Fireplace enumeration") from err

    data = _json_from(validate_response(response))
    fireplaces = [
        IntelliFireFireplace(
            serial=fireplace["serial"],
            name=fireplace.get("name", fireplace["serial"]),
            api_key=fireplace["apikey"],
        )
        for fireplace in data.get("fireplaces", [])
    ]
    _LOGGER.debug("Retrieved %d fireplaces for location %s", len(fireplaces), location_id)
    return fireplaces


def _snapshot_from(data: Any, serial: str) -> Snapshot:
    """Normalise a relay snapshot; the relay omits the serial it was queried by."""
    if not isinstance(data, dict):
        invalid = f"Unexpected snapshot payload: {type(data).__name__}"
        raise IntelliFireTransportError(invalid)
    data.setdefault("serial", serial)
    return data


async def async_poll(
    session: httpx.AsyncClient,
    serial: str,
    cookie_header: str,
    auth_cookie: str | None = None,
) -> Snapshot:
    """Fetch a full status snapshot for a fireplace from the relay.

    Args:
        session: HTTP client session.
        serial: Fireplace serial.
        cookie_header: Current session cookies.
        auth_cookie: When given, use the path-authenticated endpoint
            (needed before the fireplace is set up).

    """
    if auth_cookie:
        url = f"{BASE_URL}/{serial}/{auth_cookie}/apppoll"
    else:
        url = f"{BASE_URL}/{serial}/apppoll"

    try:
        response = await session.get(url, headers=create_headers(cookie_header))
    except httpx.RequestError as err:
        raise _translate_request_error(err, "Cloud poll") from err

    data = _json_from(validate_response(response))
    _LOGGER.debug("Cloud poll for %s: %s", serial, data)
    return _snapshot_from(data, serial)


async def async_long_poll(
    session: httpx.AsyncClient,
    serial: str,
    cookie_header: str,
    etag: str | None = None,
) -> LongPollResult:
    """Wait for the relay to report a state change.

    The relay holds the request for up to a minute. It answers 200 with a
    fresh snapshot when state changed and 408 when nothing happened; both
    carry an Etag. A response without an Etag, or no response at all,
    means the connection was cut somewhere on the network.

    Raises:
        IntelliFireAuthError: If the session is no longer valid.
        IntelliFireTransportError: For unexpected error statuses.

    """
    url = f"{BASE_URL}/{serial}/applongpoll"
    headers = create_headers(cookie_header)
    if etag:
        headers["If-None-Match"] = etag

    try:
        response = await session.get(url, headers=headers, timeout=LONG_POLL_TIMEOUT)
    except httpx.TimeoutException:
        _LOGGER.debug("Long poll for %s got no answer before timing out", serial)
        return LongPollResult(LongPollOutcome.DROPPED)
    except httpx.RequestError as err:
        raise _translate_request_error(err, "Long poll") from err

    new_etag = response.headers.get("etag")
    if is_auth_error(response.status_code):
        validate_response(response)
    if new_etag is None:
        _LOGGER.debug(
            "Long poll for %s returned %s without Etag", serial, response.status_code
        )
        return LongPollResult(LongPollOutcome.DROPPED)
    if response.status_code == HTTP_REQUEST_TIMEOUT:
        return LongPollResult(LongPollOutcome.TIMEOUT, etag=new_etag)

    data = _json_from(validate_response(response))
    _LOGGER.debug("Long poll for %s reported change: %s", serial, data)
    return LongPollResult(
        LongPollOutcome.CHANGED,
        snapshot=_snapshot_from(data, serial),
        etag=new_etag,
    )


async def async_send_command(
    session: httpx.AsyncClient,
    serial: str,
    api_key: str,
    cookie_header: str,
    wire_name: str,
    value: int,
) -> None:
    """Send a command to a fireplace through the relay.

    Raises:
        IntelliFireAuthError: If the session is no longer valid.
        IntelliFireTransportError: If the request failed.

    """
    url = f"{BASE_URL}/{serial}/{api_key}/apppost"
    headers = create_headers(cookie_header)
    headers["content-type"] = "application/x-www-form-urlencoded"
    body = f"{wire_name}={value}"

    _LOGGER.debug("Sending cloud command to %s: %s", serial, body)
    try:
        response = await session.post(url, headers=headers, content=body)
    except httpx.RequestError as err:
        raise _translate_request_error(err, "Cloud command") from err

    validate_response(response)
    _LOGGER.debug("Cloud command for %s accepted (%s)", serial, response.status_code)
