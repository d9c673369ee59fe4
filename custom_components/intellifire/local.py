"""Local network client for IntelliFire fireplaces.

Commands sent directly to the fireplace are authenticated with a
single-use challenge: the client fetches a nonce, hashes it together
with the API key and the command body, and posts the result. A nonce is
consumed by the first command that uses it, so each fireplace allows
only one challenge/submit exchange at a time.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging

import httpx

from .api import (
    IntelliFireApiClientError,
    IntelliFireTransportError,
    is_http_error,
)
from .const import LOCAL_TIMEOUT
from .models import Snapshot

_LOGGER = logging.getLogger(__name__)


def build_command_body(wire_name: str, value: int) -> str:
    """Return the form body naming a command and its value."""
    return f"command={wire_name}&value={value}"


def compute_response(api_key: str, challenge: str, body: str) -> str:
    """Compute the challenge response for a command body.

    response = SHA256(key || SHA256(key || challenge || "post:" + body)),
    with the API key and challenge decoded from hex and the result
    hex-encoded in upper case.

    Raises:
        IntelliFireApiClientError: If the API key or challenge is not hex.

    """
    try:
        key_bytes = bytes.fromhex(api_key)
        challenge_bytes = bytes.fromhex(challenge)
    except ValueError as err:
        error_msg = f"API key and challenge must be hex strings: {err}"
        raise IntelliFireApiClientError(error_msg) from err

    payload = f"post:{body}".encode()
    payload_hash = hashlib.sha256(key_bytes + challenge_bytes + payload).digest()
    return hashlib.sha256(key_bytes + payload_hash).hexdigest().upper()


def _check_status(response: httpx.Response, what: str) -> None:
    if is_http_error(response.status_code):
        error_msg = f"{what} failed: {response.status_code}"
        raise IntelliFireTransportError(error_msg)


def _wrap(err: httpx.RequestError, what: str) -> IntelliFireTransportError:
    return IntelliFireTransportError(f"{what} failed: {err!r}", network_failure=True)


async def async_get_challenge(session: httpx.AsyncClient, ip_address: str) -> str:
    """Fetch a single-use challenge from the fireplace.

    Raises:
        IntelliFireTransportError: If the fireplace could not be reached.

    """
    try:
        response = await session.get(
            f"http://{ip_address}/get_challenge", timeout=LOCAL_TIMEOUT
        )
    except httpx.RequestError as err:
        raise _wrap(err, "Challenge request") from err

    _check_status(response, "Challenge request")
    challenge = response.text.strip()
    _LOGGER.debug("Challenge from %s: %s", ip_address, challenge)
    return challenge


async def async_send_command(  # noqa: PLR0913
    session: httpx.AsyncClient,
    ip_address: str,
    wire_name: str,
    value: int,
    api_key: str,
    user_id: str,
    challenge: str,
) -> None:
    """Submit an authenticated command to the fireplace.

    The fireplace's state is not touched here; a later poll reports the
    effect.

    Raises:
        IntelliFireTransportError: If the request failed or was rejected.

    """
    body = build_command_body(wire_name, value)
    response_hash = compute_response(api_key, challenge, body)
    data = f"{body}&user={user_id}&response={response_hash}"

    _LOGGER.debug("Sending local command to %s: %s", ip_address, body)
    try:
        response = await session.post(
            f"http://{ip_address}/post",
            content=data,
            headers={"content-type": "application/x-www-form-urlencoded"},
            timeout=LOCAL_TIMEOUT,
        )
    except httpx.RequestError as err:
        raise _wrap(err, "Local command") from err

    _check_status(response, "Local command")
    _LOGGER.debug("Local command accepted by %s (%s)", ip_address, response.status_code)


async def async_poll(session: httpx.AsyncClient, ip_address: str) -> Snapshot:
    """Fetch a status snapshot directly from the fireplace.

    Raises:
        IntelliFireTransportError: If the fireplace could not be reached
            or answered with something other than a JSON object.

    """
    try:
        response = await session.get(f"http://{ip_address}/poll", timeout=LOCAL_TIMEOUT)
    except httpx.RequestError as err:
        raise _wrap(err, "Local poll") from err

    _check_status(response, "Local poll")
    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Local poll returned invalid JSON: {err}"
        raise IntelliFireTransportError(error_msg) from err
    if not isinstance(data, dict):
        error_msg = f"Unexpected local poll payload: {type(data).__name__}"
        raise IntelliFireTransportError(error_msg)

    _LOGGER.debug("Local poll from %s: %s", ip_address, data)
    return data


class IntelliFireLocalClient:
    """Local transport for one fireplace.

    Serialises challenge/submit pairs so that concurrent commands never
    hash against a nonce another command already consumed.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        ip_address: str,
        api_key: str,
        user_id: str,
    ) -> None:
        """Initialize the local client."""
        self._session = session
        self.ip_address = ip_address
        self._api_key = api_key
        self._user_id = user_id
        self._command_lock = asyncio.Lock()

    async def async_send_command(self, wire_name: str, value: int) -> None:
        """Fetch a fresh challenge and submit one command with it."""
        async with self._command_lock:
            challenge = await async_get_challenge(self._session, self.ip_address)
            await async_send_command(
                self._session,
                self.ip_address,
                wire_name,
                value,
                self._api_key,
                self._user_id,
                challenge,
            )

    async def async_poll(self) -> Snapshot:
        """Fetch a status snapshot."""
        return await async_poll(self._session, self.ip_address)
