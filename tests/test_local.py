"""Tests for the IntelliFire local client."""

import asyncio
from unittest.mock import patch

import httpx
import pytest
from pytest_httpx import HTTPXMock

from custom_components.intellifire.api import (
    IntelliFireApiClientError,
    IntelliFireTransportError,
)
from custom_components.intellifire.local import (
    IntelliFireLocalClient,
    async_get_challenge,
    async_poll,
    async_send_command,
    build_command_body,
    compute_response,
)

API_KEY = "0123456789abcdef0123456789abcdef"
CHALLENGE = "00112233445566778899aabbccddeeff"
IP = "192.168.1.50"


class TestComputeResponse:
    """Tests for the challenge response hash."""

    def test_known_vector(self) -> None:
        """Test the response for a fixed key, challenge and body."""
        body = build_command_body("power", 1)
        assert body == "command=power&value=1"
        assert compute_response(API_KEY, CHALLENGE, body) == (
            "E0388633FAD31C9F28F7010E98CDF45533A1DB3BF6C3E0D78A3090DFC8B33887"
        )

    def test_hex_input_is_case_insensitive(self) -> None:
        """Test that the key and challenge are decoded, not hashed as text."""
        body = build_command_body("power", 1)
        assert compute_response(API_KEY.upper(), CHALLENGE.upper(), body) == (
            compute_response(API_KEY, CHALLENGE, body)
        )

    def test_different_body_gives_different_response(self) -> None:
        """Test that the command body is part of the hash."""
        assert compute_response(
            API_KEY, CHALLENGE, build_command_body("power", 1)
        ) != compute_response(API_KEY, CHALLENGE, build_command_body("power", 0))

    def test_non_hex_challenge_raises(self) -> None:
        """Test that a challenge that is not hex raises a client error."""
        with pytest.raises(IntelliFireApiClientError):
            compute_response(API_KEY, "not-hex", "command=power&value=1")

    def test_non_hex_key_raises(self) -> None:
        """Test that an API key that is not hex raises a client error."""
        with pytest.raises(IntelliFireApiClientError):
            compute_response("zz", CHALLENGE, "command=power&value=1")


class TestLocalRequests:
    """Tests for the local HTTP endpoints."""

    @pytest.mark.asyncio
    async def test_get_challenge(self, httpx_mock: HTTPXMock) -> None:
        """Test that the challenge text is returned stripped."""
        httpx_mock.add_response(
            url=f"http://{IP}/get_challenge", method="GET", text=f"{CHALLENGE}\n"
        )

        async with httpx.AsyncClient() as session:
            assert await async_get_challenge(session, IP) == CHALLENGE

    @pytest.mark.asyncio
    async def test_get_challenge_connect_error(self, httpx_mock: HTTPXMock) -> None:
        """Test that an unreachable fireplace is flagged as a network failure."""
        httpx_mock.add_exception(httpx.ConnectError("unreachable"))

        async with httpx.AsyncClient() as session:
            with pytest.raises(IntelliFireTransportError) as exc_info:
                await async_get_challenge(session, IP)

        assert exc_info.value.network_failure is True

    @pytest.mark.asyncio
    async def test_send_command_posts_signed_body(self, httpx_mock: HTTPXMock) -> None:
        """Test the posted form carries the user and the response hash."""
        httpx_mock.add_response(url=f"http://{IP}/post", method="POST", status_code=204)

        async with httpx.AsyncClient() as session:
            await async_send_command(
                session, IP, "power", 1, API_KEY, "user-1", CHALLENGE
            )

        request = httpx_mock.get_request()
        assert request.content.decode() == (
            "command=power&value=1&user=user-1&response="
            "E0388633FAD31C9F28F7010E98CDF45533A1DB3BF6C3E0D78A3090DFC8B33887"
        )
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_send_command_rejected(self, httpx_mock: HTTPXMock) -> None:
        """Test that an error status is not a network failure."""
        httpx_mock.add_response(url=f"http://{IP}/post", method="POST", status_code=403)

        async with httpx.AsyncClient() as session:
            with pytest.raises(IntelliFireTransportError) as exc_info:
                await async_send_command(
                    session, IP, "power", 1, API_KEY, "user-1", CHALLENGE
                )

        assert exc_info.value.network_failure is False

    @pytest.mark.asyncio
    async def test_poll(self, httpx_mock: HTTPXMock) -> None:
        """Test that the poll payload is returned as-is."""
        payload = {"power": 1, "fanspeed": 2, "errors": []}
        httpx_mock.add_response(url=f"http://{IP}/poll", method="GET", json=payload)

        async with httpx.AsyncClient() as session:
            assert await async_poll(session, IP) == payload

    @pytest.mark.asyncio
    async def test_poll_invalid_json(self, httpx_mock: HTTPXMock) -> None:
        """Test that a non-JSON poll raises a transport error."""
        httpx_mock.add_response(url=f"http://{IP}/poll", method="GET", text="<html>")

        async with httpx.AsyncClient() as session:
            with pytest.raises(IntelliFireTransportError):
                await async_poll(session, IP)

    @pytest.mark.asyncio
    async def test_poll_timeout(self, httpx_mock: HTTPXMock) -> None:
        """Test that a timed-out poll is flagged as a network failure."""
        httpx_mock.add_exception(httpx.ReadTimeout("slow"))

        async with httpx.AsyncClient() as session:
            with pytest.raises(IntelliFireTransportError) as exc_info:
                await async_poll(session, IP)

        assert exc_info.value.network_failure is True


class TestIntelliFireLocalClient:
    """Tests for the per-fireplace local client."""

    @pytest.mark.asyncio
    async def test_send_command_fetches_fresh_challenge(
        self, httpx_mock: HTTPXMock
    ) -> None:
        """Test a full challenge/submit exchange."""
        httpx_mock.add_response(
            url=f"http://{IP}/get_challenge", method="GET", text=CHALLENGE
        )
        httpx_mock.add_response(url=f"http://{IP}/post", method="POST")

        async with httpx.AsyncClient() as session:
            client = IntelliFireLocalClient(session, IP, API_KEY, "user-1")
            await client.async_send_command("power", 1)

        requests = httpx_mock.get_requests()
        assert [request.url.path for request in requests] == ["/get_challenge", "/post"]

    @pytest.mark.asyncio
    async def test_concurrent_commands_never_share_a_challenge(self) -> None:
        """Test that challenge/submit pairs are serialised per fireplace."""
        calls: list[str] = []
        challenges = iter(["c1", "c2"])

        async def fake_challenge(session: object, ip_address: str) -> str:
            challenge = next(challenges)
            calls.append(f"challenge {challenge}")
            await asyncio.sleep(0)
            return challenge

        async def fake_submit(*args: object) -> None:
            await asyncio.sleep(0)
            calls.append(f"submit {args[-1]}")

        with (
            patch(
                "custom_components.intellifire.local.async_get_challenge",
                side_effect=fake_challenge,
            ),
            patch(
                "custom_components.intellifire.local.async_send_command",
                side_effect=fake_submit,
            ),
        ):
            client = IntelliFireLocalClient(object(), IP, API_KEY, "user-1")
            await asyncio.gather(
                client.async_send_command("power", 1),
                client.async_send_command("light", 2),
            )

        assert calls == ["challenge c1", "submit c1", "challenge c2", "submit c2"]

    @pytest.mark.asyncio
    async def test_ip_address_can_change(self, httpx_mock: HTTPXMock) -> None:
        """Test that polls follow an updated address."""
        httpx_mock.add_response(url="http://192.168.1.99/poll", method="GET", json={})

        async with httpx.AsyncClient() as session:
            client = IntelliFireLocalClient(session, IP, API_KEY, "user-1")
            client.ip_address = "192.168.1.99"
            assert await client.async_poll() == {}
