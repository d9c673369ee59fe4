"""Pytest configuration and fixtures for IntelliFire tests."""

from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.intellifire.models import ApplianceIdentity

TEST_SERIAL = "F1A2B3C4D5E6"
TEST_API_KEY = "0123456789abcdef0123456789abcdef"
TEST_IP = "192.168.1.50"
TEST_USER_ID = "user-1"


def _close_coroutine(coro: Any, *args: Any, **kwargs: Any) -> Mock:  # noqa: ANN401
    """Stand-in for background task creation that never schedules the coroutine."""
    coro.close()
    return Mock()


@pytest.fixture
def mock_hass() -> Mock:
    """Create a mock Home Assistant instance.

    The event loop clock starts at zero and can be moved by setting
    `hass.loop.time.return_value`.
    """
    hass = Mock()
    hass.loop.time = Mock(return_value=0.0)
    hass.bus.async_fire = Mock()
    hass.config_entries = Mock()
    hass.config_entries.async_update_entry = Mock()
    hass.async_create_background_task = Mock(side_effect=_close_coroutine)
    return hass


@pytest.fixture
def sample_identity() -> ApplianceIdentity:
    """Fixture providing the identity of a test fireplace."""
    return ApplianceIdentity(
        serial=TEST_SERIAL,
        name="Living Room",
        api_key=TEST_API_KEY,
        ip_address=TEST_IP,
        user_id=TEST_USER_ID,
    )


@pytest.fixture
def mock_session_manager() -> Mock:
    """Fixture providing a logged-in relay session."""
    manager = Mock()
    manager.logged_in = True
    manager.generation = 1
    manager.save_credentials = True
    manager.cookie_header = Mock(return_value="auth_cookie=abc;user=user-1;")
    manager.async_refresh_credentials = AsyncMock(return_value=True)
    manager.register_listener = Mock(return_value=Mock())
    return manager


@pytest.fixture
def sample_local_snapshot() -> dict[str, Any]:
    """Fixture providing a local poll response; numbers are native JSON."""
    return {
        "name": "Living Room",
        "serial": TEST_SERIAL,
        "temperature": 21,
        "battery": 0,
        "pilot": 0,
        "light": 2,
        "height": 3,
        "fanspeed": 1,
        "hot": 0,
        "power": 1,
        "thermostat": 0,
        "setpoint": 2150,
        "timer": 0,
        "timeremaining": 0,
        "prepurge": 0,
        "feature_light": 1,
        "feature_thermostat": 1,
        "power_vent": 0,
        "feature_fan": 1,
        "errors": [],
        "fw_version": "0x00030200",
        "fw_ver_str": "0.3.2+hw2",
        "downtime": 0,
        "uptime": 1234,
        "connection_quality": 988,
        "ecm_latency": 0,
        "ipv4_address": TEST_IP,
    }


@pytest.fixture
def sample_cloud_snapshot() -> dict[str, Any]:
    """Fixture providing a relay poll response; numbers arrive as text."""
    return {
        "name": "Living Room",
        "serial": TEST_SERIAL,
        "temperature": "21",
        "battery": "0",
        "pilot": "0",
        "light": "2",
        "height": "3",
        "fanspeed": "1",
        "power": "1",
        "thermostat": "0",
        "setpoint": "2150",
        "timer": "0",
        "timeremaining": "0",
        "feature_light": "1",
        "feature_thermostat": "1",
        "power_vent": "0",
        "feature_fan": "1",
        "errors": [],
        "fw_ver_str": "0.3.2+hw2",
        "ipv4_address": TEST_IP,
    }
