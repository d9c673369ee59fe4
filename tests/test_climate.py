"""Tests for the IntelliFire Climate entity."""

from unittest.mock import AsyncMock, Mock

import pytest
from homeassistant.components.climate import HVACAction, HVACMode
from homeassistant.const import ATTR_TEMPERATURE
from homeassistant.exceptions import HomeAssistantError

from custom_components.intellifire.api import IntelliFireTransportError
from custom_components.intellifire.climate import (
    MAX_TEMP,
    IntelliFireClimateEntity,
    async_setup_entry,
)
from custom_components.intellifire.models import (
    ApplianceIdentity,
    FireplaceState,
    LastNonZeroValues,
)


@pytest.fixture
def mock_coordinator(sample_identity: ApplianceIdentity) -> Mock:
    """Create a mock fireplace coordinator with a real state."""
    coordinator = Mock()
    coordinator.serial = sample_identity.serial
    coordinator.identity = sample_identity
    coordinator.state = FireplaceState(available=True, has_thermostat=True)
    coordinator.last_values = LastNonZeroValues()
    coordinator.async_add_listener = Mock(return_value=Mock())
    coordinator.async_set_thermostat_control = AsyncMock()
    coordinator.async_set_thermostat_setpoint = AsyncMock()
    return coordinator


@pytest.fixture
def entity(mock_coordinator: Mock) -> IntelliFireClimateEntity:
    """Create an IntelliFire climate entity for testing."""
    return IntelliFireClimateEntity(mock_coordinator)


class TestAsyncSetupEntry:
    """Tests for async_setup_entry function."""

    @pytest.mark.asyncio
    async def test_only_thermostat_fireplaces(self, mock_coordinator: Mock) -> None:
        """Test that fireplaces without a thermostat get no climate entity."""
        without = Mock()
        without.state = FireplaceState(available=True, has_thermostat=False)
        not_polled = Mock()
        not_polled.state = FireplaceState(available=False)
        hass = Mock()
        hass.data = {
            "intellifire": {
                "entry-1": {
                    "coordinators": {
                        "A": mock_coordinator,
                        "B": without,
                        "C": not_polled,
                    }
                }
            }
        }
        entry = Mock()
        entry.entry_id = "entry-1"
        async_add_entities = Mock()

        await async_setup_entry(hass, entry, async_add_entities)

        entities = list(async_add_entities.call_args.args[0])
        assert [e.coordinator for e in entities] == [mock_coordinator, not_polled]


class TestIntelliFireClimateEntity:
    """Tests for the thermostat entity."""

    def test_identity(self, entity: IntelliFireClimateEntity) -> None:
        """Test unique id, translation key and temperature limits."""
        assert entity.unique_id == "F1A2B3C4D5E6_thermostat"
        assert entity.translation_key == "thermostat"
        assert entity.max_temp == MAX_TEMP == 37.0
        assert entity.device_info["serial_number"] == "F1A2B3C4D5E6"

    @pytest.mark.parametrize(
        ("power", "thermostat", "mode", "action"),
        [
            (False, False, HVACMode.OFF, HVACAction.OFF),
            (False, True, HVACMode.HEAT, HVACAction.IDLE),
            (True, True, HVACMode.HEAT, HVACAction.HEATING),
            (True, False, HVACMode.OFF, HVACAction.HEATING),
        ],
    )
    def test_mode_and_action(
        self,
        entity: IntelliFireClimateEntity,
        mock_coordinator: Mock,
        power: bool,  # noqa: FBT001
        thermostat: bool,  # noqa: FBT001
        mode: HVACMode,
        action: HVACAction,
    ) -> None:
        """Test HVAC mode and action for each flag combination."""
        mock_coordinator.state.power = power
        mock_coordinator.state.thermostat = thermostat

        assert entity.hvac_mode == mode
        assert entity.hvac_action == action

    def test_target_temperature(
        self, entity: IntelliFireClimateEntity, mock_coordinator: Mock
    ) -> None:
        """Test that the setpoint is scaled and falls back to the last one."""
        assert entity.target_temperature is None

        mock_coordinator.last_values.setpoint = 2050
        assert entity.target_temperature == 20.5

        mock_coordinator.state.setpoint = 2200
        assert entity.target_temperature == 22.0

    def test_current_temperature(
        self, entity: IntelliFireClimateEntity, mock_coordinator: Mock
    ) -> None:
        """Test the room temperature."""
        mock_coordinator.state.temperature = 19.0
        assert entity.current_temperature == 19.0

    @pytest.mark.asyncio
    async def test_set_hvac_mode(
        self, entity: IntelliFireClimateEntity, mock_coordinator: Mock
    ) -> None:
        """Test that HEAT enables and OFF disables the thermostat."""
        await entity.async_set_hvac_mode(HVACMode.HEAT)
        await entity.async_turn_off()

        assert [c.args for c in mock_coordinator.async_set_thermostat_control.call_args_list] == [
            (True,),
            (False,),
        ]

    @pytest.mark.asyncio
    async def test_set_temperature(
        self, entity: IntelliFireClimateEntity, mock_coordinator: Mock
    ) -> None:
        """Test that a new target is passed on in degrees."""
        await entity.async_set_temperature(**{ATTR_TEMPERATURE: 21.5})
        await entity.async_set_temperature()

        mock_coordinator.async_set_thermostat_setpoint.assert_awaited_once_with(21.5)

    @pytest.mark.asyncio
    async def test_command_failure_raises(
        self, entity: IntelliFireClimateEntity, mock_coordinator: Mock
    ) -> None:
        """Test that a failed command is surfaced as HomeAssistantError."""
        mock_coordinator.async_set_thermostat_control.side_effect = (
            IntelliFireTransportError("down", network_failure=True)
        )

        with pytest.raises(HomeAssistantError):
            await entity.async_turn_on()

    def test_availability(
        self, entity: IntelliFireClimateEntity, mock_coordinator: Mock
    ) -> None:
        """Test that availability follows the last poll."""
        assert entity.available is True
        mock_coordinator.state.available = False
        assert entity.available is False
