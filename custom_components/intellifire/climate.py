"""Climate entities for IntelliFire fireplaces.

This module exposes the fireplace thermostat as a Home Assistant climate
entity. HEAT means the thermostat controls the flame; OFF hands control
back to manual power.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature

from .commands import COMMANDS, FireplaceCommand
from .const import DOMAIN, SETPOINT_SCALE
from .entity import IntelliFireEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import IntelliFireCoordinator

_LOGGER = logging.getLogger(__name__)

MIN_TEMP = 0.0
MAX_TEMP = COMMANDS[FireplaceCommand.THERMOSTAT_SETPOINT].maximum / SETPOINT_SCALE


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up climate entities for IntelliFire fireplaces."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    async_add_entities(
        IntelliFireClimateEntity(coordinator)
        for coordinator in coordinators.values()
        if coordinator.state.has_thermostat or not coordinator.state.available
    )


class IntelliFireClimateEntity(IntelliFireEntity, ClimateEntity):
    """Thermostat of an IntelliFire fireplace."""

    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_target_temperature_step = 0.5
    _attr_hvac_modes = [HVACMode.OFF, HVACMode.HEAT]  # noqa: RUF012
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.TURN_OFF
        | ClimateEntityFeature.TURN_ON
    )
    _attr_min_temp = MIN_TEMP
    _attr_max_temp = MAX_TEMP
    _watched_fields = ("thermostat", "setpoint", "temperature", "power")

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the thermostat entity.

        Args:
            coordinator: Coordinator of the fireplace.

        """
        super().__init__(coordinator, "thermostat")

    @property
    def hvac_mode(self) -> HVACMode:
        """Return HEAT while the thermostat controls the flame."""
        return HVACMode.HEAT if self.coordinator.state.thermostat else HVACMode.OFF

    @property
    def hvac_action(self) -> HVACAction:
        """Return whether the flame is lit."""
        if self.coordinator.state.power:
            return HVACAction.HEATING
        if self.coordinator.state.thermostat:
            return HVACAction.IDLE
        return HVACAction.OFF

    @property
    def current_temperature(self) -> float | None:
        """Return the room temperature."""
        return self.coordinator.state.temperature

    @property
    def target_temperature(self) -> float | None:
        """Return the setpoint, or the one that HEAT would restore."""
        setpoint = (
            self.coordinator.state.setpoint or self.coordinator.last_values.setpoint
        )
        if not setpoint:
            return None
        return setpoint / SETPOINT_SCALE

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the HVAC mode.

        Args:
            hvac_mode: HEAT to hand the flame to the thermostat, OFF to stop.

        """
        _LOGGER.debug("%s: set hvac_mode=%s", self.coordinator.identity.name, hvac_mode)
        await self._async_command(
            self.coordinator.async_set_thermostat_control, hvac_mode == HVACMode.HEAT
        )

    async def async_turn_on(self) -> None:
        """Enable the thermostat."""
        await self.async_set_hvac_mode(HVACMode.HEAT)

    async def async_turn_off(self) -> None:
        """Disable the thermostat."""
        await self.async_set_hvac_mode(HVACMode.OFF)

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set the target temperature.

        Setting a setpoint also enables the thermostat, as on the remote.
        """
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return
        _LOGGER.debug("%s: set temperature=%s", self.coordinator.identity.name, temperature)
        await self._async_command(
            self.coordinator.async_set_thermostat_setpoint, float(temperature)
        )
