"""Fan platform for IntelliFire integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.fan import FanEntity, FanEntityFeature

from .commands import level_to_percent, percent_to_level
from .const import DOMAIN
from .entity import IntelliFireEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import IntelliFireCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up IntelliFire fan entities."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    _LOGGER.debug("Setting up fan entities for %s", entry.entry_id)
    async_add_entities(
        IntelliFireFan(coordinator)
        for coordinator in coordinators.values()
        if coordinator.state.has_fan or not coordinator.state.available
    )


class IntelliFireFan(IntelliFireEntity, FanEntity):
    """Blower fan of the fireplace.

    The fireplace has four speeds, so HA's slider snaps to 25% steps.
    """

    _attr_supported_features = (
        FanEntityFeature.SET_SPEED
        | FanEntityFeature.TURN_ON
        | FanEntityFeature.TURN_OFF
    )
    _attr_speed_count = 4
    _watched_fields = ("fan_speed",)

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the fan."""
        super().__init__(coordinator, "fan")

    @property
    def is_on(self) -> bool:
        """Return True if the fan is running."""
        return self.coordinator.state.fan_speed > 0

    @property
    def percentage(self) -> int:
        """Return the current speed percentage."""
        return level_to_percent(self.coordinator.state.fan_speed)

    async def async_turn_on(
        self,
        percentage: int | None = None,
        preset_mode: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Turn on the fan, at its last speed unless one is given."""
        if percentage is not None:
            await self.async_set_percentage(percentage)
            return
        speed = self.coordinator.last_values.fan_speed or 1
        _LOGGER.debug("Fan turn_on at speed %d", speed)
        await self._async_command(self.coordinator.async_set_fan_speed, speed)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn off the fan."""
        await self._async_command(self.coordinator.async_set_fan_speed, 0)

    async def async_set_percentage(self, percentage: int) -> None:
        """Set the fan speed percentage."""
        speed = percent_to_level(percentage)
        _LOGGER.debug("Fan set_percentage=%d (speed=%d)", percentage, speed)
        await self._async_command(self.coordinator.async_set_fan_speed, speed)

    async def async_increase_speed(self, percentage_step: int | None = None) -> None:
        """Advance to the next speed, wrapping to off."""
        await self._async_command(self.coordinator.async_cycle_fan_speed)
