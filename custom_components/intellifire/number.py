"""Number platform for IntelliFire integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.components.number import NumberEntity, NumberMode
from homeassistant.const import UnitOfTime

from .commands import COMMANDS, FireplaceCommand
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
    """Set up IntelliFire number entities."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    _LOGGER.debug("Setting up number entities for %s", entry.entry_id)

    entities: list[NumberEntity] = []
    for coordinator in coordinators.values():
        entities.append(IntelliFireFlameHeight(coordinator))
        entities.append(IntelliFireSleepTimer(coordinator))
    async_add_entities(entities)


class IntelliFireFlameHeight(IntelliFireEntity, NumberEntity):
    """Flame height 0-4."""

    _attr_icon = "mdi:fire"
    _attr_mode = NumberMode.SLIDER
    _attr_native_min_value = COMMANDS[FireplaceCommand.FLAME_HEIGHT].minimum
    _attr_native_max_value = COMMANDS[FireplaceCommand.FLAME_HEIGHT].maximum
    _attr_native_step = 1
    _watched_fields = ("flame_height",)

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the flame height entity."""
        super().__init__(coordinator, "flame_height")

    @property
    def native_value(self) -> int:
        """Return the flame height."""
        return self.coordinator.state.flame_height

    async def async_set_native_value(self, value: float) -> None:
        """Set the flame height."""
        await self._async_command(self.coordinator.async_set_flame_height, int(value))


class IntelliFireSleepTimer(IntelliFireEntity, NumberEntity):
    """Sleep timer in minutes; 0 cancels it."""

    _attr_icon = "mdi:timer-outline"
    _attr_mode = NumberMode.BOX
    _attr_native_min_value = 0
    _attr_native_max_value = COMMANDS[FireplaceCommand.TIME_REMAINING].maximum // 60
    _attr_native_step = 1
    _attr_native_unit_of_measurement = UnitOfTime.MINUTES
    _watched_fields = ("timer", "time_remaining")

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the sleep timer entity."""
        super().__init__(coordinator, "sleep_timer")

    @property
    def native_value(self) -> int:
        """Return the minutes left, rounded up."""
        state = self.coordinator.state
        if not state.timer:
            return 0
        return -(-state.time_remaining // 60)

    async def async_set_native_value(self, value: float) -> None:
        """Start the sleep timer."""
        await self._async_command(self.coordinator.async_set_sleep_timer, int(value))
