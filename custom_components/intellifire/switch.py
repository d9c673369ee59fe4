"""Switch platform for IntelliFire integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchDeviceClass, SwitchEntity

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
    """Set up IntelliFire switch entities."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    _LOGGER.debug("Setting up switch entities for %s", entry.entry_id)

    entities: list[SwitchEntity] = []
    for coordinator in coordinators.values():
        entities.append(IntelliFirePowerSwitch(coordinator))
        entities.append(IntelliFirePilotSwitch(coordinator))
    async_add_entities(entities)


class IntelliFirePowerSwitch(IntelliFireEntity, SwitchEntity):
    """Fireplace flame, on whether lit by power or by the thermostat."""

    _attr_device_class = SwitchDeviceClass.SWITCH
    _attr_name = None
    _watched_fields = ("power", "thermostat")

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the power switch."""
        super().__init__(coordinator, "power")

    @property
    def is_on(self) -> bool:
        """Return True if the fireplace is on."""
        return self.coordinator.state.is_on

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn the fireplace on."""
        await self._async_command(self.coordinator.async_turn_on)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn the fireplace off."""
        await self._async_command(self.coordinator.async_turn_off)


class IntelliFirePilotSwitch(IntelliFireEntity, SwitchEntity):
    """Cold-weather pilot light."""

    _attr_icon = "mdi:fire-circle"
    _watched_fields = ("pilot",)

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the pilot switch."""
        super().__init__(coordinator, "pilot")

    @property
    def is_on(self) -> bool:
        """Return True if the pilot light stays lit."""
        return self.coordinator.state.pilot

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Enable the pilot light."""
        await self._async_command(self.coordinator.async_set_pilot, True)  # noqa: FBT003

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Disable the pilot light."""
        await self._async_command(self.coordinator.async_set_pilot, False)  # noqa: FBT003
