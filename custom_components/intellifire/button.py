"""Button platform for IntelliFire integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.components.button import ButtonDeviceClass, ButtonEntity
from homeassistant.const import EntityCategory

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
    """Set up IntelliFire button entities."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    _LOGGER.debug("Setting up button entities for %s", entry.entry_id)

    entities: list[ButtonEntity] = []
    for coordinator in coordinators.values():
        entities.append(IntelliFireSoftResetButton(coordinator))
        entities.append(IntelliFireBeepButton(coordinator))
    async_add_entities(entities)


class IntelliFireSoftResetButton(IntelliFireEntity, ButtonEntity):
    """Soft reset of the fireplace controller; only the relay acts on it."""

    _attr_device_class = ButtonDeviceClass.RESTART
    _attr_entity_category = EntityCategory.CONFIG

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the soft reset button."""
        super().__init__(coordinator, "soft_reset")

    async def async_press(self) -> None:
        """Soft-reset the fireplace."""
        await self._async_command(self.coordinator.async_soft_reset)


class IntelliFireBeepButton(IntelliFireEntity, ButtonEntity):
    """Beep, to find out which fireplace is which."""

    _attr_device_class = ButtonDeviceClass.IDENTIFY
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the beep button."""
        super().__init__(coordinator, "beep")

    async def async_press(self) -> None:
        """Make the fireplace beep."""
        await self._async_command(self.coordinator.async_beep)
