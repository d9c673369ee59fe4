"""Light platform for IntelliFire integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.light import ATTR_BRIGHTNESS, ColorMode, LightEntity

from .commands import light_level_to_percent, percent_to_light_level
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
    """Set up IntelliFire light entities."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    _LOGGER.debug("Setting up light entities for %s", entry.entry_id)
    async_add_entities(
        IntelliFireLight(coordinator)
        for coordinator in coordinators.values()
        if coordinator.state.has_light or not coordinator.state.available
    )


class IntelliFireLight(IntelliFireEntity, LightEntity):
    """Accent light of the fireplace.

    Brightness Scale Conversion:
        - Home Assistant uses 0-255 for brightness
        - Fireplace uses 0-3 for the light level
        HA -> Fireplace: brightness to percent, then int((p + 33) / 33.3)
        Fireplace -> HA: int(level * 33.34) percent, then to 0-255
    """

    _attr_color_mode = ColorMode.BRIGHTNESS
    _attr_supported_color_modes = {ColorMode.BRIGHTNESS}  # noqa: RUF012
    _watched_fields = ("light",)

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the light."""
        super().__init__(coordinator, "light")

    @property
    def is_on(self) -> bool:
        """Return True if the light is on."""
        return self.coordinator.state.light > 0

    @property
    def brightness(self) -> int | None:
        """Return brightness 0-255, or None if off."""
        if not self.is_on:
            return None
        percent = light_level_to_percent(self.coordinator.state.light)
        return max(1, round(percent * 255 / 100))

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn on the light, restoring its last level unless one is given."""
        if ATTR_BRIGHTNESS in kwargs:
            percent = kwargs[ATTR_BRIGHTNESS] * 100 / 255
            level = percent_to_light_level(percent)
            _LOGGER.debug(
                "Light turn_on with brightness=%d (level=%d)",
                kwargs[ATTR_BRIGHTNESS],
                level,
            )
            await self._async_command(self.coordinator.async_set_light_level, level)
            return
        await self._async_command(self.coordinator.async_light_on)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn off the light."""
        await self._async_command(self.coordinator.async_light_off)
