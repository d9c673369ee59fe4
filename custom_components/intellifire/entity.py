"""Base entity for IntelliFire integration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from homeassistant.core import callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .api import IntelliFireApiClientError
from .const import DOMAIN, MANUFACTURER

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .coordinator import IntelliFireCoordinator


class IntelliFireEntity(Entity):
    """Entity backed by one fireplace coordinator.

    Subclasses list the FireplaceState fields they render in
    `_watched_fields`; state is written only when one of them changes.
    """

    _attr_has_entity_name = True
    _attr_should_poll = False
    _watched_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, coordinator: IntelliFireCoordinator, key: str) -> None:
        """Initialize the entity."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.serial}_{key}"
        self._attr_translation_key = key

    async def async_added_to_hass(self) -> None:
        """Subscribe to state changes."""
        await super().async_added_to_hass()
        self.async_on_remove(
            self.coordinator.async_add_listener(
                self._handle_state_update, (*self._watched_fields, "available")
            )
        )

    @callback
    def _handle_state_update(self, _changed: dict[str, Any]) -> None:
        self.async_write_ha_state()

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info to link entity to the fireplace."""
        identity = self.coordinator.identity
        return DeviceInfo(
            identifiers={(DOMAIN, identity.serial)},
            name=identity.name,
            manufacturer=MANUFACTURER,
            serial_number=identity.serial,
            sw_version=self.coordinator.state.firmware_version,
        )

    @property
    def available(self) -> bool:
        """Return True if the last poll of the fireplace succeeded."""
        return self.coordinator.state.available

    async def _async_command(
        self,
        action: Callable[..., Awaitable[None]],
        *args: Any,  # noqa: ANN401
    ) -> None:
        """Run a coordinator command, surfacing failures to the caller."""
        try:
            await action(*args)
        except IntelliFireApiClientError as err:
            error_msg = f"Command to {self.coordinator.identity.name} failed: {err}"
            raise HomeAssistantError(error_msg) from err
