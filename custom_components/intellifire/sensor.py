"""Sensor platform for IntelliFire integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.const import EntityCategory, UnitOfTime

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
    """Set up IntelliFire sensor entities."""
    coordinators: dict[str, IntelliFireCoordinator] = hass.data[DOMAIN][
        entry.entry_id
    ]["coordinators"]
    _LOGGER.debug("Setting up sensor entities for %s", entry.entry_id)

    entities: list[SensorEntity] = []
    for coordinator in coordinators.values():
        entities.append(IntelliFireFaultSensor(coordinator))
        entities.append(IntelliFireTimeRemainingSensor(coordinator))
    async_add_entities(entities)


class IntelliFireFaultSensor(IntelliFireEntity, SensorEntity):
    """Active appliance faults, by name."""

    _attr_icon = "mdi:alert-circle-outline"
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _watched_fields = ("faults",)

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the fault sensor."""
        super().__init__(coordinator, "faults")

    @property
    def native_value(self) -> str:
        """Return the comma-separated fault names, or "none"."""
        faults = self.coordinator.state.faults
        if not faults:
            return "none"
        return ", ".join(fault.name for fault in faults)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the operator message and code of each fault."""
        return {
            "codes": list(self.coordinator.state.fault_codes),
            "messages": [fault.message for fault in self.coordinator.state.faults],
        }


class IntelliFireTimeRemainingSensor(IntelliFireEntity, SensorEntity):
    """Time left on the sleep timer."""

    _attr_device_class = SensorDeviceClass.DURATION
    _attr_native_unit_of_measurement = UnitOfTime.SECONDS
    _attr_suggested_unit_of_measurement = UnitOfTime.MINUTES
    _watched_fields = ("timer", "time_remaining")

    def __init__(self, coordinator: IntelliFireCoordinator) -> None:
        """Initialize the time remaining sensor."""
        super().__init__(coordinator, "time_remaining")

    @property
    def native_value(self) -> int:
        """Return the seconds left on the sleep timer."""
        state = self.coordinator.state
        return state.time_remaining if state.timer else 0
