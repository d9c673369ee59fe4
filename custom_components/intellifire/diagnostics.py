"""Diagnostics support for IntelliFire integration."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD

from .const import CONF_API_KEY, CONF_USER_ID, DOMAIN

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .coordinator import IntelliFireCoordinator

TO_REDACT = {CONF_EMAIL, CONF_PASSWORD, CONF_API_KEY, CONF_USER_ID}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for the config entry."""
    entry_data = hass.data[DOMAIN][entry.entry_id]
    coordinators: dict[str, IntelliFireCoordinator] = entry_data["coordinators"]
    session_manager = entry_data["session_manager"]

    return {
        "config": async_redact_data(dict(entry.data), TO_REDACT),
        "options": dict(entry.options),
        "session": {
            "logged_in": session_manager.logged_in,
            "generation": session_manager.generation,
        },
        "fireplaces": {
            serial: {
                "identity": async_redact_data(
                    dataclasses.asdict(coordinator.identity), TO_REDACT
                ),
                "state": dataclasses.asdict(coordinator.state),
                "last_values": coordinator.last_values.as_dict(),
                "polling": {
                    "mode": coordinator.poll_mode,
                    "interval": str(coordinator.poll_interval),
                    "cloud_control": coordinator.cloud_control,
                    "loop_state": coordinator.cloud_loop.state,
                    "loop_generation": coordinator.cloud_loop.generation,
                    "last_issued": coordinator.cloud_loop.last_issued,
                    "last_success": coordinator.cloud_loop.last_success,
                    "off_retries": coordinator.off_retries,
                },
            }
            for serial, coordinator in coordinators.items()
        },
    }
