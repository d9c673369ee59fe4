"""The IntelliFire integration."""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD, Platform
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers.httpx_client import get_async_client
from homeassistant.helpers.storage import Store

from . import api
from .api import create_session_client
from .config_flow import restrict_options
from .const import (
    CONF_API_KEY,
    CONF_CLOUD_CONTROL,
    CONF_CLOUD_POLLING,
    CONF_FIREPLACES,
    CONF_IP_ADDRESS,
    CONF_NAME,
    CONF_SAVE_CREDENTIALS,
    CONF_SERIAL,
    CONF_USER_ID,
    DOMAIN,
    STORAGE_VERSION,
)
from .coordinator import IntelliFireCoordinator
from .models import ApplianceIdentity
from .session import IntelliFireSessionManager

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [
    Platform.BUTTON,
    Platform.CLIMATE,
    Platform.FAN,
    Platform.LIGHT,
    Platform.NUMBER,
    Platform.SENSOR,
    Platform.SWITCH,
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up IntelliFire fireplaces from a config entry."""
    _LOGGER.info("Setting up IntelliFire integration for entry %s", entry.entry_id)

    fireplaces = entry.data.get(CONF_FIREPLACES)
    if not fireplaces:
        _LOGGER.error("No fireplaces in configuration for entry %s", entry.entry_id)
        return False

    save_credentials = entry.data.get(CONF_SAVE_CREDENTIALS, True)
    options = restrict_options(entry.options, save_credentials)

    cloud_session = create_session_client(hass)
    local_session = get_async_client(hass)
    session_manager = IntelliFireSessionManager(
        cloud_session,
        entry.data.get(CONF_EMAIL),
        entry.data.get(CONF_PASSWORD),
        save_credentials=save_credentials,
    )

    if options[CONF_CLOUD_CONTROL] or options[CONF_CLOUD_POLLING]:
        try:
            await session_manager.async_login()
        except api.IntelliFireAuthError as err:
            error_msg = f"IntelliFire credentials rejected: {err}"
            raise ConfigEntryAuthFailed(error_msg) from err
        except api.IntelliFireTransportError as err:
            error_msg = f"IntelliFire relay unavailable: {err}"
            raise ConfigEntryNotReady(error_msg) from err

    coordinators: dict[str, IntelliFireCoordinator] = {}
    for fireplace in fireplaces:
        identity = ApplianceIdentity(
            serial=fireplace[CONF_SERIAL],
            name=fireplace.get(CONF_NAME, fireplace[CONF_SERIAL]),
            api_key=fireplace[CONF_API_KEY],
            ip_address=fireplace[CONF_IP_ADDRESS],
            user_id=fireplace[CONF_USER_ID],
        )
        coordinator = IntelliFireCoordinator(
            hass,
            identity,
            session_manager,
            cloud_session=cloud_session,
            local_session=local_session,
            options=options,
            config_entry=entry,
            store=Store(hass, STORAGE_VERSION, f"{DOMAIN}.{identity.serial}"),
        )
        await coordinator.async_setup()
        coordinators[identity.serial] = coordinator

    if not any(coordinator.state.available for coordinator in coordinators.values()):
        for coordinator in coordinators.values():
            await coordinator.async_shutdown()
        error_msg = "None of the fireplaces answered the first poll"
        raise ConfigEntryNotReady(error_msg)

    @callback
    def _handle_login_change(logged_in: bool, generation: int) -> None:  # noqa: FBT001, ARG001
        if not logged_in and not session_manager.save_credentials:
            _LOGGER.warning(
                "IntelliFire credentials for %s no longer valid, starting reauth",
                entry.title,
            )
            entry.async_start_reauth(hass)

    entry.async_on_unload(session_manager.register_listener(_handle_login_change))

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session_manager": session_manager,
        "coordinators": coordinators,
        "options": dict(entry.options),
    }
    _LOGGER.debug(
        "Stored data for entry %s: %d fireplaces", entry.entry_id, len(coordinators)
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    _LOGGER.info(
        "Successfully setup IntelliFire integration for entry %s", entry.entry_id
    )
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload when options change; address updates to the data need no reload."""
    entry_data = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    if entry_data is not None and entry_data["options"] == dict(entry.options):
        return
    _LOGGER.info("Options changed for entry %s, reloading", entry.entry_id)
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.info("Unloading IntelliFire integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    entry_data = hass.data[DOMAIN].pop(entry.entry_id)
    for coordinator in entry_data["coordinators"].values():
        await coordinator.async_shutdown()
    _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
    return True
