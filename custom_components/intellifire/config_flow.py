"""
Configuration flow for IntelliFire integration.

This module handles onboarding of an IntelliFire account: relay login,
location and fireplace selection, and discovery of each fireplace's
local address. It also provides reauthentication and the options flow.
"""

import logging
from collections.abc import Mapping
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    CONF_API_KEY,
    CONF_CLOUD_CONTROL,
    CONF_CLOUD_POLLING,
    CONF_FIREPLACES,
    CONF_IP_ADDRESS,
    CONF_LOCAL_FALLBACK,
    CONF_LOCATION,
    CONF_NAME,
    CONF_RESTORE_FAN_SPEED,
    CONF_SAVE_CREDENTIALS,
    CONF_SERIAL,
    CONF_THERMOSTAT_ON_DEFAULT,
    CONF_USER_ID,
    COOKIE_AUTH,
    COOKIE_USER,
    DEFAULT_OPTIONS,
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_NO_FIREPLACES,
    ERROR_UNKNOWN,
)
from .reconciler import coerce_str

_LOGGER = logging.getLogger(__name__)

CLOUD_OPTIONS = (CONF_CLOUD_CONTROL, CONF_CLOUD_POLLING)


def error_key(err: Exception) -> str:
    """Map a client exception to a config flow error key."""
    if isinstance(err, api.IntelliFireAuthError):
        return ERROR_INVALID_AUTH
    if isinstance(err, api.IntelliFireTransportError) and err.network_failure:
        return ERROR_CANNOT_CONNECT
    if isinstance(err, api.IntelliFireApiClientError):
        return ERROR_API_ERROR
    return ERROR_UNKNOWN


def restrict_options(options: Mapping[str, Any], save_credentials: bool) -> dict[str, Any]:  # noqa: FBT001
    """Turn cloud options off when the password is not kept.

    Relay sessions expire, and without the password there is no way to log
    in again unattended.
    """
    restricted = {**DEFAULT_OPTIONS, **options}
    if not save_credentials:
        for key in CLOUD_OPTIONS:
            restricted[key] = False
    return restricted


class IntelliFireConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for IntelliFire integration."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        super().__init__()
        self._email: str | None = None
        self._password: str | None = None
        self._save_credentials = True
        self._cookies: dict[str, str] = {}
        self._locations: dict[str, str] = {}
        self._fireplaces: dict[str, api.IntelliFireFireplace] = {}

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:  # noqa: ARG004
        """Return the options flow handler for this config entry."""
        return IntelliFireOptionsFlow()

    async def _async_login(self, email: str, password: str) -> str | None:
        """Log in and keep the cookies; return an error key on failure."""
        try:
            session = get_async_client(self.hass)
            self._cookies = await api.async_login(session, email, password)
        except api.IntelliFireApiClientError as err:
            key = error_key(err)
            _LOGGER.warning("Login failed (%s): %s", key, err)
            return key
        except Exception:
            _LOGGER.exception("Unexpected error during login (%s)", ERROR_UNKNOWN)
            return ERROR_UNKNOWN

        _LOGGER.info("Successfully logged in to IntelliFire relay")
        return None

    @property
    def _cookie_header(self) -> str:
        return api.make_cookie_header(self._cookies)

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing email, password and
                whether the password may be stored.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            email = user_input[CONF_EMAIL].strip()
            password = user_input[CONF_PASSWORD]

            await self.async_set_unique_id(email.lower())
            self._abort_if_unique_id_configured()

            error = await self._async_login(email, password)
            if error is None:
                try:
                    self._locations = await api.async_get_locations(
                        get_async_client(self.hass), self._cookie_header
                    )
                except Exception as err:  # noqa: BLE001
                    error = error_key(err)
                    _LOGGER.warning("Could not list locations (%s): %s", error, err)

            if error is None:
                self._email = email
                self._password = password
                self._save_credentials = user_input[CONF_SAVE_CREDENTIALS]
                if len(self._locations) == 1:
                    return await self.async_step_location(
                        {CONF_LOCATION: next(iter(self._locations))}
                    )
                if self._locations:
                    return await self.async_step_location()
                error = ERROR_NO_FIREPLACES
            errors["base"] = error

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_EMAIL): str,
                    vol.Required(CONF_PASSWORD): str,
                    vol.Required(CONF_SAVE_CREDENTIALS, default=True): bool,
                }
            ),
            errors=errors,
        )

    async def async_step_location(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Pick the location whose fireplaces should be added."""
        errors: dict[str, str] = {}

        if user_input is not None:
            location_id = user_input[CONF_LOCATION]
            try:
                fireplaces = await api.async_get_fireplaces(
                    get_async_client(self.hass), self._cookie_header, location_id
                )
            except Exception as err:  # noqa: BLE001
                errors["base"] = error_key(err)
                _LOGGER.warning("Could not list fireplaces: %s", err)
            else:
                self._fireplaces = {
                    fireplace.serial: fireplace for fireplace in fireplaces
                }
                if self._fireplaces:
                    return await self.async_step_fireplaces()
                errors["base"] = ERROR_NO_FIREPLACES

        return self.async_show_form(
            step_id="location",
            data_schema=vol.Schema(
                {vol.Required(CONF_LOCATION): vol.In(self._locations)}
            ),
            errors=errors,
        )

    async def async_step_fireplaces(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Select fireplaces and look up their local addresses."""
        errors: dict[str, str] = {}
        placeholders = {"skipped": ""}
        choices = {
            serial: f"{fireplace.name} ({serial})"
            for serial, fireplace in self._fireplaces.items()
        }

        if user_input is not None:
            configured, skipped = await self._async_discover(user_input[CONF_FIREPLACES])
            if configured:
                return self._create_entry(configured)
            errors["base"] = ERROR_NO_FIREPLACES
            placeholders["skipped"] = ", ".join(skipped)

        return self.async_show_form(
            step_id="fireplaces",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_FIREPLACES, default=list(choices)
                    ): cv.multi_select(choices),
                }
            ),
            errors=errors,
            description_placeholders=placeholders,
        )

    async def _async_discover(
        self, serials: list[str]
    ) -> tuple[list[dict[str, str]], list[str]]:
        """Poll each selected fireplace through the relay to learn its address."""
        session = get_async_client(self.hass)
        user_id = self._cookies.get(COOKIE_USER, "")
        configured: list[dict[str, str]] = []
        skipped: list[str] = []

        for serial in serials:
            fireplace = self._fireplaces[serial]
            try:
                snapshot = await api.async_poll(
                    session,
                    serial,
                    self._cookie_header,
                    auth_cookie=self._cookies.get(COOKIE_AUTH),
                )
            except api.IntelliFireApiClientError as err:
                _LOGGER.warning("Could not poll %s: %s", fireplace.name, err)
                skipped.append(fireplace.name)
                continue

            ip_address = coerce_str(snapshot.get("ipv4_address"))
            if ip_address is None:
                _LOGGER.warning(
                    "%s did not report a local address, skipping", fireplace.name
                )
                skipped.append(fireplace.name)
                continue

            configured.append(
                {
                    CONF_SERIAL: serial,
                    CONF_NAME: fireplace.name,
                    CONF_API_KEY: fireplace.api_key,
                    CONF_IP_ADDRESS: ip_address,
                    CONF_USER_ID: user_id,
                }
            )
        return configured, skipped

    def _create_entry(self, fireplaces: list[dict[str, str]]) -> ConfigFlowResult:
        data: dict[str, Any] = {
            CONF_EMAIL: self._email,
            CONF_SAVE_CREDENTIALS: self._save_credentials,
            CONF_FIREPLACES: fireplaces,
        }
        if self._save_credentials:
            data[CONF_PASSWORD] = self._password

        return self.async_create_entry(
            title=f"IntelliFire ({self._email})",
            data=data,
            options=restrict_options({}, self._save_credentials),
        )

    async def async_step_reauth(
        self, entry_data: Mapping[str, Any]
    ) -> ConfigFlowResult:
        """Start reauthentication after the relay rejected stored credentials."""
        self._email = entry_data[CONF_EMAIL]
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask for the password again."""
        errors: dict[str, str] = {}
        entry = self.hass.config_entries.async_get_entry(self.context["entry_id"])

        if user_input is not None and entry is not None:
            password = user_input[CONF_PASSWORD]
            error = await self._async_login(self._email, password)
            if error is None:
                data = {**entry.data, CONF_SAVE_CREDENTIALS: True, CONF_PASSWORD: password}
                return self.async_update_reload_and_abort(entry, data=data)
            errors["base"] = error

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=vol.Schema({vol.Required(CONF_PASSWORD): str}),
            errors=errors,
            description_placeholders={CONF_EMAIL: self._email or ""},
        )


class IntelliFireOptionsFlow(OptionsFlow):
    """Transport and behaviour options shared by the account's fireplaces."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show or process the options form."""
        save_credentials = self.config_entry.data.get(CONF_SAVE_CREDENTIALS, True)

        if user_input is not None:
            return self.async_create_entry(
                title="", data=restrict_options(user_input, save_credentials)
            )

        current = restrict_options(self.config_entry.options, save_credentials)
        schema = {
            vol.Optional(key, default=current[key]): bool
            for key in (
                CONF_CLOUD_CONTROL,
                CONF_CLOUD_POLLING,
                CONF_LOCAL_FALLBACK,
                CONF_THERMOSTAT_ON_DEFAULT,
                CONF_RESTORE_FAN_SPEED,
            )
            if save_credentials or key not in CLOUD_OPTIONS
        }
        return self.async_show_form(step_id="init", data_schema=vol.Schema(schema))
