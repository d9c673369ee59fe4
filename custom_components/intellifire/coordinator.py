"""Coordinator for IntelliFire integration.

One coordinator owns one fireplace: it picks the transport for commands
and for state updates, schedules polls, and runs the recovery timers
that compensate for commands the appliance silently drops.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from homeassistant.core import callback
from homeassistant.helpers.event import async_call_later, async_track_time_interval

from . import api
from .commands import COMMANDS, FireplaceCommand, validate_command
from .const import (
    CONF_CLOUD_CONTROL,
    CONF_CLOUD_POLLING,
    CONF_FIREPLACES,
    CONF_IP_ADDRESS,
    CONF_LOCAL_FALLBACK,
    CONF_RESTORE_FAN_SPEED,
    CONF_SERIAL,
    CONF_THERMOSTAT_ON_DEFAULT,
    COMMAND_REFRESH_DELAY,
    DEFAULT_OPTIONS,
    DEFAULT_SETPOINT,
    EVENT_FAULT,
    EVENT_OFF_FAILED,
    LOCAL_POLL_INTERVAL_OFF,
    LOCAL_POLL_INTERVAL_ON,
    OFF_VERIFY_DELAY,
    OFF_VERIFY_MAX_RETRIES,
    RESTORE_FAN_SPEED_DELAY,
    SETPOINT_SCALE,
)
from .local import IntelliFireLocalClient
from .longpoll import IntelliFireCloudPollLoop
from .models import FireplaceState, LastNonZeroValues, PollMode
from .reconciler import ReconcileResult, StateReconciler

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import datetime, timedelta

    import httpx
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.storage import Store

    from .commands import CommandSpec
    from .models import ApplianceFault, ApplianceIdentity, Snapshot
    from .session import IntelliFireSessionManager

_LOGGER = logging.getLogger(__name__)

STORE_SAVE_DELAY = 10


class IntelliFireCoordinator:
    """Keeps one fireplace in sync and dispatches its commands."""

    def __init__(  # noqa: PLR0913
        self,
        hass: HomeAssistant,
        identity: ApplianceIdentity,
        session_manager: IntelliFireSessionManager,
        *,
        cloud_session: httpx.AsyncClient,
        local_session: httpx.AsyncClient,
        options: Mapping[str, Any] | None = None,
        config_entry: ConfigEntry | None = None,
        store: Store | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            identity: Fireplace identity from onboarding.
            session_manager: Account-wide relay session.
            cloud_session: Retrying HTTP client for relay requests.
            local_session: Plain HTTP client for the fireplace and for
                relay long-polls.
            options: Entry options; missing keys take their defaults.
            config_entry: Entry to persist IP address changes to.
            store: Persistence for the last non-zero settings.

        """
        self.hass = hass
        self.identity = identity
        self.options = {**DEFAULT_OPTIONS, **(options or {})}
        self.config_entry = config_entry
        self._session_manager = session_manager
        self._cloud_session = cloud_session
        self._store = store

        self.reconciler = StateReconciler(FireplaceState(serial=identity.serial))
        self.local_client = IntelliFireLocalClient(
            local_session, identity.ip_address, identity.api_key, identity.user_id
        )
        self.cloud_loop = IntelliFireCloudPollLoop(
            hass, local_session, session_manager, identity.serial
        )

        self.poll_mode: PollMode | None = None
        self.poll_interval: timedelta | None = None
        self.off_retries = 0

        self._cancel_local_poll: Callable[[], None] | None = None
        self._cancel_command_refresh: Callable[[], None] | None = None
        self._cancel_off_verify: Callable[[], None] | None = None
        self._cancel_restore_fan: Callable[[], None] | None = None
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def serial(self) -> str:
        """Return the fireplace serial."""
        return self.identity.serial

    @property
    def state(self) -> FireplaceState:
        """Return the cached fireplace state."""
        return self.reconciler.state

    @property
    def last_values(self) -> LastNonZeroValues:
        """Return the remembered non-zero settings."""
        return self.reconciler.last_values

    @property
    def cloud_control(self) -> bool:
        """Return True if commands currently go through the relay."""
        return bool(self.options[CONF_CLOUD_CONTROL]) and self._session_manager.logged_in

    def async_add_listener(
        self,
        update_callback: Callable[[dict[str, Any]], None],
        fields: Iterable[str] | None = None,
    ) -> Callable[[], None]:
        """Subscribe to changes of the given FireplaceState fields."""
        return self.reconciler.register_listener(update_callback, fields)

    async def async_setup(self) -> None:
        """Restore memory, subscribe to the session and start polling."""
        if self._store is not None:
            stored = await self._store.async_load()
            self.reconciler.last_values = LastNonZeroValues.from_dict(stored)
            _LOGGER.debug("Restored settings for %s: %s", self.serial, stored)

        self._unsubscribers.append(
            self._session_manager.register_listener(self._handle_login_change)
        )
        self._unsubscribers.append(
            self.cloud_loop.register_snapshot_callback(self._handle_cloud_snapshot)
        )

        self.set_poll_mode(self._desired_poll_mode(), initial_poll=False)
        await self.async_refresh(force_reschedule=True)

    async def async_shutdown(self) -> None:
        """Cancel every timer and stop polling."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._cancel_timer("_cancel_local_poll")
        self._cancel_timer("_cancel_command_refresh")
        self._cancel_timer("_cancel_off_verify")
        self._cancel_timer("_cancel_restore_fan")
        await self.cloud_loop.async_stop()
        self.poll_mode = None

    def _cancel_timer(self, attr: str) -> None:
        cancel = getattr(self, attr)
        if cancel is not None:
            cancel()
            setattr(self, attr, None)

    # Polling

    def _desired_poll_mode(self) -> PollMode:
        if self.options[CONF_CLOUD_POLLING] and self._session_manager.logged_in:
            return PollMode.CLOUD
        return PollMode.LOCAL

    def set_poll_mode(self, mode: PollMode, *, initial_poll: bool = True) -> None:
        """Switch how state is kept current, cancelling the previous mode's work."""
        if mode is self.poll_mode:
            return

        previous = self.poll_mode
        if previous is PollMode.LOCAL:
            self._cancel_timer("_cancel_local_poll")
            self.poll_interval = None
        elif previous is PollMode.CLOUD:
            self.cloud_loop.halt()

        self.poll_mode = mode
        _LOGGER.info("Polling %s via %s (was %s)", self.serial, mode, previous)

        if mode is PollMode.CLOUD:
            self.cloud_loop.start()
            return

        self._enter_cadence(self.state.is_on)
        if initial_poll:
            self.hass.async_create_background_task(
                self.async_refresh(force_reschedule=True),
                f"intellifire_refresh_{self.serial}",
            )

    def _enter_cadence(self, is_on: bool) -> None:  # noqa: FBT001
        """Poll every 5 minutes while on and every 15 while off."""
        interval = LOCAL_POLL_INTERVAL_ON if is_on else LOCAL_POLL_INTERVAL_OFF
        self._cancel_timer("_cancel_local_poll")
        self._cancel_local_poll = async_track_time_interval(
            self.hass, self._async_scheduled_poll, interval
        )
        if interval != self.poll_interval:
            _LOGGER.info(
                "Polling %s every %d minutes while %s",
                self.serial,
                interval.total_seconds() // 60,
                "on" if is_on else "off",
            )
        self.poll_interval = interval

    async def _async_scheduled_poll(self, _now: datetime) -> None:
        await self.async_refresh()

    async def async_refresh(self, *, force_reschedule: bool = False) -> None:
        """Poll the fireplace through the active transport.

        Failures are logged and left for the next scheduled poll.
        """
        try:
            if self.poll_mode is PollMode.CLOUD:
                snapshot = await self._async_cloud_poll()
            else:
                snapshot = await self.local_client.async_poll()
        except api.IntelliFireApiClientError as err:
            _LOGGER.warning("Polling %s failed: %s", self.serial, err)
            if self.poll_mode is PollMode.LOCAL:
                self.reconciler.mark_unavailable()
            return

        self._consume(snapshot, force_reschedule=force_reschedule)

    async def _async_cloud_poll(self) -> Snapshot:
        observed = self._session_manager.generation
        try:
            return await api.async_poll(
                self._cloud_session, self.serial, self._cookie_header()
            )
        except api.IntelliFireAuthError:
            if not await self._session_manager.async_refresh_credentials(observed):
                raise
        return await api.async_poll(self._cloud_session, self.serial, self._cookie_header())

    @callback
    def _handle_cloud_snapshot(self, snapshot: Snapshot) -> None:
        self._consume(snapshot)

    def _consume(self, snapshot: Snapshot, *, force_reschedule: bool = False) -> ReconcileResult:
        result = self.reconciler.consume_snapshot(snapshot, force_reschedule)

        if result.reschedule and self.poll_mode is PollMode.LOCAL:
            self._enter_cadence(result.is_on)

        for fault in result.raised:
            self._fire_fault_event(fault, active=True)
        for fault in result.cleared:
            self._fire_fault_event(fault, active=False)

        if result.memory_changed:
            self._save_last_values()

        new_ip = result.changed.get("ipv4_address")
        if new_ip and new_ip != self.identity.ip_address:
            self._update_ip_address(new_ip)

        return result

    def _fire_fault_event(self, fault: ApplianceFault, *, active: bool) -> None:
        self.hass.bus.async_fire(
            EVENT_FAULT,
            {
                "serial": self.serial,
                "code": fault.code,
                "name": fault.name,
                "message": fault.message,
                "active": active,
            },
        )

    def _save_last_values(self) -> None:
        if self._store is not None:
            self._store.async_delay_save(self.last_values.as_dict, STORE_SAVE_DELAY)

    def _update_ip_address(self, ip_address: str) -> None:
        """Follow the fireplace to a new address and persist it."""
        _LOGGER.info(
            "Fireplace %s moved from %s to %s",
            self.serial,
            self.identity.ip_address,
            ip_address,
        )
        self.identity = dataclasses.replace(self.identity, ip_address=ip_address)
        self.local_client.ip_address = ip_address

        if self.config_entry is None:
            return
        fireplaces = [
            {**fireplace, CONF_IP_ADDRESS: ip_address}
            if fireplace.get(CONF_SERIAL) == self.serial
            else fireplace
            for fireplace in self.config_entry.data.get(CONF_FIREPLACES, [])
        ]
        self.hass.config_entries.async_update_entry(
            self.config_entry,
            data={**self.config_entry.data, CONF_FIREPLACES: fireplaces},
        )

    @callback
    def _handle_login_change(self, logged_in: bool, generation: int) -> None:  # noqa: FBT001
        _LOGGER.debug(
            "Relay session for %s changed: logged_in=%s generation=%d",
            self.serial,
            logged_in,
            generation,
        )
        if self.poll_mode is not None:
            self.set_poll_mode(self._desired_poll_mode())

    # Commands

    def _cookie_header(self) -> str:
        cookie_header = self._session_manager.cookie_header()
        if not cookie_header:
            error_msg = "No relay session"
            raise api.IntelliFireAuthError(error_msg)
        return cookie_header

    async def async_send_command(self, command: FireplaceCommand, value: int) -> None:
        """Validate and send a command, then schedule a confirming poll.

        Raises:
            api.IntelliFireOutOfRangeError: If the value is out of range;
                nothing is sent.
            api.IntelliFireApiClientError: If the command could not be sent.

        """
        spec = validate_command(command, value)
        _LOGGER.info("Sending %s=%s to %s", command, value, self.serial)

        if self.cloud_control:
            await self._async_send_cloud_with_fallback(spec, value)
        else:
            await self.local_client.async_send_command(spec.local_name, value)

        self._schedule_command_refresh()

    async def _async_send_cloud_with_fallback(self, spec: CommandSpec, value: int) -> None:
        try:
            await self._async_send_cloud(spec, value)
        except api.IntelliFireTransportError as err:
            if not (err.network_failure and self.options[CONF_LOCAL_FALLBACK]):
                raise
            _LOGGER.warning(
                "Relay unreachable for %s (%s), sending locally", self.serial, err
            )
            await self.local_client.async_send_command(spec.local_name, value)

    async def _async_send_cloud(self, spec: CommandSpec, value: int) -> None:
        """Send through the relay, logging in again once if the session is stale."""
        observed = self._session_manager.generation
        try:
            await api.async_send_command(
                self._cloud_session,
                self.serial,
                self.identity.api_key,
                self._cookie_header(),
                spec.cloud_name,
                value,
            )
        except api.IntelliFireAuthError:
            if not await self._session_manager.async_refresh_credentials(observed):
                raise
            await api.async_send_command(
                self._cloud_session,
                self.serial,
                self.identity.api_key,
                self._cookie_header(),
                spec.cloud_name,
                value,
            )

    def _schedule_command_refresh(self) -> None:
        self._cancel_timer("_cancel_command_refresh")

        async def _refresh(_now: datetime) -> None:
            self._cancel_command_refresh = None
            await self.async_refresh(force_reschedule=True)

        self._cancel_command_refresh = async_call_later(
            self.hass, COMMAND_REFRESH_DELAY, _refresh
        )

    async def async_turn_on(self) -> None:
        """Light the fireplace, by power or by thermostat as configured."""
        self._cancel_timer("_cancel_off_verify")
        if self.options[CONF_RESTORE_FAN_SPEED]:
            _LOGGER.debug("Will check fan speed of %s in 5 minutes", self.serial)
            self._cancel_timer("_cancel_restore_fan")
            self._cancel_restore_fan = async_call_later(
                self.hass, RESTORE_FAN_SPEED_DELAY, self._async_restore_fan_speed
            )

        if self.options[CONF_THERMOSTAT_ON_DEFAULT]:
            await self.async_set_thermostat_control(True)  # noqa: FBT003
        else:
            await self.async_send_command(FireplaceCommand.POWER, 1)

    async def async_turn_off(self) -> None:
        """Turn the fireplace off, verifying it when going through the relay."""
        self._cancel_timer("_cancel_restore_fan")
        self._cancel_timer("_cancel_off_verify")
        self.off_retries = 0
        await self.async_send_command(FireplaceCommand.POWER, 0)
        if self.cloud_control:
            self._schedule_off_verification()

    def _schedule_off_verification(self) -> None:
        self._cancel_off_verify = async_call_later(
            self.hass, OFF_VERIFY_DELAY, self._async_verify_off
        )

    async def _async_verify_off(self, _now: datetime) -> None:
        """Repeat the off command while the fireplace keeps reporting on."""
        self._cancel_off_verify = None
        await self.async_refresh()

        if not self.state.is_on:
            _LOGGER.debug("Fireplace %s confirmed off", self.serial)
            self.off_retries = 0
            return

        if self.off_retries >= OFF_VERIFY_MAX_RETRIES:
            _LOGGER.error(
                "Fireplace %s still on after %d off retries, giving up",
                self.serial,
                self.off_retries,
            )
            self.hass.bus.async_fire(
                EVENT_OFF_FAILED, {"serial": self.serial, "retries": self.off_retries}
            )
            self.off_retries = 0
            return

        self.off_retries += 1
        _LOGGER.warning(
            "Fireplace %s still on, repeating off command (%d/%d)",
            self.serial,
            self.off_retries,
            OFF_VERIFY_MAX_RETRIES,
        )
        try:
            await self.async_send_command(FireplaceCommand.POWER, 0)
        except api.IntelliFireApiClientError as err:
            _LOGGER.warning("Off retry for %s failed: %s", self.serial, err)
        self._schedule_off_verification()

    async def _async_restore_fan_speed(self, _now: datetime) -> None:
        """Put the fan back to its last speed if the fireplace reset it."""
        self._cancel_restore_fan = None
        await self.async_refresh()

        last_speed = self.last_values.fan_speed
        if self.state.fan_speed or not last_speed:
            _LOGGER.debug(
                "No fan speed to restore for %s (speed %s, last %s)",
                self.serial,
                self.state.fan_speed,
                last_speed,
            )
            return

        _LOGGER.info("Restoring fan speed %d on %s", last_speed, self.serial)
        try:
            await self.async_set_fan_speed(last_speed)
        except api.IntelliFireApiClientError as err:
            _LOGGER.warning("Could not restore fan speed on %s: %s", self.serial, err)

    async def async_set_fan_speed(self, speed: int) -> None:
        """Set the fan speed 0-4.

        An explicit change replaces whatever the restore timer would put back.
        """
        validate_command(FireplaceCommand.FAN_SPEED, speed)
        self.reconciler.forget_fan_speed()
        self._save_last_values()
        await self.async_send_command(FireplaceCommand.FAN_SPEED, speed)

    async def async_cycle_fan_speed(self) -> None:
        """Advance the fan speed by one step, wrapping to off after the highest."""
        await self.async_refresh()
        speed = self.state.fan_speed + 1
        if speed > COMMANDS[FireplaceCommand.FAN_SPEED].maximum:
            speed = 0
        await self.async_set_fan_speed(speed)

    async def async_set_flame_height(self, height: int) -> None:
        """Set the flame height 0-4."""
        await self.async_send_command(FireplaceCommand.FLAME_HEIGHT, height)

    async def async_set_light_level(self, level: int) -> None:
        """Set the light level 0-3."""
        await self.async_send_command(FireplaceCommand.LIGHT, level)

    async def async_light_on(self) -> None:
        """Turn the light on at its last level, or full if never seen on."""
        level = self.last_values.light
        if level is None:
            level = COMMANDS[FireplaceCommand.LIGHT].maximum
        await self.async_set_light_level(level)

    async def async_light_off(self) -> None:
        """Turn the light off."""
        await self.async_set_light_level(0)

    async def async_set_thermostat_control(self, enabled: bool) -> None:  # noqa: FBT001
        """Hand the flame to the thermostat, restoring the last setpoint."""
        setpoint = 0
        if enabled:
            setpoint = self.last_values.setpoint or DEFAULT_SETPOINT
        await self.async_send_command(FireplaceCommand.THERMOSTAT_SETPOINT, setpoint)

    async def async_set_thermostat_setpoint(self, temperature: float) -> None:
        """Set the thermostat target in degrees Celsius."""
        await self.async_send_command(
            FireplaceCommand.THERMOSTAT_SETPOINT, round(temperature * SETPOINT_SCALE)
        )

    async def async_set_sleep_timer(self, minutes: int) -> None:
        """Turn the fireplace off after the given minutes; 0 cancels."""
        await self.async_send_command(FireplaceCommand.TIME_REMAINING, minutes * 60)

    async def async_set_pilot(self, enabled: bool) -> None:  # noqa: FBT001
        """Enable or disable the cold-weather pilot light."""
        await self.async_send_command(FireplaceCommand.PILOT, int(enabled))

    async def async_beep(self) -> None:
        """Ask the fireplace to beep."""
        await self.async_send_command(FireplaceCommand.BEEP, 1)

    async def async_soft_reset(self) -> None:
        """Soft-reset the fireplace controller."""
        await self.async_send_command(FireplaceCommand.SOFT_RESET, 1)

    async def async_firmware_update(self) -> None:
        """Ask the fireplace to install pending firmware."""
        await self.async_send_command(FireplaceCommand.FIRMWARE_UPDATE, 1)
