"""Snapshot reconciliation for IntelliFire fireplaces.

Snapshots arrive from either transport as flat key/value maps. The local
API uses native JSON numbers; the relay sends most numbers as strings,
and fields come and go with the firmware version. Everything is coerced
here before it reaches the cached state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .const import FAULT_MESSAGES, FAULT_NAMES
from .models import ApplianceFault, FireplaceState, LastNonZeroValues, Snapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_LOGGER = logging.getLogger(__name__)


def coerce_int(value: Any) -> int | None:  # noqa: ANN401
    """Coerce a snapshot value to int, returning None if it is not numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                return int(float(text))
            except (ValueError, OverflowError):
                return None
    return None


def coerce_float(value: Any) -> float | None:  # noqa: ANN401
    """Coerce a snapshot value to float, returning None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def coerce_bool(value: Any) -> bool | None:  # noqa: ANN401
    """Coerce a 0/1 snapshot flag to bool."""
    number = coerce_int(value)
    return None if number is None else number != 0


def coerce_str(value: Any) -> str | None:  # noqa: ANN401
    """Coerce a snapshot value to a non-empty string."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_int_list(value: Any) -> list[int]:  # noqa: ANN401
    """Coerce a snapshot list of integers; the relay may send it as text."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.strip().strip("[]").split(",")
    elif not isinstance(value, (list, tuple)):
        value = [value]
    codes = []
    for item in value:
        code = coerce_int(item)
        if code is not None:
            codes.append(code)
    return codes


def fault_for(code: int) -> ApplianceFault:
    """Describe a fault code; unknown codes keep their number as name."""
    name = FAULT_NAMES.get(code, str(code))
    message = FAULT_MESSAGES.get(name, f"Unknown Error. ({name})")
    return ApplianceFault(code=code, name=name, message=message)


# raw snapshot key -> (FireplaceState attribute, coercer)
FIELD_MAP: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "power": ("power", coerce_bool),
    "thermostat": ("thermostat", coerce_bool),
    "pilot": ("pilot", coerce_bool),
    "fanspeed": ("fan_speed", coerce_int),
    "height": ("flame_height", coerce_int),
    "light": ("light", coerce_int),
    "setpoint": ("setpoint", coerce_int),
    "timer": ("timer", coerce_bool),
    "timeremaining": ("time_remaining", coerce_int),
    "feature_light": ("has_light", coerce_bool),
    "feature_fan": ("has_fan", coerce_bool),
    "feature_thermostat": ("has_thermostat", coerce_bool),
    "power_vent": ("has_power_vent", coerce_bool),
    "battery": ("battery", coerce_int),
    "serial": ("serial", coerce_str),
    "ipv4_address": ("ipv4_address", coerce_str),
    "fw_ver_str": ("firmware_version", coerce_str),
}


@dataclass
class ReconcileResult:
    """What one snapshot changed."""

    was_on: bool
    is_on: bool
    changed: dict[str, Any] = field(default_factory=dict)
    raised: list[ApplianceFault] = field(default_factory=list)
    cleared: list[ApplianceFault] = field(default_factory=list)
    memory_changed: bool = False
    reschedule: bool = False

    @property
    def on_changed(self) -> bool:
        """Return True if the derived on state flipped."""
        return self.was_on != self.is_on


class StateReconciler:
    """Sole writer of a fireplace's cached state and last non-zero memory."""

    def __init__(
        self,
        state: FireplaceState | None = None,
        last_values: LastNonZeroValues | None = None,
    ) -> None:
        """Initialize the reconciler."""
        self.state = state or FireplaceState()
        self.last_values = last_values or LastNonZeroValues()
        self._listeners: list[
            tuple[Callable[[dict[str, Any]], None], frozenset[str] | None]
        ] = []

    def register_listener(
        self,
        callback: Callable[[dict[str, Any]], None],
        fields: Iterable[str] | None = None,
    ) -> Callable[[], None]:
        """Register a callback for state changes.

        Args:
            callback: Receives {state attribute: new value} for the
                changed fields it cares about.
            fields: FireplaceState attribute names of interest; None for all.

        Returns:
            A function to unregister the callback.

        """
        entry = (callback, frozenset(fields) if fields is not None else None)
        self._listeners.append(entry)

        def unregister() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unregister

    def _notify(self, changed: dict[str, Any]) -> None:
        if not changed:
            return
        for callback, wanted in list(self._listeners):
            relevant = (
                changed
                if wanted is None
                else {key: value for key, value in changed.items() if key in wanted}
            )
            if not relevant:
                continue
            try:
                callback(relevant)
            except Exception:
                _LOGGER.exception("Error in state update callback")

    def _set(self, changed: dict[str, Any], name: str, value: Any) -> None:  # noqa: ANN401
        if getattr(self.state, name) != value:
            _LOGGER.debug(
                "State change: %s %s -> %s", name, getattr(self.state, name), value
            )
            setattr(self.state, name, value)
            changed[name] = value

    def consume_snapshot(
        self,
        raw: Snapshot,
        force_reschedule: bool = False,  # noqa: FBT001, FBT002
    ) -> ReconcileResult:
        """Fold a snapshot into the cached state.

        Args:
            raw: Snapshot from either transport.
            force_reschedule: Ask for the poll cadence to be re-applied even
                if the on state did not change.

        Returns:
            A ReconcileResult describing what changed.

        """
        was_on = self.state.is_on
        changed: dict[str, Any] = {}
        result = ReconcileResult(was_on=was_on, is_on=was_on, changed=changed)

        self._set(changed, "available", True)  # noqa: FBT003

        for key, (name, coerce) in FIELD_MAP.items():
            if key not in raw:
                continue
            value = coerce(raw[key])
            if value is None:
                _LOGGER.debug("Ignoring unparseable %s=%r", key, raw[key])
                continue
            self._set(changed, name, value)

        # Thermostat sensor readings drop out at times; only trust them when
        # the same snapshot says the thermostat is present.
        if coerce_int(raw.get("feature_thermostat")) == 1 and "temperature" in raw:
            temperature = coerce_float(raw["temperature"])
            if temperature is not None:
                self._set(changed, "temperature", temperature)

        if "errors" in raw:
            self._reconcile_faults(coerce_int_list(raw["errors"]), result)

        result.memory_changed = self._remember_non_zero()
        result.is_on = self.state.is_on
        result.reschedule = result.on_changed or force_reschedule

        self._notify(changed)
        return result

    def _reconcile_faults(self, codes: list[int], result: ReconcileResult) -> None:
        previous = set(self.state.fault_codes)
        current = list(dict.fromkeys(codes))

        result.raised = [fault_for(code) for code in current if code not in previous]
        result.cleared = [
            fault for fault in self.state.faults if fault.code not in set(current)
        ]

        for fault in result.raised:
            _LOGGER.error("Fireplace fault %s raised: %s", fault.name, fault.message)
        for fault in result.cleared:
            _LOGGER.info("Fireplace fault %s cleared", fault.name)

        if result.raised or result.cleared:
            self._set(
                result.changed, "faults", tuple(fault_for(code) for code in current)
            )

    def _remember_non_zero(self) -> bool:
        memory = self.last_values
        before = memory.as_dict()
        if self.state.fan_speed:
            memory.fan_speed = self.state.fan_speed
        if self.state.light:
            memory.light = self.state.light
        if self.state.setpoint:
            memory.setpoint = self.state.setpoint
        return memory.as_dict() != before

    def forget_fan_speed(self) -> None:
        """Clear the remembered fan speed after an explicit speed change."""
        self.last_values.fan_speed = 0

    def mark_unavailable(self) -> None:
        """Record that the fireplace could not be polled."""
        changed: dict[str, Any] = {}
        self._set(changed, "available", False)  # noqa: FBT003
        self._notify(changed)
