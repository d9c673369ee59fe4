"""Data models for IntelliFire integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# Snapshot values differ by transport: the local API answers with native
# JSON numbers, the relay answers with strings.
SnapshotValue = int | str | list[int] | None
Snapshot = dict[str, SnapshotValue]


@dataclass(frozen=True)
class ApplianceIdentity:
    """Static identity of one fireplace, captured during onboarding."""

    serial: str
    name: str
    api_key: str
    ip_address: str
    user_id: str


@dataclass
class SessionCredentials:
    """Account-wide relay session shared by every fireplace on the entry."""

    email: str | None = None
    password: str | None = None
    generation: int = 0
    cookies: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ApplianceFault:
    """A fault code reported by the appliance, with its operator message."""

    code: int
    name: str
    message: str


@dataclass
class LastNonZeroValues:
    """Settings remembered so they can be restored after the appliance zeroes them."""

    fan_speed: int = 0
    light: int | None = None
    setpoint: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation for storage."""
        return {
            "fan_speed": self.fan_speed,
            "light": self.light,
            "setpoint": self.setpoint,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> LastNonZeroValues:
        """Build from stored data, tolerating missing keys."""
        if not data:
            return cls()
        return cls(
            fan_speed=data.get("fan_speed") or 0,
            light=data.get("light"),
            setpoint=data.get("setpoint"),
        )


@dataclass
class FireplaceState:
    """Last-known state of a fireplace, as reconciled from snapshots.

    Attributes:
        power: Raw flame power flag.
        thermostat: Whether the thermostat is controlling the flame.
        pilot: Cold-weather pilot light enabled.
        fan_speed: Fan speed 0-4.
        flame_height: Flame height 0-4.
        light: Light level 0-3.
        temperature: Room temperature in Celsius (thermostat models only).
        setpoint: Thermostat setpoint in hundredths of a degree Celsius.
        timer: Whether the sleep timer is active.
        time_remaining: Seconds until the sleep timer turns the fireplace off.
        faults: Active fault codes, in the order reported.
        available: Whether the last poll succeeded.

    """

    power: bool = False
    thermostat: bool = False
    pilot: bool = False
    fan_speed: int = 0
    flame_height: int = 0
    light: int = 0
    temperature: float | None = None
    setpoint: int = 0
    timer: bool = False
    time_remaining: int = 0
    faults: tuple[ApplianceFault, ...] = ()
    has_light: bool = False
    has_fan: bool = False
    has_thermostat: bool = False
    has_power_vent: bool = False
    battery: int | None = None
    serial: str | None = None
    ipv4_address: str | None = None
    firmware_version: str | None = None
    available: bool = False

    @property
    def is_on(self) -> bool:
        """Return the derived on state; the thermostat can drive the flame."""
        return self.power or self.thermostat

    @property
    def fault_codes(self) -> tuple[int, ...]:
        """Return the active fault codes."""
        return tuple(fault.code for fault in self.faults)


class PollMode(StrEnum):
    """How a fireplace's state is kept current."""

    LOCAL = "local"
    CLOUD = "cloud"


class PollState(StrEnum):
    """States of the relay long-poll loop."""

    IDLE = "idle"
    POLLING = "polling"
    LONG_POLLING = "long_polling"


class LongPollOutcome(StrEnum):
    """How a relay long-poll request ended."""

    CHANGED = "changed"
    TIMEOUT = "timeout"
    DROPPED = "dropped"
    ERROR = "error"


@dataclass(frozen=True)
class LongPollResult:
    """Outcome of one relay long-poll request."""

    outcome: LongPollOutcome
    snapshot: Snapshot | None = None
    etag: str | None = None


@dataclass(frozen=True)
class PollMessage:
    """A poll continuation, tagged with the generation that issued it."""

    generation: int
    result: LongPollResult
    full_poll: bool = False
