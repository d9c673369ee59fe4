"""Command catalog for IntelliFire fireplaces.

Maps each abstract command to its local and cloud wire names and the
range of values the appliance accepts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .api import IntelliFireOutOfRangeError

_LOGGER = logging.getLogger(__name__)


class FireplaceCommand(StrEnum):
    """Commands understood by the fireplace."""

    POWER = "power"
    PILOT = "pilot"
    BEEP = "beep"
    LIGHT = "light"
    FLAME_HEIGHT = "flame_height"
    FAN_SPEED = "fan_speed"
    THERMOSTAT_SETPOINT = "thermostat_setpoint"
    TIME_REMAINING = "time_remaining"
    SOFT_RESET = "soft_reset"
    FIRMWARE_UPDATE = "firmware_update"


@dataclass(frozen=True)
class CommandSpec:
    """Wire names and valid value range of a command."""

    local_name: str
    cloud_name: str
    minimum: int
    maximum: int

    def contains(self, value: int) -> bool:
        """Return True if the value is inside the accepted range."""
        return self.minimum <= value <= self.maximum


COMMANDS: dict[FireplaceCommand, CommandSpec] = {
    FireplaceCommand.POWER: CommandSpec("power", "power", 0, 1),
    FireplaceCommand.PILOT: CommandSpec("pilot", "pilot", 0, 1),
    FireplaceCommand.BEEP: CommandSpec("beep", "beep", 0, 1),
    FireplaceCommand.LIGHT: CommandSpec("light", "light", 0, 3),
    FireplaceCommand.FLAME_HEIGHT: CommandSpec("flame_height", "height", 0, 4),
    FireplaceCommand.FAN_SPEED: CommandSpec("fan_speed", "fanspeed", 0, 4),
    # Hundredths of a degree Celsius, 0 disables the thermostat
    FireplaceCommand.THERMOSTAT_SETPOINT: CommandSpec(
        "thermostat_setpoint", "thermostat_setpoint", 0, 3700
    ),
    # Seconds, 0 disables the sleep timer
    FireplaceCommand.TIME_REMAINING: CommandSpec(
        "time_remaining", "time_remaining", 0, 10800
    ),
    # Only has an effect through the relay
    FireplaceCommand.SOFT_RESET: CommandSpec("reset", "soft_reset", 0, 1),
    FireplaceCommand.FIRMWARE_UPDATE: CommandSpec(
        "firmware_update", "firmware_update", 0, 1
    ),
}


def get_command_spec(command: FireplaceCommand | str) -> CommandSpec:
    """Look up a command's spec.

    Raises:
        ValueError: If the command is unknown.

    """
    return COMMANDS[FireplaceCommand(command)]


def validate_command(command: FireplaceCommand | str, value: int) -> CommandSpec:
    """Return the CommandSpec for a command after checking the value's range.

    Raises:
        IntelliFireOutOfRangeError: If the value is outside the accepted
            range. Nothing has been sent at that point.

    """
    spec = get_command_spec(command)
    if not spec.contains(value):
        _LOGGER.error(
            "Command %s has value %s out of range [%s,%s], ignoring",
            command,
            value,
            spec.minimum,
            spec.maximum,
        )
        error_msg = (
            f"{command} value {value} outside [{spec.minimum}, {spec.maximum}]"
        )
        raise IntelliFireOutOfRangeError(error_msg)
    return spec


def percent_to_level(percent: float) -> int:
    """Map 0-100% to a flame height or fan speed level.

    0 maps to 0, 1-25 to 1, 26-50 to 2 and so on up to 4.
    """
    return int((percent + 24) / 25)


def level_to_percent(level: int) -> int:
    """Map a flame height or fan speed level to a percentage."""
    return level * 25


def percent_to_light_level(percent: float) -> int:
    """Map 0-100% to a light level 0-3."""
    return int((percent + 33) / 33.3)


def light_level_to_percent(level: int) -> int:
    """Map a light level 0-3 to a percentage."""
    return int(level * 33.34)
