"""Data models for SmartRoom integration."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LoginResult:
    """Represents the token issued by a successful sign-in."""

    token: str
    token_type: str
    username: str
    groups: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Floor:
    """Represents a floor of the building."""

    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True)
class Room:
    """Represents a room on a floor."""

    id: int
    name: str
    floor_id: int
    description: str | None = None


@dataclass(slots=True)
class Light:
    """Represents a dimmable light as reported by the SmartRoom API."""

    id: int
    name: str
    room_id: int
    is_active: bool
    level: int
    description: str | None = None


@dataclass(slots=True)
class AirConditioner:
    """Represents the current operating state of an air-conditioner."""

    id: int
    name: str
    room_id: int
    power: bool
    temperature: int
    mode: str
    fan_speed: int
    swing: bool
    is_active: bool = True
    natural_id: str | None = None
    description: str | None = None


@dataclass(slots=True)
class TemperatureSensor:
    """Represents a room temperature sensor and its latest reading."""

    id: int
    name: str
    room_id: int
    current_value: float | None = None
    is_active: bool = True
    natural_id: str | None = None
    description: str | None = None


@dataclass(slots=True)
class PowerSensor:
    """Represents a power meter in a room.

    current_watt is the instantaneous power draw and current_watt_hour the
    energy counted by the meter so far.
    """

    id: int
    name: str
    room_id: int
    current_watt: float | None = None
    current_watt_hour: float | None = None
    is_active: bool = True
    natural_id: str | None = None
    description: str | None = None


@dataclass(slots=True)
class Automation:
    """Represents a scheduled job stored on the backend."""

    id: int
    name: str
    cron_expression: str
    is_active: bool
    description: str | None = None


@dataclass(frozen=True)
class AutomationAction:
    """Represents one piece of equipment an automation acts on."""

    id: int
    automation_id: int
    target_type: str
    target_id: int
    action_type: str
    parameter_value: str | None = None
    execution_order: int = 0
    target_name: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        """Return the (target type, target id) pair identifying the target."""
        return (self.target_type, self.target_id)
