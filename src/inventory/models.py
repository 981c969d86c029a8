"""
Device inventory data structures for both sides of the installation
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DeviceType(Enum):
    """RadioRA 2 device categories"""
    DIMMER = "Dimmer"
    SWITCH = "Switch"
    KEYPAD = "Keypad"
    OCCUPANCY_SENSOR = "Occupancy Sensor"
    UNKNOWN = "Unknown"

    @property
    def supports_level(self) -> bool:
        return self is DeviceType.DIMMER


@dataclass
class RA2Device:
    """A zone or device programmed into the RA2 system"""
    integration_id: int
    name: str
    device_type: DeviceType
    location_name: Optional[str] = None
    current_level: Optional[int] = None  # 0-100, dimmers only

    def __post_init__(self):
        if self.current_level is not None and not self.device_type.supports_level:
            raise ValueError(f"{self.device_type.value} '{self.name}' cannot carry a level")

    @property
    def display_name(self) -> str:
        if self.location_name:
            return f"{self.location_name} - {self.name}"
        return self.name


@dataclass(frozen=True)
class RA2Scene:
    """A keypad button that recalls a scene"""
    integration_id: int
    name: str
    button_number: int
    keypad_id: int


@dataclass(frozen=True)
class HomeKitAccessory:
    """Read-only snapshot of an accessory from the HomeKit registry"""
    accessory_id: str
    name: str
    home_name: str
    room_name: Optional[str] = None
    is_reachable: bool = True
    is_light_service: bool = False
    supports_brightness: bool = False
    brightness: Optional[int] = None  # 0-100

    @property
    def display_name(self) -> str:
        if self.room_name:
            return f"{self.room_name} - {self.name}"
        return self.name
