"""
HomeKit accessory registry sources

The inspector only reads from the registry. A snapshot file exported from the
Home app is the default source:

    homes:
      - name: Main House
        accessories:
          - id: 7A1C...            # unique accessory identifier
            name: Kitchen Lamp
            room: Kitchen
            reachable: true
            light: true
            brightness: 80         # omit when the light has no brightness characteristic
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import yaml

from .models import HomeKitAccessory

logger = logging.getLogger(__name__)


class AccessoryRegistry:
    """Read-only view of the smart-home accessory registry"""

    async def fetch_accessories(self) -> List[HomeKitAccessory]:
        raise NotImplementedError

    async def fetch_light_accessories(self) -> List[HomeKitAccessory]:
        return [a for a in await self.fetch_accessories() if a.is_light_service]

    async def find_accessory_by_name(self, name: str) -> Optional[HomeKitAccessory]:
        """Case-insensitive lookup; None when no accessory carries the name"""
        wanted = name.lower()
        for accessory in await self.fetch_accessories():
            if accessory.name.lower() == wanted:
                return accessory
        return None

    async def accessories_in_room(self, room_name: str, home_name: str) -> List[HomeKitAccessory]:
        return [
            a for a in await self.fetch_accessories()
            if a.home_name == home_name and a.room_name == room_name
        ]


class StaticAccessoryRegistry(AccessoryRegistry):
    """Registry backed by an in-memory list, e.g. posted to the API"""

    def __init__(self, accessories: Optional[List[HomeKitAccessory]] = None):
        self.accessories = list(accessories or [])

    async def fetch_accessories(self) -> List[HomeKitAccessory]:
        return list(self.accessories)


class SnapshotAccessoryRegistry(AccessoryRegistry):
    """Registry backed by a YAML or JSON export of the Home app"""

    def __init__(self, path: str):
        self.path = Path(path)

    async def fetch_accessories(self) -> List[HomeKitAccessory]:
        if not self.path.exists():
            raise FileNotFoundError(f"HomeKit snapshot not found: {self.path}")

        with open(self.path, 'r') as f:
            if self.path.suffix == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        accessories = parse_accessory_snapshot(data or {})
        logger.info(f"[HOMEKIT] Loaded {len(accessories)} accessories from {self.path}")
        return accessories


def parse_accessory_snapshot(data: dict) -> List[HomeKitAccessory]:
    accessories = []
    for home in data.get('homes', []):
        home_name = home.get('name', 'Home')
        for entry in home.get('accessories', []):
            brightness = entry.get('brightness')
            supports_brightness = entry.get('supports_brightness', brightness is not None)
            accessories.append(HomeKitAccessory(
                accessory_id=str(entry.get('id') or f"{home_name}/{entry['name']}"),
                name=entry['name'],
                home_name=home_name,
                room_name=entry.get('room'),
                is_reachable=bool(entry.get('reachable', True)),
                is_light_service=bool(entry.get('light', False)),
                supports_brightness=bool(supports_brightness),
                brightness=int(brightness) if brightness is not None else None
            ))
    return accessories
