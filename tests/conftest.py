"""Pytest configuration and fixtures for RA2 HomeKit Inspector tests."""

import asyncio
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from config_loader import RepeaterSettings, ScannerSettings
from database.manager import DatabaseManager
from discovery.models import ScanProgress
from inventory.homekit import StaticAccessoryRegistry
from inventory.models import DeviceType, HomeKitAccessory, RA2Device
from lutron.client import ConnectionState
from services.inspector import InspectorService


class FakeRepeater:
    """In-process stand-in for the Main Repeater's integration port."""

    def __init__(self, username: str = "lutron", password: str = "integration",
                 levels: Optional[Dict[int, float]] = None, trims: Optional[Dict[int, float]] = None,
                 confirm_login: bool = True):
        self.username = username
        self.password = password
        self.levels = dict(levels or {})
        self.trims = dict(trims or {})
        self.confirm_login = confirm_login
        self.received: List[str] = []
        self.server = None
        self.port = None
        self._writers = []

    async def __aenter__(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info):
        await self.drop_connections()
        self.server.close()
        await self.server.wait_closed()

    async def drop_connections(self):
        for writer in self._writers:
            writer.close()
        self._writers = []
        await asyncio.sleep(0)

    async def _send(self, writer, text: str):
        writer.write(text.encode("ascii"))
        await writer.drain()

    async def _handle(self, reader, writer):
        self._writers.append(writer)
        try:
            await self._send(writer, "login: ")
            username = (await reader.readline()).decode().strip()
            await self._send(writer, "password: ")
            password = (await reader.readline()).decode().strip()

            if (username, password) != (self.username, self.password):
                await self._send(writer, "\r\nlogin: ")
                await reader.read()
                return
            if not self.confirm_login:
                await reader.read()
                return

            await self._send(writer, "\r\nGNET> ")
            while True:
                line = await reader.readline()
                if not line:
                    break
                text = line.decode().strip()
                self.received.append(text)
                reply = self._reply(text)
                if reply:
                    await self._send(writer, reply)
        except (ConnectionError, OSError):
            pass
        finally:
            writer.close()

    def _reply(self, text: str) -> str:
        parts = text.split(",")
        if parts[0] == "?OUTPUT":
            integration_id = int(parts[1])
            if integration_id not in self.levels:
                return "GNET> "
            return f"~OUTPUT,{integration_id},1,{self.levels[integration_id]:.2f}\r\nGNET> "
        if parts[0] == "#OUTPUT":
            integration_id = int(parts[1])
            level = min(float(parts[3]), self.trims.get(integration_id, 100.0))
            self.levels[integration_id] = level
            return f"~OUTPUT,{integration_id},1,{level:.2f}\r\nGNET> "
        if parts[0] == "?SYSTEM":
            return "~SYSTEM,1,12:00:00\r\nGNET> "
        if parts[0] == "#DEVICE":
            return "GNET> "
        return "~ERROR,Enum=(1, 0x00000001)\r\nGNET> "


@pytest.fixture
def fake_repeater():
    """Factory for fake repeaters, used as `async with fake_repeater(...) as repeater`."""
    return FakeRepeater


@pytest.fixture
def ra2_devices() -> List[RA2Device]:
    """A small RA2 inventory."""
    return [
        RA2Device(integration_id=10, name="Kitchen Pendants", device_type=DeviceType.DIMMER,
                  location_name="Kitchen", current_level=50),
        RA2Device(integration_id=11, name="Island Light", device_type=DeviceType.DIMMER,
                  location_name="Kitchen"),
        RA2Device(integration_id=12, name="Porch Light", device_type=DeviceType.SWITCH,
                  location_name="Exterior"),
        RA2Device(integration_id=20, name="Foyer Keypad", device_type=DeviceType.KEYPAD,
                  location_name="Foyer"),
    ]


@pytest.fixture
def homekit_accessories() -> List[HomeKitAccessory]:
    """HomeKit accessories matching part of the RA2 inventory."""
    return [
        HomeKitAccessory(accessory_id="A1", name="Kitchen Pendants", home_name="Home",
                         room_name="Dining Room", is_light_service=True, supports_brightness=True, brightness=50),
        HomeKitAccessory(accessory_id="A2", name="Island Lights", home_name="Home",
                         room_name="Kitchen", is_light_service=True, supports_brightness=True, brightness=0),
        HomeKitAccessory(accessory_id="A3", name="Garage Opener", home_name="Home",
                         room_name="Garage", is_light_service=False),
        HomeKitAccessory(accessory_id="A4", name="Hue Strip", home_name="Home",
                         room_name="Office", is_light_service=True),
    ]


def make_mock_client():
    """RA2Client stand-in with awaitable commands and a READY session."""
    client = MagicMock()
    client.state = ConnectionState.READY
    client.is_connected = True
    client.host = "10.0.0.5"
    client.port = 23
    client.last_error = None
    client.zone_levels = {}
    for name in ("connect", "disconnect", "set_zone_level", "query_zone_level", "identify_zone",
                 "activate_scene", "ping"):
        setattr(client, name, AsyncMock())
    return client


@pytest.fixture
def mock_client():
    return make_mock_client()


@pytest.fixture
def inspector(mock_client, homekit_accessories):
    """InspectorService wired to mocks, with the database disabled."""
    config = {"diagnostics": {"similarity_threshold": 0.6}, "database": {"enabled": False}}
    scanner = MagicMock()
    scanner.progress = ScanProgress()
    scanner.is_scanning = False
    scanner.scan_for_repeaters = AsyncMock(return_value=[])
    scanner.quick_check = AsyncMock(return_value=None)
    tester = MagicMock()
    tester.run_bulk_test = AsyncMock(return_value=[])

    return InspectorService(
        config,
        RepeaterSettings(host="10.0.0.5"),
        ScannerSettings(),
        db=DatabaseManager(config),
        client=mock_client,
        scanner=scanner,
        registry=StaticAccessoryRegistry(homekit_accessories),
        tester=tester,
    )
