"""
Inspector service - owns the repeater session, the two inventories and the
latest diagnostic results
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from config_loader import RepeaterSettings, ScannerSettings
from database.manager import DatabaseManager
from diagnostics.brightness import BrightnessTester
from diagnostics.exceptions import NoDevicesFoundError
from diagnostics.models import BrightnessTestResult, DiagnosticResult
from diagnostics.reconciliation import compare_devices
from discovery.manager import RepeaterDiscovery
from discovery.models import DiscoveredHost
from inventory.homekit import AccessoryRegistry, SnapshotAccessoryRegistry
from inventory.models import HomeKitAccessory, RA2Device, RA2Scene
from inventory.ra2 import fetch_integration_report, load_ra2_snapshot
from lutron.client import RA2Client
from lutron.exceptions import RA2NotConnectedError

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "integration"


class UnknownDeviceError(LookupError):
    """Integration ID not present in the current RA2 inventory"""

    def __init__(self, integration_id: int):
        super().__init__(f"No RA2 device with integration ID {integration_id}")
        self.integration_id = integration_id


class InspectorService:
    """Coordinates discovery, the controller session and diagnostics"""

    def __init__(self, config: Dict, repeater_settings: RepeaterSettings, scanner_settings: ScannerSettings,
                 db: Optional[DatabaseManager] = None,
                 client: Optional[RA2Client] = None,
                 scanner: Optional[RepeaterDiscovery] = None,
                 registry: Optional[AccessoryRegistry] = None,
                 tester: Optional[BrightnessTester] = None):
        self.config = config
        self.repeater_settings = repeater_settings
        self.scanner_settings = scanner_settings
        self.db = db

        diag_config = config.get('diagnostics', {})
        self.similarity_threshold = float(diag_config.get('similarity_threshold', 0.6))

        self.client = client or RA2Client.from_settings(repeater_settings)
        self.scanner = scanner or RepeaterDiscovery(scanner_settings)
        self.registry = registry or SnapshotAccessoryRegistry(
            config.get('homekit', {}).get('snapshot_file', 'config/homekit_accessories.yaml')
        )
        self.tester = tester or BrightnessTester(
            self.client,
            settle_seconds=float(diag_config.get('brightness_settle_seconds', 1.5)),
            fade_seconds=float(diag_config.get('brightness_fade_seconds', 1.0))
        )

        self.repeater_host: Optional[str] = repeater_settings.host or None
        self.discovered_hosts: List[DiscoveredHost] = []
        self._discovery_task: Optional[asyncio.Task] = None

        self.ra2_devices: List[RA2Device] = []
        self.ra2_scenes: List[RA2Scene] = []
        self.accessories: List[HomeKitAccessory] = []
        self.diagnostic_results: List[DiagnosticResult] = []
        self.brightness_results: List[BrightnessTestResult] = []
        self.last_comparison_at: Optional[datetime] = None
        self.last_brightness_run_at: Optional[datetime] = None

    # ================== DISCOVERY ==================

    async def discover_repeater(self, progress_callback: Optional[Callable[[int, int], None]] = None
                                ) -> Optional[DiscoveredHost]:
        """Scan the subnet; remembers the first Lutron host as the repeater address"""
        hosts = await self.scanner.scan_for_repeaters(progress_callback)
        if hosts:
            self.discovered_hosts = hosts

        repeater = next((h for h in hosts if h.is_lutron), None)
        if repeater:
            self.repeater_host = repeater.ip_address
            logger.info(f"[DISCOVERY] Main Repeater found at {repeater.ip_address}")
        else:
            logger.warning(f"[DISCOVERY] No Main Repeater found ({len(hosts)} other hosts responded)")
        return repeater

    def start_discovery(self) -> bool:
        """Run discover_repeater in the background. False if one is already running."""
        if self.scanner.is_scanning or (self._discovery_task and not self._discovery_task.done()):
            return False
        self._discovery_task = asyncio.create_task(self._background_discovery())
        return True

    async def _background_discovery(self):
        try:
            await self.discover_repeater()
        except Exception as e:
            logger.error(f"[DISCOVERY] Background scan failed: {e}")

    async def quick_check(self, address: str, port: Optional[int] = None) -> Optional[DiscoveredHost]:
        host = await self.scanner.quick_check(address, port)
        if host and host.is_lutron:
            self.repeater_host = host.ip_address
        return host

    # ================== SESSION ==================

    async def _resolve_password(self, host: str, username: str, password: Optional[str]) -> str:
        if password:
            return password
        if self.repeater_settings.password:
            return self.repeater_settings.password
        if self.db is not None:
            stored = await self.db.retrieve_credentials(host, username)
            if stored:
                return stored
        return DEFAULT_PASSWORD

    async def connect(self, host: Optional[str] = None, port: Optional[int] = None,
                      username: Optional[str] = None, password: Optional[str] = None,
                      remember: bool = False):
        host = host or self.repeater_host
        if not host:
            raise ValueError("No repeater address configured or discovered")
        port = port or self.repeater_settings.port
        username = username or self.repeater_settings.username
        password = await self._resolve_password(host, username, password)

        await self.client.connect(host, port, username, password)
        self.repeater_host = host

        if remember and self.db is not None:
            await self.db.save_credentials(host, username, password)

    async def disconnect(self):
        await self.client.disconnect()

    # ================== INVENTORY ==================

    async def refresh_ra2_devices(self) -> List[RA2Device]:
        """Reload the RA2 device list from the integration report or the inventory file"""
        if self.repeater_settings.inventory_source == 'file':
            devices, scenes = load_ra2_snapshot(self.repeater_settings.inventory_file)
        else:
            if not self.repeater_host:
                raise ValueError("No repeater address configured or discovered")
            devices, scenes = await fetch_integration_report(self.repeater_host)

        # Carry over levels already observed on the live session
        for device in devices:
            level = self.client.zone_levels.get(device.integration_id)
            if level is not None and device.device_type.supports_level:
                device.current_level = int(level)

        self.ra2_devices = devices
        self.ra2_scenes = scenes
        if not devices:
            logger.warning("[INVENTORY] RA2 inventory is empty")
        logger.info(f"[INVENTORY] {len(devices)} RA2 devices, {len(scenes)} scenes")
        return devices

    async def refresh_accessories(self) -> List[HomeKitAccessory]:
        self.accessories = await self.registry.fetch_accessories()
        logger.info(f"[INVENTORY] {len(self.accessories)} HomeKit accessories")
        return self.accessories

    def find_device(self, integration_id: int) -> RA2Device:
        for device in self.ra2_devices:
            if device.integration_id == integration_id:
                return device
        raise UnknownDeviceError(integration_id)

    def _known_device(self, integration_id: int) -> Optional[RA2Device]:
        try:
            return self.find_device(integration_id)
        except UnknownDeviceError:
            return None

    # ================== ZONE CONTROL ==================

    async def set_zone_level(self, integration_id: int, level: int, fade_seconds: float = 0.0):
        await self.client.set_zone_level(integration_id, level, fade_seconds)
        device = self._known_device(integration_id)
        if device and device.device_type.supports_level:
            device.current_level = level

    async def get_zone_level(self, integration_id: int) -> float:
        level = await self.client.query_zone_level(integration_id)
        device = self._known_device(integration_id)
        if device and device.device_type.supports_level:
            device.current_level = int(level)
        return level

    async def identify_zone(self, integration_id: int):
        logger.info(f"[RA2] Identifying zone {integration_id}")
        await self.client.identify_zone(integration_id)
        device = self._known_device(integration_id)
        if device and device.device_type.supports_level:
            device.current_level = 100

    async def activate_scene(self, keypad_id: int, button: int):
        logger.info(f"[RA2] Activating scene: keypad {keypad_id} button {button}")
        await self.client.activate_scene(keypad_id, button)

    # ================== DIAGNOSTICS ==================

    async def run_comparison(self) -> List[DiagnosticResult]:
        if not self.ra2_devices and not self.accessories:
            raise NoDevicesFoundError()

        results = compare_devices(self.ra2_devices, self.accessories, self.similarity_threshold)
        self.diagnostic_results = results
        self.last_comparison_at = datetime.now(timezone.utc)

        if self.db is not None:
            await self.db.store_diagnostic_results(str(uuid.uuid4()), results)
        return results

    async def run_brightness_tests(self, integration_ids: Optional[List[int]] = None) -> List[BrightnessTestResult]:
        """Trim-test the selected dimmers (all dimmers when none are given)"""
        if not self.client.is_connected:
            raise RA2NotConnectedError()

        if integration_ids:
            devices = [self.find_device(i) for i in integration_ids]
        else:
            devices = list(self.ra2_devices)
        if not any(d.device_type.supports_level for d in devices):
            raise NoDevicesFoundError()

        results = await self.tester.run_bulk_test(devices)
        self.brightness_results = results
        self.last_brightness_run_at = datetime.now(timezone.utc)

        if self.db is not None:
            await self.db.store_brightness_results(str(uuid.uuid4()), results)
        return results

    def get_status(self) -> Dict:
        progress = self.scanner.progress
        return {
            "repeater_host": self.repeater_host,
            "connection_state": self.client.state.value,
            "last_error": self.client.last_error,
            "scan_status": progress.status.value,
            "ra2_device_count": len(self.ra2_devices),
            "ra2_scene_count": len(self.ra2_scenes),
            "homekit_accessory_count": len(self.accessories),
            "diagnostic_result_count": len(self.diagnostic_results),
            "brightness_result_count": len(self.brightness_results),
            "last_comparison_at": self.last_comparison_at,
            "last_brightness_run_at": self.last_brightness_run_at,
            "database_enabled": bool(self.db and self.db.enabled)
        }
