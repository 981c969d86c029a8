"""Tests for the inspector service layer."""

from unittest.mock import AsyncMock

import pytest

from diagnostics.exceptions import NoDevicesFoundError
from discovery.models import DiscoveredHost
from inventory.models import DeviceType
from lutron.client import ConnectionState
from lutron.exceptions import RA2InvalidLevelError, RA2NotConnectedError
from services.inspector import UnknownDeviceError


@pytest.mark.asyncio
async def test_set_zone_level_updates_device(inspector, ra2_devices):
    inspector.ra2_devices = ra2_devices
    await inspector.set_zone_level(10, 80, 1.0)
    inspector.client.set_zone_level.assert_awaited_once_with(10, 80, 1.0)
    assert inspector.find_device(10).current_level == 80


@pytest.mark.asyncio
async def test_failed_set_leaves_level_alone(inspector, ra2_devices):
    inspector.ra2_devices = ra2_devices
    inspector.client.set_zone_level.side_effect = RA2InvalidLevelError(150)
    with pytest.raises(RA2InvalidLevelError):
        await inspector.set_zone_level(10, 150)
    assert inspector.find_device(10).current_level == 50


@pytest.mark.asyncio
async def test_get_zone_level_truncates_into_device(inspector, ra2_devices):
    inspector.ra2_devices = ra2_devices
    inspector.client.query_zone_level.return_value = 33.7
    assert await inspector.get_zone_level(11) == 33.7
    assert inspector.find_device(11).current_level == 33


def test_find_device_unknown(inspector):
    with pytest.raises(UnknownDeviceError):
        inspector.find_device(999)


@pytest.mark.asyncio
async def test_connect_uses_stored_password(inspector):
    inspector.db.retrieve_credentials = AsyncMock(return_value="stored")
    await inspector.connect()
    inspector.client.connect.assert_awaited_once_with("10.0.0.5", 23, "lutron", "stored")


@pytest.mark.asyncio
async def test_connect_defaults_password(inspector):
    await inspector.connect(host="10.0.0.9")
    inspector.client.connect.assert_awaited_once_with("10.0.0.9", 23, "lutron", "integration")
    assert inspector.repeater_host == "10.0.0.9"


@pytest.mark.asyncio
async def test_connect_remembers_credentials(inspector):
    inspector.db.save_credentials = AsyncMock(return_value=True)
    await inspector.connect(password="pw", remember=True)
    inspector.db.save_credentials.assert_awaited_once_with("10.0.0.5", "lutron", "pw")


@pytest.mark.asyncio
async def test_connect_without_host(inspector):
    inspector.repeater_host = None
    with pytest.raises(ValueError):
        await inspector.connect()


@pytest.mark.asyncio
async def test_discover_repeater_records_host(inspector):
    hosts = [DiscoveredHost("10.0.0.10", 23, True, "login: "), DiscoveredHost("10.0.0.1", 23, False)]
    inspector.scanner.scan_for_repeaters.return_value = hosts
    repeater = await inspector.discover_repeater()
    assert repeater.ip_address == "10.0.0.10"
    assert inspector.repeater_host == "10.0.0.10"
    assert inspector.discovered_hosts == hosts


@pytest.mark.asyncio
async def test_discover_without_repeater_keeps_host(inspector):
    inspector.scanner.scan_for_repeaters.return_value = [DiscoveredHost("10.0.0.1", 23, False)]
    assert await inspector.discover_repeater() is None
    assert inspector.repeater_host == "10.0.0.5"


@pytest.mark.asyncio
async def test_run_comparison(inspector, ra2_devices):
    inspector.ra2_devices = ra2_devices
    await inspector.refresh_accessories()
    results = await inspector.run_comparison()
    assert len(results) == 7
    assert inspector.diagnostic_results == results
    assert inspector.last_comparison_at is not None


@pytest.mark.asyncio
async def test_run_comparison_without_inventories(inspector):
    with pytest.raises(NoDevicesFoundError):
        await inspector.run_comparison()


@pytest.mark.asyncio
async def test_brightness_tests_need_session(inspector, ra2_devices):
    inspector.ra2_devices = ra2_devices
    inspector.client.is_connected = False
    with pytest.raises(RA2NotConnectedError):
        await inspector.run_brightness_tests()


@pytest.mark.asyncio
async def test_brightness_tests_need_dimmers(inspector, ra2_devices):
    inspector.ra2_devices = [d for d in ra2_devices if d.device_type != DeviceType.DIMMER]
    with pytest.raises(NoDevicesFoundError):
        await inspector.run_brightness_tests()


@pytest.mark.asyncio
async def test_brightness_tests_selected_devices(inspector, ra2_devices):
    inspector.ra2_devices = ra2_devices
    await inspector.run_brightness_tests([11])
    tested = inspector.tester.run_bulk_test.await_args.args[0]
    assert [d.integration_id for d in tested] == [11]


@pytest.mark.asyncio
async def test_refresh_from_file_merges_live_levels(inspector, tmp_path):
    path = tmp_path / "ra2.yaml"
    path.write_text("devices:\n  - {integration_id: 12, name: Lamp, type: Dimmer}\n")
    inspector.repeater_settings.inventory_source = "file"
    inspector.repeater_settings.inventory_file = str(path)
    inspector.client.zone_levels = {12: 64.6}
    devices = await inspector.refresh_ra2_devices()
    assert devices[0].current_level == 64


def test_status(inspector):
    status = inspector.get_status()
    assert status["connection_state"] == ConnectionState.READY.value
    assert status["repeater_host"] == "10.0.0.5"
    assert status["database_enabled"] is False
