"""Tests for brightness trim classification and the bulk test runner."""

from unittest.mock import AsyncMock, call, patch

import pytest

from diagnostics.brightness import BrightnessTester
from diagnostics.exceptions import NotDimmableError
from diagnostics.models import TrimStatus, classify_trim
from inventory.models import DeviceType, RA2Device
from lutron.exceptions import RA2ConnectionError, RA2TimeoutError


@pytest.mark.parametrize("observed,status", [
    (100, TrimStatus.NO_TRIM),
    (85, TrimStatus.LIKELY_TRIMMED),
    (0, TrimStatus.LIKELY_TRIMMED),
    (101, TrimStatus.UNKNOWN),
])
def test_classify_trim(observed, status):
    assert classify_trim(100, observed)[0] == status


def test_trimmed_notes_mention_levels():
    _, notes = classify_trim(100, 85)
    assert "Zone reported 85% when commanded to 100%" in notes
    assert "Difference of 15%" in notes


def make_client(levels):
    client = AsyncMock()
    client.query_zone_level = AsyncMock(side_effect=lambda integration_id: levels[integration_id])
    return client


@pytest.fixture
def no_sleep():
    with patch("diagnostics.brightness.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


@pytest.mark.asyncio
async def test_run_test_restores_original_level(no_sleep):
    device = RA2Device(integration_id=10, name="Pendants", device_type=DeviceType.DIMMER, current_level=40)
    client = make_client({10: 85.0})
    tester = BrightnessTester(client, settle_seconds=1.5, fade_seconds=1.0)

    result = await tester.run_test(device)

    assert client.set_zone_level.await_args_list == [call(10, 100, 1.0), call(10, 40, 1.0)]
    no_sleep.assert_awaited_once_with(1.5)
    assert result.commanded_level == 100
    assert result.observed_level == 85
    assert result.trim_status == TrimStatus.LIKELY_TRIMMED


@pytest.mark.asyncio
async def test_run_test_defaults_original_level_to_off(no_sleep):
    device = RA2Device(integration_id=11, name="Island", device_type=DeviceType.DIMMER)
    client = make_client({11: 100.0})
    result = await BrightnessTester(client).run_test(device)
    assert client.set_zone_level.await_args_list[-1] == call(11, 0, 1.0)
    assert result.trim_status == TrimStatus.NO_TRIM


@pytest.mark.asyncio
@pytest.mark.parametrize("observed,status", [
    (99.6, TrimStatus.LIKELY_TRIMMED),
    (100.4, TrimStatus.UNKNOWN),
])
async def test_run_test_classifies_reported_level(no_sleep, observed, status):
    """Fractional reports are classified as reported, never rounded to 100."""
    device = RA2Device(integration_id=10, name="Pendants", device_type=DeviceType.DIMMER)
    result = await BrightnessTester(make_client({10: observed})).run_test(device)
    assert result.observed_level == observed
    assert result.trim_status == status


def test_fractional_trim_notes():
    _, notes = classify_trim(100, 99.5)
    assert "Zone reported 99.5%" in notes
    assert "Difference of 0.5%" in notes


@pytest.mark.asyncio
async def test_run_test_restores_level_when_query_fails(no_sleep):
    device = RA2Device(integration_id=1, name="Pendants", device_type=DeviceType.DIMMER, current_level=30)
    client = AsyncMock()
    client.query_zone_level = AsyncMock(side_effect=RA2TimeoutError("no reply"))

    with pytest.raises(RA2TimeoutError):
        await BrightnessTester(client, fade_seconds=1.0).run_test(device)

    assert client.set_zone_level.await_args_list == [call(1, 100, 1.0), call(1, 30, 1.0)]


@pytest.mark.asyncio
async def test_failed_restore_keeps_query_error(no_sleep):
    device = RA2Device(integration_id=1, name="Pendants", device_type=DeviceType.DIMMER, current_level=30)
    client = AsyncMock()
    client.query_zone_level = AsyncMock(side_effect=RA2TimeoutError("no reply"))
    client.set_zone_level = AsyncMock(side_effect=[None, RA2ConnectionError("dropped")])

    with pytest.raises(RA2TimeoutError):
        await BrightnessTester(client).run_test(device)
    assert client.set_zone_level.await_count == 2


@pytest.mark.asyncio
async def test_run_test_rejects_switch(no_sleep):
    device = RA2Device(integration_id=12, name="Porch", device_type=DeviceType.SWITCH)
    client = make_client({})
    with pytest.raises(NotDimmableError):
        await BrightnessTester(client).run_test(device)
    client.set_zone_level.assert_not_awaited()


@pytest.mark.asyncio
async def test_bulk_test_skips_failures_and_non_dimmers(no_sleep, ra2_devices):
    """Island Light times out, the switch and keypad are never tested."""
    client = make_client({10: 100.0})
    client.query_zone_level = AsyncMock(side_effect=[100.0, RA2TimeoutError("no reply")])

    results = await BrightnessTester(client).run_bulk_test(ra2_devices)

    assert [r.device.integration_id for r in results] == [10]
    tested_ids = {c.args[0] for c in client.set_zone_level.await_args_list}
    assert tested_ids == {10, 11}


@pytest.mark.asyncio
async def test_bulk_test_empty(no_sleep):
    assert await BrightnessTester(make_client({})).run_bulk_test([]) == []
