"""
Flat CSV exports for copy/paste into spreadsheets
"""

import csv
import io
from typing import Iterable, List, Sequence

from inventory.models import HomeKitAccessory, RA2Device
from .models import BrightnessTestResult, DiagnosticResult

DIAGNOSTIC_COLUMNS = ["Mismatch Type", "RA2 Device", "HomeKit Device", "RA2 Location", "HomeKit Room", "Details"]
BRIGHTNESS_COLUMNS = ["Device Name", "Integration ID", "Commanded Level", "Observed Level", "Trim Status", "Notes"]
RA2_DEVICE_COLUMNS = ["Integration ID", "Name", "Type", "Location", "Level"]
HOMEKIT_COLUMNS = ["Name", "Room", "Home", "Type", "Brightness", "Reachable"]


def _write_table(header: Sequence[str], rows: Iterable[Sequence]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def diagnostic_results_to_csv(results: Iterable[DiagnosticResult]) -> str:
    return _write_table(DIAGNOSTIC_COLUMNS, (
        [r.mismatch_type.value, r.ra2_device_name, r.homekit_device_name,
         r.ra2_location, r.homekit_room, r.details]
        for r in results
    ))


def brightness_results_to_csv(results: Iterable[BrightnessTestResult]) -> str:
    return _write_table(BRIGHTNESS_COLUMNS, (
        [r.device.name, r.device.integration_id, r.commanded_level,
         f"{r.observed_level:g}", r.trim_status.value, r.notes]
        for r in results
    ))


def ra2_devices_to_csv(devices: Iterable[RA2Device]) -> str:
    return _write_table(RA2_DEVICE_COLUMNS, (
        [d.integration_id, d.name, d.device_type.value, d.location_name,
         f"{d.current_level}%" if d.current_level is not None else ""]
        for d in devices
    ))


def homekit_accessories_to_csv(accessories: Iterable[HomeKitAccessory]) -> str:
    return _write_table(HOMEKIT_COLUMNS, (
        [a.name, a.room_name, a.home_name,
         "Light" if a.is_light_service else "Other",
         f"{a.brightness}%" if a.brightness is not None else "",
         "Yes" if a.is_reachable else "No"]
        for a in accessories
    ))


def read_csv(text: str) -> List[List[str]]:
    """Parse an export back into rows, header first"""
    return list(csv.reader(io.StringIO(text)))
