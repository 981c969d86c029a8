"""
RA2 device inventory sources

The Main Repeater publishes its programming as an integration report
(DbXmlInfo.xml) on its web port. A YAML/JSON snapshot can be used instead
when the repeater's web server is unreachable.
"""

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Tuple

import aiohttp
import yaml

from http_helper import create_repeater_session
from .models import DeviceType, RA2Device, RA2Scene

logger = logging.getLogger(__name__)

INTEGRATION_REPORT_PATH = "/DbXmlInfo.xml"

DIMMABLE_OUTPUT_TYPES = {
    "INC", "ELV", "MLV", "AUTO_DETECT", "DALI", "ECO_SYSTEM_FLUORESCENT",
    "FLUORESCENT_DB", "ZERO_TO_TEN", "CEILING_FAN_TYPE",
}
SWITCHED_OUTPUT_TYPES = {"NON_DIM", "NON_DIM_INC", "NON_DIM_ELV", "RELAY_LIGHTING"}

KEYPAD_DEVICE_TYPES = {
    "SEETOUCH_KEYPAD", "HYBRID_SEETOUCH_KEYPAD", "SEETOUCH_TABLETOP_KEYPAD",
    "PICO_KEYPAD", "MAIN_REPEATER", "VISOR_CONTROL_RECEIVER", "GRAFIK_T_HYBRID_KEYPAD",
}
OCCUPANCY_DEVICE_TYPES = {"MOTION_SENSOR"}


def _output_device_type(output_type: str) -> DeviceType:
    if output_type in DIMMABLE_OUTPUT_TYPES:
        return DeviceType.DIMMER
    if output_type in SWITCHED_OUTPUT_TYPES:
        return DeviceType.SWITCH
    return DeviceType.UNKNOWN


def _device_device_type(device_type: str) -> DeviceType:
    if device_type in KEYPAD_DEVICE_TYPES:
        return DeviceType.KEYPAD
    if device_type in OCCUPANCY_DEVICE_TYPES:
        return DeviceType.OCCUPANCY_SENSOR
    return DeviceType.UNKNOWN


def _int_attr(element: ET.Element, name: str) -> Optional[int]:
    try:
        return int(element.get(name, ""))
    except ValueError:
        return None


def parse_integration_report(xml_text: str) -> Tuple[List[RA2Device], List[RA2Scene]]:
    """Parse a DbXmlInfo.xml integration report into devices and scenes"""
    root = ET.fromstring(xml_text)
    devices: List[RA2Device] = []
    scenes: List[RA2Scene] = []
    seen_ids = set()

    def visit_area(area: ET.Element, location: Optional[str]):
        area_name = area.get("Name") or location

        for output in area.findall("./Outputs/Output"):
            integration_id = _int_attr(output, "IntegrationID")
            if integration_id is None or integration_id in seen_ids:
                continue
            seen_ids.add(integration_id)
            devices.append(RA2Device(
                integration_id=integration_id,
                name=output.get("Name", f"Output {integration_id}"),
                device_type=_output_device_type(output.get("OutputType", "")),
                location_name=area_name
            ))

        grouped = area.findall("./DeviceGroups/DeviceGroup/Devices/Device")
        for device in area.findall("./DeviceGroups/Device") + grouped:
            integration_id = _int_attr(device, "IntegrationID")
            if integration_id is None or integration_id in seen_ids:
                continue
            seen_ids.add(integration_id)
            device_type = _device_device_type(device.get("DeviceType", ""))
            devices.append(RA2Device(
                integration_id=integration_id,
                name=device.get("Name", f"Device {integration_id}"),
                device_type=device_type,
                location_name=area_name
            ))
            if device_type == DeviceType.KEYPAD:
                scenes.extend(_keypad_scenes(device, integration_id))

        for child in area.findall("./Areas/Area"):
            visit_area(child, area_name)

    top_areas = root.findall("./Areas/Area")
    for area in top_areas:
        # The outermost area is the project itself, not a room
        for child in area.findall("./Areas/Area"):
            visit_area(child, None)
        if not area.findall("./Areas/Area"):
            visit_area(area, None)

    logger.info(f"[INVENTORY] Integration report: {len(devices)} devices, {len(scenes)} scenes")
    return devices, scenes


def _keypad_scenes(device: ET.Element, keypad_id: int) -> List[RA2Scene]:
    scenes = []
    for component in device.findall("./Components/Component"):
        if component.get("ComponentType") != "BUTTON":
            continue
        button_number = _int_attr(component, "ComponentNumber")
        button = component.find("Button")
        if button_number is None or button is None:
            continue
        name = button.get("Engraving") or button.get("Name")
        if not name or name.lower().startswith("button "):
            continue
        scenes.append(RA2Scene(
            integration_id=keypad_id,
            name=name,
            button_number=button_number,
            keypad_id=keypad_id
        ))
    return scenes


async def fetch_integration_report(host: str, timeout_seconds: float = 10) -> Tuple[List[RA2Device], List[RA2Scene]]:
    """Download and parse the repeater's integration report"""
    url = f"http://{host}{INTEGRATION_REPORT_PATH}"
    logger.info(f"[INVENTORY] Fetching integration report from {url}")
    async with create_repeater_session(timeout_seconds) as session:
        async with session.get(url) as response:
            if response.status != 200:
                raise aiohttp.ClientResponseError(
                    response.request_info, response.history,
                    status=response.status, message=f"Integration report unavailable (HTTP {response.status})"
                )
            xml_text = await response.text()
    return parse_integration_report(xml_text)


def load_ra2_snapshot(path: str) -> Tuple[List[RA2Device], List[RA2Scene]]:
    """
    Load devices and scenes from a YAML or JSON file:

        devices:
          - {integration_id: 12, name: Kitchen Lamp, type: Dimmer, location: Kitchen, level: 40}
        scenes:
          - {keypad_id: 1, button: 3, name: Evening}
    """
    snapshot_path = Path(path)
    if not snapshot_path.exists():
        raise FileNotFoundError(f"RA2 inventory file not found: {path}")

    with open(snapshot_path, 'r') as f:
        if snapshot_path.suffix == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    data = data or {}

    devices = []
    for entry in data.get('devices', []):
        try:
            device_type = DeviceType(entry.get('type', 'Unknown'))
        except ValueError:
            logger.warning(f"[INVENTORY] Unknown device type {entry.get('type')!r} for {entry.get('name')}")
            device_type = DeviceType.UNKNOWN
        level = entry.get('level')
        devices.append(RA2Device(
            integration_id=int(entry['integration_id']),
            name=entry['name'],
            device_type=device_type,
            location_name=entry.get('location'),
            current_level=int(level) if level is not None and device_type.supports_level else None
        ))

    scenes = [
        RA2Scene(
            integration_id=int(entry['keypad_id']),
            name=entry['name'],
            button_number=int(entry['button']),
            keypad_id=int(entry['keypad_id'])
        )
        for entry in data.get('scenes', [])
    ]

    logger.info(f"[INVENTORY] Loaded {len(devices)} devices and {len(scenes)} scenes from {path}")
    return devices, scenes
