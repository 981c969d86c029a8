"""
Cross-reference the RA2 device list against the HomeKit accessory list
"""

import logging
from typing import Iterable, List, Optional

from inventory.models import HomeKitAccessory, RA2Device
from .models import DiagnosticResult, MismatchType
from .similarity import normalize_name, string_similarity

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.6


def compare_devices(
    ra2_devices: List[RA2Device],
    homekit_devices: List[HomeKitAccessory],
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> List[DiagnosticResult]:
    """
    Run every reconciliation pass and return the findings ordered by category label.

    The passes are independent, so one device can appear under several categories.
    """
    results: List[DiagnosticResult] = []
    results.extend(find_missing_from_homekit(ra2_devices, homekit_devices))
    results.extend(find_missing_from_ra2(ra2_devices, homekit_devices))
    results.extend(find_name_mismatches(ra2_devices, homekit_devices, similarity_threshold))
    results.extend(find_room_mismatches(ra2_devices, homekit_devices))

    results.sort(key=lambda r: r.mismatch_type.value)
    logger.info(f"[DIFF] Compared {len(ra2_devices)} RA2 devices with {len(homekit_devices)} HomeKit accessories: "
                f"{len(results)} findings")
    return results


def find_missing_from_homekit(ra2_devices: Iterable[RA2Device],
                              homekit_devices: Iterable[HomeKitAccessory]) -> List[DiagnosticResult]:
    homekit_names = {normalize_name(d.name) for d in homekit_devices}
    results = []
    for device in ra2_devices:
        if normalize_name(device.name) not in homekit_names:
            results.append(DiagnosticResult(
                mismatch_type=MismatchType.MISSING_FROM_HOMEKIT,
                ra2_device_name=device.name,
                ra2_location=device.location_name,
                details=(f"Device '{device.name}' (ID: {device.integration_id}) exists in RA2 but was not found "
                         f"in HomeKit. Check if the device is paired with the Lutron Connect Bridge.")
            ))
    return results


def find_missing_from_ra2(ra2_devices: Iterable[RA2Device],
                          homekit_devices: Iterable[HomeKitAccessory]) -> List[DiagnosticResult]:
    """Only light accessories are considered; RA2 tracks nothing else"""
    ra2_names = {normalize_name(d.name) for d in ra2_devices}
    results = []
    for accessory in homekit_devices:
        if not accessory.is_light_service:
            continue
        if normalize_name(accessory.name) not in ra2_names:
            results.append(DiagnosticResult(
                mismatch_type=MismatchType.MISSING_FROM_RA2,
                homekit_device_name=accessory.name,
                homekit_room=accessory.room_name,
                details=(f"Device '{accessory.name}' exists in HomeKit but was not found in RA2. "
                         f"This may be a non-Lutron device or a naming mismatch.")
            ))
    return results


def find_name_mismatches(ra2_devices: Iterable[RA2Device],
                         homekit_devices: Iterable[HomeKitAccessory],
                         similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> List[DiagnosticResult]:
    """Report every pair scoring strictly between the threshold and an exact match"""
    homekit_devices = list(homekit_devices)
    results = []
    for device in ra2_devices:
        for accessory in homekit_devices:
            similarity = string_similarity(device.name, accessory.name)
            if similarity_threshold < similarity < 1.0:
                results.append(DiagnosticResult(
                    mismatch_type=MismatchType.NAME_MISMATCH,
                    ra2_device_name=device.name,
                    homekit_device_name=accessory.name,
                    ra2_location=device.location_name,
                    homekit_room=accessory.room_name,
                    details=(f"Possible name mismatch detected. RA2 name '{device.name}' is similar to "
                             f"HomeKit name '{accessory.name}' (similarity: {int(similarity * 100)}%).")
                ))
    return results


def find_matching_accessory(device: RA2Device,
                            homekit_devices: Iterable[HomeKitAccessory]) -> Optional[HomeKitAccessory]:
    """First accessory whose normalized name equals the device's"""
    wanted = normalize_name(device.name)
    return next((a for a in homekit_devices if normalize_name(a.name) == wanted), None)


def find_room_mismatches(ra2_devices: Iterable[RA2Device],
                         homekit_devices: Iterable[HomeKitAccessory]) -> List[DiagnosticResult]:
    homekit_devices = list(homekit_devices)
    results = []
    for device in ra2_devices:
        if not device.location_name:
            continue
        match = find_matching_accessory(device, homekit_devices)
        if match is None or not match.room_name:
            continue
        if normalize_name(device.location_name) != normalize_name(match.room_name):
            results.append(DiagnosticResult(
                mismatch_type=MismatchType.ROOM_MISMATCH,
                ra2_device_name=device.name,
                homekit_device_name=match.name,
                ra2_location=device.location_name,
                homekit_room=match.room_name,
                details=(f"Room assignment differs. RA2 location '{device.location_name}' does not match "
                         f"HomeKit room '{match.room_name}'.")
            ))
    return results
