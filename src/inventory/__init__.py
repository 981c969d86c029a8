"""
Device inventories for the RA2 and HomeKit sides of the installation
"""

from .homekit import AccessoryRegistry, SnapshotAccessoryRegistry, StaticAccessoryRegistry
from .models import DeviceType, HomeKitAccessory, RA2Device, RA2Scene
from .ra2 import fetch_integration_report, load_ra2_snapshot, parse_integration_report

__all__ = [
    'DeviceType', 'RA2Device', 'RA2Scene', 'HomeKitAccessory',
    'AccessoryRegistry', 'SnapshotAccessoryRegistry', 'StaticAccessoryRegistry',
    'fetch_integration_report', 'load_ra2_snapshot', 'parse_integration_report',
]
