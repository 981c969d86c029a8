"""
Discovery module for locating the RA2 Main Repeater
"""

from .manager import RepeaterDiscovery
from .models import DiscoveredHost, NetworkInterface, ScanProgress, ScanResult, ScanStatus
from .network_discovery import NetworkDiscovery

__all__ = ['RepeaterDiscovery', 'DiscoveredHost', 'NetworkInterface', 'ScanProgress', 'ScanResult',
           'ScanStatus', 'NetworkDiscovery']
