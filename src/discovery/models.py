"""
Discovery data structures and models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class DiscoveredHost:
    """A host that answered a scan probe"""
    ip_address: str
    port: int
    is_lutron: bool  # banner looked like a Lutron repeater
    response_text: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.is_lutron:
            return f"Lutron Repeater ({self.ip_address})"
        return f"Unknown Device ({self.ip_address})"


@dataclass(frozen=True)
class NetworkInterface:
    """An IPv4 address bound to a local interface"""
    name: str
    address: str


class ScanStatus(Enum):
    """Scan lifecycle"""
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScanProgress:
    """Live progress of the current or last scan"""
    status: ScanStatus = ScanStatus.IDLE
    addresses_scanned: int = 0
    addresses_total: int = 0
    hosts_found: int = 0
    network_prefix: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ScanResult:
    """Summary of a finished scan"""
    hosts: List[DiscoveredHost] = field(default_factory=list)
    network_prefix: Optional[str] = None
    addresses_scanned: int = 0
    addresses_total: int = 0
    duration_seconds: float = 0.0
    stopped_early: bool = False

    @property
    def repeater(self) -> Optional[DiscoveredHost]:
        return next((h for h in self.hosts if h.is_lutron), None)
