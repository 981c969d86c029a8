"""
Database models and data structures
"""

from typing import Optional
from dataclasses import dataclass
from datetime import datetime


@dataclass
class CredentialRecord:
    """Stored login for one repeater account"""
    host: str
    username: str
    password: str
    updated_at: Optional[datetime] = None


@dataclass
class DiagnosticRecord:
    """Database record for one reconciliation finding"""
    result_id: str
    run_id: str
    mismatch_type: str
    details: str
    ra2_device_name: Optional[str]
    homekit_device_name: Optional[str]
    ra2_location: Optional[str]
    homekit_room: Optional[str]
    ts: datetime


@dataclass
class BrightnessRecord:
    """Database record for one brightness trim test"""
    result_id: str
    run_id: str
    integration_id: int
    device_name: str
    commanded_level: int
    observed_level: float
    trim_status: str
    notes: str
    ts: datetime
