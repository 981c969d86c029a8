"""
Diagnostic result data structures
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from inventory.models import RA2Device


class MismatchType(Enum):
    """Reconciliation finding categories; values are the display labels"""
    MISSING_FROM_HOMEKIT = "Missing from HomeKit"
    MISSING_FROM_RA2 = "Missing from RA2"
    NAME_MISMATCH = "Name Mismatch"
    ROOM_MISMATCH = "Room Mismatch"
    SCENE_MISMATCH = "Scene Mismatch"


class TrimStatus(Enum):
    """Outcome of a brightness trim test"""
    NO_TRIM = "No Trim Detected"
    LIKELY_TRIMMED = "Likely High-End Trim"
    UNKNOWN = "Unknown"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DiagnosticResult:
    """One reconciliation finding"""
    mismatch_type: MismatchType
    details: str
    ra2_device_name: Optional[str] = None
    homekit_device_name: Optional[str] = None
    ra2_location: Optional[str] = None
    homekit_room: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)
    result_id: str = field(default_factory=lambda: str(uuid.uuid4()))


def classify_trim(commanded_level: int, observed_level: float):
    """Return (TrimStatus, notes) for a commanded/observed pair

    The observed level is compared exactly as the repeater reported it.
    """
    if observed_level == commanded_level:
        return TrimStatus.NO_TRIM, "Zone reached full commanded level."
    if observed_level < commanded_level:
        difference = commanded_level - observed_level
        return TrimStatus.LIKELY_TRIMMED, (
            f"Zone reported {observed_level:g}% when commanded to {commanded_level}%. "
            f"Difference of {difference:g}% suggests high-end trim is active. "
            f"Check RA2 programming to verify trim settings."
        )
    return TrimStatus.UNKNOWN, "Unexpected result: observed level exceeds commanded level."


@dataclass(frozen=True)
class BrightnessTestResult:
    """Outcome of driving one dimmer to full and reading it back"""
    device: RA2Device
    commanded_level: int
    observed_level: float
    trim_status: TrimStatus
    notes: str
    timestamp: datetime = field(default_factory=_utcnow)
    result_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_levels(cls, device: RA2Device, commanded_level: int, observed_level: float) -> "BrightnessTestResult":
        trim_status, notes = classify_trim(commanded_level, observed_level)
        return cls(
            device=device,
            commanded_level=commanded_level,
            observed_level=observed_level,
            trim_status=trim_status,
            notes=notes
        )
