"""
Reconciliation and brightness diagnostics API routes
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging

from diagnostics.export import diagnostic_results_to_csv, brightness_results_to_csv
from .errors import http_error

logger = logging.getLogger(__name__)


class BrightnessRunRequest(BaseModel):
    integration_ids: Optional[List[int]] = None


class DiagnosticResultResponse(BaseModel):
    result_id: str
    mismatch_type: str
    details: str
    ra2_device_name: Optional[str] = None
    homekit_device_name: Optional[str] = None
    ra2_location: Optional[str] = None
    homekit_room: Optional[str] = None
    timestamp: datetime


class BrightnessResultResponse(BaseModel):
    result_id: str
    integration_id: int
    device_name: str
    commanded_level: int
    observed_level: float
    trim_status: str
    notes: str
    timestamp: datetime


def _diagnostic_response(result) -> DiagnosticResultResponse:
    return DiagnosticResultResponse(
        result_id=result.result_id,
        mismatch_type=result.mismatch_type.value,
        details=result.details,
        ra2_device_name=result.ra2_device_name,
        homekit_device_name=result.homekit_device_name,
        ra2_location=result.ra2_location,
        homekit_room=result.homekit_room,
        timestamp=result.timestamp
    )


def _brightness_response(result) -> BrightnessResultResponse:
    return BrightnessResultResponse(
        result_id=result.result_id,
        integration_id=result.device.integration_id,
        device_name=result.device.name,
        commanded_level=result.commanded_level,
        observed_level=result.observed_level,
        trim_status=result.trim_status.value,
        notes=result.notes,
        timestamp=result.timestamp
    )


def create_diagnostics_routes(inspector, db_manager):
    """Create diagnostics routes"""
    router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

    # === Reconciliation ===

    @router.post("/compare", response_model=List[DiagnosticResultResponse])
    async def compare():
        try:
            results = await inspector.run_comparison()
            return [_diagnostic_response(r) for r in results]
        except Exception as e:
            raise http_error(e)

    @router.get("/results", response_model=List[DiagnosticResultResponse])
    async def results(mismatch_type: Optional[str] = None):
        """Latest comparison, optionally filtered by category label"""
        selected = inspector.diagnostic_results
        if mismatch_type:
            selected = [r for r in selected if r.mismatch_type.value == mismatch_type]
        return [_diagnostic_response(r) for r in selected]

    @router.get("/results/export", response_class=PlainTextResponse)
    async def export_results():
        return PlainTextResponse(diagnostic_results_to_csv(inspector.diagnostic_results), media_type="text/csv")

    @router.get("/history")
    async def history(limit: int = 100):
        records = await db_manager.get_recent_diagnostic_results(limit)
        return {"enabled": db_manager.enabled, "results": records}

    # === Brightness trim ===

    @router.post("/brightness", response_model=List[BrightnessResultResponse])
    async def run_brightness(request: BrightnessRunRequest):
        try:
            results = await inspector.run_brightness_tests(request.integration_ids)
            return [_brightness_response(r) for r in results]
        except Exception as e:
            raise http_error(e)

    @router.get("/brightness/results", response_model=List[BrightnessResultResponse])
    async def brightness_results():
        return [_brightness_response(r) for r in inspector.brightness_results]

    @router.get("/brightness/export", response_class=PlainTextResponse)
    async def export_brightness():
        return PlainTextResponse(brightness_results_to_csv(inspector.brightness_results), media_type="text/csv")

    @router.get("/brightness/history")
    async def brightness_history(limit: int = 100):
        records = await db_manager.get_recent_brightness_results(limit)
        return {"enabled": db_manager.enabled, "results": records}

    return router
