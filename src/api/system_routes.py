"""
System health and monitoring API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


# Response models
class SystemStatusResponse(BaseModel):
    repeater_host: Optional[str]
    connection_state: str
    last_error: Optional[str]
    scan_status: str
    ra2_device_count: int
    ra2_scene_count: int
    homekit_accessory_count: int
    diagnostic_result_count: int
    brightness_result_count: int
    last_comparison_at: Optional[datetime]
    last_brightness_run_at: Optional[datetime]
    database_enabled: bool


def create_system_routes(inspector, db_manager, config):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/system/health")
    async def system_health():
        """System health check"""
        try:
            if not db_manager.enabled:
                database = "disabled"
            elif db_manager.is_available:
                database = "connected"
            else:
                database = "unavailable"

            return {
                "status": "healthy",
                "site": config.get('site', {}).get('name'),
                "database": database,
                "repeater": {
                    "host": inspector.repeater_host,
                    "state": inspector.client.state.value
                },
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

    @router.get("/system/status", response_model=SystemStatusResponse)
    async def system_status():
        """Session, inventory and diagnostics summary"""
        return SystemStatusResponse(**inspector.get_status())

    return router
