"""
HomeKit accessory API routes
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from typing import List, Optional
import logging

from diagnostics.export import homekit_accessories_to_csv
from .errors import http_error

logger = logging.getLogger(__name__)


class AccessoryResponse(BaseModel):
    accessory_id: str
    name: str
    home_name: str
    room_name: Optional[str]
    display_name: str
    is_reachable: bool
    is_light_service: bool
    supports_brightness: bool
    brightness: Optional[int]


def _accessory_response(accessory) -> AccessoryResponse:
    return AccessoryResponse(
        accessory_id=accessory.accessory_id,
        name=accessory.name,
        home_name=accessory.home_name,
        room_name=accessory.room_name,
        display_name=accessory.display_name,
        is_reachable=accessory.is_reachable,
        is_light_service=accessory.is_light_service,
        supports_brightness=accessory.supports_brightness,
        brightness=accessory.brightness
    )


def create_homekit_routes(inspector):
    """Create HomeKit accessory routes"""
    router = APIRouter(prefix="/api/homekit", tags=["homekit"])

    @router.get("/accessories", response_model=List[AccessoryResponse])
    async def list_accessories(lights_only: bool = False):
        accessories = inspector.accessories
        if lights_only:
            accessories = [a for a in accessories if a.is_light_service]
        return [_accessory_response(a) for a in accessories]

    @router.post("/accessories/refresh", response_model=List[AccessoryResponse])
    async def refresh_accessories():
        try:
            accessories = await inspector.refresh_accessories()
            return [_accessory_response(a) for a in accessories]
        except Exception as e:
            raise http_error(e)

    @router.get("/accessories/export", response_class=PlainTextResponse)
    async def export_accessories():
        return PlainTextResponse(homekit_accessories_to_csv(inspector.accessories), media_type="text/csv")

    return router
