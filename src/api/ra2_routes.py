"""
RadioRA 2 session and zone control API routes
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from typing import List, Optional
import logging

from diagnostics.export import ra2_devices_to_csv
from .errors import http_error

logger = logging.getLogger(__name__)


# Request models
class ConnectRequest(BaseModel):
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    remember: bool = False


class LevelRequest(BaseModel):
    level: int
    fade_seconds: float = 0.0


class SceneRequest(BaseModel):
    keypad_id: int
    button: int


# Response models
class ConnectionResponse(BaseModel):
    host: Optional[str]
    port: Optional[int]
    state: str
    last_error: Optional[str] = None


class DeviceResponse(BaseModel):
    integration_id: int
    name: str
    device_type: str
    location_name: Optional[str]
    display_name: str
    current_level: Optional[int]
    supports_level: bool


class SceneResponse(BaseModel):
    integration_id: int
    name: str
    button_number: int
    keypad_id: int


class LevelResponse(BaseModel):
    integration_id: int
    level: float


def _connection_response(client) -> ConnectionResponse:
    return ConnectionResponse(host=client.host, port=client.port, state=client.state.value,
                              last_error=client.last_error)


def _device_response(device) -> DeviceResponse:
    return DeviceResponse(
        integration_id=device.integration_id,
        name=device.name,
        device_type=device.device_type.value,
        location_name=device.location_name,
        display_name=device.display_name,
        current_level=device.current_level,
        supports_level=device.device_type.supports_level
    )


def create_ra2_routes(inspector):
    """Create RA2 session, inventory and zone control routes"""
    router = APIRouter(prefix="/api/ra2", tags=["ra2"])

    @router.post("/connect", response_model=ConnectionResponse)
    async def connect(request: ConnectRequest):
        try:
            await inspector.connect(request.host, request.port, request.username, request.password,
                                    remember=request.remember)
            return _connection_response(inspector.client)
        except Exception as e:
            raise http_error(e)

    @router.post("/disconnect", response_model=ConnectionResponse)
    async def disconnect():
        await inspector.disconnect()
        return _connection_response(inspector.client)

    @router.get("/connection", response_model=ConnectionResponse)
    async def connection():
        return _connection_response(inspector.client)

    @router.get("/devices", response_model=List[DeviceResponse])
    async def list_devices():
        return [_device_response(d) for d in inspector.ra2_devices]

    @router.post("/devices/refresh", response_model=List[DeviceResponse])
    async def refresh_devices():
        try:
            devices = await inspector.refresh_ra2_devices()
            return [_device_response(d) for d in devices]
        except Exception as e:
            raise http_error(e)

    @router.get("/devices/export", response_class=PlainTextResponse)
    async def export_devices():
        return PlainTextResponse(ra2_devices_to_csv(inspector.ra2_devices), media_type="text/csv")

    @router.get("/devices/{integration_id}", response_model=DeviceResponse)
    async def get_device(integration_id: int):
        try:
            return _device_response(inspector.find_device(integration_id))
        except Exception as e:
            raise http_error(e)

    @router.get("/scenes", response_model=List[SceneResponse])
    async def list_scenes():
        return [
            SceneResponse(integration_id=s.integration_id, name=s.name,
                          button_number=s.button_number, keypad_id=s.keypad_id)
            for s in inspector.ra2_scenes
        ]

    @router.post("/scenes/activate")
    async def activate_scene(request: SceneRequest):
        try:
            await inspector.activate_scene(request.keypad_id, request.button)
            return {"status": "success", "keypad_id": request.keypad_id, "button": request.button}
        except Exception as e:
            raise http_error(e)

    @router.get("/zones/{integration_id}/level", response_model=LevelResponse)
    async def get_zone_level(integration_id: int):
        try:
            level = await inspector.get_zone_level(integration_id)
            return LevelResponse(integration_id=integration_id, level=level)
        except Exception as e:
            raise http_error(e)

    @router.put("/zones/{integration_id}/level", response_model=LevelResponse)
    async def set_zone_level(integration_id: int, request: LevelRequest):
        try:
            await inspector.set_zone_level(integration_id, request.level, request.fade_seconds)
            return LevelResponse(integration_id=integration_id, level=request.level)
        except Exception as e:
            raise http_error(e)

    @router.post("/zones/{integration_id}/identify")
    async def identify_zone(integration_id: int):
        try:
            await inspector.identify_zone(integration_id)
            return {"status": "success", "integration_id": integration_id}
        except Exception as e:
            raise http_error(e)

    return router
