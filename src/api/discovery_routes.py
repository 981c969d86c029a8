"""
Repeater discovery API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import List, Optional
import logging

from .errors import http_error

logger = logging.getLogger(__name__)


class QuickCheckRequest(BaseModel):
    address: str
    port: Optional[int] = None


class HostResponse(BaseModel):
    ip_address: str
    port: int
    is_lutron: bool
    display_name: str
    response_text: Optional[str] = None


class ScanProgressResponse(BaseModel):
    status: str
    addresses_scanned: int
    addresses_total: int
    hosts_found: int
    network_prefix: Optional[str] = None
    error: Optional[str] = None


class ScanResponse(BaseModel):
    repeater: Optional[HostResponse] = None
    hosts: List[HostResponse]


def _host_response(host) -> HostResponse:
    return HostResponse(
        ip_address=host.ip_address,
        port=host.port,
        is_lutron=host.is_lutron,
        display_name=host.display_name,
        response_text=host.response_text
    )


def _progress_response(progress) -> ScanProgressResponse:
    return ScanProgressResponse(
        status=progress.status.value,
        addresses_scanned=progress.addresses_scanned,
        addresses_total=progress.addresses_total,
        hosts_found=progress.hosts_found,
        network_prefix=progress.network_prefix,
        error=progress.error
    )


def create_discovery_routes(inspector):
    """Create discovery routes"""
    router = APIRouter(prefix="/api/discovery", tags=["discovery"])

    @router.post("/scan")
    async def scan(wait: bool = True):
        """Scan the local /24; with wait=false the scan runs in the background"""
        try:
            if not wait:
                started = inspector.start_discovery()
                return {
                    "started": started,
                    "progress": _progress_response(inspector.scanner.progress)
                }

            repeater = await inspector.discover_repeater()
            return ScanResponse(
                repeater=_host_response(repeater) if repeater else None,
                hosts=[_host_response(h) for h in inspector.discovered_hosts]
            )
        except Exception as e:
            raise http_error(e)

    @router.get("/progress", response_model=ScanProgressResponse)
    async def progress():
        return _progress_response(inspector.scanner.progress)

    @router.get("/results", response_model=List[HostResponse])
    async def results():
        return [_host_response(h) for h in inspector.discovered_hosts]

    @router.post("/quick-check")
    async def quick_check(request: QuickCheckRequest):
        """Probe a single address"""
        try:
            host = await inspector.quick_check(request.address, request.port)
            return {
                "address": request.address,
                "responded": host is not None,
                "host": _host_response(host) if host else None
            }
        except Exception as e:
            raise http_error(e)

    return router
