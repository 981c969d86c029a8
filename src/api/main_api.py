"""
Main FastAPI application setup

Local HTTP API for the RA2 HomeKit Inspector: repeater discovery, session
and zone control, both inventories and the diagnostics
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import logging

# Import modular route factories
from .system_routes import create_system_routes
from .discovery_routes import create_discovery_routes
from .ra2_routes import create_ra2_routes
from .homekit_routes import create_homekit_routes
from .diagnostics_routes import create_diagnostics_routes

logger = logging.getLogger(__name__)


class InspectorAPI:
    """Local HTTP API wrapping an InspectorService"""

    def __init__(self, inspector, database_manager, config: Dict):
        self.inspector = inspector
        self.db = database_manager
        self.config = config
        self.app = FastAPI(
            title="RA2 HomeKit Inspector Local Server",
            description="Local API for RadioRA 2 discovery, zone control and HomeKit reconciliation",
            version="1.0.0"
        )
        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        origins = self.config.get('api', {}).get('cors_origins') or []
        if origins:
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=origins,
                allow_methods=["*"],
                allow_headers=["*"]
            )

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_system_routes(self.inspector, self.db, self.config))
        self.app.include_router(create_discovery_routes(self.inspector))
        self.app.include_router(create_ra2_routes(self.inspector))
        self.app.include_router(create_homekit_routes(self.inspector))
        self.app.include_router(create_diagnostics_routes(self.inspector, self.db))
