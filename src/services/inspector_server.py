"""
Inspector Server - Main orchestrator for all services
"""

import asyncio
import logging
from typing import List

import uvicorn

# Local imports
from config_loader import load_config, setup_logging, RepeaterSettings, ScannerSettings
from database.manager import DatabaseManager
from api.main_api import InspectorAPI
from lutron.exceptions import RA2Error
from services.inspector import InspectorService

logger = logging.getLogger(__name__)


class InspectorServer:
    """Main server: database, repeater session, diagnostics and the local API"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        # Settings are resolved once here and passed down explicitly
        self.repeater_settings = RepeaterSettings.from_config(self.config)
        self.scanner_settings = ScannerSettings.from_config(self.config)

        self.db = DatabaseManager(self.config)
        self.inspector = InspectorService(self.config, self.repeater_settings, self.scanner_settings, self.db)
        self.api = InspectorAPI(self.inspector, self.db, self.config)

        self.running = False
        self.tasks: List[asyncio.Task] = []
        self.api_server = None

    async def start(self):
        """Start all server services"""
        logger.info("Starting RA2 HomeKit Inspector Local Server...")

        try:
            await self.db.initialize()

            self.running = True

            # Repeater lookup and login can take a while; the API comes up meanwhile
            self.tasks = [
                asyncio.create_task(self._startup_sequence())
            ]

            logger.info(f"All services started successfully ({len(self.tasks)} background tasks)")

            await self._start_api_server()

        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all server services gracefully"""
        if not self.running and not self.tasks:
            return
        logger.info("Stopping server...")
        self.running = False
        if self.api_server:
            self.api_server.should_exit = True

        for task in self.tasks:
            task.cancel()

        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        await self.inspector.disconnect()
        await self.db.close()
        logger.info("Server stopped")

    async def _startup_sequence(self):
        """Discover, connect and load both inventories as configured"""
        settings = self.repeater_settings

        if not self.inspector.repeater_host and settings.auto_discover:
            logger.info("[LAUNCH] No repeater address configured - scanning local network...")
            try:
                await self.inspector.discover_repeater()
            except Exception as e:
                logger.error(f"[LAUNCH] Repeater discovery failed: {e}")

        if settings.auto_connect and self.inspector.repeater_host:
            try:
                await self.inspector.connect()
            except (RA2Error, ValueError) as e:
                logger.error(f"[LAUNCH] Could not connect to repeater: {e}")

        if self.inspector.repeater_host or settings.inventory_source == 'file':
            try:
                await self.inspector.refresh_ra2_devices()
            except Exception as e:
                logger.error(f"[LAUNCH] Could not load RA2 inventory: {e}")

        try:
            await self.inspector.refresh_accessories()
        except Exception as e:
            logger.error(f"[LAUNCH] Could not load HomeKit accessories: {e}")

        logger.info(f"[SUCCESS] Startup complete: repeater={self.inspector.repeater_host}, "
                    f"state={self.inspector.client.state.value}, "
                    f"{len(self.inspector.ra2_devices)} RA2 devices, "
                    f"{len(self.inspector.accessories)} HomeKit accessories")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        self.api_server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        if self.db.enabled:
            logger.info("Database enabled - credentials and diagnostic history are persisted")
        else:
            logger.info("Database disabled - results kept in memory only")

        await self.api_server.serve()
