"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line
"""

import logging
import os

from config_loader import load_config, setup_logging, RepeaterSettings, ScannerSettings
from database.manager import DatabaseManager
from api.main_api import InspectorAPI
from services.inspector import InspectorService

# Configuration path follows the console entry point
config = load_config(os.environ.get('CONFIG_FILE', 'config/config.yaml'))
setup_logging(config)

logger = logging.getLogger(__name__)

logger.info("Initializing application components...")

repeater_settings = RepeaterSettings.from_config(config)
scanner_settings = ScannerSettings.from_config(config)

db = DatabaseManager(config)
inspector = InspectorService(config, repeater_settings, scanner_settings, db)

# Create API (which contains the FastAPI app)
api = InspectorAPI(inspector, db, config)

# Expose the FastAPI app for uvicorn
app = api.app

@app.on_event("startup")
async def startup_event():
    """Initialize database and, if configured, the repeater session"""
    logger.info("Starting up application...")
    await db.initialize()

    if repeater_settings.auto_connect and inspector.repeater_host:
        try:
            await inspector.connect()
            await inspector.refresh_ra2_devices()
        except Exception as e:
            logger.error(f"Could not connect to repeater: {e}")

    try:
        await inspector.refresh_accessories()
    except Exception as e:
        logger.error(f"Could not load HomeKit accessories: {e}")

@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources on shutdown"""
    logger.info("Shutting down application...")
    await inspector.disconnect()
    await db.close()
    logger.info("Application shut down complete")

logger.info("ASGI app ready for uvicorn")
