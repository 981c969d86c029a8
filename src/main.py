"""
RA2 HomeKit Inspector Local Server - Main Entry Point

Usage:
    CONFIG_FILE=config/config.yaml ra2-inspector
"""

import asyncio
import logging
import os
import signal
import sys

from services.inspector_server import InspectorServer

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config/config.yaml'


async def main(config_path: str = None) -> int:
    """Run the inspector server until it exits or a stop signal arrives"""
    config_path = config_path or os.environ.get('CONFIG_FILE', DEFAULT_CONFIG_PATH)

    try:
        # Logging is configured by the server from the same file
        server = InspectorServer(config_path=config_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Invalid configuration {config_path}: {e}", file=sys.stderr)
        return 2

    logger.info(f"[LAUNCH] Configuration: {config_path}, repeater: "
                f"{server.repeater_settings.host or 'auto-discover'}")

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, lambda s=signum: _request_stop(server, s))
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises KeyboardInterrupt
            pass

    try:
        await server.start()
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        await server.stop()

    return 0


def _request_stop(server: InspectorServer, signum: int):
    logger.info(f"Received signal {signum}, shutting down...")
    asyncio.create_task(server.stop())


def run():
    """Console script entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
