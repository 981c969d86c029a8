# HTTP Helper for Repeater Connections
# Session configuration for the Main Repeater's built-in web server

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_repeater_session(timeout_seconds: float = 10) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for the repeater's web server (HTTP only)
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # The repeater serves very few concurrent clients
        ssl=False,                  # Repeater web server is HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
