"""
Translation of domain errors into HTTP responses
"""

import asyncio
import logging

import aiohttp
from fastapi import HTTPException

from diagnostics.exceptions import DiagnosticError
from lutron.exceptions import RA2Error, RA2NotConnectedError, RA2TimeoutError

logger = logging.getLogger(__name__)


def http_error(error: Exception) -> HTTPException:
    """Map an exception raised by the service layer to an HTTPException"""
    if isinstance(error, HTTPException):
        return error

    if isinstance(error, (RA2TimeoutError, asyncio.TimeoutError, TimeoutError)):
        status_code = 504
    elif isinstance(error, (RA2NotConnectedError, DiagnosticError)):
        status_code = 409
    elif isinstance(error, ValueError):
        status_code = 400
    elif isinstance(error, (LookupError, FileNotFoundError)):
        status_code = 404
    elif isinstance(error, (RA2Error, aiohttp.ClientError, OSError)):
        status_code = 502
    else:
        status_code = 500

    if status_code == 500:
        logger.error(f"Unexpected API error: {error!r}")
    else:
        logger.warning(f"API request failed ({status_code}): {error}")
    return HTTPException(status_code=status_code, detail=str(error))
