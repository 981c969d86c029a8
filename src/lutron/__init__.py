"""
Lutron RadioRA 2 integration protocol package
"""

from .client import ConnectionState, RA2Client
from .exceptions import (
    RA2AuthenticationError,
    RA2ConnectionError,
    RA2Error,
    RA2InvalidLevelError,
    RA2NotConnectedError,
    RA2TimeoutError,
)
from .protocol import (
    DeviceInfoEvent,
    ErrorEvent,
    LoginPrompt,
    LoginSuccess,
    ProtocolEvent,
    RA2Command,
    UnknownEvent,
    ZoneLevelEvent,
    parse_line,
    split_buffer,
)

__all__ = [
    'RA2Client', 'ConnectionState',
    'RA2Error', 'RA2ConnectionError', 'RA2NotConnectedError', 'RA2AuthenticationError',
    'RA2TimeoutError', 'RA2InvalidLevelError',
    'RA2Command', 'ProtocolEvent', 'LoginPrompt', 'LoginSuccess', 'ZoneLevelEvent',
    'DeviceInfoEvent', 'ErrorEvent', 'UnknownEvent', 'parse_line', 'split_buffer',
]
