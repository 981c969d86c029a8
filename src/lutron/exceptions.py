"""
Exceptions raised by the Lutron integration protocol client
"""


class RA2Error(Exception):
    """Base class for RadioRA 2 client errors"""


class RA2ConnectionError(RA2Error):
    """Transport failure while connecting, sending or receiving"""

    def __init__(self, reason: str):
        super().__init__(f"Connection failed: {reason}")
        self.reason = reason


class RA2NotConnectedError(RA2Error):
    """Operation attempted while the session is not ready"""

    def __init__(self, message: str = "Not connected to RadioRA 2 Main Repeater"):
        super().__init__(message)


class RA2AuthenticationError(RA2Error):
    """Repeater rejected the integration credentials"""

    def __init__(self, message: str = "Authentication failed. Check username and password."):
        super().__init__(message)


class RA2TimeoutError(RA2Error, TimeoutError):
    """No answer from the repeater within the allotted time"""

    def __init__(self, message: str = "Connection timed out"):
        super().__init__(message)


class RA2InvalidLevelError(RA2Error, ValueError):
    """Zone level outside 0-100"""

    def __init__(self, level):
        super().__init__(f"Invalid level {level}. Must be 0-100.")
        self.level = level
