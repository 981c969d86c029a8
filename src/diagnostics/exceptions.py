"""
Diagnostic errors
"""


class DiagnosticError(Exception):
    """Base class for diagnostic failures"""


class NotDimmableError(DiagnosticError):
    """Brightness test requested for a device without level control"""

    def __init__(self, device_name: str = ""):
        message = "Device does not support dimming"
        if device_name:
            message = f"{message}: {device_name}"
        super().__init__(message)


class NoDevicesFoundError(DiagnosticError):
    """Nothing to test"""

    def __init__(self):
        super().__init__("No devices found to test")
