"""
Database module for credentials and diagnostic history
"""

from .manager import DatabaseManager, CredentialNotFoundError
from .models import CredentialRecord, DiagnosticRecord, BrightnessRecord

__all__ = ['DatabaseManager', 'CredentialNotFoundError', 'CredentialRecord', 'DiagnosticRecord', 'BrightnessRecord']
