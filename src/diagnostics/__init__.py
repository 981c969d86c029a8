"""
Reconciliation and brightness diagnostics
"""

from .brightness import BrightnessTester
from .exceptions import DiagnosticError, NoDevicesFoundError, NotDimmableError
from .models import BrightnessTestResult, DiagnosticResult, MismatchType, TrimStatus, classify_trim
from .reconciliation import compare_devices
from .similarity import levenshtein_distance, normalize_name, string_similarity

__all__ = [
    'BrightnessTester', 'compare_devices',
    'DiagnosticResult', 'BrightnessTestResult', 'MismatchType', 'TrimStatus', 'classify_trim',
    'DiagnosticError', 'NotDimmableError', 'NoDevicesFoundError',
    'levenshtein_distance', 'normalize_name', 'string_similarity',
]
