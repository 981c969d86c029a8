"""
API module for repeater control and diagnostics
"""

from .main_api import InspectorAPI
from .system_routes import create_system_routes
from .discovery_routes import create_discovery_routes
from .ra2_routes import create_ra2_routes
from .homekit_routes import create_homekit_routes
from .diagnostics_routes import create_diagnostics_routes

__all__ = ['InspectorAPI', 'create_system_routes', 'create_discovery_routes', 'create_ra2_routes',
           'create_homekit_routes', 'create_diagnostics_routes']
