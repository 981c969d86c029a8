"""
Configuration loader for the RA2 HomeKit Inspector server
Loads and validates configuration from YAML files
"""

import yaml
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_SUFFIXES = [1, 2, 10, 100, 101, 200, 254]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise


def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    required_sections = ['ra2', 'network']

    for section in required_sections:
        if section not in config or config[section] is None:
            raise ValueError(f"Missing required configuration section: {section}")

    # Validate repeater section
    ra2 = config['ra2']
    port = ra2.get('port', 23)
    if not isinstance(port, int) or not 1 <= port <= 65535:
        raise ValueError(f"ra2.port must be an integer between 1 and 65535, got {port!r}")

    source = ra2.get('inventory_source', 'repeater')
    if source not in ('repeater', 'file'):
        raise ValueError(f"ra2.inventory_source must be 'repeater' or 'file', got {source!r}")
    if source == 'file' and not ra2.get('inventory_file'):
        raise ValueError("ra2.inventory_file is required when ra2.inventory_source is 'file'")

    # Validate network section
    network = config['network']
    if network.get('batch_size', 20) < 1:
        raise ValueError("network.batch_size must be at least 1")
    if network.get('probe_timeout_seconds', 1.0) <= 0:
        raise ValueError("network.probe_timeout_seconds must be positive")

    # Validate database section only when persistence is switched on
    db = config.get('database') or {}
    if db.get('enabled', False):
        required_db_fields = ['host', 'port', 'database', 'username', 'password']
        for field_name in required_db_fields:
            if field_name not in db:
                raise ValueError(f"Missing required database field: {field_name}")


def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    sections = {
        'site': {
            'name': 'Home',
            'timezone': 'America/New_York'
        },
        'ra2': {
            'host': '',
            'port': 23,
            'username': 'lutron',
            'password': None,
            'connect_timeout_seconds': 5.0,
            'login_timeout_seconds': 5.0,
            'query_timeout_seconds': 2.0,
            'auto_connect': False,
            'auto_discover': True,
            'inventory_source': 'repeater',
            'inventory_file': None
        },
        'network': {
            'scan_port': 23,
            'batch_size': 20,
            'probe_timeout_seconds': 1.0,
            'probe_read_bytes': 1024,
            'priority_suffixes': list(DEFAULT_PRIORITY_SUFFIXES),
            'interface': None
        },
        'homekit': {
            'snapshot_file': 'config/homekit_accessories.yaml'
        },
        'diagnostics': {
            'similarity_threshold': 0.6,
            'brightness_settle_seconds': 1.5,
            'brightness_fade_seconds': 1.0
        },
        'database': {
            'enabled': False
        },
        'api': {
            'host': '0.0.0.0',
            'port': 8000,
            'cors_origins': ['*']
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/inspector_server.log',
            'console_output': True
        }
    }

    for section, defaults in sections.items():
        if config.get(section) is None:
            config[section] = {}
        for key, default_value in defaults.items():
            if key not in config[section]:
                config[section][key] = default_value

    return config


@dataclass
class RepeaterSettings:
    """Connection settings for the RA2 Main Repeater, built once at startup"""
    host: str = ""
    port: int = 23
    username: str = "lutron"
    password: Optional[str] = None
    connect_timeout_seconds: float = 5.0
    login_timeout_seconds: float = 5.0
    query_timeout_seconds: float = 2.0
    auto_connect: bool = False
    auto_discover: bool = True
    inventory_source: str = "repeater"
    inventory_file: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict) -> "RepeaterSettings":
        ra2 = config.get('ra2', {})
        return cls(
            host=ra2.get('host') or "",
            port=int(ra2.get('port', 23)),
            username=ra2.get('username', 'lutron'),
            password=ra2.get('password'),
            connect_timeout_seconds=float(ra2.get('connect_timeout_seconds', 5.0)),
            login_timeout_seconds=float(ra2.get('login_timeout_seconds', 5.0)),
            query_timeout_seconds=float(ra2.get('query_timeout_seconds', 2.0)),
            auto_connect=bool(ra2.get('auto_connect', False)),
            auto_discover=bool(ra2.get('auto_discover', True)),
            inventory_source=ra2.get('inventory_source', 'repeater'),
            inventory_file=ra2.get('inventory_file')
        )


@dataclass
class ScannerSettings:
    """Subnet scan settings, built once at startup"""
    port: int = 23
    batch_size: int = 20
    probe_timeout_seconds: float = 1.0
    probe_read_bytes: int = 1024
    priority_suffixes: List[int] = field(default_factory=lambda: list(DEFAULT_PRIORITY_SUFFIXES))
    interface: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict) -> "ScannerSettings":
        network = config.get('network', {})
        return cls(
            port=int(network.get('scan_port', 23)),
            batch_size=int(network.get('batch_size', 20)),
            probe_timeout_seconds=float(network.get('probe_timeout_seconds', 1.0)),
            probe_read_bytes=int(network.get('probe_read_bytes', 1024)),
            priority_suffixes=list(network.get('priority_suffixes') or DEFAULT_PRIORITY_SUFFIXES),
            interface=network.get('interface')
        )


class SiteTimeFormatter(logging.Formatter):
    """Formatter that renders timestamps in the site's local timezone"""

    def __init__(self, fmt=None, timezone_name: str = 'America/New_York'):
        super().__init__(fmt)
        try:
            self.site_tz = pytz.timezone(timezone_name)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {timezone_name!r}, falling back to UTC")
            self.site_tz = pytz.utc

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.site_tz)
        if datefmt:
            return dt.strftime(datefmt)
        # Default format: YYYY-MM-DD HH:MM:SS EDT
        return dt.strftime('%Y-%m-%d %H:%M:%S %Z')


def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with site-local timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    timezone_name = config.get('site', {}).get('timezone', 'America/New_York')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = SiteTimeFormatter(log_format, timezone_name)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logging.getLogger().addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={timezone_name}, "
                f"console={log_config.get('console_output', True)}, file={log_file}")


def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "site": {
            "name": "Main House",
            "timezone": "America/New_York"
        },
        "ra2": {
            "host": "",                     # Empty: discover the repeater on the local /24
            "port": 23,
            "username": "lutron",
            "password": "integration",      # Omit to use the stored credential
            "connect_timeout_seconds": 5.0,
            "login_timeout_seconds": 5.0,
            "query_timeout_seconds": 2.0,
            "auto_connect": True,
            "auto_discover": True,
            "inventory_source": "repeater",  # "repeater" reads DbXmlInfo.xml, "file" reads inventory_file
            "inventory_file": None
        },
        "network": {
            "scan_port": 23,
            "batch_size": 20,
            "probe_timeout_seconds": 1.0,
            "probe_read_bytes": 1024,
            "priority_suffixes": list(DEFAULT_PRIORITY_SUFFIXES),
            "interface": None
        },
        "homekit": {
            "snapshot_file": "config/homekit_accessories.yaml"
        },
        "diagnostics": {
            "similarity_threshold": 0.6,
            "brightness_settle_seconds": 1.5,
            "brightness_fade_seconds": 1.0
        },
        "database": {
            "enabled": True,
            "host": "localhost",
            "port": 5432,
            "database": "ra2_inspector",
            "username": "postgres",
            "password": "postgres"
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000,
            "cors_origins": ["*"]
        },
        "logging": {
            "level": "INFO",
            "file": "logs/inspector_server.log",
            "console_output": True
        }
    }
