"""
Network discovery methods for the RA2 Main Repeater
"""

import asyncio
import ipaddress
import logging
import re
import socket
import subprocess
import sys
from typing import List, Optional, Sequence

from .models import DiscoveredHost, NetworkInterface

logger = logging.getLogger(__name__)

PRIMARY_INTERFACE_PREFIXES = ("en", "eth", "wlan", "wl")
PREFERRED_PRIVATE_PREFIX = "192.168."
BANNER_KEYWORDS = ("login", "lutron", "gnet")

# ip -o -4 addr show:  "2: eth0    inet 192.168.1.23/24 brd 192.168.1.255 scope global eth0"
_IP_ADDR_RE = re.compile(r"^\d+:\s+(\S+)\s+inet\s+(\d{1,3}(?:\.\d{1,3}){3})/")
# ifconfig:  "en0: flags=8863<UP,...> mtu 1500" followed by "\tinet 192.168.1.5 netmask ..."
_IFCONFIG_HEADER_RE = re.compile(r"^([A-Za-z0-9_.-]+):\s+flags=")
_IFCONFIG_INET_RE = re.compile(r"^\s+inet\s+(?:addr:)?(\d{1,3}(?:\.\d{1,3}){3})")


def parse_ip_addr_output(output: str) -> List[NetworkInterface]:
    interfaces = []
    for line in output.splitlines():
        match = _IP_ADDR_RE.match(line)
        if match:
            interfaces.append(NetworkInterface(name=match.group(1), address=match.group(2)))
    return interfaces


def parse_ifconfig_output(output: str) -> List[NetworkInterface]:
    interfaces = []
    current = None
    for line in output.splitlines():
        header = _IFCONFIG_HEADER_RE.match(line)
        if header:
            current = header.group(1)
            continue
        inet = _IFCONFIG_INET_RE.match(line)
        if inet and current:
            interfaces.append(NetworkInterface(name=current, address=inet.group(1)))
    return interfaces


def _is_loopback(interface: NetworkInterface) -> bool:
    return interface.name.startswith("lo") or interface.address.startswith("127.")


def select_local_ipv4(interfaces: Sequence[NetworkInterface]) -> Optional[str]:
    """
    Pick the address to scan from.

    Loopback is never chosen; primary-looking interfaces (en*, eth*, wlan*)
    beat others, and within the chosen group a 192.168.x.x address wins.
    """
    candidates = [i for i in interfaces if not _is_loopback(i)]
    if not candidates:
        return None

    primary = [i for i in candidates if i.name.startswith(PRIMARY_INTERFACE_PREFIXES)]
    pool = primary or candidates

    for interface in pool:
        if interface.address.startswith(PREFERRED_PRIVATE_PREFIX):
            return interface.address
    return pool[0].address


def network_prefix_of(address: str) -> Optional[str]:
    """First three octets of the /24 holding address, None if it is not IPv4"""
    try:
        network = ipaddress.IPv4Network(f"{ipaddress.IPv4Address(address)}/24", strict=False)
    except ValueError:
        return None
    return str(network.network_address).rsplit(".", 1)[0]


def build_candidate_addresses(prefix: str, priority_suffixes: Sequence[int]) -> List[str]:
    """Common static addresses first, then .1-.254 in order, no duplicates"""
    addresses = []
    seen = set()
    for suffix in list(priority_suffixes) + list(range(1, 255)):
        if not 1 <= suffix <= 254 or suffix in seen:
            continue
        seen.add(suffix)
        addresses.append(f"{prefix}.{suffix}")
    return addresses


def classify_banner(text: str) -> bool:
    """True when a banner looks like a Lutron integration port"""
    lowered = text.lower()
    return any(keyword in lowered for keyword in BANNER_KEYWORDS)


class NetworkDiscovery:
    """Local interface lookup and single-host TCP probes"""

    def __init__(self, settings):
        # settings is a config_loader.ScannerSettings
        self.settings = settings

    def list_interfaces(self) -> List[NetworkInterface]:
        """IPv4 addresses of local interfaces, best effort"""
        if sys.platform.startswith("linux"):
            commands = [["ip", "-o", "-4", "addr", "show"], ["ifconfig"]]
        else:
            commands = [["ifconfig"]]

        for command in commands:
            try:
                output = subprocess.check_output(command, text=True, stderr=subprocess.DEVNULL, timeout=5)
            except (OSError, subprocess.SubprocessError) as e:
                logger.debug(f"Interface listing with {command[0]} failed: {e}")
                continue
            parser = parse_ip_addr_output if command[0] == "ip" else parse_ifconfig_output
            interfaces = parser(output)
            if interfaces:
                return interfaces

        fallback = self._default_route_address()
        return [NetworkInterface(name="default", address=fallback)] if fallback else []

    def _default_route_address(self) -> Optional[str]:
        # A UDP connect sends nothing but makes the kernel pick the outbound address
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.connect(("192.0.2.1", 9))
            return sock.getsockname()[0]
        except OSError as e:
            logger.warning(f"Could not determine default route address: {e}")
            return None
        finally:
            sock.close()

    def get_local_ip_address(self) -> Optional[str]:
        interfaces = self.list_interfaces()
        if self.settings.interface:
            interfaces = [i for i in interfaces if i.name == self.settings.interface]
        address = select_local_ipv4(interfaces)
        logger.debug(f"Local interfaces: {interfaces} -> {address}")
        return address

    def get_network_prefix(self) -> Optional[str]:
        local_ip = self.get_local_ip_address()
        if not local_ip:
            return None
        return network_prefix_of(local_ip)

    async def probe_host(self, address: str, port: Optional[int] = None) -> Optional[DiscoveredHost]:
        """Connect, read one banner, classify. None on timeout or refusal."""
        port = port or self.settings.port
        try:
            return await asyncio.wait_for(self._read_banner(address, port),
                                          timeout=self.settings.probe_timeout_seconds)
        except (asyncio.TimeoutError, OSError):
            return None

    async def _read_banner(self, address: str, port: int) -> DiscoveredHost:
        reader, writer = await asyncio.open_connection(address, port)
        try:
            data = await reader.read(self.settings.probe_read_bytes)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        text = data.decode("utf-8", errors="replace")
        return DiscoveredHost(
            ip_address=address,
            port=port,
            is_lutron=classify_banner(text),
            response_text=text or None
        )
