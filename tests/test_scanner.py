"""Tests for interface selection and the batched subnet scan."""

import asyncio
import threading
from typing import List, Optional

import pytest

from config_loader import ScannerSettings
from discovery.manager import RepeaterDiscovery
from discovery.models import DiscoveredHost, NetworkInterface, ScanStatus
from discovery.network_discovery import (
    NetworkDiscovery,
    build_candidate_addresses,
    classify_banner,
    network_prefix_of,
    parse_ifconfig_output,
    parse_ip_addr_output,
    select_local_ipv4,
)

IP_ADDR_OUTPUT = """\
1: lo    inet 127.0.0.1/8 scope host lo\\       valid_lft forever preferred_lft forever
2: eth0    inet 10.0.0.5/24 brd 10.0.0.255 scope global eth0\\       valid_lft forever preferred_lft forever
3: docker0    inet 172.17.0.1/16 brd 172.17.255.255 scope global docker0\\       valid_lft forever
"""

IFCONFIG_OUTPUT = """\
lo0: flags=8049<UP,LOOPBACK,RUNNING,MULTICAST> mtu 16384
\tinet 127.0.0.1 netmask 0xff000000
en0: flags=8863<UP,BROADCAST,SMART,RUNNING,SIMPLEX,MULTICAST> mtu 1500
\tether 3c:22:fb:00:00:01
\tinet 192.168.1.23 netmask 0xffffff00 broadcast 192.168.1.255
utun0: flags=8051<UP,POINTOPOINT,RUNNING,MULTICAST> mtu 1380
"""


def test_parse_ip_addr_output():
    interfaces = parse_ip_addr_output(IP_ADDR_OUTPUT)
    assert interfaces == [
        NetworkInterface("lo", "127.0.0.1"),
        NetworkInterface("eth0", "10.0.0.5"),
        NetworkInterface("docker0", "172.17.0.1"),
    ]


def test_parse_ifconfig_output():
    interfaces = parse_ifconfig_output(IFCONFIG_OUTPUT)
    assert interfaces == [NetworkInterface("lo0", "127.0.0.1"), NetworkInterface("en0", "192.168.1.23")]


def test_select_skips_loopback():
    assert select_local_ipv4([NetworkInterface("lo", "127.0.0.1")]) is None


def test_select_prefers_primary_interface():
    interfaces = [NetworkInterface("docker0", "192.168.50.1"), NetworkInterface("eth0", "10.0.0.5")]
    assert select_local_ipv4(interfaces) == "10.0.0.5"


def test_select_prefers_192_168_within_primary():
    interfaces = [NetworkInterface("en1", "10.1.1.4"), NetworkInterface("en0", "192.168.1.23")]
    assert select_local_ipv4(interfaces) == "192.168.1.23"


def test_select_falls_back_to_other_interfaces():
    assert select_local_ipv4([NetworkInterface("bridge0", "10.9.9.9")]) == "10.9.9.9"


@pytest.mark.parametrize("address,prefix", [
    ("192.168.1.23", "192.168.1"),
    ("10.0.0.5", "10.0.0"),
    ("not-an-address", None),
    ("a.b.c.d", None),
    ("300.1.1.1", None),
    ("192.168.1", None),
])
def test_network_prefix_of(address, prefix):
    assert network_prefix_of(address) == prefix


def test_candidate_addresses_priority_first_without_duplicates():
    addresses = build_candidate_addresses("192.168.1", [1, 2, 10, 100, 101, 200, 254])
    assert addresses[:7] == ["192.168.1.1", "192.168.1.2", "192.168.1.10", "192.168.1.100",
                             "192.168.1.101", "192.168.1.200", "192.168.1.254"]
    assert addresses[7] == "192.168.1.3"
    assert len(addresses) == 254
    assert len(set(addresses)) == 254


@pytest.mark.parametrize("banner,expected", [
    ("login: ", True),
    ("Welcome to Lutron", True),
    ("GNET> ", True),
    ("SSH-2.0-OpenSSH_9.0", False),
    ("", False),
])
def test_classify_banner(banner, expected):
    assert classify_banner(banner) is expected


class FakeNetwork:
    """Probe stub: answers from a table, records every address probed."""

    def __init__(self, answers, delay: float = 0.0):
        self.answers = answers
        self.delay = delay
        self.probed: List[str] = []

    def get_network_prefix(self) -> Optional[str]:
        return "10.0.0"

    async def probe_host(self, address: str, port: Optional[int] = None) -> Optional[DiscoveredHost]:
        self.probed.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        banner = self.answers.get(address)
        if banner is None:
            return None
        return DiscoveredHost(address, port or 23, classify_banner(banner), banner)


def make_scanner(answers, batch_size: int = 20, delay: float = 0.0):
    settings = ScannerSettings(batch_size=batch_size)
    network = FakeNetwork(answers, delay)
    return RepeaterDiscovery(settings, network=network), network


@pytest.mark.asyncio
async def test_scan_stops_after_batch_with_repeater():
    """Only the first batch is probed when it holds the repeater."""
    scanner, network = make_scanner({"10.0.0.1": "SSH-2.0", "10.0.0.10": "login: "})
    hosts = await scanner.scan_for_repeaters()
    assert len(network.probed) == 20
    assert hosts[0].ip_address == "10.0.0.10"
    assert hosts[0].is_lutron
    assert [h.ip_address for h in hosts] == ["10.0.0.10", "10.0.0.1"]
    assert scanner.last_result.stopped_early
    assert scanner.progress.status == ScanStatus.COMPLETED


@pytest.mark.asyncio
async def test_scan_covers_whole_subnet_without_repeater():
    scanner, network = make_scanner({"10.0.0.50": "HTTP/1.1 400"}, batch_size=64)
    hosts = await scanner.scan_for_repeaters()
    assert len(network.probed) == 254
    assert [h.ip_address for h in hosts] == ["10.0.0.50"]
    assert not hosts[0].is_lutron
    assert scanner.last_result.repeater is None
    assert not scanner.last_result.stopped_early


@pytest.mark.asyncio
async def test_scan_reports_progress_for_every_probe():
    progress = []
    scanner, _ = make_scanner({"10.0.0.2": "Lutron"})
    await scanner.scan_for_repeaters(progress_callback=lambda scanned, total: progress.append((scanned, total)))
    assert progress == [(i, 254) for i in range(1, 21)]


@pytest.mark.asyncio
async def test_concurrent_scan_returns_empty():
    scanner, _ = make_scanner({}, delay=0.05, batch_size=254)
    first = asyncio.create_task(scanner.scan_for_repeaters())
    await asyncio.sleep(0)
    assert scanner.is_scanning
    assert await scanner.scan_for_repeaters() == []
    await first
    assert not scanner.is_scanning


@pytest.mark.asyncio
async def test_scan_without_network_prefix_fails_cleanly():
    scanner, network = make_scanner({})
    network.get_network_prefix = lambda: None
    assert await scanner.scan_for_repeaters() == []
    assert scanner.progress.status == ScanStatus.FAILED


@pytest.mark.asyncio
async def test_probe_host_reads_banner():
    """A real probe against a local listener."""
    async def greet(reader, writer):
        writer.write(b"login: ")
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(greet, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        network = NetworkDiscovery(ScannerSettings(port=port, probe_timeout_seconds=1.0))
        host = await network.probe_host("127.0.0.1")
    finally:
        server.close()
        await server.wait_closed()

    assert host is not None
    assert host.is_lutron
    assert host.response_text == "login: "


@pytest.mark.asyncio
async def test_probe_host_returns_none_when_refused():
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    network = NetworkDiscovery(ScannerSettings(port=port, probe_timeout_seconds=0.5))
    assert await network.probe_host("127.0.0.1") is None


@pytest.mark.asyncio
async def test_prefix_lookup_runs_off_the_event_loop():
    """Interface lookup blocks on a subprocess, so it must not run on the loop thread."""
    scanner, network = make_scanner({"10.0.0.1": "login: "})
    lookup_threads = []

    def get_network_prefix():
        lookup_threads.append(threading.get_ident())
        return "10.0.0"

    network.get_network_prefix = get_network_prefix
    await scanner.scan_for_repeaters()

    assert lookup_threads and lookup_threads[0] != threading.get_ident()


@pytest.mark.asyncio
async def test_explicit_prefix_skips_interface_lookup():
    scanner, network = make_scanner({"192.168.7.1": "login: "})
    network.get_network_prefix = lambda: pytest.fail("interface lookup should not run")
    hosts = await scanner.scan_for_repeaters(network_prefix="192.168.7")
    assert hosts[0].ip_address == "192.168.7.1"
