"""
Main discovery manager: batched subnet scan for the RA2 Main Repeater
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .models import DiscoveredHost, ScanProgress, ScanResult, ScanStatus
from .network_discovery import NetworkDiscovery, build_candidate_addresses

logger = logging.getLogger(__name__)


class RepeaterDiscovery:
    """Scans the local /24 for hosts answering on the integration port"""

    def __init__(self, settings, network: Optional[NetworkDiscovery] = None):
        # settings is a config_loader.ScannerSettings
        self.settings = settings
        self.network = network or NetworkDiscovery(settings)
        self.progress = ScanProgress()
        self.last_result: Optional[ScanResult] = None
        self._scanning = False

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    async def scan_for_repeaters(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        network_prefix: Optional[str] = None,
    ) -> List[DiscoveredHost]:
        """
        Scan the subnet and return responding hosts, Lutron-looking ones first.

        Only one scan runs at a time; a request made while one is in flight
        gets an empty list straight away.
        """
        if self._scanning:
            logger.warning("[SCAN] Scan already in progress - ignoring request")
            return []

        self._scanning = True
        try:
            result = await self._run_scan(progress_callback, network_prefix)
        except Exception as e:
            self.progress.status = ScanStatus.FAILED
            self.progress.error = str(e)
            logger.error(f"[SCAN] Scan failed: {e}")
            raise
        finally:
            self._scanning = False

        self.last_result = result
        return result.hosts

    async def _run_scan(self, progress_callback, network_prefix: Optional[str]) -> ScanResult:
        start_time = time.time()
        prefix = network_prefix
        if not prefix:
            # Interface lookup shells out to ip/ifconfig
            loop = asyncio.get_running_loop()
            prefix = await loop.run_in_executor(None, self.network.get_network_prefix)
        if not prefix:
            logger.error("[SCAN] Could not determine the local network prefix")
            self.progress = ScanProgress(status=ScanStatus.FAILED, error="No local IPv4 address found")
            return ScanResult()

        addresses = build_candidate_addresses(prefix, self.settings.priority_suffixes)
        total = len(addresses)
        batch_size = self.settings.batch_size
        self.progress = ScanProgress(status=ScanStatus.IN_PROGRESS, addresses_total=total, network_prefix=prefix)
        logger.info(f"[SCAN] Scanning {total} addresses on {prefix}.0/24 port {self.settings.port} "
                    f"in batches of {batch_size}")

        found: List[DiscoveredHost] = []
        scanned = 0
        stopped_early = False

        for start in range(0, total, batch_size):
            batch = addresses[start:start + batch_size]
            tasks = [asyncio.create_task(self.network.probe_host(address, self.settings.port)) for address in batch]

            for completed in asyncio.as_completed(tasks):
                try:
                    host = await completed
                except Exception as e:
                    logger.debug(f"[SCAN] Probe error: {e}")
                    host = None

                scanned += 1
                if host:
                    found.append(host)
                    logger.info(f"[SCAN] {host.display_name} answered on port {host.port}")

                self.progress.addresses_scanned = scanned
                self.progress.hosts_found = len(found)
                await self._report(progress_callback, scanned, total)

            if any(h.is_lutron for h in found):
                stopped_early = start + batch_size < total
                logger.info(f"[SCAN] Repeater found after {scanned}/{total} addresses - stopping")
                break

        # Stable sort keeps discovery order within each group
        hosts = sorted(found, key=lambda h: not h.is_lutron)
        duration = time.time() - start_time
        self.progress.status = ScanStatus.COMPLETED
        logger.info(f"[SCAN] Complete: {len(hosts)} hosts responded, scanned {scanned}/{total} in {duration:.1f}s")

        return ScanResult(
            hosts=hosts,
            network_prefix=prefix,
            addresses_scanned=scanned,
            addresses_total=total,
            duration_seconds=duration,
            stopped_early=stopped_early
        )

    async def _report(self, progress_callback, scanned: int, total: int):
        if not progress_callback:
            return
        try:
            outcome = progress_callback(scanned, total)
            if asyncio.iscoroutine(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"[SCAN] Progress callback failed: {e}")

    async def quick_check(self, address: str, port: Optional[int] = None) -> Optional[DiscoveredHost]:
        """Probe one address"""
        return await self.network.probe_host(address, port or self.settings.port)
