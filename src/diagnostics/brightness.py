"""
High-end trim detection

Drives a dimmer to 100%, reads back what the repeater reports and restores
the previous level. A dimmer that settles below 100% has a trim configured.
"""

import asyncio
import logging
from typing import List

from inventory.models import RA2Device
from .exceptions import NotDimmableError
from .models import BrightnessTestResult

logger = logging.getLogger(__name__)

FULL_LEVEL = 100


class BrightnessTester:
    """Runs brightness trim tests through an RA2Client"""

    def __init__(self, client, settle_seconds: float = 1.5, fade_seconds: float = 1.0):
        self.client = client
        self.settle_seconds = settle_seconds
        self.fade_seconds = fade_seconds

    async def run_test(self, device: RA2Device) -> BrightnessTestResult:
        if not device.device_type.supports_level:
            raise NotDimmableError(device.name)

        original_level = device.current_level if device.current_level is not None else 0
        logger.info(f"[TRIM] Testing {device.display_name} (ID {device.integration_id}), "
                    f"original level {original_level}%")

        await self.client.set_zone_level(device.integration_id, FULL_LEVEL, self.fade_seconds)
        try:
            # Fades are assumed to finish inside the settle window
            await asyncio.sleep(self.settle_seconds)
            observed = await self.client.query_zone_level(device.integration_id)
        finally:
            await self._restore_level(device, original_level)

        result = BrightnessTestResult.from_levels(device, FULL_LEVEL, observed)
        logger.info(f"[TRIM] {device.display_name}: observed {result.observed_level}% -> {result.trim_status.value}")
        return result

    async def _restore_level(self, device: RA2Device, level: int):
        try:
            await self.client.set_zone_level(device.integration_id, level, self.fade_seconds)
        except Exception as e:
            logger.error(f"[TRIM] Could not restore {device.display_name} (ID {device.integration_id}) "
                         f"to {level}%: {e}")

    async def run_bulk_test(self, devices: List[RA2Device]) -> List[BrightnessTestResult]:
        """
        Test every dimmable device in turn.

        A device that fails is skipped, so fewer results than dimmers means
        some tests did not complete.
        """
        results = []
        dimmable = [d for d in devices if d.device_type.supports_level]
        logger.info(f"[TRIM] Bulk test of {len(dimmable)} dimmable devices")

        for device in dimmable:
            try:
                results.append(await self.run_test(device))
            except Exception as e:
                logger.warning(f"[TRIM] Skipping {device.display_name} (ID {device.integration_id}): {e}")
                continue

        logger.info(f"[TRIM] Bulk test complete: {len(results)}/{len(dimmable)} devices tested")
        return results
