"""
RadioRA 2 integration protocol client

Owns one Telnet-style TCP session to the Main Repeater. All writes go through
a single lock and a single receive task owns the line buffer, so concurrent
callers are serialized by the client.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from . import protocol
from .exceptions import (
    RA2AuthenticationError,
    RA2ConnectionError,
    RA2InvalidLevelError,
    RA2NotConnectedError,
    RA2TimeoutError,
)
from .protocol import (
    DeviceInfoEvent,
    ErrorEvent,
    LoginPrompt,
    LoginSuccess,
    ProtocolEvent,
    RA2Command,
    ZoneLevelEvent,
)

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024
IDENTIFY_FADE_SECONDS = 0.5
IDENTIFY_PAUSE_SECONDS = 1.0


class ConnectionState(Enum):
    """Session state machine"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_LOGIN = "awaiting_login"
    READY = "ready"
    FAILED = "failed"


class RA2Client:
    """Async client for the Lutron integration protocol"""

    def __init__(self, connect_timeout: float = 5.0, login_timeout: float = 5.0, query_timeout: float = 2.0):
        self.connect_timeout = connect_timeout
        self.login_timeout = login_timeout
        self.query_timeout = query_timeout

        self.state = ConnectionState.DISCONNECTED
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self.last_error: Optional[str] = None

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._send_lock = asyncio.Lock()
        self._buffer = ""

        self._login_future: Optional[asyncio.Future] = None
        self._login_sent = False
        self._login_prompts = 0

        # integration_id -> futures awaiting the next ~OUTPUT report
        self._pending_levels: Dict[int, List[asyncio.Future]] = {}
        self._event_callbacks: List[Callable[[ProtocolEvent], None]] = []

        self.zone_levels: Dict[int, float] = {}
        self.device_names: Dict[int, str] = {}

    @classmethod
    def from_settings(cls, settings) -> "RA2Client":
        """Build a client from config_loader.RepeaterSettings"""
        return cls(
            connect_timeout=settings.connect_timeout_seconds,
            login_timeout=settings.login_timeout_seconds,
            query_timeout=settings.query_timeout_seconds,
        )

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.READY

    def add_event_callback(self, callback: Callable[[ProtocolEvent], None]):
        """Register a listener called for every parsed event"""
        self._event_callbacks.append(callback)

    # ================== CONNECTION MANAGEMENT ==================

    async def connect(self, host: str, port: int = 23, username: str = "lutron", password: str = "integration"):
        """
        Open the session and log in.

        Returns once the repeater has shown the GNET> prompt, so commands
        issued afterwards never race the login exchange.
        """
        if self._writer is not None:
            await self.disconnect()

        self.host = host
        self.port = port
        self.last_error = None
        self.state = ConnectionState.CONNECTING
        logger.info(f"[RA2] Connecting to {host}:{port}...")

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self.connect_timeout
            )
        except asyncio.TimeoutError:
            self._fail(f"connect to {host}:{port} timed out")
            raise RA2TimeoutError(f"Connecting to {host}:{port} timed out")
        except OSError as e:
            self._fail(str(e))
            raise RA2ConnectionError(str(e)) from e

        loop = asyncio.get_running_loop()
        self._buffer = ""
        self._login_prompts = 0
        self._login_sent = False
        self._login_future = loop.create_future()
        self._receive_task = asyncio.create_task(self._receive_loop())

        self.state = ConnectionState.AWAITING_LOGIN
        try:
            await self._write(protocol.login(username, password))
            self._login_sent = True
            await asyncio.wait_for(self._login_future, timeout=self.login_timeout)
        except asyncio.TimeoutError:
            await self._abort("login timed out")
            raise RA2TimeoutError(f"No login confirmation from {host}:{port}")
        except (RA2AuthenticationError, RA2ConnectionError):
            await self._abort(self.last_error or "login failed")
            raise

        self.state = ConnectionState.READY
        logger.info(f"[RA2] Logged in to {host}:{port} as {username}")

    async def disconnect(self):
        """Release the transport. Safe to call repeatedly."""
        writer = self._writer
        task = self._receive_task
        self._writer = None
        self._reader = None
        self._receive_task = None

        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"[RA2] Error while closing socket: {e}")
            logger.info(f"[RA2] Disconnected from {self.host}:{self.port}")

        self._fail_waiters(RA2NotConnectedError())
        if self.state != ConnectionState.FAILED:
            self.state = ConnectionState.DISCONNECTED

    async def _abort(self, reason: str):
        await self.disconnect()
        self.state = ConnectionState.FAILED
        self.last_error = reason

    def _fail(self, reason: str):
        self.state = ConnectionState.FAILED
        self.last_error = reason
        logger.error(f"[RA2] Connection failed: {reason}")

    # ================== TRANSMISSION ==================

    async def _write(self, command: RA2Command):
        if self._writer is None:
            raise RA2NotConnectedError()
        async with self._send_lock:
            logger.debug(f"[RA2] >> {command.redacted}")
            try:
                self._writer.write(command.to_bytes())
                await self._writer.drain()
            except (ConnectionError, OSError) as e:
                self._fail(str(e))
                raise RA2ConnectionError(str(e)) from e

    async def send_command(self, command: RA2Command):
        """Send a command on a ready session"""
        if self.state != ConnectionState.READY:
            raise RA2NotConnectedError()
        await self._write(command)

    async def _receive_loop(self):
        reader = self._reader
        try:
            while True:
                data = await reader.read(READ_CHUNK_BYTES)
                if not data:
                    logger.warning(f"[RA2] Repeater {self.host} closed the connection")
                    self._handle_closed("connection closed by repeater")
                    return
                self._buffer += data.decode("utf-8", errors="replace")
                lines, self._buffer = protocol.split_buffer(self._buffer)
                for line in lines:
                    self._dispatch(protocol.parse_line(line))
        except asyncio.CancelledError:
            raise
        except (ConnectionError, OSError) as e:
            logger.error(f"[RA2] Receive failed: {e}")
            self._handle_closed(str(e))

    def _handle_closed(self, reason: str):
        self._fail(reason)
        error = RA2ConnectionError(reason)
        if self._login_future and not self._login_future.done():
            self._login_future.set_exception(error)
        self._fail_waiters(error)

    def _dispatch(self, event: ProtocolEvent):
        logger.debug(f"[RA2] << {event}")

        if isinstance(event, LoginPrompt):
            self._login_prompts += 1
            # First prompt is the greeting; another one means the credentials were refused
            if self._login_sent and self._login_prompts > 1 and self.state == ConnectionState.AWAITING_LOGIN:
                self.last_error = "credentials rejected"
                if self._login_future and not self._login_future.done():
                    self._login_future.set_exception(RA2AuthenticationError())
        elif isinstance(event, LoginSuccess):
            if self._login_future and not self._login_future.done():
                self._login_future.set_result(True)
        elif isinstance(event, ZoneLevelEvent):
            self.zone_levels[event.integration_id] = event.level
            for waiter in self._pending_levels.pop(event.integration_id, []):
                if not waiter.done():
                    waiter.set_result(event.level)
        elif isinstance(event, DeviceInfoEvent):
            self.device_names[event.integration_id] = event.name
        elif isinstance(event, ErrorEvent):
            logger.warning(f"[RA2] Repeater reported: {event.message}")

        for callback in self._event_callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"[RA2] Event callback failed: {e}")

    def _fail_waiters(self, error: Exception):
        pending = self._pending_levels
        self._pending_levels = {}
        for waiters in pending.values():
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_exception(error)

    # ================== PUBLIC API ==================

    async def query_zone_level(self, integration_id: int) -> float:
        """Ask for a zone's level and wait for the matching ~OUTPUT report"""
        if self.state != ConnectionState.READY:
            raise RA2NotConnectedError()

        waiter = asyncio.get_running_loop().create_future()
        self._pending_levels.setdefault(integration_id, []).append(waiter)
        try:
            await self.send_command(protocol.query_zone_level(integration_id))
            return await asyncio.wait_for(waiter, timeout=self.query_timeout)
        except asyncio.TimeoutError:
            raise RA2TimeoutError(f"No level reported for integration ID {integration_id}")
        finally:
            waiters = self._pending_levels.get(integration_id)
            if waiters and waiter in waiters:
                waiters.remove(waiter)
                if not waiters:
                    del self._pending_levels[integration_id]

    async def set_zone_level(self, integration_id: int, level: int, fade_seconds: float = 0.0):
        """Command a zone level. Fire-and-forget: success means the line was sent."""
        if not 0 <= level <= 100:
            raise RA2InvalidLevelError(level)
        await self.send_command(protocol.set_zone_level(integration_id, level, fade_seconds))

    async def activate_scene(self, keypad_id: int, button: int):
        await self.send_command(protocol.activate_scene(keypad_id, button))

    async def query_devices(self):
        await self.send_command(protocol.query_devices())

    async def ping(self):
        await self.send_command(protocol.ping())

    async def identify_zone(self, integration_id: int):
        """Flash a zone full-off-full so it can be located"""
        await self.set_zone_level(integration_id, 100, IDENTIFY_FADE_SECONDS)
        await asyncio.sleep(IDENTIFY_PAUSE_SECONDS)
        await self.set_zone_level(integration_id, 0, IDENTIFY_FADE_SECONDS)
        await asyncio.sleep(IDENTIFY_PAUSE_SECONDS)
        await self.set_zone_level(integration_id, 100, IDENTIFY_FADE_SECONDS)
