"""
Lutron integration protocol codec

Commands are encoded to CRLF-terminated ASCII lines and every received line
is mapped to exactly one event. No I/O happens here.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple, Union

LINE_TERMINATOR = "\r\n"
PROMPT_GNET = "GNET>"
PROMPT_LOGIN = "login:"
PROMPT_PASSWORD = "password:"

ACTION_ZONE_LEVEL = 1
ACTION_BUTTON_PRESS = 3


class CommandType(Enum):
    """Commands understood by the repeater"""
    LOGIN = "login"
    QUERY_ZONE_LEVEL = "query_zone_level"
    SET_ZONE_LEVEL = "set_zone_level"
    ACTIVATE_SCENE = "activate_scene"
    QUERY_DEVICES = "query_devices"
    PING = "ping"


@dataclass(frozen=True)
class RA2Command:
    """A single command ready to be written to the integration port"""
    command_type: CommandType
    args: Tuple = ()

    def encode(self) -> str:
        if self.command_type == CommandType.LOGIN:
            username, password = self.args
            return f"{username}{LINE_TERMINATOR}{password}{LINE_TERMINATOR}"
        if self.command_type == CommandType.QUERY_ZONE_LEVEL:
            (integration_id,) = self.args
            return f"?OUTPUT,{integration_id},{ACTION_ZONE_LEVEL}{LINE_TERMINATOR}"
        if self.command_type == CommandType.SET_ZONE_LEVEL:
            integration_id, level, fade_seconds = self.args
            return f"#OUTPUT,{integration_id},{ACTION_ZONE_LEVEL},{level},{fade_seconds:.2f}{LINE_TERMINATOR}"
        if self.command_type == CommandType.ACTIVATE_SCENE:
            keypad_id, button = self.args
            return f"#DEVICE,{keypad_id},{button},{ACTION_BUTTON_PRESS}{LINE_TERMINATOR}"
        # ?SYSTEM,1 doubles as a keepalive
        return f"?SYSTEM,1{LINE_TERMINATOR}"

    def to_bytes(self) -> bytes:
        return self.encode().encode("ascii")

    @property
    def redacted(self) -> str:
        """Wire text safe to log"""
        if self.command_type == CommandType.LOGIN:
            return f"{self.args[0]}\\r\\n********\\r\\n"
        return self.encode().replace("\r\n", "\\r\\n")


def login(username: str, password: str) -> RA2Command:
    return RA2Command(CommandType.LOGIN, (username, password))


def query_zone_level(integration_id: int) -> RA2Command:
    return RA2Command(CommandType.QUERY_ZONE_LEVEL, (integration_id,))


def set_zone_level(integration_id: int, level: int, fade_seconds: float = 0.0) -> RA2Command:
    return RA2Command(CommandType.SET_ZONE_LEVEL, (integration_id, level, float(fade_seconds)))


def activate_scene(keypad_id: int, button: int) -> RA2Command:
    return RA2Command(CommandType.ACTIVATE_SCENE, (keypad_id, button))


def query_devices() -> RA2Command:
    return RA2Command(CommandType.QUERY_DEVICES)


def ping() -> RA2Command:
    return RA2Command(CommandType.PING)


# ================== RESPONSE EVENTS ==================

@dataclass(frozen=True)
class LoginPrompt:
    pass


@dataclass(frozen=True)
class LoginSuccess:
    pass


@dataclass(frozen=True)
class ZoneLevelEvent:
    integration_id: int
    level: float


@dataclass(frozen=True)
class DeviceInfoEvent:
    integration_id: int
    name: str


@dataclass(frozen=True)
class ErrorEvent:
    message: str


@dataclass(frozen=True)
class UnknownEvent:
    line: str


ProtocolEvent = Union[LoginPrompt, LoginSuccess, ZoneLevelEvent, DeviceInfoEvent, ErrorEvent, UnknownEvent]


def parse_line(line: str) -> ProtocolEvent:
    """Map one received line to an event. Never raises."""
    trimmed = line.strip()
    lowered = trimmed.lower()

    if PROMPT_LOGIN in lowered:
        return LoginPrompt()

    if PROMPT_GNET in trimmed:
        return LoginSuccess()

    if trimmed.startswith("~OUTPUT,"):
        # ~OUTPUT,<id>,1,<level>
        parts = trimmed[len("~OUTPUT,"):].split(",")
        if len(parts) >= 3:
            try:
                return ZoneLevelEvent(integration_id=int(parts[0]), level=float(parts[2]))
            except ValueError:
                pass

    if trimmed.startswith("~DEVICE,"):
        parts = trimmed[len("~DEVICE,"):].split(",")
        if len(parts) >= 2:
            try:
                return DeviceInfoEvent(integration_id=int(parts[0]), name=parts[1])
            except ValueError:
                pass

    if "invalid" in lowered or "error" in lowered:
        return ErrorEvent(message=trimmed)

    return UnknownEvent(line=trimmed)


def _peel_prompts(segment: str) -> List[str]:
    """Split 'GNET> ~OUTPUT,...' into ['GNET>', '~OUTPUT,...']"""
    pieces = []
    rest = segment.strip()
    while rest.startswith(PROMPT_GNET) and rest != PROMPT_GNET:
        pieces.append(PROMPT_GNET)
        rest = rest[len(PROMPT_GNET):].strip()
    if rest:
        pieces.append(rest)
    return pieces


_PROMPT_TOKEN = re.compile(r"login:|password:|GNET>", re.IGNORECASE)
_PROMPTS_ONLY = re.compile(r"\s*(?:(?:login:|password:|GNET>)\s*)+", re.IGNORECASE)


def _bare_prompts(text: str) -> List[str]:
    """Prompts making up the whole of text, or an empty list"""
    if not _PROMPTS_ONLY.fullmatch(text):
        return []
    return _PROMPT_TOKEN.findall(text)


def split_buffer(buffer: str) -> Tuple[List[str], str]:
    """
    Split accumulated receive text into complete lines and the unconsumed tail.

    Prompts are sent without a line terminator, so a tail that is exactly a
    prompt is emitted as a line of its own.
    """
    segments = buffer.split(LINE_TERMINATOR)
    remainder = segments.pop()

    lines: List[str] = []
    for segment in segments:
        lines.extend(_peel_prompts(segment))

    prompts = _bare_prompts(remainder)
    if prompts:
        lines.extend(prompts)
        remainder = ""

    return lines, remainder
