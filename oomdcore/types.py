"""Shared value types and constants."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional

PluginArgs = Dict[str, str]

EXIT_CANT_RECOVER = 3


class ResourceType(enum.Enum):
    MEMORY = enum.auto()
    IO = enum.auto()


class DeviceType(enum.Enum):
    HDD = enum.auto()
    SSD = enum.auto()


@dataclass
class DeviceIOStat:
    dev_id: str = ""
    rbytes: int = 0
    wbytes: int = 0
    rios: int = 0
    wios: int = 0
    dbytes: int = 0
    dios: int = 0


@dataclass
class IOCostCoeffs:
    read_iops: float = 0.0
    readbw: float = 0.0
    write_iops: float = 0.0
    writebw: float = 0.0
    trim_iops: float = 0.0
    trimbw: float = 0.0


@dataclass
class ResourcePressure:
    sec_10: float = 0.0
    sec_60: float = 0.0
    sec_300: float = 0.0
    total: Optional[int] = None
    """Total stall time in microseconds, if known."""


@dataclass
class SystemContext:
    swaptotal: int = 0
    swapused: int = 0
    swappiness: int = 0
    vmstat: Dict[str, int] = field(default_factory=dict)
    swapout_bps: float = 0.0
    swapout_bps_60: float = 0.0
    swapout_bps_300: float = 0.0


class KillPreference(enum.IntEnum):
    PREFER = 1
    NORMAL = 0
    AVOID = -1

    def __str__(self) -> str:
        return self.name


class LogSources(enum.IntFlag):
    ENGINE = 1 << 0
    PLUGINS = 1 << 1


class CoreStats:
    """Names of the core statistics keys."""

    KILLS_KEY = "oomd.kills"
    NUM_DROP_IN_ADDS = "oomd.dropin.added"
    NUM_DROP_IN_FIRED = "oomd.dropin.fired"

    ALL_KEYS = (KILLS_KEY, NUM_DROP_IN_ADDS, NUM_DROP_IN_FIRED)