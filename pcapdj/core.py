# pcapdj/core.py
from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field

# Redis names shared with the consumer side
PQUEUE = "PCAPDJ_IN_QUEUE"
RQUEUE = "PCAPDJ_PROCESSED"
NEXTJOB = "PCAPDJ_NEXT"
AKEY = "PCAPDJ_AUTH"
STATE_KEY = "PCAPDJ_STATE"
STATE_DONE = "DONE"

DEFAULT_SRV = "127.0.0.1"
DEFAULT_PORT = 6379
POLL_INTERVAL = 0.1  # seconds


class State(enum.IntEnum):
    RUN = 0
    SUSPEND = 1
    AUTH_WAIT = 2
    FEED = 3


STATE_LABELS = {
    State.RUN: "Running",
    State.SUSPEND: "Suspended",
    State.AUTH_WAIT: "Waiting for authorization",
    State.FEED: "Feeding fifo buffer",
}


def state_label(state) -> str:
    try:
        return STATE_LABELS[State(state)]
    except ValueError:
        return "Unknown"


@dataclass(frozen=True)
class Record:
    ts: float
    caplen: int
    wirelen: int  # original length on the wire
    buf: bytes


@dataclass
class Statistics:
    """
    Process-wide counters. Written by the dispatcher thread and by the
    signal-driven supervisor without locking; values are best effort.
    """
    num_files: int = 0
    num_packets: int = 0
    sum_cap_lengths: int = 0
    sum_lengths: int = 0
    num_suspend: int = 0
    write_errors: int = 0
    state: State = State.RUN
    oldstate: State = State.RUN
    start_epoch: float = field(default_factory=time.time)


class PcapdjError(Exception):
    pass


class ConfigurationError(PcapdjError):
    pass


class SinkOpenError(PcapdjError):
    pass


class StoreConnectionError(PcapdjError):
    pass


class StoreCommandError(PcapdjError):
    pass


class CaptureOpenError(PcapdjError):
    pass


class SinkClosedError(PcapdjError):
    pass


class AuthorizationTimeout(PcapdjError):
    def __init__(self, filename: str, waited: float):
        super().__init__(f"no authorization for {filename} after {waited:.1f}s")
        self.filename = filename
        self.waited = waited


class DispatchCancelled(PcapdjError):
    pass
