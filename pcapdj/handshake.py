# pcapdj/handshake.py
from __future__ import annotations

import math
from typing import Optional

from .core import AKEY, NEXTJOB, AuthorizationTimeout, State
from .store import CoordinationStore
from .supervisor import Supervisor
from .utils import get_logger

log = get_logger("handshake")


def announce_and_await(
    store: CoordinationStore,
    filename: str,
    supervisor: Supervisor,
    timeout: Optional[float] = None,
) -> None:
    """
    Announce filename on the next-job list, then poll the authorization set
    until the consumer adds it. The entry is removed once seen.

    timeout=None waits forever. Otherwise AuthorizationTimeout is raised
    after roughly timeout seconds worth of polls.
    """
    log.info(f"Next file to process {filename}")
    store.rpush(NEXTJOB, filename)
    supervisor.set_state(State.AUTH_WAIT)
    log.info(f"Waiting authorization to process file {filename}")

    max_polls = None
    if timeout is not None:
        max_polls = max(1, math.ceil(timeout / supervisor.poll_interval))

    polls = 0
    while True:
        supervisor.checkpoint()
        if store.sismember(AKEY, filename):
            store.srem(AKEY, filename)
            log.info(f"Got authorization to process {filename}")
            return
        polls += 1
        if max_polls is not None and polls >= max_polls:
            raise AuthorizationTimeout(filename, polls * supervisor.poll_interval)
        supervisor.sleep()
