# pcapdj/dispatcher.py
from __future__ import annotations

from typing import Optional

from .core import (
    NEXTJOB,
    STATE_DONE,
    STATE_KEY,
    AuthorizationTimeout,
    DispatchCancelled,
    SinkClosedError,
    StoreCommandError,
    StoreConnectionError,
)
from .feed import FeedEngine
from .handshake import announce_and_await
from .io import PcapngSink
from .store import CoordinationStore
from .supervisor import Supervisor
from .utils import get_logger

log = get_logger("dispatcher")

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def run(
    store: CoordinationStore,
    sink: PcapngSink,
    queue: str,
    supervisor: Optional[Supervisor] = None,
    *,
    auth_timeout: Optional[float] = None,
    length_accounting: str = "wire",
) -> int:
    """
    Drain `queue` one file at a time: announce, wait for authorization, feed.
    When the queue is empty, publish the DONE state and drop the next-job list.
    """
    supervisor = supervisor or Supervisor()
    engine = FeedEngine(store, sink, supervisor, length_accounting=length_accounting)

    try:
        while True:
            supervisor.checkpoint()
            filename = store.lpop(queue)
            if filename is None:
                break
            try:
                announce_and_await(store, filename, supervisor, timeout=auth_timeout)
            except AuthorizationTimeout as e:
                log.error(f"Dropping {filename}: {e}")
                continue
            engine.stream(filename)

        # Notify the consumer that everything is done
        store.set(STATE_KEY, STATE_DONE)
        store.delete(NEXTJOB)
    except (StoreConnectionError, StoreCommandError) as e:
        log.error(f"Redis error {e}")
        return EXIT_FAILURE
    except SinkClosedError as e:
        log.error(f"Stopping: {e}")
        return EXIT_FAILURE
    except DispatchCancelled:
        log.warning("Cancelled, leaving the remaining queue untouched")
        return EXIT_FAILURE
    return EXIT_SUCCESS
