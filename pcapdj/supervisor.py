# pcapdj/supervisor.py
from __future__ import annotations

import signal
import sys
import time
from typing import Callable, Dict, List, Optional, TextIO

from .core import POLL_INTERVAL, DispatchCancelled, State, Statistics, state_label
from .utils import get_logger

log = get_logger("supervisor")


class Supervisor:
    """
    Suspend/resume control, statistics snapshots and cancellation.

    Signal handlers (toggle, request_snapshot, cancel) only assign attributes.
    Everything with side effects (printing a report, raising on cancel) runs
    from checkpoint(), which the dispatcher thread calls at each poll point.
    """

    def __init__(
        self,
        stats: Optional[Statistics] = None,
        poll_interval: float = POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        out: Optional[TextIO] = None,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self.stats = stats if stats is not None else Statistics()
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._out = out
        self.suspended = False
        self.cancelled = False
        self._snapshot_pending = False
        self._saved_handlers: Dict[int, object] = {}

    # ---- asynchronous triggers ----

    def toggle(self) -> None:
        """Trigger A: flip between suspended and running."""
        st = self.stats
        if not self.suspended:
            st.oldstate = st.state
            st.state = State.SUSPEND
            st.num_suspend += 1
            self.suspended = True
        else:
            st.state = st.oldstate
            st.oldstate = State.SUSPEND
            self.suspended = False

    def request_snapshot(self) -> None:
        """Trigger B: ask for a statistics report at the next poll point."""
        self._snapshot_pending = True

    def cancel(self) -> None:
        self.cancelled = True

    # ---- signal wiring ----

    def install(self) -> None:
        handlers = {
            signal.SIGUSR1: lambda signum, frame: self.toggle(),
            signal.SIGUSR2: lambda signum, frame: self.request_snapshot(),
            signal.SIGTERM: lambda signum, frame: self.cancel(),
            signal.SIGINT: lambda signum, frame: self.cancel(),
        }
        for signum, handler in handlers.items():
            self._saved_handlers[signum] = signal.signal(signum, handler)

    def uninstall(self) -> None:
        for signum, previous in self._saved_handlers.items():
            signal.signal(signum, previous)
        self._saved_handlers.clear()

    # ---- main-thread side ----

    def set_state(self, state: State) -> None:
        # while suspended, remember the state for resume instead of hiding Suspended
        if self.suspended:
            self.stats.oldstate = state
        else:
            self.stats.state = state

    def checkpoint(self) -> None:
        if self._snapshot_pending:
            self._snapshot_pending = False
            self.report()
        if self.cancelled:
            raise DispatchCancelled("cancellation requested")

    def sleep(self) -> None:
        self._sleep(self.poll_interval)

    def wait_while_suspended(self, reason: str) -> None:
        """Block until resumed. Returns immediately when not suspended."""
        self.checkpoint()
        if not self.suspended:
            return
        log.info(f"pcapdj is suspended. {reason}")
        while self.suspended:
            self.sleep()
            self.checkpoint()
        log.info("Resuming pcapdj")

    # ---- stats reporter ----

    def snapshot_lines(self, now: Optional[float] = None) -> List[str]:
        st = self.stats
        now = time.time() if now is None else now
        start = time.strftime("%Y-%d-%m %H:%M:%S", time.localtime(st.start_epoch))
        return [
            f"[STATS] Start time:{start}",
            f"[STATS] Uptime:{int(now - st.start_epoch)} (seconds)",
            f"[STATS] Internal state:{state_label(st.state)}",
            f"[STATS] Number of suspensions:{st.num_suspend}",
            f"[STATS] Number of files:{st.num_files}",
            f"[STATS] Number of packets:{st.num_packets}",
            f"[STATS] Number of cap_lengths:{st.sum_cap_lengths}",
            f"[STATS] Number of lengths:{st.sum_lengths}",
            f"[STATS] Number of write errors:{st.write_errors}",
        ]

    def report(self, stream: Optional[TextIO] = None) -> None:
        stream = stream or self._out or sys.stdout
        for line in self.snapshot_lines():
            print(line, file=stream)
        stream.flush()
