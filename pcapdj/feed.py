# pcapdj/feed.py
from __future__ import annotations

from .core import RQUEUE, CaptureOpenError, SinkClosedError, State
from .io import PcapngSink
from .store import CoordinationStore
from .stream import open_capture
from .supervisor import Supervisor
from .utils import get_logger

log = get_logger("feed")

LENGTH_ACCOUNTING = ("wire", "legacy")


class FeedEngine:
    """
    Relays the records of one capture file into the output sink.

    length_accounting:
      "wire"   - sum_lengths accumulates the original (wire) length
      "legacy" - sum_lengths accumulates the captured length, like older
                 pcapdj releases did
    """

    def __init__(
        self,
        store: CoordinationStore,
        sink: PcapngSink,
        supervisor: Supervisor,
        length_accounting: str = "wire",
    ):
        if length_accounting not in LENGTH_ACCOUNTING:
            raise ValueError(f"length_accounting must be one of {LENGTH_ACCOUNTING}")
        self.store = store
        self.sink = sink
        self.supervisor = supervisor
        self.length_accounting = length_accounting

    def stream(self, filename: str) -> bool:
        """Feed one file. Returns False when it could not be opened."""
        try:
            reader = open_capture(filename)
        except CaptureOpenError as e:
            log.error(f"Could not open filename {filename},cause={e}")
            return False

        stats = self.supervisor.stats
        stats.num_files += 1
        legacy = self.length_accounting == "legacy"
        fed = 0
        with reader:
            for rec in reader:
                self.supervisor.wait_while_suspended("Stop feeding buffer.")
                self.supervisor.set_state(State.FEED)
                try:
                    self.sink.write(rec)
                except BrokenPipeError as e:
                    # the consumer is gone, every further write would fail too
                    stats.write_errors += 1
                    raise SinkClosedError(f"output closed by the consumer while feeding {filename}: {e}") from e
                except OSError as e:
                    stats.write_errors += 1
                    log.error(f"Could not write packet {fed} of {filename} to output: {e}")
                    continue
                fed += 1
                stats.num_packets += 1
                stats.sum_cap_lengths += rec.caplen
                stats.sum_lengths += rec.caplen if legacy else rec.wirelen
            self.store.rpush(RQUEUE, filename)
        log.info(f"Fed {fed} packets from {filename}")
        return True
