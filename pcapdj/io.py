# pcapdj/io.py
from __future__ import annotations

import struct
from typing import BinaryIO

import dpkt

from .core import Record, SinkOpenError
from .utils import get_logger

log = get_logger("io")

# EPB: type, len, iface_id, ts_high, ts_low, caplen, pkt_len
_EPB_PKT_LEN_OFFSET = 24


class PcapngSink:
    """pcapng writer on a pipe-like file object, Ethernet link type, no compression."""

    def __init__(self, fileobj: BinaryIO, snaplen: int = 65535, linktype: int = dpkt.pcap.DLT_EN10MB):
        self._f = fileobj
        # Section header and interface description go out immediately
        dpkt.pcapng.Writer(fileobj, snaplen=snaplen, linktype=linktype)

    @classmethod
    def open(cls, path: str, **kwargs) -> "PcapngSink":
        try:
            f = open(path, "wb")
        except OSError as e:
            raise SinkOpenError(f"{path}: {e.errno} ({e.strerror})") from e
        try:
            return cls(f, **kwargs)
        except OSError as e:
            f.close()
            raise SinkOpenError(f"{path}: {e.errno} ({e.strerror})") from e

    def write(self, rec: Record) -> None:
        """Write one record; OSError (e.g. a closed reader end) propagates."""
        ts = round(rec.ts * 1_000_000)
        epb = dpkt.pcapng.EnhancedPacketBlockLE(
            ts_high=ts >> 32,
            ts_low=ts & 0xFFFFFFFF,
            caplen=rec.caplen,
            pkt_data=rec.buf,
        )
        # dpkt derives pkt_len from the payload; put the wire length back
        block = bytearray(bytes(epb))
        struct.pack_into("<I", block, _EPB_PKT_LEN_OFFSET, rec.wirelen)
        self._f.write(block)

    def close(self) -> None:
        try:
            self._f.close()
        except OSError as e:
            log.warning(f"Output sink closed with pending data lost: {e}")
