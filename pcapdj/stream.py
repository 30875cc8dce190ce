# pcapdj/stream.py
from __future__ import annotations

from typing import Iterator

from scapy.error import Scapy_Exception
from scapy.utils import RawPcapReader

from .core import CaptureOpenError, Record
from .utils import get_logger

log = get_logger("stream")

_PCAP_MAGIC = {b"\xd4\xc3\xb2\xa1", b"\xa1\xb2\xc3\xd4", b"\x4d\x3c\xb2\xa1", b"\xa1\xb2\x3c\x4d"}
_PCAPNG_MAGIC = b"\x0a\x0d\x0d\x0a"
_GZIP_MAGIC = b"\x1f\x8b"


def _sniff_kind(path: str) -> str:
    try:
        with open(path, "rb") as f:
            head = f.read(4)
    except OSError as e:
        raise CaptureOpenError(e.strerror or str(e)) from e
    if head in _PCAP_MAGIC:
        return "pcap"
    if head == _PCAPNG_MAGIC:
        return "pcapng"
    if head[:2] == _GZIP_MAGIC:
        return "gzip"  # scapy unwraps it and detects the inner format
    raise CaptureOpenError("unknown capture format (not pcap/pcapng)")


def _record_ts(meta, nano: bool) -> float:
    # pcapng metadata carries a 64-bit timestamp split in two plus its resolution
    if hasattr(meta, "tshigh"):
        return ((meta.tshigh << 32) | meta.tslow) / float(meta.tsresol)
    frac = 1_000_000_000.0 if nano else 1_000_000.0
    return float(meta.sec) + float(meta.usec) / frac


class CaptureReader:
    """
    Sequential, non-restartable record reader over a pcap or pcapng file.
    The format is detected from the file magic.
    """

    def __init__(self, path: str):
        self.path = path
        self.kind = _sniff_kind(path)
        try:
            self._reader = RawPcapReader(path)
        except (Scapy_Exception, EOFError) as e:
            raise CaptureOpenError(str(e) or "not a supported capture file") from e
        except OSError as e:
            raise CaptureOpenError(e.strerror or str(e)) from e
        self._nano = bool(getattr(self._reader, "nano", False))

    def __iter__(self) -> Iterator[Record]:
        try:
            for pkt, meta in self._reader:
                wirelen = getattr(meta, "wirelen", None)
                yield Record(
                    ts=_record_ts(meta, self._nano),
                    caplen=len(pkt),
                    wirelen=len(pkt) if wirelen is None else int(wirelen),
                    buf=pkt,
                )
        except (Scapy_Exception, OSError) as e:
            # a damaged tail ends the file like EOF does
            log.warning(f"Read error in {self.path}, stopping at this record: {e}")

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> "CaptureReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_capture(path: str) -> CaptureReader:
    return CaptureReader(path)
