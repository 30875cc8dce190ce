import struct
from collections import defaultdict

import dpkt
import pytest

from pcapdj.store import CoordinationStore


class FakeRedis:
    """In-memory subset of redis.Redis(decode_responses=True) used by pcapdj."""

    def __init__(self):
        self.lists = defaultdict(list)
        self.sets = defaultdict(set)
        self.keys = {}
        self.calls = []
        self.closed = False

    def ping(self):
        return True

    def rpush(self, name, *values):
        self.calls.append(("rpush", name) + values)
        self.lists[name].extend(values)
        return len(self.lists[name])

    def lpop(self, name):
        self.calls.append(("lpop", name))
        lst = self.lists.get(name)
        if not lst:
            return None
        return lst.pop(0)

    def sadd(self, name, *values):
        self.sets[name].update(values)
        return len(values)

    def sismember(self, name, value):
        self.calls.append(("sismember", name, value))
        return int(value in self.sets.get(name, ()))

    def srem(self, name, *values):
        self.calls.append(("srem", name) + values)
        s = self.sets.get(name, set())
        n = len(s & set(values))
        s.difference_update(values)
        return n

    def set(self, key, value):
        self.calls.append(("set", key, value))
        self.keys[key] = value
        return True

    def delete(self, *names):
        self.calls.append(("delete",) + names)
        n = 0
        for name in names:
            for space in (self.lists, self.sets, self.keys):
                if name in space:
                    del space[name]
                    n += 1
        return n

    def close(self):
        self.closed = True


class ListSink:
    def __init__(self):
        self.records = []

    def write(self, rec):
        self.records.append(rec)


def frame(tag: str, size: int = 60) -> bytes:
    """Ethernet/IPv4-typed frame whose payload starts with tag."""
    return b"\x02" * 6 + b"\x04" * 6 + b"\x08\x00" + tag.encode().ljust(size - 14, b"\x00")


def write_pcap(path, packets):
    """packets: [(ts, bytes)], classic pcap via dpkt."""
    with open(path, "wb") as f:
        w = dpkt.pcap.Writer(f, snaplen=65535, linktype=dpkt.pcap.DLT_EN10MB)
        for ts, buf in packets:
            w.writepkt(buf, ts=ts)
    return str(path)


def write_pcapng(path, packets):
    with open(path, "wb") as f:
        w = dpkt.pcapng.Writer(f, snaplen=65535, linktype=dpkt.pcap.DLT_EN10MB)
        for ts, buf in packets:
            w.writepkt(buf, ts=ts)
    return str(path)


def write_truncated_pcap(path, records):
    """records: [(ts_sec, ts_usec, captured_bytes, orig_len)], little-endian usec pcap."""
    with open(path, "wb") as f:
        f.write(struct.pack("<IHHiIII", 0xA1B2C3D4, 2, 4, 0, 0, 65535, 1))
        for sec, usec, buf, orig_len in records:
            f.write(struct.pack("<IIII", sec, usec, len(buf), orig_len))
            f.write(buf)
    return str(path)


def make_capture(tmp_path, name, tags):
    packets = [(1_600_000_000 + i, frame(t)) for i, t in enumerate(tags)]
    return write_pcap(tmp_path / name, packets)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return CoordinationStore(fake_redis)


@pytest.fixture
def sink():
    return ListSink()
