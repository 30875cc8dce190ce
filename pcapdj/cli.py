# pcapdj/cli.py
from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

from .config import build_settings
from .core import ConfigurationError, SinkOpenError, StoreConnectionError
from .dispatcher import EXIT_FAILURE, EXIT_SUCCESS, run
from .io import PcapngSink
from .store import CoordinationStore
from .supervisor import Supervisor
from .utils import log, setup

DESCRIPTION = """\
Reads a list of pcap/pcapng files from a redis queue (PCAPDJ_IN_QUEUE unless
-q is given) and feeds the packets of each file into the named pipe given
with -b, as one continuous pcapng stream.

Before a file is fed, its name is pushed to PCAPDJ_NEXT and pcapdj polls the
set PCAPDJ_AUTH until the name shows up there. Fully fed files are appended
to PCAPDJ_PROCESSED. When the queue is empty, PCAPDJ_STATE is set to DONE.

Signals: SIGUSR1 suspends/resumes feeding, SIGUSR2 prints statistics.
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pcapdj",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-b", dest="pipe", metavar="namedpipe", help="output fifo (required)")
    p.add_argument("-s", dest="server", metavar="redis_server", help="redis host (default 127.0.0.1)")
    p.add_argument("-p", dest="port", type=int, metavar="redis_srv_port", help="redis port (default 6379)")
    p.add_argument("-q", dest="queue", metavar="redis_queue", help="input queue (default PCAPDJ_IN_QUEUE)")
    p.add_argument("-c", dest="config", metavar="config.yaml", help="YAML config file, flags take precedence")
    p.add_argument("-t", dest="auth_timeout", type=float, metavar="seconds",
                   help="give up on a file not authorized within this time (default: wait forever)")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = build_settings(args)
    except ConfigurationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup(log_dir=settings.log_dir, level=settings.log_level)

    try:
        sink = PcapngSink.open(settings.pipe)
    except SinkOpenError as e:
        log.error(f"Could not open output: {e}")
        return EXIT_FAILURE

    log.info(f"redis_server = {settings.redis_host}")
    log.info(f"redis_port = {settings.redis_port}")
    log.info(f"redis_queue = {settings.queue}")
    log.info(f"named pipe = {settings.pipe}")
    log.info(f"pid = {os.getpid()}")

    supervisor = Supervisor(poll_interval=settings.poll_interval)
    supervisor.install()
    try:
        try:
            store = CoordinationStore.connect(settings.redis_host, settings.redis_port)
        except StoreConnectionError as e:
            log.error(f"Could not connect to redis. {e}.")
            return EXIT_FAILURE

        try:
            r = run(
                store,
                sink,
                settings.queue,
                supervisor,
                auth_timeout=settings.auth_timeout,
                length_accounting=settings.length_accounting,
            )
        finally:
            store.close()

        if r == EXIT_SUCCESS:
            log.info("All went fine. No files in the pipe to process.")
        else:
            log.error("Something went wrong during processing")
        return r
    finally:
        supervisor.uninstall()
        sink.close()
