"""
Station configuration and logging setup.

Defaults live at module level; `StationConfig.from_args` overrides them from
the command line.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

# Serial link defaults
DEFAULT_PORT: str = "/dev/ttyUSB0"
DEFAULT_BAUD_RATE: int = 9600  # Default for the radio modems we pair with
BAUD_RATES = (9600, 19200, 38400, 57600, 115200)

# Receiver loop
READ_TIMEOUT_SEC: float = 0.1  # also bounds how long disconnect waits on the reader
READ_CHUNK_SIZE: int = 256

LOG_FORMAT = "[%(name)s] %(levelname)s %(message)s"


@dataclass
class StationConfig:
    port: str = DEFAULT_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    read_timeout: float = READ_TIMEOUT_SEC
    read_chunk_size: int = READ_CHUNK_SIZE
    clear_history_on_connect: bool = True
    log_level: str = "INFO"
    log_packets: bool = False
    list_ports: bool = False

    def __post_init__(self) -> None:
        self.baud_rate = int(self.baud_rate)
        self.read_timeout = max(1e-3, float(self.read_timeout))
        self.read_chunk_size = max(1, int(self.read_chunk_size))
        self.log_level = str(self.log_level).upper()

    @classmethod
    def from_args(cls, argv: Optional[Sequence[str]] = None) -> "StationConfig":
        parser = argparse.ArgumentParser(
            prog="mission-control",
            description="Operator station for the mapping robot.",
        )
        parser.add_argument("--port", default=DEFAULT_PORT,
                            help="serial device or pyserial URL of the radio link")
        parser.add_argument("--baud", type=int, default=DEFAULT_BAUD_RATE,
                            choices=BAUD_RATES, dest="baud_rate")
        parser.add_argument("--read-timeout", type=float, default=READ_TIMEOUT_SEC)
        parser.add_argument("--keep-history", action="store_true",
                            help="keep obstacles and walls from earlier sessions on reconnect")
        parser.add_argument("--log-level", default="INFO",
                            choices=["DEBUG", "INFO", "WARNING", "ERROR"])
        parser.add_argument("--log-packets", action="store_true",
                            help="log every record sent and received")
        parser.add_argument("--list-ports", action="store_true",
                            help="print the available serial ports and exit")
        args = parser.parse_args(argv)

        return cls(
            port=args.port,
            baud_rate=args.baud_rate,
            read_timeout=args.read_timeout,
            clear_history_on_connect=not args.keep_history,
            log_level=args.log_level,
            log_packets=args.log_packets,
            list_ports=args.list_ports,
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
