import logging
import re

from netspeed.data.network_speed import AggregateSample
from netspeed.util.errors import ParseError, SourceReadError

logger = logging.getLogger(__name__)

PROC_NET_DEV = "/proc/net/dev"
DEFAULT_IGNORED_PREFIXES: list[str] = ["lo", "vir", "vbox", "docker", "br-"]

# /proc/net/dev column layout after the colon:
# rx: bytes packets errs drop fifo frame compressed multicast
# tx: bytes packets errs drop fifo colls carrier compressed
HEADER_LINES = 2
RX_BYTES_FIELD = 0
TX_BYTES_FIELD = 8


def is_ignored_interface(interface: str, prefixes: list[str]) -> bool:
    return any(interface.startswith(prefix) for prefix in prefixes)


class CounterSource:
    """
    Read the per-interface counter file. Every call re-reads the whole file
    since the kernel regenerates it on each read.
    """

    def __init__(self, path: str = PROC_NET_DEV):
        self.path = path

    def read(self) -> str:
        logger.debug(f"reading {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                return fh.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(path=self.path, reason=str(e)) from e


class StatsParser:
    """
    Sum the rx/tx byte counters of every interface that isn't ignored.
    """

    def __init__(self, ignored_prefixes: list[str] | None = None):
        self.ignored_prefixes = (
            list(ignored_prefixes)
            if ignored_prefixes is not None
            else list(DEFAULT_IGNORED_PREFIXES)
        )

    def _parse_counter(self, line: str, fields: list[str], index: int) -> int:
        try:
            value = int(fields[index])
        except ValueError as e:
            raise ParseError(
                line=line, reason=f'field {index + 1} "{fields[index]}" is not an integer'
            ) from e

        if value < 0:
            raise ParseError(line=line, reason=f"field {index + 1} is negative")

        return value

    def parse(self, snapshot: str) -> AggregateSample:
        sample = AggregateSample()

        for line in snapshot.splitlines()[HEADER_LINES:]:
            line = line.strip()
            if not line:
                continue

            interface, separator, data = line.partition(":")
            if not separator or not data.strip():
                continue

            interface = interface.strip()
            if is_ignored_interface(interface, self.ignored_prefixes):
                logger.debug(f"ignoring interface {interface}")
                continue

            fields = re.split(r"\s+", data.strip())
            if len(fields) <= TX_BYTES_FIELD:
                raise ParseError(
                    line=line,
                    reason=f"expected at least {TX_BYTES_FIELD + 1} fields, found {len(fields)}",
                )

            sample.rx_bytes += self._parse_counter(line, fields, RX_BYTES_FIELD)
            sample.tx_bytes += self._parse_counter(line, fields, TX_BYTES_FIELD)

        return sample
