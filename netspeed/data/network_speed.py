from dataclasses import dataclass

from netspeed.util import conversion


@dataclass
class AggregateSample:
    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass
class Rates:
    rx: float = 0.0
    tx: float = 0.0


@dataclass
class NetworkSpeed:
    success: bool = False
    error: str | None = None
    received: str | None = None
    transmitted: str | None = None
    updated: str | None = None

    @property
    def text(self) -> str:
        return conversion.compose_speed(
            download=self.received or conversion.format_speed(0),
            upload=self.transmitted or conversion.format_speed(0),
        )
