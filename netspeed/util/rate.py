from netspeed.data.network_speed import AggregateSample, Rates


def compute_rates(
    previous: AggregateSample | None, current: AggregateSample, interval: float
) -> Rates:
    """
    Compute rx/tx rates in bytes/second between two samples.

    With no previous sample the current one stands in for it, so the first
    reading is zero instead of the whole counter total. A counter that went
    backwards (interface restart) yields zero.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    if previous is None:
        previous = current

    return Rates(
        rx=max(0, current.rx_bytes - previous.rx_bytes) / interval,
        tx=max(0, current.tx_bytes - previous.tx_bytes) / interval,
    )


class RateCalculator:
    def __init__(self):
        self.previous: AggregateSample | None = None

    def update(self, current: AggregateSample, interval: float) -> Rates:
        rates = compute_rates(previous=self.previous, current=current, interval=interval)
        self.previous = current
        return rates

    def reset(self):
        self.previous = None
