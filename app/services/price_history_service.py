# services/price_history_service.py
import math
import random
import time
from typing import List, Optional

from schemas.dex_models import PricePoint

# period -> (time range in seconds, number of steps)
PERIODS = {
    "1h": (60 * 60, 60),
    "24h": (24 * 60 * 60, 96),
    "7d": (7 * 24 * 60 * 60, 168),
}
DEFAULT_PERIOD = "24h"


def generate_price_history(
    price: float,
    h1_change: float = 0.0,
    h24_change: float = 0.0,
    d7_change: float = 0.0,
    period: str = DEFAULT_PERIOD,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[PricePoint]:
    """
    Build an illustrative price series that ends at the current price.

    The start price is derived from the percentage change for the period;
    intermediate points follow a straight line with noise that peaks
    mid-series and vanishes at both ends.

    Raises:
        ValueError: if price or a change percentage is not a finite number
    """
    for value in (price, h1_change, h24_change, d7_change):
        if not math.isfinite(value):
            raise ValueError("Invalid price data")

    if period not in PERIODS:
        period = DEFAULT_PERIOD
    time_range, steps = PERIODS[period]
    change = {"1h": h1_change, "24h": h24_change, "7d": d7_change}[period] / 100

    rng = rng or random.Random()
    now = int(time.time()) if now is None else now

    # A -100% (or worse) change has no finite start price; draw a flat line.
    start_price = price / (1 + change) if 1 + change > 0 else price
    volatility = abs(change) * 0.1

    points: List[PricePoint] = []
    for i in range(steps + 1):
        progress = i / steps
        base = start_price + (price - start_price) * progress
        noise = (rng.random() - 0.5) * 2 * volatility * math.sin(progress * math.pi)
        points.append(PricePoint(
            time=int(now - time_range + i * (time_range / steps)),
            value=round(base * (1 + noise), 8),
        ))

    points[-1] = PricePoint(time=now, value=price)
    points.sort(key=lambda p: p.time)
    return points
