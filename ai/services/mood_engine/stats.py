
from __future__ import annotations
from typing import List, Sequence
import statistics


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def moving_average(series: Sequence[float], window: int) -> List[float]:
    # trailing window; the first values average over what is available
    w = max(1, int(window))
    out: List[float] = []
    for i in range(len(series)):
        chunk = series[max(0, i - w + 1): i + 1]
        out.append(sum(chunk) / len(chunk))
    return out


def volatility(series: Sequence[float]) -> float:
    """Population standard deviation; 0.0 below two points."""
    if len(series) < 2:
        return 0.0
    return float(statistics.pstdev(series))


def slope(series: Sequence[float]) -> float:
    """Endpoint rate (last - first) / n. Not a least-squares fit."""
    if not series:
        return 0.0
    return (series[-1] - series[0]) / len(series)
