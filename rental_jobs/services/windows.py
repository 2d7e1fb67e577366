# rental_jobs/services/windows.py
"""Cálculo de ventanas de tiempo para acotar las consultas por rango."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class Window:
    lower: Optional[datetime]
    upper: Optional[datetime]
    lower_inclusive: bool = True
    upper_inclusive: bool = True

    def contains(self, instant: datetime) -> bool:
        if self.lower is not None:
            if instant < self.lower or (instant == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if instant > self.upper or (instant == self.upper and not self.upper_inclusive):
                return False
        return True


def compute_window(now: datetime, offset: float, direction: Direction, unit: str = "days") -> Window:
    """
    forward  -> [now, now + offset]   (cerrado en ambos extremos)
    backward -> (-inf, now - offset)  (extremo superior abierto)
    `unit` es cualquier argumento de timedelta: days, hours, minutes...
    """
    delta = timedelta(**{unit: offset})
    if Direction(direction) is Direction.FORWARD:
        return Window(lower=now, upper=now + delta)
    return Window(lower=None, upper=now - delta, upper_inclusive=False)


def month_window(year: int, month: int) -> Window:
    """[primer instante del mes, primer instante del mes siguiente) en UTC."""
    if not 1 <= month <= 12:
        raise ValueError(f"mes fuera de rango: {month}")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return Window(lower=start, upper=end, upper_inclusive=False)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
