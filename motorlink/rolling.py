"""Mean over a sliding window of the most recent values."""

from collections import deque
from typing import Deque


class RollingMeanAccumulator:
    """Keeps the last ``window_size`` values and reports their mean."""

    def __init__(self, window_size: int) -> None:
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        self.window_size = window_size
        self._values: Deque[float] = deque(maxlen=window_size)

    def accumulate(self, value: float) -> None:
        """Add a value, dropping the oldest when the window is full."""
        self._values.append(float(value))

    def rolling_mean(self) -> float:
        """Mean of the values in the window, or 0.0 when it is empty."""
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def reset(self) -> None:
        """Discard all accumulated values."""
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)