"""Internal running statistics utilities."""

from typing import Optional


class RunningRange:
    """Track min and max of an integer series in O(1) space."""

    def __init__(self):
        self.min: Optional[int] = None
        self.max: Optional[int] = None

    def record(self, value: int):
        if self.min is None or value < self.min:
            self.min = value
        if self.max is None or value > self.max:
            self.max = value
