"""
Exponential backoff delay calculation.
"""


class ExponentialBackoff:
    """
    Exponential backoff capped at a maximum delay.

    Delay increases exponentially with each attempt:
    delay = min(base * (factor ** attempt), cap)
    """

    def __init__(self, base: float = 1000.0, factor: float = 2.0, cap: float = 10000.0):
        self.base = base
        self.factor = factor
        self.cap = cap

    def calculate_delay(self, attempt: int) -> float:
        """Calculate exponentially increasing delay for a zero-based attempt."""
        return min(self.base * (self.factor ** max(attempt, 0)), self.cap)
