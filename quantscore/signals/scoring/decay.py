"""
Exponential age decay.
"""
import math


def decay(value: float, age_days: float, half_life_days: float) -> float:
    """
    Weight `value` down by its age: value * exp(-ln2 * age / half_life).

    A value exactly one half-life old keeps half its magnitude. Negative
    ages (data dated after the analysis date) are treated as fresh.

    Raises:
        ValueError: If half_life_days is not positive
    """
    if half_life_days <= 0:
        raise ValueError(f"half_life_days must be positive, got {half_life_days}")
    age = max(0.0, float(age_days))
    return value * math.exp(-math.log(2.0) * age / half_life_days)
