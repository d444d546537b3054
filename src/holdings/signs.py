from decimal import Decimal
from enum import Enum


class Sign(Enum):
    """Direction of a gain or change, shared by every consumer that colors figures."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


def classify_sign(value: Decimal | int | float | None) -> Sign:
    """Classify a figure. Missing values and zero are neutral."""
    if value is None or value == 0:
        return Sign.NEUTRAL
    return Sign.POSITIVE if value > 0 else Sign.NEGATIVE
