"""XP, combo and account level calculations."""

import math
from typing import NamedTuple

BASE_XP = 10
XP_PER_MASTERY_LEVEL = 5
FIRST_LEVEL_THRESHOLD = 100

# (exclusive upper bound on combo count, multiplier)
COMBO_TIERS: list[tuple[int, float]] = [
    (5, 1.0),
    (10, 1.5),
    (20, 2.0),
    (50, 2.5),
]
MAX_COMBO_MULTIPLIER = 3.0


class LevelProgress(NamedTuple):
    level: int
    xp_to_next_level: int
    xp_into_level: int


def speed_multiplier(response_time_ms: float) -> float:
    """Faster answers earn more; very slow answers earn less."""
    if response_time_ms < 2000:
        return 1.5
    elif response_time_ms < 5000:
        return 1.2
    elif response_time_ms > 15000:
        return 0.8
    return 1.0


def xp_for_correct_answer(
    mastery_level: int, response_time_ms: float, is_correct: bool = True
) -> int:
    """XP for one answer before the combo multiplier.

    Args:
        mastery_level: Mastery of the character before the answer is applied.
        response_time_ms: Answer latency in milliseconds.
        is_correct: Incorrect answers earn nothing.

    Returns:
        ``floor((10 + 5 * mastery_level) * speed_multiplier)``, or 0.
    """
    if not is_correct:
        return 0
    base = BASE_XP + mastery_level * XP_PER_MASTERY_LEVEL
    return math.floor(base * speed_multiplier(response_time_ms))


def combo_multiplier(combo_count: int) -> float:
    for upper, multiplier in COMBO_TIERS:
        if combo_count < upper:
            return multiplier
    return MAX_COMBO_MULTIPLIER


def level_threshold(level: int) -> int:
    """Total XP needed to leave ``level``."""
    if level <= 1:
        return FIRST_LEVEL_THRESHOLD
    return math.floor(100 * level**1.5)


def level_from_total_xp(total_xp: int) -> LevelProgress:
    """Account level reached with ``total_xp`` cumulative XP.

    Depends on the total alone, so any sequence of awards with the same
    sum lands on the same level.
    """
    level = 1
    threshold = FIRST_LEVEL_THRESHOLD
    level_start = 0
    while total_xp >= threshold:
        level += 1
        level_start = threshold
        threshold = level_threshold(level)
    return LevelProgress(
        level=level,
        xp_to_next_level=threshold - total_xp,
        xp_into_level=total_xp - level_start,
    )
