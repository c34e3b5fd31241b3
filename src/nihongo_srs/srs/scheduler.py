"""Character progress transitions and review scheduling.

Mastery levels map to a base review interval which is stretched by the
character's ease factor:

    0 New       immediate
    1 Learning  1 day
    2 Familiar  3 days
    3 Known     7 days
    4 Mastered  14 days
    5 Burned    30 days
"""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

import structlog

from nihongo_srs.models.progress import (
    MAX_EASE_FACTOR,
    MAX_MASTERY_LEVEL,
    MIN_EASE_FACTOR,
    MIN_MASTERY_LEVEL,
    CharacterProgress,
)

logger = structlog.get_logger()

MASTERY_INTERVALS: list[int] = [0, 1, 3, 7, 14, 30]

EASE_STEP_CORRECT = 0.1
EASE_STEP_INCORRECT = 0.2
LEVEL_UP_STREAK = 3


def _clamp(value, low, high):
    return max(low, min(high, value))


def new_progress(character_id: str, now: datetime | None = None) -> CharacterProgress:
    """Fresh record for a character answered for the first time. Due immediately."""
    return CharacterProgress(
        character_id=character_id,
        next_review_at=now or datetime.now(),
    )


def next_review(
    mastery_level: int, ease_factor: float, now: datetime | None = None
) -> datetime:
    """Compute the next review time for a mastery level and ease factor.

    Args:
        mastery_level: Current mastery level; clamped to the interval table.
        ease_factor: Multiplier applied to the base interval.
        now: Reference time (defaults to the current local time).

    Returns:
        ``now`` plus ``ceil(base_interval * ease_factor)`` days.
    """
    now = now or datetime.now()
    index = _clamp(mastery_level, 0, len(MASTERY_INTERVALS) - 1)
    interval_days = math.ceil(MASTERY_INTERVALS[index] * ease_factor)
    return now + timedelta(days=interval_days)


def apply_result(
    progress: CharacterProgress,
    is_correct: bool,
    response_time_ms: float,
    now: datetime | None = None,
) -> CharacterProgress:
    """Return the record that results from answering one question.

    The input record is left untouched. A correct answer grows the ease
    factor and, once the success streak reaches three, raises mastery by
    one level on every further correct answer until the top level. An
    incorrect answer resets the streak, shrinks the ease factor and drops
    mastery by one level, except that level 1 never falls back to 0.

    Args:
        progress: Record before the answer.
        is_correct: Whether the answer was right.
        response_time_ms: Answer latency in milliseconds.
        now: Review time (defaults to the current local time).

    Returns:
        Updated copy of the record.
    """
    now = now or datetime.now()
    updated = progress.model_copy(deep=True)
    updated.mastery_level = _clamp(updated.mastery_level, MIN_MASTERY_LEVEL, MAX_MASTERY_LEVEL)
    updated.ease_factor = _clamp(updated.ease_factor, MIN_EASE_FACTOR, MAX_EASE_FACTOR)

    updated.times_reviewed += 1
    if is_correct:
        updated.correct_count += 1
        updated.success_streak += 1
        updated.ease_factor = min(updated.ease_factor + EASE_STEP_CORRECT, MAX_EASE_FACTOR)
        # The streak is kept after a level-up, so each further correct answer levels up again
        if updated.success_streak >= LEVEL_UP_STREAK and updated.mastery_level < MAX_MASTERY_LEVEL:
            updated.mastery_level += 1
    else:
        updated.incorrect_count += 1
        updated.success_streak = 0
        updated.failure_history.append(now)
        updated.ease_factor = max(updated.ease_factor - EASE_STEP_INCORRECT, MIN_EASE_FACTOR)
        # Level 1 is never demoted to 0
        if updated.mastery_level > 1:
            updated.mastery_level -= 1

    n = updated.times_reviewed
    updated.accuracy = updated.correct_count / n * 100
    updated.average_response_time = (
        updated.average_response_time * (n - 1) + response_time_ms
    ) / n

    updated.last_reviewed_at = now
    updated.next_review_at = next_review(updated.mastery_level, updated.ease_factor, now)

    logger.debug(
        "progress_updated",
        character_id=updated.character_id,
        correct=is_correct,
        mastery=updated.mastery_level,
        ease=round(updated.ease_factor, 2),
    )
    return updated


def is_due(progress: CharacterProgress | None, now: datetime | None = None) -> bool:
    """True when the character has no schedule or its review time has passed."""
    if progress is None or progress.next_review_at is None:
        return True
    return (now or datetime.now()) >= progress.next_review_at


def due_characters(
    progress_map: Mapping[str, CharacterProgress],
    character_ids: Iterable[str],
    now: datetime | None = None,
) -> list[str]:
    """Filter ``character_ids`` down to those due for review. Unknown ids are always due."""
    now = now or datetime.now()
    return [cid for cid in character_ids if is_due(progress_map.get(cid), now)]
