"""Review ordering: most urgent characters first."""

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from nihongo_srs.models.progress import MAX_MASTERY_LEVEL, CharacterProgress

_DAY = timedelta(days=1)


def accuracy_penalty(accuracy: float) -> int:
    if accuracy < 70:
        return 10
    elif accuracy < 85:
        return 5
    return 0


def priority_score(progress: CharacterProgress, now: datetime | None = None) -> float:
    """Urgency of reviewing a character; higher means sooner.

    Overdue days weigh 10 each, every missing mastery level weighs 5, and
    weak accuracy adds a fixed penalty.
    """
    now = now or datetime.now()
    overdue_days = 0.0
    if progress.next_review_at is not None:
        overdue_days = max(0.0, (now - progress.next_review_at) / _DAY)

    score = overdue_days * 10
    score += (MAX_MASTERY_LEVEL - progress.mastery_level) * 5
    score += accuracy_penalty(progress.accuracy)
    return score


def sort_by_priority(
    character_ids: Iterable[str],
    progress_map: Mapping[str, CharacterProgress],
    now: datetime | None = None,
) -> list[str]:
    """Order ids for study.

    Characters without a record come first in their input order, followed
    by the rest by descending priority score. Ties keep input order.
    """
    now = now or datetime.now()

    def sort_key(character_id: str) -> tuple[int, float]:
        progress = progress_map.get(character_id)
        if progress is None:
            return (0, 0.0)
        return (1, -priority_score(progress, now))

    return sorted(character_ids, key=sort_key)
