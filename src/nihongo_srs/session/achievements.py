"""Achievement unlock rules."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from nihongo_srs.models.achievement import (
    AccuracyCondition,
    Achievement,
    MasteryCondition,
    SessionsCondition,
    StreakCondition,
    TimeCondition,
    TotalXPCondition,
)
from nihongo_srs.models.progress import CharacterProgress
from nihongo_srs.models.session import StudySession
from nihongo_srs.models.user_profile import UserProfile

MIDNIGHT_ACHIEVEMENT_ID = "ach_014"
EARLY_BIRD_ACHIEVEMENT_ID = "ach_015"
EARLY_BIRD_HOUR = 6


@dataclass(frozen=True)
class AchievementContext:
    """Cumulative learner state that unlock conditions are tested against."""

    session_count: int
    streak: int
    total_xp: int
    mastered_count: int
    last_session_accuracy: float | None
    hour: int

    @classmethod
    def collect(
        cls,
        profile: UserProfile,
        progress: Mapping[str, CharacterProgress],
        sessions: Sequence[StudySession],
        now: datetime,
    ) -> "AchievementContext":
        return cls(
            session_count=len(sessions),
            streak=profile.streak,
            total_xp=profile.total_xp,
            mastered_count=sum(1 for p in progress.values() if p.is_mastered),
            last_session_accuracy=sessions[-1].accuracy if sessions else None,
            hour=now.hour,
        )


def is_satisfied(achievement: Achievement, context: AchievementContext) -> bool:
    match achievement.condition:
        case SessionsCondition(target=target):
            return context.session_count >= target
        case StreakCondition(target=target):
            return context.streak >= target
        case TotalXPCondition(target=target):
            return context.total_xp >= target
        case MasteryCondition(target=target):
            return context.mastered_count >= target
        case AccuracyCondition(target=target):
            if context.last_session_accuracy is None:
                return False
            return context.last_session_accuracy >= target
        case TimeCondition():
            if achievement.id == MIDNIGHT_ACHIEVEMENT_ID:
                return context.hour == 0
            if achievement.id == EARLY_BIRD_ACHIEVEMENT_ID:
                return context.hour < EARLY_BIRD_HOUR
            return False
    raise TypeError(f"Unknown achievement condition: {achievement.condition!r}")


def newly_unlocked(
    catalog: Iterable[Achievement],
    unlocked_ids: Iterable[str],
    context: AchievementContext,
) -> list[Achievement]:
    """Catalog entries not yet unlocked whose condition now holds, in catalog order."""
    unlocked = set(unlocked_ids)
    return [
        achievement
        for achievement in catalog
        if achievement.id not in unlocked and is_satisfied(achievement, context)
    ]
