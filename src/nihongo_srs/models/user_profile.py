"""User profile, preferences and per-day statistics."""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, Field

from nihongo_srs.models.base import CamelModel, LocalDatetime


class UserPreferences(CamelModel):
    theme: Literal["light", "dark", "auto"] = "auto"
    daily_goal: int = 100  # XP
    show_stroke_order: bool = True
    show_mnemonics: bool = True
    enable_sounds: bool = True
    font_size: Literal["small", "medium", "large"] = "medium"
    animation_speed: Literal["slow", "normal", "fast"] = "normal"


class UserProfile(CamelModel):
    id: str
    name: str = "Student"
    created_at: LocalDatetime = Field(default_factory=datetime.now)
    level: int = 1
    xp: int = 0  # earned inside the current level
    xp_to_next_level: int = 100
    total_xp: int = Field(default=0, alias="totalXP")
    streak: int = 0
    longest_streak: int = 0
    last_study_date: LocalDatetime | None = None
    total_study_time: int = 0  # minutes
    # Older exports call this list "achievements"
    unlocked_achievements: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "unlockedAchievements", "unlocked_achievements", "achievements"
        ),
    )
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class DailyStats(CamelModel):
    """Aggregate of all sessions closed on one local calendar date."""

    date: str  # YYYY-MM-DD
    study_time: int = 0  # minutes
    xp_earned: int = 0
    questions_answered: int = 0
    correct_answers: int | None = None
    accuracy: int = 0  # percent

    def recorded_correct(self) -> int:
        """Correct answers so far, derived from accuracy for records that predate the counter."""
        if self.correct_answers is not None:
            return self.correct_answers
        return round(self.accuracy / 100 * self.questions_answered)
