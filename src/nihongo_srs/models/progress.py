"""Per-character mastery record."""

from pydantic import Field

from nihongo_srs.models.base import CamelModel, LocalDatetime

MIN_MASTERY_LEVEL = 0
MAX_MASTERY_LEVEL = 5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5


class CharacterProgress(CamelModel):
    """Learning state of one character.

    Mastery levels: 0 New, 1 Learning, 2 Familiar, 3 Known, 4 Mastered, 5 Burned.
    """

    character_id: str
    mastery_level: int = 0
    accuracy: float = 0.0
    times_reviewed: int = Field(default=0, ge=0)
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    average_response_time: float = 0.0  # milliseconds
    last_reviewed_at: LocalDatetime | None = None
    next_review_at: LocalDatetime | None = None
    success_streak: int = Field(default=0, ge=0)
    failure_history: list[LocalDatetime] = Field(default_factory=list)
    ease_factor: float = MAX_EASE_FACTOR

    @property
    def is_mastered(self) -> bool:
        return self.mastery_level >= MAX_MASTERY_LEVEL
