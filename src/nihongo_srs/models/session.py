"""Study session data models."""

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from nihongo_srs.models.base import CamelModel, LocalDatetime


class LearningMode(StrEnum):
    """How a character is quizzed."""

    RECOGNITION = "recognition"
    PRODUCTION = "production"
    WRITING = "writing"
    LISTENING = "listening"


class WritingSystem(StrEnum):
    HIRAGANA = "hiragana"
    KATAKANA = "katakana"
    KANJI = "kanji"


class JLPTLevel(StrEnum):
    N5 = "N5"
    N4 = "N4"
    N3 = "N3"
    N2 = "N2"
    N1 = "N1"


class StudySession(CamelModel):
    """One study session. ``end_time`` stays None while the session is active."""

    id: str
    start_time: LocalDatetime = Field(default_factory=datetime.now)
    end_time: LocalDatetime | None = None
    duration: int = 0  # minutes
    questions_answered: int = 0
    correct_answers: int = 0
    xp_earned: int = 0
    mode: LearningMode
    writing_system: WritingSystem
    jlpt_level: JLPTLevel | None = None

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def accuracy(self) -> float | None:
        """Percentage of correct answers, None before the first answer."""
        if self.questions_answered == 0:
            return None
        return self.correct_answers / self.questions_answered * 100
