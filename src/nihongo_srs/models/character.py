"""Study material: characters, quiz questions and custom decks."""

from datetime import datetime

from pydantic import Field

from nihongo_srs.models.base import CamelModel, LocalDatetime
from nihongo_srs.models.session import JLPTLevel, LearningMode, WritingSystem


class KanjiExample(CamelModel):
    word: str
    reading: str
    meaning: str


class Character(CamelModel):
    """A kana or kanji from the static catalog.

    Kanji-only fields stay empty for kana.
    """

    id: str
    character: str
    romaji: str
    type: WritingSystem
    category: str | None = None  # basic, dakuten, combination

    meanings: list[str] = Field(default_factory=list)
    kun_reading: list[str] = Field(default_factory=list)
    on_reading: list[str] = Field(default_factory=list)
    strokes: int | None = None
    jlpt_level: JLPTLevel | None = None
    radicals: list[str] = Field(default_factory=list)
    examples: list[KanjiExample] = Field(default_factory=list)
    mnemonic: str | None = None


class QuizQuestion(CamelModel):
    id: str
    character: Character
    mode: LearningMode
    options: list[str] | None = None
    correct_answer: str
    user_answer: str | None = None
    is_correct: bool | None = None
    response_time: float | None = None  # milliseconds

    def check(self, user_answer: str) -> bool:
        """Trimmed, case-insensitive comparison against the expected answer."""
        return user_answer.strip().lower() == self.correct_answer.strip().lower()


class CustomDeck(CamelModel):
    id: str
    name: str
    description: str = ""
    character_ids: list[str] = Field(default_factory=list)
    created_at: LocalDatetime = Field(default_factory=datetime.now)
    last_studied: LocalDatetime | None = None
    color: str = "#667eea"
