"""Dashboard statistics derived from the progress table."""

from collections.abc import Iterable, Mapping, Sequence

from pydantic import Field

from nihongo_srs.models.base import CamelModel
from nihongo_srs.models.character import Character
from nihongo_srs.models.progress import CharacterProgress
from nihongo_srs.models.session import JLPTLevel, StudySession, WritingSystem


class GlobalStats(CamelModel):
    mastered_count: int = 0
    learning_count: int = 0
    total_characters: int = 0
    overall_accuracy: float = 0.0
    average_response_time: float = 0.0
    total_sessions: int = 0
    hiragana_progress: float = 0.0
    katakana_progress: float = 0.0
    kanji_progress: dict[str, float] = Field(default_factory=dict)
    unlocked_achievements: int = 0
    total_achievements: int = 0


def mastered_percentage(
    characters: Iterable[Character], progress: Mapping[str, CharacterProgress]
) -> float:
    """Share of ``characters`` at the top mastery level, in percent."""
    ids = [c.id for c in characters]
    if not ids:
        return 0.0
    mastered = sum(1 for cid in ids if cid in progress and progress[cid].is_mastered)
    return round(mastered / len(ids) * 100, 1)


def compute_global_stats(
    progress: Mapping[str, CharacterProgress],
    sessions: Sequence[StudySession] = (),
    characters: Sequence[Character] = (),
    unlocked_achievements: int = 0,
    total_achievements: int = 0,
) -> GlobalStats:
    """Aggregate learner statistics.

    Args:
        progress: Progress table keyed by character id.
        sessions: Session history.
        characters: Catalog used for per-writing-system percentages.
        unlocked_achievements: Number of unlocked achievements.
        total_achievements: Size of the achievement catalog.

    Returns:
        Statistics snapshot.
    """
    records = list(progress.values())
    reviewed = [p for p in records if p.times_reviewed > 0]

    def of_system(system: WritingSystem) -> list[Character]:
        return [c for c in characters if c.type is system]

    kanji = of_system(WritingSystem.KANJI)
    return GlobalStats(
        mastered_count=sum(1 for p in records if p.is_mastered),
        learning_count=sum(1 for p in records if 0 < p.mastery_level < 5),
        total_characters=len(records),
        overall_accuracy=round(sum(p.accuracy for p in records) / len(records), 1) if records else 0.0,
        average_response_time=(
            round(sum(p.average_response_time for p in reviewed) / len(reviewed), 1)
            if reviewed
            else 0.0
        ),
        total_sessions=len(sessions),
        hiragana_progress=mastered_percentage(of_system(WritingSystem.HIRAGANA), progress),
        katakana_progress=mastered_percentage(of_system(WritingSystem.KATAKANA), progress),
        kanji_progress={
            level.value: mastered_percentage([c for c in kanji if c.jlpt_level == level], progress)
            for level in JLPTLevel
        },
        unlocked_achievements=unlocked_achievements,
        total_achievements=total_achievements,
    )
