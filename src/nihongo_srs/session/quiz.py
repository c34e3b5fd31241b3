"""Quiz question construction for each learning mode."""

import random
import uuid
from collections.abc import Sequence

from nihongo_srs.models.character import Character, QuizQuestion
from nihongo_srs.models.session import LearningMode

DISTRACTOR_COUNT = 3


def build_question(
    character: Character,
    mode: LearningMode | str,
    pool: Sequence[Character] = (),
    rng: random.Random | None = None,
) -> QuizQuestion:
    """Build a question about ``character``.

    Recognition asks for the romaji of the shown glyph. Writing and
    listening ask for the glyph itself. Production is multiple choice
    between the glyph and up to three other glyphs drawn from ``pool``.
    """
    mode = LearningMode(mode)
    rng = rng or random.Random()
    question_id = f"q_{uuid.uuid4().hex[:12]}"

    if mode is LearningMode.RECOGNITION:
        return QuizQuestion(
            id=question_id,
            character=character,
            mode=mode,
            correct_answer=character.romaji,
        )

    options = None
    if mode is LearningMode.PRODUCTION:
        options = [character.character, *pick_distractors(character, pool, rng)]
        rng.shuffle(options)

    return QuizQuestion(
        id=question_id,
        character=character,
        mode=mode,
        options=options,
        correct_answer=character.character,
    )


def pick_distractors(
    character: Character,
    pool: Sequence[Character],
    rng: random.Random,
    count: int = DISTRACTOR_COUNT,
) -> list[str]:
    """Distinct glyphs from ``pool`` other than the answer."""
    glyphs = list(dict.fromkeys(c.character for c in pool if c.character != character.character))
    return rng.sample(glyphs, min(count, len(glyphs)))
