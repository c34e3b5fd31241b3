"""Study session orchestration.

``SessionManager`` is the only stateful component. It owns an explicit
``AppState`` (profile, progress table, session history and the active
session), applies the pure scheduling and reward rules to each answered
question, and writes every change through a ``StudyRepository``.

State changes are made in memory first and then persisted. A failed
write is logged and reported through the ``persisted`` flag of the
returned outcome; in-memory state is not rolled back.
"""

import math
import random
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

import structlog

from nihongo_srs.catalog import load_achievements, load_all_characters
from nihongo_srs.config import Settings
from nihongo_srs.models.achievement import Achievement
from nihongo_srs.models.character import Character, CustomDeck, QuizQuestion
from nihongo_srs.models.progress import CharacterProgress
from nihongo_srs.models.session import JLPTLevel, LearningMode, StudySession, WritingSystem
from nihongo_srs.models.user_profile import DailyStats, UserPreferences, UserProfile
from nihongo_srs.session.achievements import AchievementContext, newly_unlocked
from nihongo_srs.session.quiz import build_question
from nihongo_srs.srs.priority import sort_by_priority
from nihongo_srs.srs.rewards import combo_multiplier, level_from_total_xp, xp_for_correct_answer
from nihongo_srs.srs.scheduler import apply_result, due_characters, new_progress
from nihongo_srs.srs.streak import update_streak
from nihongo_srs.storage.repository import ImportDataError, StudyRepository
from nihongo_srs.storage.store import InMemoryStore, JsonFileStore, StorageError

logger = structlog.get_logger()


class SessionState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class AppState:
    profile: UserProfile | None = None
    progress: dict[str, CharacterProgress] = field(default_factory=dict)
    sessions: list[StudySession] = field(default_factory=list)
    daily_stats: list[DailyStats] = field(default_factory=list)
    custom_decks: list[CustomDeck] = field(default_factory=list)
    unlocked_achievements: list[str] = field(default_factory=list)
    current_session: StudySession | None = None
    combo_count: int = 0


@dataclass
class SessionStart:
    session: StudySession
    persisted: bool


@dataclass
class ProfileChange:
    profile: UserProfile
    persisted: bool


@dataclass
class XPAward:
    leveled_up: bool
    persisted: bool


@dataclass
class AnswerOutcome:
    is_correct: bool
    xp_awarded: int
    combo_count: int
    combo_multiplier: float
    progress: CharacterProgress
    level: int
    leveled_up: bool
    persisted: bool


@dataclass
class SessionSummary:
    session: StudySession
    daily_stats: DailyStats
    unlocked_achievements: list[str]
    level: int
    leveled_up: bool
    persisted: bool


def merge_daily_stats(existing: DailyStats | None, session: StudySession, day: str) -> DailyStats:
    """Fold a closed session into the day's totals.

    Accuracy is recomputed from the combined answer counts.
    """
    previous_questions = existing.questions_answered if existing else 0
    previous_correct = existing.recorded_correct() if existing else 0
    total = previous_questions + session.questions_answered
    correct = previous_correct + session.correct_answers
    return DailyStats(
        date=day,
        study_time=(existing.study_time if existing else 0) + session.duration,
        xp_earned=(existing.xp_earned if existing else 0) + session.xp_earned,
        questions_answered=total,
        correct_answers=correct,
        accuracy=round(correct / total * 100) if total > 0 else 0,
    )


class SessionManager:
    """Owns the learner's state and drives study sessions.

    Args:
        repository: Persistence for all study records.
        characters: Character catalog available for study.
        achievements: Achievement catalog, evaluated in this order.
        clock: Returns the current local time.
        rng: Random source for question building.
        default_user_name: Name given to a newly created profile.
    """

    def __init__(
        self,
        repository: StudyRepository,
        characters: Iterable[Character] = (),
        achievements: Iterable[Achievement] = (),
        clock: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
        default_user_name: str = "Student",
    ):
        self.repository = repository
        self.characters: dict[str, Character] = {c.id: c for c in characters}
        self.achievements: tuple[Achievement, ...] = tuple(achievements)
        self.clock = clock
        self.rng = rng or random.Random()
        self.default_user_name = default_user_name
        self.state = AppState()

    @property
    def session_state(self) -> SessionState:
        return SessionState.IDLE if self.state.current_session is None else SessionState.ACTIVE

    @property
    def profile(self) -> UserProfile | None:
        return self.state.profile

    @property
    def current_session(self) -> StudySession | None:
        return self.state.current_session

    def _persist(self, record: str, write: Callable[..., Any], *args: Any) -> bool:
        try:
            write(*args)
        except StorageError as e:
            logger.error("persist_failed", record=record, error=str(e))
            return False
        return True

    # Profile

    def _default_profile(self, name: str | None = None) -> UserProfile:
        return UserProfile(
            id=f"user_{uuid.uuid4().hex[:12]}",
            name=name or self.default_user_name,
            created_at=self.clock(),
        )

    def initialize(self) -> UserProfile:
        """Load all persisted records into memory, creating a profile if none exists."""
        self._load()
        return self.state.profile

    def _load(self) -> bool:
        """Load state from the repository. Returns False if re-saving the profile failed."""
        profile = self.repository.get_profile()
        if profile is None:
            profile = self._default_profile()
            logger.info("profile_created", user_id=profile.id)

        unlocked = list(
            dict.fromkeys(self.repository.get_unlocked_achievements() + profile.unlocked_achievements)
        )
        profile.unlocked_achievements = list(unlocked)
        # Re-saving writes defaults for any preference keys the stored profile lacks
        persisted = self._persist("profile", self.repository.save_profile, profile)

        self.state = AppState(
            profile=profile,
            progress=self.repository.get_progress(),
            sessions=self.repository.get_sessions(),
            daily_stats=self.repository.get_daily_stats(),
            custom_decks=self.repository.get_custom_decks(),
            unlocked_achievements=unlocked,
        )
        logger.info(
            "state_loaded",
            user_id=profile.id,
            characters=len(self.state.progress),
            sessions=len(self.state.sessions),
        )
        return persisted

    def create_new_user(self, name: str) -> ProfileChange:
        profile = self._default_profile(name.strip() or None)
        self.state.profile = profile
        persisted = self._persist("profile", self.repository.save_profile, profile)
        logger.info("profile_created", user_id=profile.id)
        return ProfileChange(profile, persisted)

    def update_settings(
        self, name: str | None = None, preferences: dict[str, Any] | None = None
    ) -> ProfileChange | None:
        """Rename the learner and/or change preferences (snake_case keys).

        A blank name keeps the current one.
        """
        profile = self.state.profile
        if profile is None:
            logger.warning("settings_rejected", reason="no_profile")
            return None
        if name is not None:
            profile.name = name.strip() or profile.name
        if preferences:
            merged = profile.preferences.model_dump()
            merged.update(preferences)
            profile.preferences = UserPreferences.model_validate(merged)
        persisted = self._persist("profile", self.repository.save_profile, profile)
        return ProfileChange(profile, persisted)

    def _add_xp(self, xp: int) -> tuple[bool, bool]:
        """Add XP to the account. Returns (leveled_up, persisted)."""
        profile = self.state.profile
        if profile is None or xp <= 0:
            return False, True

        previous_level = profile.level
        profile.total_xp += xp
        level = level_from_total_xp(profile.total_xp)
        profile.level = level.level
        profile.xp = level.xp_into_level
        profile.xp_to_next_level = level.xp_to_next_level

        leveled_up = profile.level > previous_level
        if leveled_up:
            logger.info("level_up", user_id=profile.id, level=profile.level)
        persisted = self._persist("profile", self.repository.save_profile, profile)
        return leveled_up, persisted

    def award_xp(self, xp: int) -> XPAward:
        """Add XP outside a question, e.g. a bonus."""
        leveled_up, persisted = self._add_xp(xp)
        return XPAward(leveled_up, persisted)

    # Session lifecycle

    def start_session(
        self,
        mode: LearningMode | str,
        writing_system: WritingSystem | str,
        jlpt_level: JLPTLevel | str | None = None,
    ) -> SessionStart | None:
        """Open a session. Rejected while another session is active."""
        if self.state.profile is None:
            logger.warning("session_start_rejected", reason="no_profile")
            return None
        if self.state.current_session is not None:
            logger.warning(
                "session_start_rejected",
                reason="session_active",
                session_id=self.state.current_session.id,
            )
            return None

        session = StudySession(
            id=str(uuid.uuid4()),
            start_time=self.clock(),
            mode=mode,
            writing_system=writing_system,
            jlpt_level=jlpt_level,
        )
        self.state.current_session = session
        self.state.sessions.append(session)
        self.state.combo_count = 0
        persisted = self._persist("session", self.repository.save_session, session)
        logger.info(
            "session_started",
            session_id=session.id,
            mode=session.mode.value,
            writing_system=session.writing_system.value,
        )
        return SessionStart(session, persisted)

    def submit_answer(
        self, question: QuizQuestion, user_answer: str, response_time_ms: float
    ) -> AnswerOutcome | None:
        """Score one answer and update the session, progress and account.

        Rejected when no session is active.
        """
        session = self.state.current_session
        if session is None or self.state.profile is None:
            logger.warning("answer_rejected", reason="no_active_session", question_id=question.id)
            return None

        now = self.clock()
        is_correct = question.check(user_answer)
        question.user_answer = user_answer
        question.is_correct = is_correct
        question.response_time = response_time_ms

        session.questions_answered += 1
        if is_correct:
            session.correct_answers += 1
        combo = self.state.combo_count + 1 if is_correct else 0

        character_id = question.character.id
        progress = self.state.progress.get(character_id) or new_progress(character_id, now)

        multiplier = combo_multiplier(combo)
        base_xp = xp_for_correct_answer(progress.mastery_level, response_time_ms, is_correct)
        xp = math.floor(base_xp * multiplier)
        session.xp_earned += xp

        updated = apply_result(progress, is_correct, response_time_ms, now)
        self.state.progress[character_id] = updated
        self.state.combo_count = combo

        writes = [self._persist("progress", self.repository.save_character_progress, updated)]
        leveled_up, xp_saved = self._add_xp(xp)
        writes.append(xp_saved)
        writes.append(self._persist("session", self.repository.save_session, session))

        logger.info(
            "answer_submitted",
            session_id=session.id,
            character_id=character_id,
            correct=is_correct,
            xp=xp,
            combo=combo,
        )
        return AnswerOutcome(
            is_correct=is_correct,
            xp_awarded=xp,
            combo_count=combo,
            combo_multiplier=multiplier,
            progress=updated,
            level=self.state.profile.level,
            leveled_up=leveled_up,
            persisted=all(writes),
        )

    def end_session(self) -> SessionSummary | None:
        """Close the active session, roll it into daily stats and the streak, then check achievements.

        Rejected when no session is active.
        """
        session = self.state.current_session
        profile = self.state.profile
        if session is None or profile is None:
            logger.warning("session_end_rejected", reason="no_active_session")
            return None

        now = self.clock()
        session.end_time = now
        session.duration = max(0, int((now - session.start_time).total_seconds() // 60))
        writes = [self._persist("session", self.repository.save_session, session)]

        day = now.date().isoformat()
        existing = next((s for s in self.state.daily_stats if s.date == day), None)
        stats = merge_daily_stats(existing, session, day)
        self.state.daily_stats = [s for s in self.state.daily_stats if s.date != day] + [stats]
        writes.append(self._persist("daily_stats", self.repository.save_daily_stats, stats))

        profile.streak = update_streak(profile.last_study_date, profile.streak, now)
        profile.longest_streak = max(profile.longest_streak, profile.streak)
        profile.last_study_date = now
        profile.total_study_time += session.duration
        writes.append(self._persist("profile", self.repository.save_profile, profile))

        self.state.current_session = None
        self.state.combo_count = 0
        logger.info(
            "session_ended",
            session_id=session.id,
            questions=session.questions_answered,
            correct=session.correct_answers,
            xp=session.xp_earned,
            streak=profile.streak,
        )

        unlocked, leveled_up, unlock_saved = self._unlock_achievements(now)
        writes.append(unlock_saved)
        return SessionSummary(
            session=session,
            daily_stats=stats,
            unlocked_achievements=[a.id for a in unlocked],
            level=profile.level,
            leveled_up=leveled_up,
            persisted=all(writes),
        )

    def _unlock_achievements(self, now: datetime) -> tuple[list[Achievement], bool, bool]:
        profile = self.state.profile
        context = AchievementContext.collect(
            profile, self.state.progress, self.state.sessions, now
        )
        earned = newly_unlocked(self.achievements, self.state.unlocked_achievements, context)

        leveled_up = False
        writes = []
        for achievement in earned:
            self.state.unlocked_achievements.append(achievement.id)
            if achievement.id not in profile.unlocked_achievements:
                profile.unlocked_achievements.append(achievement.id)
            writes.append(
                self._persist("achievement", self.repository.unlock_achievement, achievement.id)
            )
            level_up, xp_saved = self._add_xp(achievement.xp_reward)
            leveled_up = leveled_up or level_up
            writes.append(xp_saved)
            logger.info(
                "achievement_unlocked",
                achievement_id=achievement.id,
                name=achievement.name,
                xp_reward=achievement.xp_reward,
            )
        if earned:
            writes.append(self._persist("profile", self.repository.save_profile, profile))
        return earned, leveled_up, all(writes)

    def check_achievements(self) -> list[str]:
        """Evaluate unlock conditions outside of a session close."""
        if self.state.profile is None:
            return []
        earned, _, _ = self._unlock_achievements(self.clock())
        return [a.id for a in earned]

    # Study material

    def character_pool(
        self,
        writing_system: WritingSystem | str | None = None,
        jlpt_level: JLPTLevel | str | None = None,
    ) -> list[Character]:
        pool = list(self.characters.values())
        if writing_system is not None:
            system = WritingSystem(writing_system)
            pool = [c for c in pool if c.type is system]
        if jlpt_level is not None:
            level = JLPTLevel(jlpt_level)
            pool = [c for c in pool if c.type is not WritingSystem.KANJI or c.jlpt_level == level]
        return pool

    def review_queue(
        self,
        writing_system: WritingSystem | str | None = None,
        jlpt_level: JLPTLevel | str | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """Ids of due characters, most urgent first.

        Defaults to the active session's writing system and JLPT level.
        """
        session = self.state.current_session
        if writing_system is None and session is not None:
            writing_system = session.writing_system
            jlpt_level = jlpt_level or session.jlpt_level

        now = self.clock()
        ids = [c.id for c in self.character_pool(writing_system, jlpt_level)]
        queue = sort_by_priority(due_characters(self.state.progress, ids, now), self.state.progress, now)
        return queue[:limit] if limit is not None else queue

    def next_question(self) -> QuizQuestion | None:
        """Question on the most urgent due character of the active session.

        Falls back to a random character when nothing is due.
        """
        session = self.state.current_session
        if session is None:
            logger.warning("question_rejected", reason="no_active_session")
            return None

        pool = self.character_pool(session.writing_system, session.jlpt_level)
        if not pool:
            return None
        queue = self.review_queue(limit=1)
        character = self.characters[queue[0]] if queue else self.rng.choice(pool)
        return build_question(character, session.mode, pool, self.rng)

    def save_custom_deck(self, deck: CustomDeck) -> bool:
        self.state.custom_decks = [d for d in self.state.custom_decks if d.id != deck.id] + [deck]
        return self._persist("custom_deck", self.repository.save_custom_deck, deck)

    def delete_custom_deck(self, deck_id: str) -> bool:
        self.state.custom_decks = [d for d in self.state.custom_decks if d.id != deck_id]
        return self._persist("custom_deck", self.repository.delete_custom_deck, deck_id)

    # Data management

    def export_data(self) -> str:
        return self.repository.export_all(self.clock())

    def import_data(self, json_string: str) -> bool:
        """Replace stored data with an export and reload.

        Returns False if the import failed or a session is active.
        """
        if self.state.current_session is not None:
            logger.warning(
                "import_rejected",
                reason="session_active",
                session_id=self.state.current_session.id,
            )
            return False
        try:
            self.repository.import_all(json_string)
        except ImportDataError as e:
            logger.warning("import_failed", error=str(e))
            return False
        self.initialize()
        return True

    def reset_all_data(self) -> ProfileChange:
        """Delete every record, including an active session, and start a fresh profile."""
        cleared = self._persist("all", self.repository.reset_all)
        saved = self._load()
        return ProfileChange(self.state.profile, cleared and saved)

    def reset_progress_only(self) -> bool | None:
        """Clear progress, sessions and daily stats, keeping the profile.

        Rejected while a session is active. Returns whether the reset was persisted.
        """
        if self.state.current_session is not None:
            logger.warning(
                "reset_rejected",
                reason="session_active",
                session_id=self.state.current_session.id,
            )
            return None
        persisted = self._persist("progress", self.repository.reset_progress_only)
        self.state.progress = {}
        self.state.sessions = []
        self.state.daily_stats = []
        self.state.combo_count = 0
        return persisted


def build_session_manager(settings: Settings) -> SessionManager:
    """Wire a manager to the configured store and catalogs, and load state."""
    if settings.storage_backend == "memory":
        store = InMemoryStore()
    else:
        store = JsonFileStore(settings.store_dir)
    manager = SessionManager(
        StudyRepository(store),
        characters=load_all_characters(settings.catalog_dir),
        achievements=load_achievements(settings.catalog_dir),
        default_user_name=settings.default_user_name,
    )
    manager.initialize()
    return manager
