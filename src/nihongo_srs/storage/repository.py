"""Typed access to persisted study records, plus export/import/reset."""

import json
from datetime import datetime
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from nihongo_srs.models.base import CamelModel, LocalDatetime
from nihongo_srs.models.character import CustomDeck
from nihongo_srs.models.progress import CharacterProgress
from nihongo_srs.models.session import StudySession
from nihongo_srs.models.user_profile import DailyStats, UserProfile
from nihongo_srs.storage.store import KeyValueStore, StorageError

logger = structlog.get_logger()

USER_PROFILE_KEY = "nihongo_user_profile"
CHARACTER_PROGRESS_KEY = "nihongo_character_progress"
STUDY_SESSIONS_KEY = "nihongo_study_sessions"
DAILY_STATS_KEY = "nihongo_daily_stats"
CUSTOM_DECKS_KEY = "nihongo_custom_decks"
ACHIEVEMENTS_KEY = "nihongo_achievements"

ALL_KEYS = (
    USER_PROFILE_KEY,
    CHARACTER_PROGRESS_KEY,
    STUDY_SESSIONS_KEY,
    DAILY_STATS_KEY,
    CUSTOM_DECKS_KEY,
    ACHIEVEMENTS_KEY,
)
PROGRESS_KEYS = (CHARACTER_PROGRESS_KEY, STUDY_SESSIONS_KEY, DAILY_STATS_KEY)

_progress_table = TypeAdapter(dict[str, CharacterProgress])
_sessions = TypeAdapter(list[StudySession])
_daily_stats = TypeAdapter(list[DailyStats])
_decks = TypeAdapter(list[CustomDeck])
_ids = TypeAdapter(list[str])


class ImportDataError(Exception):
    """An import document was malformed or could not be applied."""


class ExportSnapshot(CamelModel):
    """Full-state document. Absent sections are left alone on import."""

    profile: UserProfile | None = None
    progress: dict[str, CharacterProgress] | None = None
    sessions: list[StudySession] | None = None
    daily_stats: list[DailyStats] | None = None
    custom_decks: list[CustomDeck] | None = None
    achievements: list[str] | None = None
    exported_at: LocalDatetime | None = None


class StudyRepository:
    """Reads and writes study records through a ``KeyValueStore``.

    Stored values that fail validation are logged and treated as absent.
    Write failures surface as ``StorageError``.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load(self, key: str, adapter: TypeAdapter, default: Any) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return default
        try:
            return adapter.validate_python(raw)
        except ValidationError as e:
            logger.warning("stored_record_invalid", key=key, errors=e.error_count())
            return default

    # User profile

    def get_profile(self) -> UserProfile | None:
        return self._load(USER_PROFILE_KEY, TypeAdapter(UserProfile), None)

    def save_profile(self, profile: UserProfile) -> None:
        self.store.set(USER_PROFILE_KEY, profile.to_json_dict())

    # Character progress

    def get_progress(self) -> dict[str, CharacterProgress]:
        return self._load(CHARACTER_PROGRESS_KEY, _progress_table, {})

    def save_progress(self, table: dict[str, CharacterProgress]) -> None:
        self.store.set(
            CHARACTER_PROGRESS_KEY,
            {cid: progress.to_json_dict() for cid, progress in table.items()},
        )

    def save_character_progress(self, progress: CharacterProgress) -> None:
        raw = self.store.get(CHARACTER_PROGRESS_KEY) or {}
        raw[progress.character_id] = progress.to_json_dict()
        self.store.set(CHARACTER_PROGRESS_KEY, raw)

    # Study sessions

    def get_sessions(self) -> list[StudySession]:
        return self._load(STUDY_SESSIONS_KEY, _sessions, [])

    def save_session(self, session: StudySession) -> None:
        """Replace the stored session with the same id, or append it."""
        raw = self.store.get(STUDY_SESSIONS_KEY) or []
        record = session.to_json_dict()
        for i, existing in enumerate(raw):
            if existing.get("id") == session.id:
                raw[i] = record
                break
        else:
            raw.append(record)
        self.store.set(STUDY_SESSIONS_KEY, raw)

    # Daily stats

    def get_daily_stats(self) -> list[DailyStats]:
        return self._load(DAILY_STATS_KEY, _daily_stats, [])

    def get_stats_for(self, day: str) -> DailyStats | None:
        return next((s for s in self.get_daily_stats() if s.date == day), None)

    def save_daily_stats(self, stats: DailyStats) -> None:
        """Upsert the record for ``stats.date``."""
        all_stats = self.get_daily_stats()
        for i, existing in enumerate(all_stats):
            if existing.date == stats.date:
                all_stats[i] = stats
                break
        else:
            all_stats.append(stats)
        self.store.set(DAILY_STATS_KEY, [s.to_json_dict() for s in all_stats])

    # Custom decks

    def get_custom_decks(self) -> list[CustomDeck]:
        return self._load(CUSTOM_DECKS_KEY, _decks, [])

    def save_custom_deck(self, deck: CustomDeck) -> None:
        decks = [d for d in self.get_custom_decks() if d.id != deck.id]
        decks.append(deck)
        self.store.set(CUSTOM_DECKS_KEY, [d.to_json_dict() for d in decks])

    def delete_custom_deck(self, deck_id: str) -> None:
        decks = [d for d in self.get_custom_decks() if d.id != deck_id]
        self.store.set(CUSTOM_DECKS_KEY, [d.to_json_dict() for d in decks])

    # Achievements

    def get_unlocked_achievements(self) -> list[str]:
        return self._load(ACHIEVEMENTS_KEY, _ids, [])

    def unlock_achievement(self, achievement_id: str) -> bool:
        """Record an unlock. Returns False if it was already recorded."""
        unlocked = self.get_unlocked_achievements()
        if achievement_id in unlocked:
            return False
        unlocked.append(achievement_id)
        self.store.set(ACHIEVEMENTS_KEY, unlocked)
        return True

    # Export / import

    def export_all(self, now: datetime | None = None) -> str:
        snapshot = ExportSnapshot(
            profile=self.get_profile(),
            progress=self.get_progress(),
            sessions=self.get_sessions(),
            daily_stats=self.get_daily_stats(),
            custom_decks=self.get_custom_decks(),
            achievements=self.get_unlocked_achievements(),
            exported_at=now or datetime.now(),
        )
        return json.dumps(snapshot.to_json_dict(), indent=2, ensure_ascii=False)

    def import_all(self, json_string: str) -> list[str]:
        """Overwrite stored records with the sections present in an export.

        Everything is validated before the first write. If a write fails,
        keys already written are restored to their previous values.

        Returns:
            Storage keys that were overwritten.

        Raises:
            ImportDataError: The document is malformed or could not be applied.
        """
        try:
            data = json.loads(json_string)
        except (TypeError, ValueError) as e:
            raise ImportDataError(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ImportDataError("Import document must be a JSON object")
        try:
            snapshot = ExportSnapshot.model_validate(data)
        except ValidationError as e:
            raise ImportDataError(f"Invalid import data: {e.error_count()} errors") from e

        writes: dict[str, Any] = {}
        if snapshot.profile is not None:
            writes[USER_PROFILE_KEY] = snapshot.profile.to_json_dict()
        if snapshot.progress is not None:
            writes[CHARACTER_PROGRESS_KEY] = {
                cid: p.to_json_dict() for cid, p in snapshot.progress.items()
            }
        if snapshot.sessions is not None:
            writes[STUDY_SESSIONS_KEY] = [s.to_json_dict() for s in snapshot.sessions]
        if snapshot.daily_stats is not None:
            writes[DAILY_STATS_KEY] = [s.to_json_dict() for s in snapshot.daily_stats]
        if snapshot.custom_decks is not None:
            writes[CUSTOM_DECKS_KEY] = [d.to_json_dict() for d in snapshot.custom_decks]
        if snapshot.achievements is not None:
            writes[ACHIEVEMENTS_KEY] = list(dict.fromkeys(snapshot.achievements))

        previous = {key: self.store.get(key) for key in writes}
        written: list[str] = []
        try:
            for key, value in writes.items():
                self.store.set(key, value)
                written.append(key)
        except StorageError as e:
            logger.error("import_write_failed", key=key, error=str(e))
            self._restore(previous, written)
            raise ImportDataError(f"Import could not be written: {e}") from e

        logger.info("data_imported", keys=written)
        return written

    def _restore(self, previous: dict[str, Any], keys: list[str]) -> None:
        for key in keys:
            try:
                if previous[key] is None:
                    self.store.delete(key)
                else:
                    self.store.set(key, previous[key])
            except StorageError as e:
                logger.error("import_rollback_failed", key=key, error=str(e))

    # Reset

    def reset_all(self) -> None:
        for key in ALL_KEYS:
            self.store.delete(key)
        logger.info("data_reset", scope="all")

    def reset_progress_only(self) -> None:
        for key in PROGRESS_KEYS:
            self.store.delete(key)
        logger.info("data_reset", scope="progress")
