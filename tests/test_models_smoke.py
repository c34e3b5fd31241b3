"""Smoke tests for Pydantic models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from nihongo_srs.models.achievement import (
    Achievement,
    AccuracyCondition,
    StreakCondition,
    TimeCondition,
)
from nihongo_srs.models.base import as_local_naive
from nihongo_srs.models.character import Character, CustomDeck, QuizQuestion
from nihongo_srs.models.progress import CharacterProgress
from nihongo_srs.models.session import JLPTLevel, LearningMode, StudySession, WritingSystem
from nihongo_srs.models.user_profile import DailyStats, UserPreferences, UserProfile


class TestCharacterProgress:
    def test_default_values(self):
        p = CharacterProgress(character_id="hiragana_a")
        assert p.mastery_level == 0
        assert p.ease_factor == 2.5
        assert p.next_review_at is None
        assert p.failure_history == []
        assert not p.is_mastered

    def test_camel_case_dump(self):
        data = CharacterProgress(character_id="hiragana_a", success_streak=2).to_json_dict()
        assert data["characterId"] == "hiragana_a"
        assert data["successStreak"] == 2
        assert "character_id" not in data

    def test_accepts_camel_and_snake_input(self):
        a = CharacterProgress.model_validate({"characterId": "x", "masteryLevel": 3})
        b = CharacterProgress(character_id="x", mastery_level=3)
        assert a == b

    def test_mastered_at_top_level(self):
        assert CharacterProgress(character_id="x", mastery_level=5).is_mastered


class TestLocalDatetime:
    def test_aware_values_become_naive_local_time(self):
        p = CharacterProgress.model_validate({
            "characterId": "x",
            "nextReviewAt": "2026-04-01T10:00:00.000Z",
            "failureHistory": ["2026-03-30T10:00:00+09:00"],
        })
        expected = datetime(2026, 4, 1, 10, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert p.next_review_at == expected
        assert p.failure_history[0].tzinfo is None

    def test_naive_values_unchanged(self):
        assert as_local_naive(datetime(2026, 4, 1, 10)) == datetime(2026, 4, 1, 10)

    def test_all_timestamp_fields_normalised(self):
        stamp = "2026-04-01T10:00:00Z"
        profile = UserProfile.model_validate({"id": "u", "createdAt": stamp, "lastStudyDate": stamp})
        session = StudySession.model_validate({
            "id": "s", "mode": "recognition", "writingSystem": "hiragana",
            "startTime": stamp, "endTime": stamp,
        })
        deck = CustomDeck.model_validate({"id": "d", "name": "n", "createdAt": stamp, "lastStudied": stamp})
        values = [
            profile.created_at, profile.last_study_date,
            session.start_time, session.end_time,
            deck.created_at, deck.last_studied,
        ]
        assert all(v.tzinfo is None for v in values)


class TestUserProfile:
    def test_default_instantiation(self):
        profile = UserProfile(id="u1")
        assert profile.level == 1
        assert profile.xp_to_next_level == 100
        assert profile.total_xp == 0
        assert isinstance(profile.created_at, datetime)
        assert profile.preferences == UserPreferences()

    def test_total_xp_key(self):
        data = UserProfile(id="u1", total_xp=5).to_json_dict()
        assert data["totalXP"] == 5
        assert UserProfile.model_validate(data).total_xp == 5

    def test_legacy_achievements_key(self):
        profile = UserProfile.model_validate({"id": "u1", "achievements": ["ach_001"]})
        assert profile.unlocked_achievements == ["ach_001"]
        assert profile.to_json_dict()["unlockedAchievements"] == ["ach_001"]

    def test_invalid_preference_rejected(self):
        with pytest.raises(ValidationError):
            UserPreferences(theme="neon")


class TestDailyStats:
    def test_recorded_correct_prefers_counter(self):
        stats = DailyStats(date="2026-01-01", questions_answered=3, correct_answers=1, accuracy=90)
        assert stats.recorded_correct() == 1

    def test_recorded_correct_from_accuracy(self):
        stats = DailyStats(date="2026-01-01", questions_answered=8, accuracy=75)
        assert stats.recorded_correct() == 6


class TestStudySession:
    def test_active_until_ended(self):
        session = StudySession(id="s", mode="recognition", writing_system="hiragana")
        assert session.is_active
        assert session.mode is LearningMode.RECOGNITION
        assert session.writing_system is WritingSystem.HIRAGANA
        assert session.accuracy is None

    def test_accuracy(self):
        session = StudySession(
            id="s", mode="writing", writing_system="kanji", jlpt_level="N5",
            questions_answered=4, correct_answers=3,
        )
        assert session.jlpt_level is JLPTLevel.N5
        assert session.accuracy == pytest.approx(75.0)

    def test_enum_values(self):
        assert LearningMode.LISTENING == "listening"
        assert WritingSystem.KATAKANA == "katakana"
        assert JLPTLevel.N1 == "N1"


class TestAchievement:
    def test_condition_discriminated_by_type(self):
        achievement = Achievement.model_validate({
            "id": "ach_004",
            "name": "Streak",
            "description": "",
            "xpReward": 75,
            "condition": {"type": "streak", "target": 3},
        })
        assert isinstance(achievement.condition, StreakCondition)
        assert achievement.xp_reward == 75

    def test_accuracy_target_float(self):
        condition = Achievement.model_validate({
            "id": "a", "name": "", "description": "",
            "condition": {"type": "accuracy", "target": 92.5},
        }).condition
        assert isinstance(condition, AccuracyCondition)
        assert condition.target == 92.5

    def test_time_target_optional(self):
        condition = Achievement.model_validate({
            "id": "a", "name": "", "description": "", "condition": {"type": "time"},
        }).condition
        assert condition == TimeCondition()

    def test_unknown_condition_rejected(self):
        with pytest.raises(ValidationError):
            Achievement.model_validate({
                "id": "a", "name": "", "description": "",
                "condition": {"type": "lunar_phase", "target": 1},
            })


class TestQuizQuestion:
    @pytest.fixture
    def question(self):
        character = Character(id="katakana_ka", character="カ", romaji="ka", type="katakana")
        return QuizQuestion(id="q", character=character, mode="recognition", correct_answer="ka")

    @pytest.mark.parametrize("answer", ["ka", " KA ", "Ka\n"])
    def test_check_accepts(self, question, answer):
        assert question.check(answer)

    @pytest.mark.parametrize("answer", ["ga", "k a", ""])
    def test_check_rejects(self, question, answer):
        assert not question.check(answer)
