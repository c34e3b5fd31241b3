"""REST API routes for study sessions, progress and data management."""

from collections.abc import Iterator
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import Field

from nihongo_srs.analysis.stats import compute_global_stats
from nihongo_srs.models.base import CamelModel
from nihongo_srs.models.character import QuizQuestion
from nihongo_srs.models.session import JLPTLevel, LearningMode, WritingSystem
from nihongo_srs.session.manager import SessionManager

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class ProfileUpdate(CamelModel):
    name: str | None = None
    preferences: dict[str, Any] | None = None


class StartSessionRequest(CamelModel):
    mode: LearningMode
    writing_system: WritingSystem
    jlpt_level: JLPTLevel | None = None


class AnswerRequest(CamelModel):
    question: QuizQuestion
    user_answer: str
    response_time_ms: float = Field(ge=0)


def get_manager(request: Request) -> Iterator[SessionManager]:
    """Hand the manager to one request at a time.

    Handlers are plain functions run in FastAPI's threadpool, so store I/O
    stays off the event loop while manager state is never shared between
    threads.
    """
    with request.app.state.manager_lock:
        yield request.app.state.manager


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/profile")
def get_profile(manager: SessionManager = Depends(get_manager)) -> dict:
    return manager.profile.to_json_dict()


@router.patch("/profile")
def update_profile(update: ProfileUpdate, manager: SessionManager = Depends(get_manager)) -> dict:
    try:
        change = manager.update_settings(name=update.name, preferences=update.preferences)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if change is None:
        raise HTTPException(status_code=409, detail="No profile loaded")
    return {"profile": change.profile.to_json_dict(), "persisted": change.persisted}


@router.get("/sessions")
def list_sessions(manager: SessionManager = Depends(get_manager)) -> list[dict]:
    """List all sessions, most recent first."""
    return [s.to_json_dict() for s in reversed(manager.state.sessions)]


@router.post("/sessions", status_code=201)
def start_session(
    request: StartSessionRequest, manager: SessionManager = Depends(get_manager)
) -> dict:
    started = manager.start_session(request.mode, request.writing_system, request.jlpt_level)
    if started is None:
        raise HTTPException(status_code=409, detail="A session is already active")
    return {"session": started.session.to_json_dict(), "persisted": started.persisted}


@router.get("/sessions/current")
def current_session(manager: SessionManager = Depends(get_manager)) -> dict:
    if manager.current_session is None:
        raise HTTPException(status_code=404, detail="No active session")
    return manager.current_session.to_json_dict()


@router.get("/sessions/question")
def next_question(manager: SessionManager = Depends(get_manager)) -> dict:
    question = manager.next_question()
    if question is None:
        raise HTTPException(status_code=409, detail="No active session or no characters")
    return question.to_json_dict()


@router.post("/sessions/answer")
def submit_answer(request: AnswerRequest, manager: SessionManager = Depends(get_manager)) -> dict:
    outcome = manager.submit_answer(request.question, request.user_answer, request.response_time_ms)
    if outcome is None:
        raise HTTPException(status_code=409, detail="No active session")
    return {
        "isCorrect": outcome.is_correct,
        "correctAnswer": request.question.correct_answer,
        "xpAwarded": outcome.xp_awarded,
        "comboCount": outcome.combo_count,
        "comboMultiplier": outcome.combo_multiplier,
        "progress": outcome.progress.to_json_dict(),
        "level": outcome.level,
        "leveledUp": outcome.leveled_up,
        "persisted": outcome.persisted,
    }


@router.post("/sessions/end")
def end_session(manager: SessionManager = Depends(get_manager)) -> dict:
    summary = manager.end_session()
    if summary is None:
        raise HTTPException(status_code=409, detail="No active session")
    return {
        "session": summary.session.to_json_dict(),
        "dailyStats": summary.daily_stats.to_json_dict(),
        "unlockedAchievements": summary.unlocked_achievements,
        "level": summary.level,
        "leveledUp": summary.leveled_up,
        "persisted": summary.persisted,
    }


@router.get("/review-queue")
def review_queue(
    request: Request,
    writing_system: WritingSystem | None = None,
    jlpt_level: JLPTLevel | None = None,
    limit: int | None = None,
    manager: SessionManager = Depends(get_manager),
) -> list[str]:
    """Due characters, most urgent first. Defaults to one review batch."""
    if limit is None:
        limit = request.app.state.settings.review_batch_size
    return manager.review_queue(writing_system, jlpt_level, limit)


@router.get("/stats")
def get_stats(manager: SessionManager = Depends(get_manager)) -> dict:
    stats = compute_global_stats(
        manager.state.progress,
        manager.state.sessions,
        list(manager.characters.values()),
        unlocked_achievements=len(manager.state.unlocked_achievements),
        total_achievements=len(manager.achievements),
    )
    return stats.to_json_dict()


@router.get("/export")
def export_data(manager: SessionManager = Depends(get_manager)) -> Response:
    return Response(content=manager.export_data(), media_type="application/json")


@router.post("/import")
async def import_data(request: Request, manager: SessionManager = Depends(get_manager)) -> dict:
    """Import an export document sent as the raw request body."""
    if manager.current_session is not None:
        raise HTTPException(status_code=409, detail="End the active session before importing")
    payload = (await request.body()).decode("utf-8", errors="replace")
    if not await run_in_threadpool(manager.import_data, payload):
        raise HTTPException(status_code=400, detail="Import failed")
    return {"status": "imported"}


@router.post("/reset")
def reset_data(manager: SessionManager = Depends(get_manager)) -> dict:
    change = manager.reset_all_data()
    logger.info("reset_requested", persisted=change.persisted)
    return {"status": "reset", "persisted": change.persisted}
