from __future__ import annotations

import datetime as dt
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from lingolearn.config import Settings
from lingolearn.db.models import Word, new_daily_progress
from lingolearn.skills.achievements import ACHIEVEMENTS
from lingolearn.skills.progress import goal_completion, progress_history
from lingolearn.skills.schemas import (
    AchievementOut,
    AchievementStatus,
    CategoryStats,
    DailyProgressOut,
    FavoriteRequest,
    ResetProgressResponse,
    SessionProgress,
    SessionStatsOut,
    StudyReviewRequest,
    StudyReviewResponse,
    StudySessionFinishResponse,
    StudySessionStartRequest,
    StudySessionStartResponse,
    StudyStatsResponse,
    WordOut,
)
from lingolearn.skills.session_service import (
    SessionError,
    SessionRegistry,
    StudySessionState,
)

from .deps import (
    Stores,
    build_session_service,
    build_study_service,
    get_app_settings,
    get_now,
    get_registry,
    get_stores,
)


router = APIRouter(prefix="/api/study", tags=["study"])


def _progress(state: StudySessionState) -> SessionProgress:
    return SessionProgress(
        current_index=min(state.cursor, state.total),
        total=state.total,
        completed=state.completed,
    )


def _word_out(word: Optional[Word]) -> Optional[WordOut]:
    return WordOut.model_validate(word) if word is not None else None


def _get_session(registry: SessionRegistry, session_id: str) -> StudySessionState:
    state = registry.get(session_id)
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return state


@router.post("/sessions/start", response_model=StudySessionStartResponse)
async def start_study_session(
    payload: StudySessionStartRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
    now: Annotated[dt.datetime, Depends(get_now)],
) -> StudySessionStartResponse:
    """
    Start a flashcard session over new, due or mixed words.
    """
    svc = build_session_service(stores, settings)
    state = await svc.start_session(mode=payload.mode, limit=payload.limit, now=now)
    registry.add(state)
    current = await svc.current_word(state)
    return StudySessionStartResponse(
        session_id=state.session_id,
        mode=state.mode,
        current_word=_word_out(current),
        progress=_progress(state),
    )


@router.post("/sessions/{session_id}/review", response_model=StudyReviewResponse)
async def review_word(
    session_id: str,
    payload: StudyReviewRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
    now: Annotated[dt.datetime, Depends(get_now)],
) -> StudyReviewResponse:
    """
    Record the response for the session's current word and return its new schedule.
    """
    state = _get_session(registry, session_id)
    svc = build_session_service(stores, settings)
    try:
        outcome = await svc.submit_review(
            state,
            word_id=payload.word_id,
            quality=payload.quality,
            known=payload.known,
            now=now,
        )
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return StudyReviewResponse(
        word_id=outcome.word.id,
        success=outcome.success,
        interval_days=outcome.result.interval_days,
        ease_factor=outcome.result.ease_factor,
        repetitions=outcome.result.repetitions,
        next_review_at=outcome.result.next_review_at,
        mastery_level=outcome.word.mastery_level,
        next_word=_word_out(outcome.next_word),
        progress=_progress(state),
    )


@router.post("/sessions/{session_id}/favorite", response_model=WordOut)
async def favorite_current_word(
    session_id: str,
    payload: FavoriteRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> WordOut:
    state = _get_session(registry, session_id)
    svc = build_session_service(stores, settings)
    try:
        word = await svc.toggle_favorite(state, word_id=payload.word_id)
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return WordOut.model_validate(word)


@router.post("/sessions/{session_id}/finish", response_model=StudySessionFinishResponse)
async def finish_study_session(
    session_id: str,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
    now: Annotated[dt.datetime, Depends(get_now)],
) -> StudySessionFinishResponse:
    """
    Close the session and update daily progress, streak and achievements.
    """
    state = _get_session(registry, session_id)
    svc = build_session_service(stores, settings)
    try:
        summary = await svc.finish_session(state, now=now)
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    registry.remove(session_id)

    return StudySessionFinishResponse(
        session_id=summary.session_id,
        stats=SessionStatsOut(
            total_reviewed=summary.stats.total_reviewed,
            known_count=summary.stats.known_count,
            unknown_count=summary.stats.unknown_count,
            accuracy=summary.stats.accuracy,
        ),
        duration_seconds=summary.duration_seconds,
        current_streak=summary.current_streak,
        longest_streak=summary.longest_streak,
        new_achievements=[
            AchievementOut(
                id=a.id,
                title=a.title,
                description=a.description,
                icon_name=a.icon_name,
            )
            for a in summary.new_achievements
        ],
    )


@router.get("/stats", response_model=StudyStatsResponse)
async def get_study_stats(
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    now: Annotated[dt.datetime, Depends(get_now)],
) -> StudyStatsResponse:
    """
    Return per-category statistics, mastery distribution, due count, streak
    and today's goal progress.
    """
    svc = build_study_service(settings)
    words = await stores.items.list()
    user_stats = await stores.progress.get_user_stats()
    today = now.date()
    daily = await stores.progress.get_daily_progress(today) or new_daily_progress(today)

    return StudyStatsResponse(
        categories=[CategoryStats(**entry) for entry in svc.get_stats(words, now=now)],
        mastery_distribution=svc.mastery_distribution(words),
        due_now=svc.count_due(words, now=now),
        current_streak=user_stats.current_streak or 0,
        longest_streak=user_stats.longest_streak or 0,
        total_words_learned=user_stats.total_words_learned or 0,
        daily_goal=settings.study.daily_goal,
        today_goal_completion=goal_completion(daily, settings.study.daily_goal),
    )


@router.get("/progress", response_model=List[DailyProgressOut])
async def get_progress_history(
    stores: Annotated[Stores, Depends(get_stores)],
    now: Annotated[dt.datetime, Depends(get_now)],
    days: int = Query(default=7, ge=1, le=366),
) -> List[DailyProgressOut]:
    """Zero-filled daily progress for the last `days` days, oldest first."""
    end = now.date()
    start = end - dt.timedelta(days=days - 1)
    rows = await stores.progress.list_daily_progress(start, end)
    return [DailyProgressOut.model_validate(row) for row in progress_history(rows, days=days, end=end)]


@router.get("/achievements", response_model=List[AchievementStatus])
async def list_achievements(
    stores: Annotated[Stores, Depends(get_stores)],
) -> List[AchievementStatus]:
    user_stats = await stores.progress.get_user_stats()
    unlocked = set(user_stats.unlocked_achievements or [])
    return [
        AchievementStatus(
            id=a.id,
            title=a.title,
            description=a.description,
            icon_name=a.icon_name,
            unlocked=a.id in unlocked,
        )
        for a in ACHIEVEMENTS
    ]


@router.post("/reset", response_model=ResetProgressResponse)
async def reset_progress(
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ResetProgressResponse:
    """
    Clear daily progress, streaks and achievements. Word schedules are kept.
    """
    svc = build_session_service(stores, settings)
    await svc.reset_progress()
    return ResetProgressResponse(ok=True)
