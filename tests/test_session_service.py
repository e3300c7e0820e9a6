from __future__ import annotations

import datetime as dt

import pytest

from lingolearn.db.models import Word, new_word
from lingolearn.skills.practice import PracticeResult, QuizMode
from lingolearn.skills.session_service import (
    SessionError,
    SessionRegistry,
    StudySessionService,
    StudySessionState,
)
from lingolearn.skills.study_service import StudyMode
from lingolearn.store import InMemoryItemStore, InMemoryProgressStore


NOON = dt.datetime(2025, 1, 10, 12, 0, tzinfo=dt.timezone.utc)


def _make_words(n: int) -> list[Word]:
    return [
        new_word(english=f"word{i}", chinese=f"词{i}", word_id=f"w{i}")
        for i in range(n)
    ]


def _make_service(words: list[Word]) -> StudySessionService:
    return StudySessionService(
        items=InMemoryItemStore(words),
        progress=InMemoryProgressStore(),
    )


@pytest.mark.anyio
async def test_session_reviews_words_in_order_and_persists_state():
    svc = _make_service(_make_words(3))
    state = await svc.start_session(mode=StudyMode.MIXED, limit=2, now=NOON)
    assert state.word_ids == ["w0", "w1"]

    first = await svc.submit_review(state, word_id="w0", known=True, now=NOON)
    assert first.success is True
    assert first.result.interval_days == 1
    assert first.next_word is not None and first.next_word.id == "w1"

    second = await svc.submit_review(state, word_id="w1", quality=1, now=NOON)
    assert second.success is False
    assert second.next_word is None

    assert state.completed
    assert state.stats.total_reviewed == 2
    assert state.stats.known_count == 1
    assert state.stats.unknown_count == 1
    assert state.stats.accuracy == 0.5

    stored = await svc.items.get("w0")
    assert stored.times_studied == 1
    assert stored.times_correct == 1
    assert stored.next_review_at == NOON + dt.timedelta(days=1)


@pytest.mark.anyio
async def test_review_for_wrong_word_is_rejected():
    svc = _make_service(_make_words(2))
    state = await svc.start_session(now=NOON)

    with pytest.raises(SessionError):
        await svc.submit_review(state, word_id="w1", known=True, now=NOON)
    assert state.cursor == 0


@pytest.mark.anyio
async def test_review_after_completion_is_rejected():
    svc = _make_service(_make_words(1))
    state = await svc.start_session(now=NOON)
    await svc.submit_review(state, word_id="w0", known=True, now=NOON)

    with pytest.raises(SessionError):
        await svc.submit_review(state, word_id="w0", known=True, now=NOON)


@pytest.mark.anyio
async def test_review_requires_quality_or_known():
    svc = _make_service(_make_words(1))
    state = await svc.start_session(now=NOON)

    with pytest.raises(SessionError):
        await svc.submit_review(state, word_id="w0", now=NOON)


@pytest.mark.anyio
async def test_toggle_favorite_does_not_advance():
    svc = _make_service(_make_words(2))
    state = await svc.start_session(now=NOON)

    word = await svc.toggle_favorite(state, word_id="w0")

    assert word.is_favorite is True
    assert state.cursor == 0


@pytest.mark.anyio
async def test_finish_updates_progress_streak_and_achievements():
    svc = _make_service(_make_words(3))
    state = await svc.start_session(mode=StudyMode.MIXED, limit=2, now=NOON)
    await svc.submit_review(state, word_id="w0", known=True, now=NOON)
    await svc.submit_review(state, word_id="w1", known=False, now=NOON)

    summary = await svc.finish_session(state, now=NOON + dt.timedelta(minutes=3))

    assert summary.duration_seconds == pytest.approx(180.0)
    assert summary.current_streak == 1
    assert [a.id for a in summary.new_achievements] == ["first_word"]

    daily = await svc.progress.get_daily_progress(NOON.date())
    assert daily.words_reviewed == 2
    assert daily.words_learned == 0
    assert daily.sessions_completed == 1
    assert daily.accuracy == pytest.approx(50.0)

    stats = await svc.progress.get_user_stats()
    assert stats.total_words_learned == 1
    assert stats.unlocked_achievements == ["first_word"]

    sessions = await svc.progress.list_study_sessions()
    assert len(sessions) == 1
    assert sessions[0].session_type == "mixed"
    assert sessions[0].words_correct == 1
    assert sessions[0].words_incorrect == 1
    assert sessions[0].completed is True


@pytest.mark.anyio
async def test_finish_twice_is_rejected():
    svc = _make_service(_make_words(1))
    state = await svc.start_session(now=NOON)
    await svc.submit_review(state, word_id="w0", known=True, now=NOON)
    await svc.finish_session(state, now=NOON)

    with pytest.raises(SessionError):
        await svc.finish_session(state, now=NOON)

    daily = await svc.progress.get_daily_progress(NOON.date())
    assert daily.sessions_completed == 1


@pytest.mark.anyio
async def test_learning_sessions_on_consecutive_days_build_streak():
    svc = _make_service(_make_words(4))
    streaks = []
    for offset in range(2):
        now = NOON + dt.timedelta(days=offset)
        state = await svc.start_session(mode=StudyMode.LEARNING, limit=1, now=now)
        await svc.submit_review(state, word_id=state.word_ids[0], known=True, now=now)
        summary = await svc.finish_session(state, now=now)
        streaks.append(summary.current_streak)

    assert streaks == [1, 2]
    assert summary.longest_streak == 2
    daily = await svc.progress.get_daily_progress((NOON + dt.timedelta(days=1)).date())
    assert daily.words_learned == 1


@pytest.mark.anyio
async def test_perfect_late_session_unlocks_session_achievements():
    late = dt.datetime(2025, 1, 10, 23, 0, tzinfo=dt.timezone.utc)
    svc = _make_service(_make_words(2))
    state = await svc.start_session(now=late)
    for word_id in list(state.word_ids):
        await svc.submit_review(state, word_id=word_id, quality=5, now=late)

    summary = await svc.finish_session(state, now=late)

    ids = {a.id for a in summary.new_achievements}
    assert {"first_word", "perfect_session", "night_owl"} <= ids


@pytest.mark.anyio
async def test_empty_session_does_not_touch_streak():
    svc = _make_service([])
    state = await svc.start_session(now=NOON)
    assert state.total == 0

    summary = await svc.finish_session(state, now=NOON)

    assert summary.current_streak == 0
    assert summary.new_achievements == []
    stats = await svc.progress.get_user_stats()
    assert stats.last_study_at is None


@pytest.mark.anyio
async def test_record_practice_stores_session_without_scheduling():
    svc = _make_service(_make_words(2))

    unlocked = await svc.record_practice(
        mode=QuizMode.MULTIPLE_CHOICE,
        result=PracticeResult(total=2, correct=2),
        started_at=NOON - dt.timedelta(minutes=1),
        now=NOON,
    )

    assert [a.id for a in unlocked] == ["perfect_session"]
    sessions = await svc.progress.list_study_sessions()
    assert sessions[0].session_type == "multiple_choice"
    assert sessions[0].duration_seconds == pytest.approx(60.0)
    word = await svc.items.get("w0")
    assert word.times_studied == 0
    assert word.next_review_at is None


class _FailingOnceProgress(InMemoryProgressStore):
    def __init__(self) -> None:
        super().__init__()
        self.daily_failures = 1

    async def save_daily_progress(self, progress):
        if self.daily_failures:
            self.daily_failures -= 1
            raise RuntimeError("database unavailable")
        return await super().save_daily_progress(progress)


@pytest.mark.anyio
async def test_finish_can_be_retried_after_a_store_failure():
    progress = _FailingOnceProgress()
    svc = StudySessionService(items=InMemoryItemStore(_make_words(2)), progress=progress)
    state = await svc.start_session(now=NOON)
    await svc.submit_review(state, word_id="w0", known=True, now=NOON)

    with pytest.raises(RuntimeError):
        await svc.finish_session(state, now=NOON)
    assert state.finished is False

    summary = await svc.finish_session(state, now=NOON + dt.timedelta(minutes=5))

    assert summary.current_streak == 1
    # The end time of the first attempt is kept.
    assert summary.duration_seconds == pytest.approx(0.0)
    daily = await progress.get_daily_progress(NOON.date())
    assert daily.sessions_completed == 1
    assert daily.words_reviewed == 1
    assert len(await progress.list_study_sessions()) == 1
    stats = await progress.get_user_stats()
    assert stats.total_words_learned == 1

    with pytest.raises(SessionError):
        await svc.finish_session(state, now=NOON)


@pytest.mark.anyio
async def test_finish_accepts_naive_end_time():
    svc = _make_service(_make_words(1))
    state = await svc.start_session(now=NOON)
    await svc.submit_review(state, word_id="w0", known=True, now=NOON)

    summary = await svc.finish_session(state, now=dt.datetime(2025, 1, 10, 12, 2))

    assert summary.duration_seconds == pytest.approx(120.0)
    assert summary.current_streak == 1


@pytest.mark.anyio
async def test_reset_progress_clears_stats_but_keeps_schedules():
    svc = _make_service(_make_words(2))
    state = await svc.start_session(now=NOON)
    await svc.submit_review(state, word_id="w0", known=True, now=NOON)
    await svc.finish_session(state, now=NOON)

    await svc.reset_progress()

    stats = await svc.progress.get_user_stats()
    assert stats.current_streak == 0
    assert stats.longest_streak == 0
    assert stats.last_study_at is None
    assert stats.total_words_learned == 0
    assert stats.unlocked_achievements == []
    assert await svc.progress.get_daily_progress(NOON.date()) is None
    word = await svc.items.get("w0")
    assert word.repetitions == 1
    assert word.next_review_at == NOON + dt.timedelta(days=1)


def _session(session_id: str, started_at: dt.datetime) -> StudySessionState:
    return StudySessionState(
        session_id=session_id,
        mode=StudyMode.MIXED,
        word_ids=[],
        started_at=started_at,
    )


def test_registry_drops_stale_sessions():
    registry = SessionRegistry(max_age=dt.timedelta(hours=1))
    registry.add(_session("old", NOON - dt.timedelta(hours=2)))
    registry.add(_session("recent", NOON - dt.timedelta(minutes=30)))

    registry.add(_session("new", NOON))

    assert registry.get("old") is None
    assert registry.get("recent") is not None
    assert registry.get("new") is not None
    assert len(registry) == 2


def test_registry_evicts_oldest_when_full():
    registry = SessionRegistry(max_sessions=2)
    registry.add(_session("a", NOON))
    registry.add(_session("b", NOON + dt.timedelta(minutes=1)))

    registry.add(_session("c", NOON + dt.timedelta(minutes=2)))

    assert registry.get("a") is None
    assert registry.get("b") is not None
    assert registry.get("c") is not None


def test_registry_sweep_reports_evicted_count():
    registry = SessionRegistry(max_age=dt.timedelta(minutes=10))
    registry.add(_session("a", NOON))

    assert registry.sweep(NOON + dt.timedelta(minutes=5)) == 0
    assert registry.sweep(NOON + dt.timedelta(minutes=11)) == 1
    assert len(registry) == 0
