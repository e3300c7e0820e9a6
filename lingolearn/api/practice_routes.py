from __future__ import annotations

import datetime as dt
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status

from lingolearn.config import Settings
from lingolearn.skills.practice import (
    PracticeQuestion,
    expected_answer,
    generate_questions,
    grade_answers,
)
from lingolearn.skills.schemas import (
    AchievementOut,
    PracticeQuestionOut,
    PracticeQuestionsRequest,
    PracticeQuestionsResponse,
    PracticeResultsRequest,
    PracticeResultsResponse,
    WrongAnswerOut,
)

from .deps import Stores, build_session_service, get_app_settings, get_now, get_stores


router = APIRouter(prefix="/api/practice", tags=["practice"])


@router.post("/questions", response_model=PracticeQuestionsResponse)
async def create_practice_questions(
    payload: PracticeQuestionsRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> PracticeQuestionsResponse:
    """
    Generate a practice quiz (multiple choice, fill in the blank or listening).
    """
    words = await stores.items.list()
    if payload.category is not None:
        words = [w for w in words if w.category == payload.category.value]

    questions = generate_questions(
        words,
        payload.mode,
        count=payload.count,
        distractor_count=settings.study.distractor_count,
    )
    return PracticeQuestionsResponse(
        questions=[
            PracticeQuestionOut(
                word_id=q.word_id,
                mode=q.mode,
                prompt=q.prompt,
                correct_answer=q.correct_answer,
                options=q.options,
            )
            for q in questions
        ],
        time_limit_seconds=settings.study.question_time_limit,
    )


@router.post("/results", response_model=PracticeResultsResponse)
async def submit_practice_results(
    payload: PracticeResultsRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    now: Annotated[dt.datetime, Depends(get_now)],
) -> PracticeResultsResponse:
    """
    Grade a finished practice quiz and record it as a study session.

    Expected answers are rebuilt from the stored words; any `correct_answer`
    sent back by the client is ignored.
    """
    questions: List[PracticeQuestion] = []
    for q in payload.questions:
        word = await stores.items.get(q.word_id)
        if word is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown word_id {q.word_id}",
            )
        questions.append(
            PracticeQuestion(
                word_id=q.word_id,
                mode=q.mode,
                prompt=q.prompt,
                correct_answer=expected_answer(word, q.mode),
                options=list(q.options),
            )
        )
    result = grade_answers(questions, payload.answers)

    svc = build_session_service(stores, settings)
    unlocked = await svc.record_practice(
        mode=payload.mode,
        result=result,
        started_at=payload.started_at,
        now=now,
    )

    return PracticeResultsResponse(
        total=result.total,
        correct=result.correct,
        accuracy=result.accuracy,
        wrong_answers=[
            WrongAnswerOut(
                word_id=w.word_id,
                user_answer=w.user_answer,
                correct_answer=w.correct_answer,
            )
            for w in result.wrong_answers
        ],
        new_achievements=[
            AchievementOut(
                id=a.id,
                title=a.title,
                description=a.description,
                icon_name=a.icon_name,
            )
            for a in unlocked
        ],
    )
