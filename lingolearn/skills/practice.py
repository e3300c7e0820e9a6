from __future__ import annotations

import enum
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from lingolearn.db.models import Word


class QuizMode(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_IN_BLANK = "fill_in_blank"
    LISTENING = "listening"


@dataclass
class PracticeQuestion:
    word_id: str
    mode: QuizMode
    # English for fill-in-blank and listening (spoken), Chinese gloss otherwise.
    prompt: str
    correct_answer: str
    options: List[str] = field(default_factory=list)


@dataclass
class WrongAnswer:
    word_id: str
    user_answer: str
    correct_answer: str


@dataclass
class PracticeResult:
    total: int = 0
    correct: int = 0
    wrong_answers: List[WrongAnswer] = field(default_factory=list)

    @property
    def incorrect(self) -> int:
        return len(self.wrong_answers)

    @property
    def accuracy(self) -> float:
        """Percentage 0-100 of answered questions that were correct."""
        answered = self.correct + self.incorrect
        if answered == 0:
            return 0.0
        return self.correct / answered * 100

    @property
    def is_perfect(self) -> bool:
        return self.total > 0 and self.correct == self.total


def _distractors(
    target: Word,
    pool: Sequence[Word],
    *,
    count: int,
    attr: str,
    rng: random.Random,
) -> List[str]:
    answer = getattr(target, attr)
    seen = {answer}
    candidates = [w for w in pool if w.english != target.english]
    rng.shuffle(candidates)
    options: List[str] = []
    for word in candidates:
        value = getattr(word, attr)
        if value in seen:
            continue
        seen.add(value)
        options.append(value)
        if len(options) >= count:
            break
    return options


def expected_answer(word: Word, mode: QuizMode) -> str:
    """The answer a question about `word` in `mode` is graded against."""
    if mode == QuizMode.MULTIPLE_CHOICE:
        return word.chinese
    if mode == QuizMode.LISTENING:
        return word.english
    return word.english.lower()


def generate_questions(
    words: Sequence[Word],
    mode: QuizMode,
    *,
    count: int = 10,
    distractor_count: int = 3,
    rng: Optional[random.Random] = None,
) -> List[PracticeQuestion]:
    """
    Build up to `count` practice questions from `words`.

    Target words are sampled without replacement. Choice modes draw their
    distractors from the other words in `words`.
    """
    rng = rng or random.Random()
    pool = list(words)
    targets = rng.sample(pool, k=min(max(count, 0), len(pool)))

    questions: List[PracticeQuestion] = []
    for target in targets:
        if mode == QuizMode.MULTIPLE_CHOICE:
            options = [target.chinese] + _distractors(
                target, pool, count=distractor_count, attr="chinese", rng=rng
            )
            rng.shuffle(options)
            questions.append(
                PracticeQuestion(
                    word_id=target.id,
                    mode=mode,
                    prompt=target.english,
                    correct_answer=expected_answer(target, mode),
                    options=options,
                )
            )
        elif mode == QuizMode.LISTENING:
            options = [target.english] + _distractors(
                target, pool, count=distractor_count, attr="english", rng=rng
            )
            rng.shuffle(options)
            questions.append(
                PracticeQuestion(
                    word_id=target.id,
                    mode=mode,
                    prompt=target.english,
                    correct_answer=expected_answer(target, mode),
                    options=options,
                )
            )
        else:
            questions.append(
                PracticeQuestion(
                    word_id=target.id,
                    mode=QuizMode.FILL_IN_BLANK,
                    prompt=target.chinese,
                    correct_answer=expected_answer(target, QuizMode.FILL_IN_BLANK),
                )
            )
    return questions


def check_answer(question: PracticeQuestion, answer: str) -> bool:
    if question.mode == QuizMode.FILL_IN_BLANK:
        return answer.strip().lower() == question.correct_answer.strip().lower()
    return answer == question.correct_answer


def grade_answers(
    questions: Sequence[PracticeQuestion],
    answers: Sequence[Optional[str]],
) -> PracticeResult:
    """
    Grade answers positionally against `questions`.

    A missing or None answer (e.g. the per-question timer ran out) counts
    as an empty, wrong answer.
    """
    result = PracticeResult(total=len(questions))
    for index, question in enumerate(questions):
        given = answers[index] if index < len(answers) else None
        given = given or ""
        if check_answer(question, given):
            result.correct += 1
        else:
            result.wrong_answers.append(
                WrongAnswer(
                    word_id=question.word_id,
                    user_answer=given,
                    correct_answer=question.correct_answer,
                )
            )
    return result
