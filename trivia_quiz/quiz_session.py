"""
Quiz session state machine for the Trivia Quiz Bot.
Handles question progression, answer locking, scoring and countdown deadlines.
"""
import dataclasses
import logging
import random
import time
from typing import Callable, List, Optional, Sequence, Tuple

from .models import Question, RevealedQuestion, SessionProjection

logger = logging.getLogger(__name__)

SCORE_CORRECT = 10
SCORE_INCORRECT = -5
DEFAULT_TIMER_DURATION = 15


class QuizSessionError(Exception):
    """Base exception for quiz session errors."""
    pass


class EmptyQuestionSetError(QuizSessionError):
    """Raised when a session is loaded with no questions."""
    pass


class InvalidSessionStateError(QuizSessionError):
    """Raised when the session is in an invalid state for the requested operation."""
    pass


class SessionDisposedError(QuizSessionError):
    """Raised when a torn down session is mutated (indicates a leaked timer)."""
    pass


def shuffle_answers(
    correct: str,
    incorrect: Sequence[str],
    rng: Optional[random.Random] = None
) -> List[str]:
    """
    Produce a uniformly random ordering of the correct answer and its incorrect answers.

    Args:
        correct: The correct answer
        incorrect: The incorrect answers (duplicates are dropped)
        rng: Optional random generator, the module generator is used if None

    Returns:
        New list holding every distinct answer exactly once
    """
    answers = list(dict.fromkeys([correct, *incorrect]))
    (rng or random).shuffle(answers)
    return answers


class QuizSession:
    """
    Owns the revealed questions, the current position, the score and the deadline.

    Questions are revealed one at a time. Each revealed question gets its
    answer order fixed once, can be answered once, and only the answered
    frontier question lets the session reveal the next one.
    """

    def __init__(
        self,
        timer_duration: int = DEFAULT_TIMER_DURATION,
        rng: Optional[random.Random] = None,
        time_source: Callable[[], float] = time.monotonic
    ):
        """
        Initialize an empty (loading) session.

        Args:
            timer_duration: Seconds allowed for each newly revealed question
            rng: Optional random generator used to shuffle answers
            time_source: Clock returning seconds, monotonic by default
        """
        self.timer_duration = timer_duration
        self._rng = rng
        self._now = time_source
        self._questions: Tuple[Question, ...] = ()
        self._revealed: List[RevealedQuestion] = []
        self._current_index = 0
        self._score = 0
        self._deadline: Optional[float] = None
        self._deadline_listeners: List[Callable[[float], None]] = []
        self._disposed = False

    # Read-only state

    @property
    def is_loaded(self) -> bool:
        return bool(self._revealed)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def revealed(self) -> Tuple[RevealedQuestion, ...]:
        return tuple(self._revealed)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def score(self) -> int:
        return self._score

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def current_question(self) -> Optional[RevealedQuestion]:
        if not self._revealed:
            return None
        return self._revealed[self._current_index]

    @property
    def frontier_index(self) -> int:
        return len(self._revealed) - 1

    @property
    def has_unrevealed(self) -> bool:
        return len(self._revealed) < len(self._questions)

    @property
    def is_finished(self) -> bool:
        """True when the last question has been revealed and answered."""
        if not self._revealed:
            return False
        return self._revealed[-1].is_answered and not self.has_unrevealed

    # Deadline listeners

    def add_deadline_listener(self, listener: Callable[[float], None]) -> None:
        if listener not in self._deadline_listeners:
            self._deadline_listeners.append(listener)

    def remove_deadline_listener(self, listener: Callable[[float], None]) -> None:
        if listener in self._deadline_listeners:
            self._deadline_listeners.remove(listener)

    # Operations

    def reveal_first(self, questions: Sequence[Question]) -> None:
        """
        Load the fetched questions and reveal the first one.

        Args:
            questions: Ordered questions from the provider

        Raises:
            EmptyQuestionSetError: If questions is empty
            InvalidSessionStateError: If the session was already loaded
        """
        self._ensure_not_disposed("reveal_first")
        if self._revealed:
            raise InvalidSessionStateError("Session already holds revealed questions")
        if not questions:
            raise EmptyQuestionSetError("Cannot start a quiz without questions")

        self._questions = tuple(questions)
        self._score = 0
        self._current_index = 0
        self._reveal(self._questions[0])
        logger.info(f"Session loaded with {len(self._questions)} questions")

    def select_answer(self, value: Optional[str]) -> bool:
        """
        Answer the current question. None records a timeout.

        Returns:
            True if the answer was recorded, False if the question was already answered

        Raises:
            ValueError: If value is not one of the question's answers
        """
        self._ensure_not_disposed("select_answer")
        current = self.current_question
        if current is None or current.is_answered:
            return False
        if value is not None and value not in current.answer_order:
            raise ValueError(f"'{value}' is not one of the answer choices")

        self._revealed[self._current_index] = dataclasses.replace(
            current, selected_answer=value, is_answered=True
        )
        if value == current.question.correct_answer:
            self._score += SCORE_CORRECT
        else:
            self._score += SCORE_INCORRECT

        logger.debug(
            f"Question {self._current_index + 1} answered "
            f"({'timeout' if value is None else 'choice'}), score now {self._score}"
        )
        return True

    def advance(self) -> bool:
        """
        Move forward: reveal the next question from the answered frontier, or step
        toward the frontier when behind it.

        Returns:
            True if the position changed
        """
        self._ensure_not_disposed("advance")
        if not self._revealed:
            return False

        at_frontier = self._current_index == self.frontier_index
        if at_frontier and self._revealed[-1].is_answered and self.has_unrevealed:
            self._reveal(self._questions[len(self._revealed)])
            self._current_index = self.frontier_index
            return True
        if self._current_index < self.frontier_index:
            self._current_index += 1
            return True
        return False

    def retreat(self) -> bool:
        """
        Move back one revealed question.

        Returns:
            True if the position changed
        """
        self._ensure_not_disposed("retreat")
        if self._current_index > 0:
            self._current_index -= 1
            return True
        return False

    def expire(self) -> bool:
        """
        Apply a countdown expiry: the frontier question is answered with a
        timeout if still open, then the session moves on.

        The position jumps to the frontier first, since the deadline belongs to
        the frontier question even while an older one is being reviewed.

        Returns:
            True if a timeout answer was recorded
        """
        self._ensure_not_disposed("expire")
        if not self._revealed:
            return False
        self._current_index = self.frontier_index
        timed_out = self.select_answer(None)
        self.advance()
        return timed_out

    def remaining_seconds(self) -> int:
        """Whole seconds left before the deadline, never negative."""
        if self._deadline is None:
            return 0
        return max(0, int(self._deadline - self._now()))

    def current_projection(self) -> SessionProjection:
        """Build the read-only state the view layer renders."""
        current = self.current_question
        if current is None:
            return SessionProjection(is_loading=True, total_questions=self.total_questions)

        question = current.question
        is_frontier = self._current_index == self.frontier_index
        can_advance = (
            not is_frontier
            or (current.is_answered and self.has_unrevealed)
        )
        return SessionProjection(
            is_loading=False,
            index=self._current_index,
            revealed_count=len(self._revealed),
            total_questions=self.total_questions,
            text=question.text,
            category=question.category,
            difficulty=question.difficulty,
            answer_order=current.answer_order,
            selected_answer=current.selected_answer,
            is_answered=current.is_answered,
            correct_answer=question.correct_answer if current.is_answered else None,
            score=self._score,
            remaining_seconds=self.remaining_seconds(),
            is_frontier=is_frontier,
            can_retreat=self._current_index > 0,
            can_advance=can_advance,
            is_finished=self.is_finished,
        )

    def dispose(self) -> None:
        """Tear the session down. Any later mutation raises SessionDisposedError."""
        self._disposed = True
        self._deadline_listeners.clear()

    # Internals

    def _reveal(self, question: Question) -> None:
        answer_order = shuffle_answers(
            question.correct_answer, question.incorrect_answers, self._rng
        )
        self._revealed.append(RevealedQuestion(question=question, answer_order=tuple(answer_order)))
        self._reset_deadline()

    def _reset_deadline(self) -> None:
        self._deadline = self._now() + self.timer_duration
        for listener in list(self._deadline_listeners):
            listener(self._deadline)

    def _ensure_not_disposed(self, operation: str) -> None:
        if self._disposed:
            raise SessionDisposedError(f"'{operation}' called on a disposed quiz session")
