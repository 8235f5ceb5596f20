"""
Core data models for the Trivia Quiz Bot.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple


OPEN_TRIVIA_API_URL = "https://opentdb.com/api.php"


@dataclass(frozen=True)
class Question:
    """A single trivia question as delivered by a question provider."""
    text: str
    category: str
    difficulty: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RevealedQuestion:
    """A question that has been shown to the players, with its fixed answer order."""
    question: Question
    answer_order: Tuple[str, ...]
    selected_answer: Optional[str] = None
    is_answered: bool = False

    @property
    def is_correct(self) -> bool:
        return self.is_answered and self.selected_answer == self.question.correct_answer


@dataclass(frozen=True)
class SessionProjection:
    """Read-only view state of a quiz session."""
    is_loading: bool
    index: int = 0
    revealed_count: int = 0
    total_questions: int = 0
    text: str = ""
    category: str = ""
    difficulty: str = ""
    answer_order: Tuple[str, ...] = ()
    selected_answer: Optional[str] = None
    is_answered: bool = False
    correct_answer: Optional[str] = None
    score: int = 0
    remaining_seconds: int = 0
    is_frontier: bool = False
    can_retreat: bool = False
    can_advance: bool = False
    is_finished: bool = False


@dataclass
class QuizSettings:
    """Configuration settings for a trivia quiz."""
    question_count: int = 10
    timer_duration: int = 15
    api_url: str = OPEN_TRIVIA_API_URL
    question_file: Optional[str] = None
    request_timeout: float = 10.0
