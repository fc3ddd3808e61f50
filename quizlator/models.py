"""
Core data models for the Quizlator quiz game.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime


DEFAULT_TIMER_DURATION = 25
DEFAULT_QUESTION_COUNT = 5
CATEGORIES_PER_GROUP = 5


@dataclass(frozen=True)
class QuizQuestion:
    """A single parsed multiple-choice question."""
    text: str
    options: Tuple[str, ...]
    correct_answer: str

    def is_correct(self, choice: str) -> bool:
        return choice == self.correct_answer


@dataclass(frozen=True)
class AnswerRecord:
    """Outcome of one answered (or timed out) question."""
    question_index: int
    choice: str
    correct: bool
    timed_out: bool = False


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    question_count: int = DEFAULT_QUESTION_COUNT
    timer_duration: int = DEFAULT_TIMER_DURATION
    dark_mode: bool = True
    show_leaderboard: bool = False


@dataclass
class QuizSession:
    """One play-through from category selection to result summary."""
    category: str
    questions: Tuple[QuizQuestion, ...]
    timer_duration: int = DEFAULT_TIMER_DURATION
    current_index: int = 0
    score: int = 0
    time_remaining: int = DEFAULT_TIMER_DURATION
    start_time: datetime = field(default_factory=datetime.now)
    answers: List[AnswerRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1


@dataclass(frozen=True)
class LeaderboardEntry:
    """Summary of a finished session as kept on the leaderboard."""
    category: str
    score: int
    total: int
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cat": self.category,
            "score": self.score,
            "total": self.total,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeaderboardEntry":
        """
        Build an entry from its persisted form.

        Raises:
            ValueError: If the record is not an object with the expected fields
        """
        if not isinstance(data, dict):
            raise ValueError("Leaderboard entry must be a JSON object")

        category = data.get("cat")
        score = data.get("score")
        total = data.get("total")
        date = data.get("date")

        if not isinstance(category, str):
            raise ValueError("Leaderboard entry 'cat' must be a string")
        # bool is an int subclass; reject it explicitly
        for name, value in (("score", score), ("total", total)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Leaderboard entry '{name}' must be an integer")
        if not isinstance(date, str):
            raise ValueError("Leaderboard entry 'date' must be a string")

        return cls(category=category, score=score, total=total, date=date)


@dataclass(frozen=True)
class CategorySet:
    """The two category columns shown on the menu."""
    technical: Tuple[str, ...]
    general: Tuple[str, ...]

    def all(self) -> List[str]:
        return list(self.technical) + list(self.general)

    def contains(self, label: str) -> bool:
        return label in self.technical or label in self.general


DEFAULT_CATEGORIES = CategorySet(
    technical=("JavaScript", "React", "Bazy Danych", "DevOps", "Cyberbezpieczeństwo"),
    general=("Historia", "Geografia", "Film", "Literatura", "Sport"),
)
