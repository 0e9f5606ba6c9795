"""
Core data models for the movie quiz.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union


@dataclass(frozen=True)
class QuizQuestion:
    """A single yes/no question."""
    image_ref: Any
    text: str
    correct_answer: bool


@dataclass(frozen=True)
class GameResult:
    """Outcome of one finished round."""
    correct: int
    total: int
    date: datetime

    @classmethod
    def empty(cls) -> "GameResult":
        """Sentinel used before any round has been stored."""
        return cls(correct=0, total=0, date=datetime.min)

    def is_better_than(self, other: "GameResult") -> bool:
        """
        Compare two results.

        More correct answers wins. With equal correct counts the longer
        round wins, and with equal correct and total the more recent one.
        """
        if self.correct != other.correct:
            return self.correct > other.correct
        if self.total != other.total:
            return self.total > other.total
        return self.date > other.date


@dataclass(frozen=True)
class StatisticsAggregate:
    """Snapshot of the durable play statistics."""
    games_count: int
    correct_answers_total: int
    total_questions_total: int
    best_game: GameResult

    @property
    def total_accuracy(self) -> float:
        if self.total_questions_total <= 0:
            return 0.0
        return self.correct_answers_total / self.total_questions_total * 100


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    questions_amount: int = 10
    feedback_delay: float = 1.0


@dataclass(frozen=True)
class Movie:
    title: str
    rating: float
    image_ref: str


# Events delivered by a question source

@dataclass(frozen=True)
class QuestionReceived:
    question: Optional[QuizQuestion]
    request_id: Optional[int] = None


@dataclass(frozen=True)
class LoadFailed:
    message: str
    request_id: Optional[int] = None


@dataclass(frozen=True)
class DataLoaded:
    movies_count: int = 0


SourceEvent = Union[QuestionReceived, LoadFailed, DataLoaded]


# View models handed to the presentation layer

@dataclass(frozen=True)
class QuizStepViewModel:
    image_ref: Any
    question: str
    question_number: str


@dataclass(frozen=True)
class QuizResultsViewModel:
    title: str
    text: str
    button_text: str


@dataclass(frozen=True)
class AlertModel:
    title: str
    message: str
    button_text: str
