"""
Durable play statistics: games count, best game and running accuracy.
"""
import logging
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Callable

from .errors import InvalidArgumentError
from .models import GameResult, StatisticsAggregate
from .storage import KeyValueStorage


class Keys(Enum):
    """Fixed storage keys."""
    GAMES_COUNT = "gamesCount"
    BEST_GAME_CORRECT = "bestGameCorrect"
    BEST_GAME_TOTAL = "bestGameTotal"
    BEST_GAME_DATE = "bestGameDate"
    CORRECT_ANSWERS = "correctAnswers"
    TOTAL_QUESTIONS = "totalQuestions"


class StatisticService:
    """
    Aggregates finished rounds into durable statistics.

    All writes for one round happen inside a single storage transaction and
    under a lock, so readers never observe a half-applied round.
    """

    def __init__(self, storage: KeyValueStorage, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the statistics service.

        Args:
            storage: Key-value storage holding the aggregate
            clock: Source of completion timestamps
        """
        self.logger = logging.getLogger(__name__)
        self.storage = storage
        self.clock = clock
        self._lock = threading.Lock()

    @property
    def games_count(self) -> int:
        with self._lock:
            return self.storage.get_int(Keys.GAMES_COUNT.value)

    @property
    def best_game(self) -> GameResult:
        with self._lock:
            return self._read_best_game()

    @property
    def total_accuracy(self) -> float:
        """Cumulative accuracy in percent, 0 before any question was answered."""
        return self.aggregate().total_accuracy

    def aggregate(self) -> StatisticsAggregate:
        """Return a consistent snapshot of all stored statistics."""
        with self._lock:
            return StatisticsAggregate(
                games_count=self.storage.get_int(Keys.GAMES_COUNT.value),
                correct_answers_total=self.storage.get_int(Keys.CORRECT_ANSWERS.value),
                total_questions_total=self.storage.get_int(Keys.TOTAL_QUESTIONS.value),
                best_game=self._read_best_game()
            )

    def store(self, correct: int, total: int) -> GameResult:
        """
        Record one finished round.

        Args:
            correct: Number of correct answers in the round
            total: Number of questions in the round

        Returns:
            The GameResult that was recorded

        Raises:
            InvalidArgumentError: If the counts are not integers with
                0 <= correct <= total and total > 0
        """
        self._validate(correct, total)

        with self._lock:
            result = GameResult(correct=correct, total=total, date=self.clock())

            with self.storage.transaction():
                games_count = self.storage.get_int(Keys.GAMES_COUNT.value)
                correct_total = self.storage.get_int(Keys.CORRECT_ANSWERS.value)
                questions_total = self.storage.get_int(Keys.TOTAL_QUESTIONS.value)

                # Total before correct: a torn write never shows correct > total
                self.storage.set_int(Keys.TOTAL_QUESTIONS.value, questions_total + total)
                self.storage.set_int(Keys.CORRECT_ANSWERS.value, correct_total + correct)
                self.storage.set_int(Keys.GAMES_COUNT.value, games_count + 1)

                best_game = self._read_best_game()
                is_record = result.is_better_than(best_game)
                if is_record:
                    self._write_best_game(result)

        self.logger.info(
            f"Stored round {correct}/{total}, games played: {games_count + 1}, new record: {is_record}",
            extra={
                'event_type': 'round_stored',
                'correct': correct,
                'total': total,
                'games_count': games_count + 1,
                'new_record': is_record,
                'timestamp': time.time()
            }
        )
        return result

    def _validate(self, correct: int, total: int) -> None:
        for name, value in (("correct", correct), ("total", total)):
            if isinstance(value, bool) or not isinstance(value, int):
                error_msg = f"{name} must be an integer, got {type(value).__name__}"
                self.logger.error(error_msg)
                raise InvalidArgumentError(error_msg)

        if total <= 0:
            error_msg = f"total must be positive, got {total}"
            self.logger.error(error_msg)
            raise InvalidArgumentError(error_msg)

        if correct < 0 or correct > total:
            error_msg = f"correct must be between 0 and {total}, got {correct}"
            self.logger.error(error_msg)
            raise InvalidArgumentError(error_msg)

    def _read_best_game(self) -> GameResult:
        total = self.storage.get_int(Keys.BEST_GAME_TOTAL.value)
        if total <= 0:
            return GameResult.empty()
        return GameResult(
            correct=self.storage.get_int(Keys.BEST_GAME_CORRECT.value),
            total=total,
            date=self.storage.get_date(Keys.BEST_GAME_DATE.value) or datetime.min
        )

    def _write_best_game(self, result: GameResult) -> None:
        # Total before correct, same reasoning as the running totals
        self.storage.set_int(Keys.BEST_GAME_TOTAL.value, result.total)
        self.storage.set_int(Keys.BEST_GAME_CORRECT.value, result.correct)
        self.storage.set_date(Keys.BEST_GAME_DATE.value, result.date)
