"""
Question source that turns movie ratings into yes/no questions.
"""
import asyncio
import logging
import random
from typing import Callable, List, Optional, Set

from .data_manager import MoviesLoader
from .errors import SourceFailure
from .models import DataLoaded, LoadFailed, Movie, QuestionReceived, QuizQuestion, SourceEvent

EventHandler = Callable[[SourceEvent], None]


class MovieQuestionFactory:
    """
    Asynchronous question source.

    load_data() and request_next_question() return immediately; the result
    is delivered later to the registered event handler as a DataLoaded,
    QuestionReceived or LoadFailed event.
    """

    MIN_THRESHOLD = 5
    MAX_THRESHOLD = 9

    def __init__(self, loader: MoviesLoader, rng: Optional[random.Random] = None):
        self.logger = logging.getLogger(__name__)
        self.loader = loader
        self.rng = rng or random.Random()
        self.movies: List[Movie] = []
        self._handler: Optional[EventHandler] = None
        self._tasks: Set[asyncio.Task] = set()

    def set_event_handler(self, handler: EventHandler) -> None:
        self._handler = handler

    @property
    def is_loaded(self) -> bool:
        return bool(self.movies)

    def load_data(self) -> asyncio.Task:
        """Load the movie list in the background and report DataLoaded or LoadFailed."""
        return self._spawn(self._load_data())

    def request_next_question(self, request_id: Optional[int] = None) -> asyncio.Task:
        """Build a question in the background and report QuestionReceived or LoadFailed."""
        return self._spawn(self._next_question(request_id))

    def make_question(self, movie: Movie) -> QuizQuestion:
        threshold = self.rng.randint(self.MIN_THRESHOLD, self.MAX_THRESHOLD)
        return QuizQuestion(
            image_ref=movie.image_ref,
            text=f"Is the rating of this movie greater than {threshold}?",
            correct_answer=movie.rating > threshold
        )

    async def _load_data(self) -> None:
        try:
            await self._ensure_loaded(force=True)
        except SourceFailure as e:
            self._emit(LoadFailed(message=str(e)))
            return
        self._emit(DataLoaded(movies_count=len(self.movies)))

    async def _next_question(self, request_id: Optional[int]) -> None:
        try:
            await self._ensure_loaded()
        except SourceFailure as e:
            self._emit(LoadFailed(message=str(e), request_id=request_id))
            return

        movie = self.rng.choice(self.movies)
        self._emit(QuestionReceived(question=self.make_question(movie), request_id=request_id))

    async def _ensure_loaded(self, force: bool = False) -> None:
        if self.movies and not force:
            return
        self.movies = await asyncio.to_thread(self.loader.load_movies)

    def _emit(self, event: SourceEvent) -> None:
        if self._handler is None:
            self.logger.warning(f"No event handler registered, dropping {type(event).__name__}")
            return
        self._handler(event)

    def _spawn(self, coro) -> asyncio.Task:
        # Keep a strong reference until the task finishes
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
