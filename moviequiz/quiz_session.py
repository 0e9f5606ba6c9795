"""
Quiz session state machine.
Sequences one round of questions, scores answers and records finished rounds.
"""
import logging
import time
from enum import Enum
from typing import Optional

from .errors import ConfigurationError, InvalidStateError
from .models import (
    AlertModel, DataLoaded, GameResult, LoadFailed, QuestionReceived, QuizQuestion,
    QuizResultsViewModel, QuizSettings, QuizStepViewModel, SourceEvent
)
from .result_formatter import format_results
from .scheduler import CancelToken, Scheduler
from .statistic_service import StatisticService


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    IDLE = "idle"
    AWAITING_QUESTION = "awaiting_question"
    AWAITING_ANSWER = "awaiting_answer"
    SHOWING_FEEDBACK = "showing_feedback"
    ROUND_COMPLETE = "round_complete"


class QuizSessionListener:
    """Receives display updates from a session. All methods default to no-ops."""

    def show_loading(self) -> None:
        pass

    def show_question(self, step: QuizStepViewModel) -> None:
        pass

    def show_answer_result(self, is_correct: bool) -> None:
        pass

    def show_results(self, results: QuizResultsViewModel) -> None:
        pass

    def show_network_error(self, alert: AlertModel) -> None:
        pass


class QuizSession:
    """
    Orchestrates one run of N questions against a question source.

    The session is driven by discrete events: questions delivered by the
    source, answers submitted by the player and the elapsed feedback
    interval. Only one of them is processed at a time.
    """

    RESULTS_TITLE = "This round is over!"
    RESULTS_BUTTON = "Play again"
    ERROR_TITLE = "Error"
    ERROR_BUTTON = "Try again"

    def __init__(
        self,
        question_source,
        statistic_service: StatisticService,
        scheduler: Scheduler,
        settings: Optional[QuizSettings] = None,
        listener: Optional[QuizSessionListener] = None
    ):
        """
        Initialize the quiz session.

        Args:
            question_source: Object with set_event_handler, load_data and
                request_next_question
            statistic_service: Store receiving finished rounds
            scheduler: Runs the feedback interval
            settings: Round length and feedback delay
            listener: Presentation callbacks

        Raises:
            ConfigurationError: If the settings describe an invalid round
        """
        self.logger = logging.getLogger(__name__)
        settings = settings or QuizSettings()
        self._validate_settings(settings)

        self.question_source = question_source
        self.statistic_service = statistic_service
        self.scheduler = scheduler
        self.settings = settings
        self.listener = listener or QuizSessionListener()

        self._state = SessionState.IDLE
        self._current_index = 0
        self._correct_answers = 0
        self._current_question: Optional[QuizQuestion] = None

        # Monotonic counters used to recognise stale responses and timers
        self._round_id = 0
        self._next_request_id = 0
        self._pending_request_id: Optional[int] = None
        self._feedback_token: Optional[CancelToken] = None

        self.last_result: Optional[GameResult] = None
        self.result_message: Optional[str] = None
        self.last_error: Optional[str] = None

        self.question_source.set_event_handler(self.handle_event)
        self.logger.info(f"QuizSession initialized with {settings.questions_amount} questions per round")

    def _validate_settings(self, settings: QuizSettings) -> None:
        amount = settings.questions_amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            error_msg = f"questions_amount must be a positive integer, got {amount!r}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg)

        delay = settings.feedback_delay
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
            error_msg = f"feedback_delay must be a non-negative number, got {delay!r}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg)

    # Read-only snapshots

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def questions_amount(self) -> int:
        return self.settings.questions_amount

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def correct_answers(self) -> int:
        return self._correct_answers

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        return self._current_question

    @property
    def question_number(self) -> str:
        return f"{self._current_index + 1}/{self.questions_amount}"

    @property
    def is_last_question(self) -> bool:
        return self._current_index == self.questions_amount - 1

    def current_step(self) -> Optional[QuizStepViewModel]:
        """View model for the question awaiting an answer, if any."""
        if self._current_question is None:
            return None
        return self.convert(self._current_question)

    def convert(self, question: QuizQuestion) -> QuizStepViewModel:
        return QuizStepViewModel(
            image_ref=question.image_ref,
            question=question.text,
            question_number=self.question_number
        )

    # Lifecycle

    def load_data(self) -> None:
        """Ask the source to prime its data; the round starts once it is loaded."""
        self.listener.show_loading()
        self.question_source.load_data()

    def start(self) -> None:
        """
        Start a new round.

        Raises:
            InvalidStateError: If the session is not idle
        """
        if self._state != SessionState.IDLE:
            raise InvalidStateError(f"Cannot start a round while {self._state.value}")

        self._round_id += 1
        self._current_index = 0
        self._correct_answers = 0
        self._current_question = None
        self.last_result = None
        self.result_message = None
        self.last_error = None

        self.logger.info(
            f"Starting round {self._round_id}",
            extra={
                'event_type': 'round_started',
                'round_id': self._round_id,
                'questions_amount': self.questions_amount,
                'timestamp': time.time()
            }
        )
        self._request_question()

    def restart(self) -> None:
        """Abandon whatever is in progress and start a fresh round."""
        self.logger.info(f"Restart requested while {self._state.value}")
        self._cancel_feedback_timer()
        self._pending_request_id = None
        self._current_question = None
        self._transition(SessionState.IDLE, "restart")
        self.start()

    # Source events

    def handle_event(self, event: SourceEvent) -> None:
        """Dispatch an event delivered by the question source."""
        if isinstance(event, QuestionReceived):
            self.on_question_received(event.question, event.request_id)
        elif isinstance(event, LoadFailed):
            self.on_load_failed(event.message, event.request_id)
        elif isinstance(event, DataLoaded):
            self.on_data_loaded()
        else:
            raise TypeError(f"Unknown source event: {event!r}")

    def on_data_loaded(self) -> None:
        """Start a round if the session is idle or stalled after a failure."""
        self.logger.info("Question source reported data loaded")
        if self._state == SessionState.IDLE:
            self.start()
        elif self._state == SessionState.AWAITING_QUESTION and self._pending_request_id is None:
            self.restart()

    def on_question_received(self, question: Optional[QuizQuestion], request_id: Optional[int] = None) -> None:
        """
        Accept the question for the pending request.

        Responses outside AWAITING_QUESTION or for a superseded request are
        discarded. A missing question leaves the session waiting.
        """
        if not self._accepts_response(request_id):
            self.logger.debug(
                f"Discarding question for request {request_id} while {self._state.value}",
                extra={
                    'event_type': 'stale_question_discarded',
                    'request_id': request_id,
                    'pending_request_id': self._pending_request_id,
                    'state': self._state.value,
                    'timestamp': time.time()
                }
            )
            return

        if question is None:
            self.logger.warning(f"Question source delivered no question for {self.question_number}")
            return

        self._pending_request_id = None
        self._current_question = question
        self._transition(SessionState.AWAITING_ANSWER, "question received")
        self.listener.show_question(self.convert(question))

    def on_load_failed(self, message: str, request_id: Optional[int] = None) -> None:
        """
        Report a source failure; the only way forward is restart().

        Tagged failures count only for the pending request. Untagged ones
        count only while no question is on screen.
        """
        if request_id is not None and request_id != self._pending_request_id:
            self.logger.debug(f"Discarding failure for superseded request {request_id}: {message}")
            return
        if request_id is None and self._state not in (SessionState.IDLE, SessionState.AWAITING_QUESTION):
            self.logger.debug(f"Discarding untagged failure while {self._state.value}: {message}")
            return

        self._pending_request_id = None
        self.last_error = message
        self.logger.error(
            f"Question source failed: {message}",
            extra={
                'event_type': 'source_failure',
                'round_id': self._round_id,
                'state': self._state.value,
                'timestamp': time.time()
            }
        )
        self.listener.show_network_error(
            AlertModel(title=self.ERROR_TITLE, message=message, button_text=self.ERROR_BUTTON)
        )

    # Player events

    def submit_answer(self, answer: bool) -> bool:
        """
        Score the player's answer to the current question.

        Args:
            answer: The yes/no response

        Returns:
            True if the answer was correct

        Raises:
            InvalidStateError: If no question is awaiting an answer
        """
        if self._state != SessionState.AWAITING_ANSWER or self._current_question is None:
            raise InvalidStateError(f"No question to answer while {self._state.value}")

        is_correct = answer == self._current_question.correct_answer
        if is_correct:
            self._correct_answers += 1

        self._transition(SessionState.SHOWING_FEEDBACK, "answer submitted")
        self.listener.show_answer_result(is_correct)

        round_id = self._round_id
        self._feedback_token = self.scheduler.schedule_after(
            self.settings.feedback_delay,
            lambda: self._feedback_elapsed_for(round_id),
            name=f"feedback-round{round_id}-q{self._current_index + 1}"
        )
        return is_correct

    def on_feedback_elapsed(self) -> None:
        """
        Advance after the feedback interval.

        Raises:
            InvalidStateError: If the session is not showing feedback
        """
        if self._state != SessionState.SHOWING_FEEDBACK:
            raise InvalidStateError(f"No feedback pending while {self._state.value}")

        self._feedback_token = None
        if self.is_last_question:
            self._transition(SessionState.ROUND_COMPLETE, "last question answered")
            self.finalize_round()
        else:
            self._current_index += 1
            self._current_question = None
            self._request_question()

    def _feedback_elapsed_for(self, round_id: int) -> None:
        if round_id != self._round_id or self._state != SessionState.SHOWING_FEEDBACK:
            self.logger.debug(f"Ignoring stale feedback timer for round {round_id}")
            return
        self.on_feedback_elapsed()

    def finalize_round(self) -> GameResult:
        """Record the finished round and publish its summary."""
        self.last_result = self.statistic_service.store(self._correct_answers, self.questions_amount)
        self.result_message = format_results(self.last_result, self.statistic_service.aggregate())

        self.logger.info(
            f"Round {self._round_id} complete: {self._correct_answers}/{self.questions_amount}",
            extra={
                'event_type': 'round_completed',
                'round_id': self._round_id,
                'correct': self._correct_answers,
                'total': self.questions_amount,
                'timestamp': time.time()
            }
        )
        self.listener.show_results(
            QuizResultsViewModel(
                title=self.RESULTS_TITLE,
                text=self.result_message,
                button_text=self.RESULTS_BUTTON
            )
        )
        return self.last_result

    # Internals

    def _request_question(self) -> None:
        self._next_request_id += 1
        self._pending_request_id = self._next_request_id
        self._transition(SessionState.AWAITING_QUESTION, f"requesting question {self.question_number}")
        self.listener.show_loading()
        self.question_source.request_next_question(self._pending_request_id)

    def _accepts_response(self, request_id: Optional[int]) -> bool:
        if self._state != SessionState.AWAITING_QUESTION or self._pending_request_id is None:
            return False
        return request_id is None or request_id == self._pending_request_id

    def _cancel_feedback_timer(self) -> None:
        if self._feedback_token is not None:
            self._feedback_token.cancel()
            self._feedback_token = None

    def _transition(self, to_state: SessionState, reason: str) -> None:
        from_state = self._state
        self._state = to_state
        self.logger.debug(
            f"Session state: {from_state.value} -> {to_state.value} ({reason})",
            extra={
                'event_type': 'session_state_transition',
                'round_id': self._round_id,
                'from_state': from_state.value,
                'to_state': to_state.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )
