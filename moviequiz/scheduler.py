"""
Cancellable delayed callbacks for the feedback interval.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CancelToken:
    """Handle returned by a scheduler; cancelling it suppresses the callback."""

    def __init__(self, name: str = None):
        self.name = name
        self._cancelled = False
        self._fired = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
        TimerLifecycleLogger.log_timer_cancelled(self.name, self._fired)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def active(self) -> bool:
        """True while the callback is still due to run."""
        return not self._cancelled and not self._fired


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_scheduled(name: str, delay: float) -> None:
        logger.debug(
            f"Timer lifecycle: SCHEDULED - {name}, Delay {delay:.3f}s",
            extra={
                'event_type': 'timer_scheduled',
                'timer_name': name,
                'delay': delay,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_fired(name: str) -> None:
        logger.debug(
            f"Timer lifecycle: FIRED - {name}",
            extra={
                'event_type': 'timer_fired',
                'timer_name': name,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_cancelled(name: str, already_fired: bool) -> None:
        logger.debug(
            f"Timer lifecycle: CANCELLED - {name}" + (" (already fired)" if already_fired else ""),
            extra={
                'event_type': 'timer_cancelled',
                'timer_name': name,
                'already_fired': already_fired,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(name: str, error_type: str, error_message: str) -> None:
        logger.error(
            f"Timer lifecycle: ERROR - {name}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'timer_name': name,
                'error_type': error_type,
                'error_message': error_message,
                'timestamp': time.time()
            }
        )


class Scheduler(ABC):
    """Runs a callback once after a delay."""

    @abstractmethod
    def schedule_after(self, delay: float, callback: Callable[[], None], name: str = None) -> CancelToken:
        """
        Schedule callback to run after delay seconds.

        Returns:
            Token whose cancel() prevents the callback from running
        """

    @staticmethod
    def _run(token: CancelToken, callback: Callable[[], None]) -> None:
        if token.cancelled:
            return
        token._fired = True
        TimerLifecycleLogger.log_timer_fired(token.name)
        try:
            callback()
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(token.name, type(e).__name__, str(e))
            raise


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule_after(self, delay: float, callback: Callable[[], None], name: str = None) -> CancelToken:
        if delay < 0:
            raise ValueError(f"Delay must not be negative, got {delay}")

        token = CancelToken(name or f"timer-{id(callback)}")
        token._handle = self.loop.call_later(delay, self._run, token, callback)
        TimerLifecycleLogger.log_timer_scheduled(token.name, delay)
        return token
