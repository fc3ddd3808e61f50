"""
Countdown timing for quiz questions.
Owns the single per-question timer task and its lifecycle logging.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(question_index: int, duration: int) -> None:
        """Log timer countdown start."""
        logger.info(
            f"Timer lifecycle: COUNTDOWN_START - Question {question_index + 1}, Duration {duration}s",
            extra={
                'event_type': 'timer_countdown_start',
                'question_index': question_index,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_update(question_index: int, remaining_time: int, total_duration: int) -> None:
        """Log timer update events (throttled to avoid spam)."""
        if remaining_time % 10 == 0 or remaining_time <= 5:
            progress_percent = ((total_duration - remaining_time) / total_duration) * 100
            logger.debug(
                f"Timer lifecycle: UPDATE - Question {question_index + 1}, Remaining {remaining_time}s ({progress_percent:.1f}% complete)",
                extra={
                    'event_type': 'timer_update',
                    'question_index': question_index,
                    'remaining_time': remaining_time,
                    'total_duration': total_duration,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_completion(question_index: int, completion_type: str, total_duration: int) -> None:
        """Log timer completion (natural expiry or cancellation)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Question {question_index + 1}, Type {completion_type}, Duration {total_duration}s",
            extra={
                'event_type': 'timer_completed',
                'question_index': question_index,
                'completion_type': completion_type,
                'total_duration': total_duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(question_index: int, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Question {question_index + 1}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'question_index': question_index,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """Countdown for a single question."""

    def __init__(self, question_index: int, tick_interval: float = 1.0):
        self._task: Optional[asyncio.Task] = None
        self._question_index = question_index
        self._tick_interval = tick_interval
        self._remaining_time = 0
        self._total_duration = 0
        self._is_cancelled = False

    async def start_countdown(
        self,
        duration: int,
        update_callback: Callable[[int], Awaitable[Any]],
        completion_callback: Callable[[], Awaitable[Any]]
    ) -> None:
        """
        Count down from duration, calling update_callback after every tick.

        Args:
            duration: Timer duration in seconds
            update_callback: Called each tick with the remaining time
            completion_callback: Called once when the countdown reaches zero;
                never called after cancellation
        """
        self._remaining_time = duration
        self._total_duration = duration
        self._is_cancelled = False

        TimerLifecycleLogger.log_timer_start(self._question_index, duration)

        try:
            while self._remaining_time > 0 and not self._is_cancelled:
                await asyncio.sleep(self._tick_interval)
                if self._is_cancelled:
                    break
                self._remaining_time -= 1
                TimerLifecycleLogger.log_timer_update(
                    self._question_index,
                    self._remaining_time,
                    self._total_duration
                )
                await update_callback(self._remaining_time)

            if self._is_cancelled:
                TimerLifecycleLogger.log_timer_completion(
                    self._question_index, "cancelled", self._total_duration
                )
                return

            TimerLifecycleLogger.log_timer_completion(
                self._question_index, "natural_expiry", self._total_duration
            )
            await completion_callback()

        except asyncio.CancelledError:
            self._is_cancelled = True
            TimerLifecycleLogger.log_timer_completion(
                self._question_index, "asyncio_cancelled", self._total_duration
            )
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self._question_index,
                "countdown_execution_error",
                str(e),
                "start_countdown"
            )
            raise

    def cancel(self) -> None:
        """Mark the timer cancelled and cancel its task unless it is the caller."""
        self._is_cancelled = True
        if self._task and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()

    @property
    def question_index(self) -> int:
        return self._question_index

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def remaining_time(self) -> int:
        return self._remaining_time


class QuizEngine:
    """Runs at most one question countdown at a time."""

    def __init__(self, tick_interval: float = 1.0):
        self.tick_interval = tick_interval
        self._timer: Optional[QuizTimer] = None

    def start_question_timer(
        self,
        question_index: int,
        duration: int,
        update_callback: Callable[[int], Awaitable[Any]],
        completion_callback: Callable[[], Awaitable[Any]]
    ) -> QuizTimer:
        """
        Start a countdown for a question as a background task.

        Any previous countdown is cancelled first, so no two timers can run
        at the same time.

        Args:
            question_index: Index of the question the countdown belongs to
            duration: Timer duration in seconds
            update_callback: Called each tick with the remaining time
            completion_callback: Called when the countdown expires

        Returns:
            The running QuizTimer
        """
        self.cancel_timer()

        timer = QuizTimer(question_index, tick_interval=self.tick_interval)
        timer._task = asyncio.create_task(
            timer.start_countdown(duration, update_callback, completion_callback)
        )
        timer._task.add_done_callback(self._on_task_done)
        self._timer = timer

        logger.debug(
            f"Started countdown task for question {question_index + 1}",
            extra={
                'event_type': 'timer_task_started',
                'question_index': question_index,
                'task_id': str(id(timer._task)),
                'duration': duration,
                'timestamp': time.time()
            }
        )
        return timer

    def cancel_timer(self) -> bool:
        """
        Cancel the running countdown, if any.

        Returns:
            True if a timer was cancelled, False if none was active
        """
        timer = self._timer
        if timer is None:
            return False

        self._timer = None
        timer.cancel()
        logger.debug(
            f"Cancelled countdown for question {timer.question_index + 1}",
            extra={
                'event_type': 'timer_cancelled',
                'question_index': timer.question_index,
                'timestamp': time.time()
            }
        )
        return True

    async def wait_for_cancellation(self, timer: QuizTimer, max_wait_time: float = 2.0) -> bool:
        """
        Wait until a cancelled timer's task has actually finished.

        Returns:
            True if the task finished within max_wait_time
        """
        task = timer._task
        if task is None or task.done() or task is asyncio.current_task():
            return True

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=max_wait_time)
        except asyncio.CancelledError:
            # The timer task was cancelled, which is what we waited for
            if not task.cancelled():
                raise
        except asyncio.TimeoutError:
            TimerLifecycleLogger.log_timer_error(
                timer.question_index,
                "cancellation_timeout",
                f"Timer task did not finish within {max_wait_time}s",
                "wait_for_cancellation"
            )
            return False
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                timer.question_index, "execution_error", str(e), "wait_for_cancellation"
            )
        return task.done()

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Timer task failed: {error}", exc_info=error)

    def get_timer_status(self) -> Optional[dict]:
        """
        Get the status of the running countdown.

        Returns:
            Dictionary with timer status or None if no active timer
        """
        if self._timer is None:
            return None
        return {
            'question_index': self._timer.question_index,
            'remaining_time': self._timer.remaining_time,
            'is_cancelled': self._timer.is_cancelled
        }

    @property
    def active_timer(self) -> Optional[QuizTimer]:
        return self._timer
