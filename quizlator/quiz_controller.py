"""
Quiz session controller for Quizlator.
Owns the category set, the running session and the countdown, and records
finished sessions on the leaderboard.
"""
import logging
import random
import time
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config_manager import ConfigManager
from .errors import FetchFailure, InvalidSessionStateError, MalformedCategoryResponse
from .leaderboard import LeaderboardStore
from .model_client import ModelClient
from .models import (
    DEFAULT_CATEGORIES,
    AnswerRecord,
    CategorySet,
    LeaderboardEntry,
    QuizQuestion,
    QuizSession,
)
from .quiz_engine import QuizEngine
from .response_parser import parse_categories, parse_quiz


RETRY_MESSAGE = "AI wysłało błędny tekst. Spróbuj kliknąć kategorię jeszcze raz."

# Never equal to any answer string, so a timed-out question is always wrong
_TIMEOUT = object()


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"


class QuizController:
    """
    Drives one quiz session at a time.

    States move IDLE -> LOADING -> ACTIVE -> FINISHED -> IDLE. Only one model
    request may be outstanding; a request whose result arrives after the
    player has moved on is discarded. The presentation layer observes the
    controller through the optional on_* coroutine callbacks.
    """

    def __init__(
        self,
        model_client: ModelClient,
        leaderboard: LeaderboardStore,
        config_manager: ConfigManager,
        quiz_engine: Optional[QuizEngine] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            model_client: Client used for category and question generation
            leaderboard: Store receiving finished sessions
            config_manager: Source of question count and timer duration
            quiz_engine: Countdown runner, a default one is created if None
            rng: Random source for option shuffling
        """
        self.logger = logging.getLogger(__name__)
        self.model_client = model_client
        self.leaderboard = leaderboard
        self.config_manager = config_manager
        self.quiz_engine = quiz_engine or QuizEngine()
        self._rng = rng

        self._state = SessionState.IDLE
        self._session: Optional[QuizSession] = None
        self._categories: CategorySet = DEFAULT_CATEGORIES
        self._last_entry: Optional[LeaderboardEntry] = None
        self._fetch_generation = 0
        self._pending_category: Optional[str] = None

        self.on_question: Optional[Callable[[QuizSession], Awaitable[Any]]] = None
        self.on_tick: Optional[Callable[[QuizSession], Awaitable[Any]]] = None
        self.on_finished: Optional[Callable[[QuizSession, LeaderboardEntry], Awaitable[Any]]] = None

        self.logger.info("QuizController initialized")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[QuizSession]:
        return self._session

    @property
    def categories(self) -> CategorySet:
        return self._categories

    @property
    def last_entry(self) -> Optional[LeaderboardEntry]:
        return self._last_entry

    @property
    def pending_category(self) -> Optional[str]:
        return self._pending_category

    # ------------------------------------------------------------------
    # Category refresh
    # ------------------------------------------------------------------

    async def refresh_categories(self) -> Dict[str, Any]:
        """
        Regenerate the category set through the model.

        A failed request or a malformed response leaves the current
        categories untouched; the failure is only logged.

        Returns:
            Dictionary with success status and the category set now in use
        """
        if self._state == SessionState.LOADING:
            return self._busy_result()
        if self._state == SessionState.ACTIVE:
            return self._invalid_state_result("refresh_categories")

        previous_state = self._state
        generation = self._begin_fetch()
        changed = False

        try:
            raw_text = await self.model_client.generate_categories()
            new_categories = parse_categories(raw_text)
        except MalformedCategoryResponse as e:
            self.logger.warning(f"Keeping current categories, malformed response: {e}")
        except FetchFailure as e:
            self.logger.error(f"Category refresh failed: {e}")
        except Exception as e:
            self.logger.error(f"Unexpected error during category refresh: {e}", exc_info=True)
        else:
            if self._is_stale(generation):
                self.logger.info("Discarding stale category response")
            else:
                self._categories = new_categories
                changed = True
                self.logger.info(
                    f"Categories refreshed: {', '.join(new_categories.all())}",
                    extra={'event_type': 'categories_refreshed'}
                )

        if self._is_stale(generation):
            return {'success': False, 'stale': True, 'categories': self._categories}

        self._state = previous_state
        return {
            'success': changed,
            'categories': self._categories
        }

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def select_category(self, category: str) -> Dict[str, Any]:
        """
        Fetch questions for a category and start a session with them.

        Ignored while another request is outstanding. On any fetch or parse
        failure the controller returns to IDLE without creating a session.

        Args:
            category: Category label chosen by the player

        Returns:
            Dictionary with operation results and session info
        """
        if self._state == SessionState.LOADING:
            return self._busy_result()
        if self._state == SessionState.ACTIVE:
            return self._invalid_state_result("select_category")

        category = (category or "").strip()
        if not category:
            return {
                'success': False,
                'error': "Category must not be empty",
                'user_message': "❌ Wybierz kategorię"
            }

        self._session = None
        self._pending_category = category
        generation = self._begin_fetch()
        question_count = self.config_manager.get_question_count()

        self.logger.info(
            f"Fetching {question_count} questions for category '{category}'",
            extra={
                'event_type': 'questions_fetch_start',
                'category': category,
                'question_count': question_count,
                'timestamp': time.time()
            }
        )

        try:
            raw_text = await self.model_client.generate_questions(category, question_count)
            questions = parse_quiz(raw_text, rng=self._rng)
        except Exception as e:
            if isinstance(e, FetchFailure):
                self.logger.error(f"Question fetch failed for '{category}': {e}")
            else:
                self.logger.error(f"Unexpected error fetching questions for '{category}': {e}", exc_info=True)

            if self._is_stale(generation):
                return self._stale_result()

            self._state = SessionState.IDLE
            self._pending_category = None
            return {
                'success': False,
                'error': str(e),
                'user_message': RETRY_MESSAGE
            }

        if self._is_stale(generation):
            self.logger.info(f"Discarding stale question response for '{category}'")
            return self._stale_result()

        self._pending_category = None
        self._start_session(category, questions[:question_count])
        await self._notify(self.on_question, self._session)

        return {
            'success': True,
            'message': f"Quiz '{category}' started",
            'session_info': self.get_session_progress()
        }

    async def submit_answer(self, choice: str, question_index: Optional[int] = None) -> Dict[str, Any]:
        """
        Answer the current question.

        Args:
            choice: The selected option text
            question_index: Index of the question the player was shown; the
                answer is rejected if the session has moved past it

        Returns:
            Dictionary describing the scored answer and the new session state
        """
        session = self._session
        if question_index is not None and session is not None and (
            self._state == SessionState.FINISHED
            or (self._state == SessionState.ACTIVE and session.current_index != question_index)
        ):
            return self._expired_answer_result(question_index)

        if self._state != SessionState.ACTIVE or session is None:
            return self._invalid_state_result("submit_answer")

        return await self._answer_current(choice, timed_out=False)

    async def handle_timeout(self, question_index: int) -> Optional[Dict[str, Any]]:
        """
        Score the question a countdown belonged to as wrong and move on.

        Expiries for a question that is no longer current are ignored, which
        keeps the timeout to at most one firing per question.

        Args:
            question_index: Index the expired countdown was started for

        Returns:
            Answer result, or None if the expiry was ignored
        """
        session = self._session
        if (
            self._state != SessionState.ACTIVE
            or session is None
            or session.current_index != question_index
        ):
            self.logger.debug(
                f"Ignoring expired timer for question {question_index + 1}",
                extra={'event_type': 'timeout_ignored', 'question_index': question_index}
            )
            return None

        self.logger.info(
            f"Time is up for question {question_index + 1}",
            extra={'event_type': 'question_timeout', 'question_index': question_index}
        )
        return await self._answer_current(_TIMEOUT, timed_out=True)

    async def return_to_menu(self) -> bool:
        """
        Drop the current session or pending request and go back to IDLE.

        Returns:
            True if there was anything to leave, False if already IDLE
        """
        previous_state = self._state

        if previous_state == SessionState.IDLE:
            return False

        if previous_state == SessionState.LOADING:
            # Invalidate the outstanding request
            self._fetch_generation += 1
            self._pending_category = None
        elif previous_state == SessionState.ACTIVE:
            await self._stop_timer()
            self.logger.info(
                f"Session '{self._session.category}' abandoned at question "
                f"{self._session.current_index + 1}/{self._session.total}",
                extra={'event_type': 'session_abandoned'}
            )

        self._session = None
        self._state = SessionState.IDLE
        self.logger.info(
            f"Returned to menu from {previous_state.value}",
            extra={
                'event_type': 'state_transition',
                'from_state': previous_state.value,
                'to_state': SessionState.IDLE.value
            }
        )
        return True

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_current_question(self) -> Optional[QuizQuestion]:
        if self._state != SessionState.ACTIVE or self._session is None:
            return None
        return self._session.current_question

    def get_session_progress(self) -> Optional[Dict[str, Any]]:
        """
        Get progress information for the current session.

        Returns:
            Dictionary with progress info, None if there is no session
        """
        session = self._session
        if session is None:
            return None

        return {
            'category': session.category,
            'state': self._state.value,
            'current_question': min(session.current_index + 1, session.total),
            'total_questions': session.total,
            'score': session.score,
            'time_remaining': session.time_remaining,
            'start_time': session.start_time
        }

    def get_leaderboard(self) -> List[LeaderboardEntry]:
        return self.leaderboard.load()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin_fetch(self) -> int:
        self._fetch_generation += 1
        self._state = SessionState.LOADING
        return self._fetch_generation

    def _is_stale(self, generation: int) -> bool:
        return generation != self._fetch_generation or self._state != SessionState.LOADING

    def _start_session(self, category: str, questions: List[QuizQuestion]) -> None:
        duration = self.config_manager.get_timer_duration()
        self._session = QuizSession(
            category=category,
            questions=tuple(questions),
            timer_duration=duration,
            time_remaining=duration
        )
        self._state = SessionState.ACTIVE
        self.logger.info(
            f"Started session '{category}' with {len(questions)} questions",
            extra={
                'event_type': 'session_started',
                'category': category,
                'question_count': len(questions),
                'timestamp': time.time()
            }
        )
        self._start_timer()

    async def _answer_current(self, choice: Any, timed_out: bool) -> Dict[str, Any]:
        session = self._session
        question = session.current_question
        index = session.current_index

        self.quiz_engine.cancel_timer()

        correct = not timed_out and question.is_correct(choice)
        if correct:
            session.score += 1
        session.answers.append(AnswerRecord(
            question_index=index,
            choice="" if timed_out else choice,
            correct=correct,
            timed_out=timed_out
        ))

        result = {
            'success': True,
            'correct': correct,
            'timed_out': timed_out,
            'correct_answer': question.correct_answer,
            'question_number': index + 1,
            'score': session.score,
            'total_questions': session.total,
            'finished': False
        }

        if session.is_last_question:
            entry = self._finish_session()
            result.update({'finished': True, 'entry': entry})
            await self._notify(self.on_finished, session, entry)
            return result

        session.current_index += 1
        session.time_remaining = session.timer_duration
        self._start_timer()
        await self._notify(self.on_question, session)
        return result

    def _finish_session(self) -> LeaderboardEntry:
        session = self._session
        self._state = SessionState.FINISHED
        entry = LeaderboardEntry(
            category=session.category,
            score=session.score,
            total=session.total,
            date=datetime.now().strftime("%d.%m.%Y")
        )
        self.leaderboard.record(entry)
        self._last_entry = entry
        self.logger.info(
            f"Session '{session.category}' finished: {session.score}/{session.total}",
            extra={
                'event_type': 'session_finished',
                'category': session.category,
                'score': session.score,
                'total': session.total
            }
        )
        return entry

    def _start_timer(self) -> None:
        session = self._session
        index = session.current_index
        self.quiz_engine.start_question_timer(
            index,
            session.timer_duration,
            partial(self._on_timer_tick, index),
            partial(self.handle_timeout, index)
        )

    async def _stop_timer(self) -> None:
        timer = self.quiz_engine.active_timer
        if self.quiz_engine.cancel_timer() and timer is not None:
            await self.quiz_engine.wait_for_cancellation(timer)

    async def _on_timer_tick(self, question_index: int, remaining_time: int) -> None:
        session = self._session
        if self._state != SessionState.ACTIVE or session is None or session.current_index != question_index:
            return
        session.time_remaining = remaining_time
        await self._notify(self.on_tick, session)

    async def _notify(self, callback: Optional[Callable[..., Awaitable[Any]]], *args) -> None:
        if callback is None:
            return
        try:
            await callback(*args)
        except Exception as e:
            self.logger.error(f"Presentation callback {getattr(callback, '__name__', callback)} failed: {e}", exc_info=True)

    def _busy_result(self) -> Dict[str, Any]:
        self.logger.info("Ignoring request while another model request is outstanding")
        return {
            'success': False,
            'busy': True,
            'error': "A model request is already in progress",
            'user_message': "⏳ Buduję quiz... poczekaj chwilę"
        }

    def _stale_result(self) -> Dict[str, Any]:
        return {
            'success': False,
            'stale': True,
            'error': "Response arrived after the request was superseded"
        }

    def _expired_answer_result(self, question_index: int) -> Dict[str, Any]:
        self.logger.info(
            f"Rejecting late answer for question {question_index + 1}",
            extra={'event_type': 'answer_expired', 'question_index': question_index}
        )
        return {
            'success': False,
            'expired': True,
            'error': f"Question {question_index + 1} is no longer current",
            'user_message': "⏰ Czas na to pytanie minął. Odpowiedz na kolejne."
        }

    def _invalid_state_result(self, operation: str) -> Dict[str, Any]:
        error = InvalidSessionStateError(f"Cannot {operation} while {self._state.value}")
        self.logger.warning(str(error))
        if self._state == SessionState.ACTIVE:
            user_message = "❌ Quiz już trwa. Odpowiedz na pytanie albo wróć do menu (/menu)."
        else:
            user_message = "❌ Brak aktywnego quizu. Wybierz kategorię komendą /play."
        return {
            'success': False,
            'error': str(error),
            'user_message': user_message
        }
