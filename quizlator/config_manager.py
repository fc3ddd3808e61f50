"""
Configuration manager for Quizlator game settings and model parameters.
"""
import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

from .models import QuizSettings, DEFAULT_QUESTION_COUNT, DEFAULT_TIMER_DURATION


class ConfigManager:
    """Manages game settings, model parameters and storage locations."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = DEFAULT_QUESTION_COUNT
    DEFAULT_TIMER_DURATION = DEFAULT_TIMER_DURATION
    DEFAULT_DARK_MODE = True
    DEFAULT_LEADERBOARD_PATH = "./data/quiz_scores.json"
    DEFAULT_MODEL_NAME = "meta-llama/Meta-Llama-3-8B-Instruct"
    DEFAULT_MODEL_TIMEOUT = 60.0

    # Validation limits
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 20

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._global_settings = QuizSettings()
        self._leaderboard_path = self.DEFAULT_LEADERBOARD_PATH
        self._model_name = self.DEFAULT_MODEL_NAME
        self._model_timeout = self.DEFAULT_MODEL_TIMEOUT

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the current QuizSettings
        """
        return QuizSettings(
            question_count=self._global_settings.question_count,
            timer_duration=self._global_settings.timer_duration,
            dark_mode=self._global_settings.dark_mode,
            show_leaderboard=self._global_settings.show_leaderboard
        )

    def clamp_question_count(self, count: int) -> int:
        """Clamp a requested question count into the allowed range."""
        return max(self.MIN_QUESTION_COUNT, min(self.MAX_QUESTION_COUNT, count))

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set the number of questions requested for the next quiz.

        Values outside the allowed range are clamped rather than rejected.

        Args:
            count: Requested number of questions

        Returns:
            Dictionary with success status, applied value and user-friendly message
        """
        if not isinstance(count, int) or isinstance(count, bool):
            error_msg = f"Question count must be an integer, got {type(count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Nieprawidłowa wartość: podaj liczbę pytań"
            }

        applied = self.clamp_question_count(count)
        self._global_settings.question_count = applied

        if applied != count:
            self.logger.info(f"Question count {count} clamped to {applied}")
            return {
                'success': True,
                'value': applied,
                'message': f"Question count {count} clamped to {applied}",
                'user_message': (
                    f"⚠️ Dozwolone {self.MIN_QUESTION_COUNT}-{self.MAX_QUESTION_COUNT} pytań, "
                    f"ustawiono {applied}"
                )
            }

        self.logger.info(f"Question count set to {applied}")
        return {
            'success': True,
            'value': applied,
            'message': f"Question count set to {applied}",
            'user_message': f"✅ Liczba pytań: {applied}"
        }

    def get_question_count(self) -> int:
        return self._global_settings.question_count

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown length for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(duration, int) or isinstance(duration, bool):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Nieprawidłowa wartość: podaj liczbę sekund"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Za krótki czas: minimum {self.MIN_TIMER_DURATION} s"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Za długi czas: maksimum {self.MAX_TIMER_DURATION} s"
            }

        self._global_settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'value': duration,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Czas na pytanie: {duration} s"
        }

    def get_timer_duration(self) -> int:
        return self._global_settings.timer_duration

    def toggle_dark_mode(self) -> Dict[str, Any]:
        """Switch between the dark and light theme."""
        new_value = not self._global_settings.dark_mode
        self._global_settings.dark_mode = new_value
        theme = "dark" if new_value else "light"
        self.logger.info(f"Theme set to {theme}")
        return {
            'success': True,
            'new_value': new_value,
            'message': f"Theme set to {theme}",
            'user_message': "🌙 Tryb ciemny" if new_value else "☀️ Tryb jasny"
        }

    def is_dark_mode(self) -> bool:
        return self._global_settings.dark_mode

    def toggle_leaderboard(self) -> Dict[str, Any]:
        """Show or hide the leaderboard on the menu."""
        new_value = not self._global_settings.show_leaderboard
        self._global_settings.show_leaderboard = new_value
        self.logger.info(f"Leaderboard visibility set to {new_value}")
        return {
            'success': True,
            'new_value': new_value,
            'message': f"Leaderboard visibility set to {new_value}"
        }

    def set_leaderboard_path(self, path: str) -> Dict[str, Any]:
        """
        Set the JSON file used for the leaderboard.

        Args:
            path: File path

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str) or not path.strip():
            error_msg = "Leaderboard path must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Nieprawidłowa ścieżka rankingu"
            }

        try:
            normalized_path = str(Path(path).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid leaderboard path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Nieprawidłowa ścieżka: {path}"
            }

        self._leaderboard_path = normalized_path
        self.logger.info(f"Leaderboard path set to {normalized_path}")
        return {
            'success': True,
            'message': f"Leaderboard path set to {normalized_path}"
        }

    def get_leaderboard_path(self) -> str:
        return self._leaderboard_path

    def set_model(self, name: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Set the model identifier and request timeout.

        Args:
            name: Hugging Face model repository id
            timeout: Request timeout in seconds, unchanged if None

        Returns:
            Dictionary with success status and error message if applicable
        """
        if not isinstance(name, str) or not name.strip():
            error_msg = "Model name must be a non-empty string"
            self.logger.error(error_msg)
            return {'success': False, 'error': error_msg}

        if timeout is not None:
            if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
                error_msg = f"Model timeout must be a positive number, got {timeout!r}"
                self.logger.error(error_msg)
                return {'success': False, 'error': error_msg}
            self._model_timeout = float(timeout)

        self._model_name = name.strip()
        self.logger.info(f"Model set to {self._model_name} (timeout {self._model_timeout}s)")
        return {
            'success': True,
            'message': f"Model set to {self._model_name}"
        }

    def get_model_name(self) -> str:
        return self._model_name

    def get_model_timeout(self) -> float:
        return self._model_timeout

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._global_settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            timer_duration=self.DEFAULT_TIMER_DURATION,
            dark_mode=self.DEFAULT_DARK_MODE,
            show_leaderboard=False
        )
        self._leaderboard_path = self.DEFAULT_LEADERBOARD_PATH
        self._model_name = self.DEFAULT_MODEL_NAME
        self._model_timeout = self.DEFAULT_MODEL_TIMEOUT
        self.logger.info("All settings reset to default values")

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply settings from a parsed config.json dictionary.

        Invalid values are logged and skipped; defaults stay in place.

        Args:
            config: Parsed configuration

        Returns:
            List of error messages for settings that were rejected
        """
        errors = []
        quiz_config = config.get('quiz', {}) or {}
        model_config = config.get('model', {}) or {}

        results = []
        if 'default_question_count' in quiz_config:
            results.append(self.set_question_count(quiz_config['default_question_count']))
        if 'timer_duration' in quiz_config:
            results.append(self.set_timer_duration(quiz_config['timer_duration']))
        if 'leaderboard_path' in quiz_config:
            results.append(self.set_leaderboard_path(quiz_config['leaderboard_path']))
        if 'dark_mode' in quiz_config and bool(quiz_config['dark_mode']) != self.is_dark_mode():
            results.append(self.toggle_dark_mode())
        if 'name' in model_config or 'timeout' in model_config:
            results.append(self.set_model(
                model_config.get('name', self._model_name),
                model_config.get('timeout')
            ))

        for result in results:
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Ignored {len(errors)} invalid configuration values")
        return errors

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        count = self._global_settings.question_count
        if not isinstance(count, int) or not self.MIN_QUESTION_COUNT <= count <= self.MAX_QUESTION_COUNT:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question count: {count}")

        duration = self._global_settings.timer_duration
        if not isinstance(duration, int) or not self.MIN_TIMER_DURATION <= duration <= self.MAX_TIMER_DURATION:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid timer duration: {duration}")

        if not isinstance(self._leaderboard_path, str) or not self._leaderboard_path.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid leaderboard path: {self._leaderboard_path}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Ustawienia:\n"
            f"• Pytania: {self._global_settings.question_count}\n"
            f"• Czas: {self._global_settings.timer_duration} s\n"
            f"• Motyw: {'ciemny' if self._global_settings.dark_mode else 'jasny'}\n"
            f"• Model: {self._model_name}"
        )
